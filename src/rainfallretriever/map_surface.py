"""Map Interaction Surface: a view bound to the orchestrator's form and result state.

The surface keeps a ``MapView`` (what the rendered map should show) inside an
owned ``MapHandles`` record that exists only between ``mount`` and
``unmount``. Rendering to folium is a pure function of the view
(``renderers/folium_map.py``).
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from rainfallretriever.models import (
    Coordinate,
    CoordinateForm,
    Phase,
    RainfallDataset,
    RetrievalState,
    TableKind,
)
from rainfallretriever.orchestrator import RetrievalOrchestrator

logger = logging.getLogger(__name__)

_METRES_PER_DEGREE_LAT = 111_320.0
_EVENT_TOLERANCE = 1e-6  # Form text carries 6 decimals

Point = tuple[float, float]


def affected_radius(dataset: RainfallDataset, scale: float = 500.0) -> float:
    """Overlay radius: worst-case (100-yr) intensity × ``scale`` metres."""
    if not dataset.intensity:
        return 0.0
    return dataset.max_value(TableKind.INTENSITY, "100-yr") * scale


def circle_bounds(center: Coordinate, radius_m: float) -> list[list[float]]:
    """Bounding box ``[[south, west], [north, east]]`` of a circle on the map."""
    dlat = radius_m / _METRES_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(center.latitude)), 1e-6)
    dlng = radius_m / (_METRES_PER_DEGREE_LAT * cos_lat)
    return [
        [max(center.latitude - dlat, -90.0), max(center.longitude - dlng, -180.0)],
        [min(center.latitude + dlat, 90.0), min(center.longitude + dlng, 180.0)],
    ]


def _near(point: Point, coord: Coordinate) -> bool:
    return (
        abs(point[0] - coord.latitude) <= _EVENT_TOLERANCE
        and abs(point[1] - coord.longitude) <= _EVENT_TOLERANCE
    )


def _drawn_point(feature: Any) -> Point | None:
    """``(lat, lng)`` of a GeoJSON Point feature, else None."""
    if not isinstance(feature, dict):
        return None
    geometry = feature.get("geometry") or {}
    coords = geometry.get("coordinates")
    if geometry.get("type") != "Point" or not coords or len(coords) < 2:
        return None
    lng, lat = coords[0], coords[1]  # GeoJSON order
    return float(lat), float(lng)


@dataclass(frozen=True)
class Overlay:
    """Affected-radius circle."""

    center: Coordinate
    radius_m: float


@dataclass
class MapView:
    """What the rendered map should currently show."""

    center: Coordinate
    marker: Coordinate
    zoom: int = 13
    overlay: Overlay | None = None
    fit_bounds: list[list[float]] | None = None
    revision: int = 0  # Bumped on every actual mutation


@dataclass
class MapHandles:
    """Resources owned by a mounted surface."""

    view: MapView
    unsubscribe: Any  # Callable returned by RetrievalOrchestrator.subscribe


class MapSurface:
    """Two-way binding between the map and the orchestrator.

    Map clicks and marker drags write into the orchestrator (forcing COORDS
    mode). Form and state changes flow back through a subscription and move
    the marker, re-center the view, and draw or remove the overlay.
    """

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        radius_scale: float = 500.0,
        zoom: int = 13,
    ) -> None:
        self._orchestrator = orchestrator
        self._radius_scale = radius_scale
        self._zoom = zoom
        self._handles: MapHandles | None = None
        self._last_phase: Phase | None = None
        self._last_seen: dict[str, Point] = {}

    # --- Lifecycle ---

    @property
    def mounted(self) -> bool:
        return self._handles is not None

    @property
    def view(self) -> MapView:
        if self._handles is None:
            raise RuntimeError("map surface is not mounted")
        return self._handles.view

    def mount(self) -> "MapSurface":
        if self._handles is not None:
            raise RuntimeError("map surface is already mounted")
        form = self._orchestrator.form
        start = form.coordinate() or Coordinate(0.0, 0.0)
        view = MapView(center=start, marker=start, zoom=self._zoom)
        self._handles = MapHandles(
            view=view, unsubscribe=self._orchestrator.subscribe(self._on_change)
        )
        self._last_phase = None
        self._last_seen = {}
        self._on_change(form, self._orchestrator.state)
        logger.debug("Map surface mounted at %s", start)
        return self

    def unmount(self) -> None:
        handles, self._handles = self._handles, None
        if handles is None:
            return
        handles.unsubscribe()
        handles.view.overlay = None
        handles.view.fit_bounds = None
        logger.debug("Map surface unmounted")

    def __enter__(self) -> "MapSurface":
        return self.mount()

    def __exit__(self, *exc_info: object) -> None:
        self.unmount()

    # --- Map → model ---

    def handle_click(self, lat: float, lng: float) -> None:
        if self._handles is None:
            return
        self._orchestrator.on_map_interaction(lat, lng)

    def handle_drag(self, lat: float, lng: float) -> None:
        if self._handles is None:
            return
        self._orchestrator.on_map_interaction(lat, lng)

    def handle_event(self, event: dict[str, Any] | None) -> bool:
        """Consume a streamlit-folium result dict.

        ``last_clicked`` is a map click. A GeoJSON point in
        ``last_active_drawing`` or ``all_drawings`` that is away from the
        marker is a marker drag (draw-plugin edit) or a dropped pin. Streamlit
        reruns replay the same values, so a point equal to the previous one
        from the same source is ignored.

        Returns:
            True if a new click or drag was forwarded to the orchestrator.
        """
        if self._handles is None or not event:
            return False

        clicked = event.get("last_clicked")
        if clicked:
            point = (float(clicked["lat"]), float(clicked["lng"]))
            if self._is_new("click", point):
                self.handle_click(*point)
                return True

        features = [event.get("last_active_drawing"), *(event.get("all_drawings") or [])]
        marker = self.view.marker
        for feature in features:
            point = _drawn_point(feature)
            if point is None or _near(point, marker):
                continue
            if self._is_new("drag", point):
                self.handle_drag(*point)
                return True
        return False

    def _is_new(self, source: str, point: Point) -> bool:
        if self._last_seen.get(source) == point:
            return False
        self._last_seen[source] = point
        return True

    # --- Model → map ---

    def sync_coordinate(self, coord: Coordinate) -> bool:
        """Move marker and re-center the view; no-op when already there.

        Returns:
            True if the view was mutated.
        """
        view = self.view
        changed = False
        if not coord.same_position(view.marker):
            view.marker = coord
            changed = True
        if not coord.same_position(view.center):
            view.center = coord
            view.fit_bounds = None
            changed = True
        if not changed:
            logger.debug("Map sync skipped: already at %s", coord)
            return False
        if view.overlay is not None:
            view.overlay = Overlay(center=coord, radius_m=view.overlay.radius_m)
        # The map remounts on a new revision; only the event that led here stays
        self._last_seen = {
            source: point for source, point in self._last_seen.items() if _near(point, coord)
        }
        view.revision += 1
        return True

    def _clear_overlay(self) -> None:
        view = self.view
        if view.overlay is not None or view.fit_bounds is not None:
            view.overlay = None
            view.fit_bounds = None
            view.revision += 1

    def _draw_overlay(self, dataset: RainfallDataset) -> None:
        view = self.view
        radius = affected_radius(dataset, self._radius_scale)
        view.overlay = Overlay(center=view.marker, radius_m=radius)
        if radius > 0:
            view.fit_bounds = circle_bounds(view.marker, radius)
        view.revision += 1
        logger.debug("Overlay drawn: radius=%.1f m", radius)

    def _on_change(self, form: CoordinateForm, state: RetrievalState) -> None:
        if self._handles is None:
            return
        coord = form.coordinate()
        if coord is not None:
            self.sync_coordinate(coord)

        if state.phase is not self._last_phase:
            self._clear_overlay()
            if state.phase is Phase.SUCCESS and state.dataset is not None:
                self._draw_overlay(state.dataset)
            self._last_phase = state.phase
