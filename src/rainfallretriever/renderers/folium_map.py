"""Folium renderer for a MapView."""

import folium
from folium.plugins import Draw

from rainfallretriever.map_surface import MapView

_OVERLAY_COLOR = "#0ea5e9"
_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
)
# Only the marker tool; edit mode drags the existing marker
_DRAW_OPTIONS = {
    "polyline": False,
    "polygon": False,
    "rectangle": False,
    "circle": False,
    "circlemarker": False,
    "marker": True,
}


def build_folium_map(view: MapView) -> folium.Map:
    """Render the current view: OSM tiles, an editable marker, the optional overlay.

    The marker sits in the draw plugin's feature group. Moving it in edit mode
    (or dropping a new pin) comes back from ``st_folium`` as a GeoJSON point in
    ``last_active_drawing`` / ``all_drawings``.

    Args:
        view: Mounted surface's view state.

    Returns:
        folium.Map ready for ``streamlit_folium.st_folium``.
    """
    m = folium.Map(
        location=[view.center.latitude, view.center.longitude],
        zoom_start=view.zoom,
        tiles=None,
        scroll_wheel_zoom=False,
    )
    folium.TileLayer(
        "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        attr=_ATTRIBUTION,
        name="OpenStreetMap",
    ).add_to(m)

    markers = folium.FeatureGroup(name="Location")
    folium.Marker([view.marker.latitude, view.marker.longitude]).add_to(markers)
    markers.add_to(m)
    Draw(
        feature_group=markers,
        show_geometry_on_click=False,
        draw_options=_DRAW_OPTIONS,
        edit_options={"edit": True, "remove": False},
    ).add_to(m)

    if view.overlay is not None:
        folium.Circle(
            location=[view.overlay.center.latitude, view.overlay.center.longitude],
            radius=view.overlay.radius_m,
            color=_OVERLAY_COLOR,
            fill=True,
            fill_color=_OVERLAY_COLOR,
            fill_opacity=0.2,
        ).add_to(m)

    if view.fit_bounds is not None:
        m.fit_bounds(view.fit_bounds)

    return m
