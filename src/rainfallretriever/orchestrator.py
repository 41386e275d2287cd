"""Retrieval state machine: input mode, validation, the two clients, and result state."""

import logging
from collections.abc import Callable
from typing import Protocol

from rainfallretriever.errors import (
    ErrorKind,
    RainfallRetrieverError,
    ValidationError,
)
from rainfallretriever.geocoding import Geocoder
from rainfallretriever.models import (
    Coordinate,
    CoordinateForm,
    InputMode,
    RainfallDataset,
    RetrievalIssue,
    RetrievalState,
    format_degrees,
)

logger = logging.getLogger(__name__)

INVALID_COORDINATES = (
    "Invalid coordinates. Please enter a valid latitude (-90 to 90) "
    "and longitude (-180 to 180)."
)
EMPTY_ADDRESS = "Please enter a U.S. address."

Listener = Callable[[CoordinateForm, RetrievalState], None]


class RainfallSource(Protocol):
    async def fetch_estimates(self, coord: Coordinate) -> RainfallDataset: ...


class RetrievalOrchestrator:
    """Coordinates form input, map interaction, geocoding and rainfall retrieval.

    All mutation happens on one event loop. ``submit`` sets LOADING before its
    first suspension point and clears it in ``finally``; a second ``submit``
    while LOADING is refused. Each attempt carries a generation number, and an
    outcome whose generation is stale (or arrives after ``close``) is dropped.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        rainfall_client: RainfallSource,
        form: CoordinateForm | None = None,
    ) -> None:
        self._geocoder = geocoder
        self._rainfall = rainfall_client
        self.form = form if form is not None else CoordinateForm()
        self.state = RetrievalState.idle()
        self._listeners: list[Listener] = []
        self._generation = 0
        self._closed = False

    # --- Subscription ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.form, self.state)
            except Exception:
                logger.exception("Listener %r failed", listener)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear down. Late-arriving results are discarded from now on."""
        self._closed = True
        self._listeners.clear()

    # --- Form edits (never trigger a retrieval) ---

    def set_mode(self, mode: InputMode) -> None:
        if self.form.mode is not mode:
            self.form.mode = mode
            self._notify()

    def set_latitude(self, text: str) -> None:
        if self.form.latitude != text:
            self.form.latitude = text
            self._notify()

    def set_longitude(self, text: str) -> None:
        if self.form.longitude != text:
            self.form.longitude = text
            self._notify()

    def set_address(self, text: str) -> None:
        if self.form.address != text:
            self.form.address = text
            self._notify()

    def on_map_interaction(self, lat: float, lng: float) -> None:
        """Map click/drag: write the point and force COORDS mode."""
        if self._closed:
            return
        self.form.latitude = format_degrees(lat)
        self.form.longitude = format_degrees(lng)
        self.form.mode = InputMode.COORDS
        self._notify()

    # --- Retrieval ---

    def _set_state(self, state: RetrievalState) -> None:
        self.state = state
        self._notify()

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def _resolve_coordinate(self, generation: int) -> Coordinate:
        if self.form.mode is InputMode.ADDRESS:
            address = self.form.address.strip()
            if not address:
                raise ValidationError(EMPTY_ADDRESS, code="empty_address")
            resolved = await self._geocoder.geocode(address)
            if not self._is_current(generation):
                return resolved
            self.form.set_coordinate(resolved)
            self._notify()

        coord = self.form.coordinate()
        if coord is None:
            raise ValidationError(INVALID_COORDINATES, code="invalid_coordinates")
        return coord

    async def submit(self) -> bool:
        """Run one retrieval attempt.

        Returns:
            False when refused (an attempt is already in flight, or closed);
            True once the attempt has resolved, whatever its outcome.
        """
        if self._closed:
            return False
        if self.state.is_loading:
            logger.debug("submit ignored: retrieval already in flight")
            return False

        self._generation += 1
        generation = self._generation
        logger.info("Retrieval #%d started (mode=%s)", generation, self.form.mode.value)

        outcome = RetrievalState.idle()
        try:
            self._set_state(RetrievalState.loading())
            coord = await self._resolve_coordinate(generation)
            if self._is_current(generation):
                dataset = await self._rainfall.fetch_estimates(coord)
                outcome = RetrievalState.success(dataset)
                logger.info("Retrieval #%d succeeded", generation)
        except RainfallRetrieverError as e:
            outcome = RetrievalState.failed(
                RetrievalIssue(kind=e.kind, message=str(e), code=e.code)
            )
            logger.info("Retrieval #%d failed (%s): %s", generation, e.kind.value, e)
        except Exception as e:
            outcome = RetrievalState.failed(
                RetrievalIssue(kind=ErrorKind.UNEXPECTED, message=str(e))
            )
            logger.exception("Retrieval #%d failed unexpectedly", generation)
        finally:
            if self._is_current(generation):
                self._set_state(outcome)
            else:
                logger.debug("Retrieval #%d outcome discarded (stale)", generation)
        return True

