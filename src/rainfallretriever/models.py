"""Data model definitions — explicit boundaries between input, retrieval, and render layers."""

import math
from dataclasses import dataclass, field
from enum import Enum

from rainfallretriever.errors import ErrorKind

DURATIONS: tuple[str, ...] = (
    "5-min",
    "15-min",
    "60-min",
    "2-hr",
    "3-hr",
    "6-hr",
    "12-hr",
    "24-hr",
)
RETURN_PERIODS: tuple[str, ...] = ("2-yr", "5-yr", "10-yr", "25-yr", "50-yr", "100-yr")

DEFAULT_LATITUDE = "32.2226"
DEFAULT_LONGITUDE = "-110.9747"


class InputMode(Enum):
    """Which form field is authoritative for the next retrieval."""

    COORDS = "coords"
    ADDRESS = "address"


class TableKind(Enum):
    """The two parallel frequency tables and their units."""

    INTENSITY = "intensity"
    DEPTH = "depth"

    @property
    def unit(self) -> str:
        return "inches/hour" if self is TableKind.INTENSITY else "inches"


class Phase(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


def _parse_number(text: str) -> float:
    value = float(text.strip())
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: {text!r}")
    return value


@dataclass(frozen=True)
class Coordinate:
    """A validated point. Construction rejects out-of-range values."""

    latitude: float  # Decimal degrees, [-90, 90]
    longitude: float  # Decimal degrees, [-180, 180]

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and -90.0 <= self.latitude <= 90.0):
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not (math.isfinite(self.longitude) and -180.0 <= self.longitude <= 180.0):
            raise ValueError(f"longitude out of range: {self.longitude}")

    @classmethod
    def parse(cls, latitude: str, longitude: str) -> "Coordinate":
        """Parse user-typed text. Raises ValueError; never clamps."""
        return cls(_parse_number(latitude), _parse_number(longitude))

    def same_position(self, other: "Coordinate | None", tol: float = 1e-9) -> bool:
        if other is None:
            return False
        return math.isclose(self.latitude, other.latitude, abs_tol=tol) and math.isclose(
            self.longitude, other.longitude, abs_tol=tol
        )


def format_degrees(value: float) -> str:
    return f"{value:.6f}"


@dataclass
class CoordinateForm:
    """Raw text-editable form state. Not yet validated."""

    latitude: str = DEFAULT_LATITUDE
    longitude: str = DEFAULT_LONGITUDE
    address: str = ""
    mode: InputMode = InputMode.COORDS

    def coordinate(self) -> Coordinate | None:
        """Numeric projection of the lat/lon text, or None when it does not parse."""
        try:
            return Coordinate.parse(self.latitude, self.longitude)
        except ValueError:
            return None

    def set_coordinate(self, coord: Coordinate) -> None:
        self.latitude = format_degrees(coord.latitude)
        self.longitude = format_degrees(coord.longitude)


@dataclass(frozen=True)
class FrequencyRecord:
    """One duration row: a value for every return period."""

    duration: str  # One of DURATIONS
    values: dict[str, float] = field(hash=False)  # RETURN_PERIODS label -> value

    def __getitem__(self, period: str) -> float:
        return self.values[period]


@dataclass(frozen=True)
class RainfallDataset:
    """Result of one successful rainfall call. Replaced wholesale, never merged."""

    intensity: tuple[FrequencyRecord, ...]  # inches/hour, DURATIONS order
    depth: tuple[FrequencyRecord, ...]  # inches, DURATIONS order

    def table(self, kind: TableKind) -> tuple[FrequencyRecord, ...]:
        return self.intensity if kind is TableKind.INTENSITY else self.depth

    def max_value(self, kind: TableKind, period: str) -> float:
        return max(record[period] for record in self.table(kind))


@dataclass(frozen=True)
class RetrievalIssue:
    """A classified failure, ready for presentation."""

    kind: ErrorKind
    message: str
    code: str | None = None  # Sub-reason for VALIDATION ("invalid_coordinates", ...)


@dataclass(frozen=True)
class RetrievalState:
    """Owned by the orchestrator. LOADING never carries a dataset or an error."""

    phase: Phase
    dataset: RainfallDataset | None = None
    error: RetrievalIssue | None = None

    @classmethod
    def idle(cls) -> "RetrievalState":
        return cls(Phase.IDLE)

    @classmethod
    def loading(cls) -> "RetrievalState":
        return cls(Phase.LOADING)

    @classmethod
    def success(cls, dataset: RainfallDataset) -> "RetrievalState":
        return cls(Phase.SUCCESS, dataset=dataset)

    @classmethod
    def failed(cls, issue: RetrievalIssue) -> "RetrievalState":
        return cls(Phase.FAILED, error=issue)

    @property
    def is_loading(self) -> bool:
        return self.phase is Phase.LOADING
