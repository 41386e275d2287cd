"""Error taxonomy shared by the geocoding and rainfall clients and the orchestrator."""

from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure categories surfaced to the user."""

    VALIDATION = "validation"  # Bad user input; never reaches the network
    GEOCODING = "geocoding"  # Address could not be resolved to coordinates
    RETRIEVAL = "retrieval"  # Rainfall oracle failed or returned malformed data
    UNEXPECTED = "unexpected"  # Anything uncategorized


class RainfallRetrieverError(Exception):
    """Base class for classified failures. Subclasses pin ``kind``."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str = "", code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class ValidationError(RainfallRetrieverError):
    """User input rejected before any oracle call."""

    kind = ErrorKind.VALIDATION


class GeocodingError(RainfallRetrieverError):
    """Geocoder call failure."""

    kind = ErrorKind.GEOCODING


class RetrievalError(RainfallRetrieverError):
    """Rainfall oracle call failure or malformed response."""

    kind = ErrorKind.RETRIEVAL
