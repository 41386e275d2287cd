"""Simulated precipitation-frequency estimates from the Anthropic model."""

import logging
import math
from typing import Any

import anthropic

from rainfallretriever.errors import RetrievalError
from rainfallretriever.models import (
    DURATIONS,
    RETURN_PERIODS,
    Coordinate,
    FrequencyRecord,
    RainfallDataset,
)
from rainfallretriever.oracle import OracleError, call_tool, oracle_session

logger = logging.getLogger(__name__)

_TOOL_NAME = "report_rainfall_tables"


def _record_schema(quantity: str, unit: str) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "duration": {
            "type": "string",
            "enum": list(DURATIONS),
            "description": "The time duration for the rainfall event.",
        }
    }
    for period in RETURN_PERIODS:
        years = period.split("-")[0]
        properties[period] = {
            "type": "number",
            "description": f"Rainfall {quantity} for a {years}-year return period in {unit}.",
        }
    return {
        "type": "object",
        "properties": properties,
        "required": ["duration", *RETURN_PERIODS],
    }


RAINFALL_TOOL: dict[str, Any] = {
    "name": _TOOL_NAME,
    "description": "Report the intensity and depth precipitation frequency tables.",
    "input_schema": {
        "type": "object",
        "properties": {
            "intensityTable": {
                "type": "array",
                "description": "Rainfall intensity-duration-frequency rows in inches/hour.",
                "items": _record_schema("intensity", "inches/hour"),
                "minItems": len(DURATIONS),
                "maxItems": len(DURATIONS),
            },
            "depthTable": {
                "type": "array",
                "description": "Rainfall depth-duration-frequency rows in inches.",
                "items": _record_schema("depth", "inches"),
                "minItems": len(DURATIONS),
                "maxItems": len(DURATIONS),
            },
        },
        "required": ["intensityTable", "depthTable"],
    },
}

_SYSTEM_PROMPT = (
    "You are an expert hydrologist providing precipitation frequency estimates "
    "in the style of NOAA Atlas 14.\n"
    "Rules:\n"
    "- Intensity values are in inches/hour, depth values in inches\n"
    f"- Both tables use exactly these durations, in order: {', '.join(DURATIONS)}\n"
    f"- Every row has a value for each return period: {', '.join(RETURN_PERIODS)}\n"
    "- Values must be scientifically plausible for the coordinates and increase "
    "with return period\n"
    f"- Always answer by calling the {_TOOL_NAME} tool"
)


def _parse_value(raw: Any, where: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise RetrievalError(f"non-numeric value at {where}: {raw!r}")
    value = float(raw)
    if not math.isfinite(value):
        raise RetrievalError(f"non-finite value at {where}")
    if value < 0:
        raise RetrievalError(f"negative value at {where}: {value}")
    return value


def _parse_table(rows: Any, name: str) -> tuple[FrequencyRecord, ...]:
    if not isinstance(rows, list) or not rows:
        raise RetrievalError(f"response is missing the {name} array")
    by_duration: dict[str, FrequencyRecord] = {}
    for row in rows:
        if not isinstance(row, dict):
            raise RetrievalError(f"{name} row is not an object: {row!r}")
        duration = row.get("duration")
        if duration not in DURATIONS:
            raise RetrievalError(f"{name} has unknown duration {duration!r}")
        if duration in by_duration:
            raise RetrievalError(f"{name} repeats duration {duration}")
        values = {
            period: _parse_value(row.get(period), f"{name}[{duration}][{period}]")
            for period in RETURN_PERIODS
        }
        by_duration[duration] = FrequencyRecord(duration=duration, values=values)
    missing = [d for d in DURATIONS if d not in by_duration]
    if missing:
        raise RetrievalError(f"{name} is missing durations: {', '.join(missing)}")
    return tuple(by_duration[d] for d in DURATIONS)


def parse_dataset(payload: Any) -> RainfallDataset:
    """Validate an oracle payload and build a RainfallDataset.

    Rows are reordered into the canonical duration order so both tables line up.

    Raises:
        RetrievalError: On any missing array, duration, or non-numeric value.
    """
    if not isinstance(payload, dict) or not payload:
        raise RetrievalError("API returned an empty response.")
    return RainfallDataset(
        intensity=_parse_table(payload.get("intensityTable"), "intensityTable"),
        depth=_parse_table(payload.get("depthTable"), "depthTable"),
    )


class RainfallClient:
    """Fetches both frequency tables for a coordinate. No caching, no retry."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-6",
        max_tokens: int = 2048,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._client = client

    async def fetch_estimates(self, coord: Coordinate) -> RainfallDataset:
        """Retrieve the intensity and depth tables for ``coord``.

        Args:
            coord: Range-validated point.

        Returns:
            A freshly built RainfallDataset. Identical coordinates may yield
            different values across calls.

        Raises:
            RetrievalError: On oracle failure or a malformed response.
        """
        prompt = (
            f"Latitude: {coord.latitude}\n"
            f"Longitude: {coord.longitude}\n\n"
            "Generate the rainfall intensity table and the rainfall depth table "
            "for this location."
        )
        logger.info("Fetching rainfall estimates for %.6f, %.6f", coord.latitude, coord.longitude)
        try:
            async with oracle_session(self._api_key, self._client) as client:
                payload = await call_tool(
                    client,
                    model=self._model,
                    max_tokens=self._max_tokens,
                    system=_SYSTEM_PROMPT,
                    prompt=prompt,
                    tool=RAINFALL_TOOL,
                )
        except OracleError as e:
            logger.warning("Rainfall oracle failed: %s", e)
            raise RetrievalError("Failed to get valid data from the AI model.") from e

        try:
            return parse_dataset(payload)
        except RetrievalError as e:
            logger.warning("Malformed rainfall payload: %s", e)
            raise
