"""Shared fixtures: oracle payloads and in-process fake clients."""

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from rainfallretriever.errors import GeocodingError, RetrievalError
from rainfallretriever.models import DURATIONS, RETURN_PERIODS, Coordinate
from rainfallretriever.rainfall import parse_dataset

_FACTORS = (1.0, 1.3, 1.55, 1.9, 2.15, 2.45)


def make_table(base: list[float]) -> list[dict[str, Any]]:
    return [
        {"duration": d, **{p: round(b * f, 3) for p, f in zip(RETURN_PERIODS, _FACTORS)}}
        for d, b in zip(DURATIONS, base)
    ]


@pytest.fixture
def payload() -> dict[str, Any]:
    # 100-yr intensity peaks at 5-min: 2.6 * 2.45 = 6.37 in/hr
    return {
        "intensityTable": make_table([2.6, 1.7, 0.9, 0.52, 0.38, 0.22, 0.12, 0.07]),
        "depthTable": make_table([0.22, 0.42, 0.9, 1.04, 1.14, 1.32, 1.44, 1.68]),
    }


@pytest.fixture
def dataset(payload):
    return parse_dataset(payload)


class FakeGeocoder:
    def __init__(self, result: Coordinate | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[str] = []

    async def geocode(self, address: str) -> Coordinate:
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        assert self.result is not None
        return self.result


class FakeRainfall:
    def __init__(self, dataset=None, error: Exception | None = None, gate: asyncio.Event | None = None):
        self.dataset = dataset
        self.error = error
        self.gate = gate
        self.calls: list[Coordinate] = []

    async def fetch_estimates(self, coord: Coordinate):
        self.calls.append(coord)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.dataset


@pytest.fixture
def geocoding_failure() -> GeocodingError:
    return GeocodingError("Address not found: nowhere")


@pytest.fixture
def retrieval_failure() -> RetrievalError:
    return RetrievalError("Failed to get valid data from the AI model.")


class FakeMessages:
    """Stands in for ``AsyncAnthropic().messages``."""

    def __init__(self, content: list[Any] | None = None, error: Exception | None = None):
        self.content = content or []
        self.error = error
        self.kwargs: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.kwargs.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.content)


def tool_block(name: str, data: dict[str, Any]) -> Any:
    return SimpleNamespace(type="tool_use", name=name, input=data)


def text_block(text: str) -> Any:
    return SimpleNamespace(type="text", text=text)


def fake_anthropic(content: list[Any] | None = None, error: Exception | None = None) -> Any:
    return SimpleNamespace(messages=FakeMessages(content=content, error=error))
