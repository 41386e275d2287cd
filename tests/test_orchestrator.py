"""Retrieval state machine: validation, sequencing, classification, single-flight."""

import asyncio

import pytest
from conftest import FakeGeocoder, FakeRainfall

from rainfallretriever.errors import ErrorKind
from rainfallretriever.models import Coordinate, CoordinateForm, InputMode, Phase
from rainfallretriever.orchestrator import (
    EMPTY_ADDRESS,
    INVALID_COORDINATES,
    RetrievalOrchestrator,
)
from rainfallretriever.presentation import error_message


def make(form=None, geocoder=None, rainfall=None):
    geocoder = geocoder or FakeGeocoder(result=Coordinate(40.0, -105.0))
    rainfall = rainfall or FakeRainfall()
    return RetrievalOrchestrator(geocoder, rainfall, form=form), geocoder, rainfall


def test_coords_success(dataset):
    orch, geocoder, rainfall = make(
        form=CoordinateForm(latitude="32.2226", longitude="-110.9747"),
        rainfall=FakeRainfall(dataset=dataset),
    )
    assert asyncio.run(orch.submit()) is True

    assert orch.state.phase is Phase.SUCCESS
    assert orch.state.dataset is dataset
    assert orch.state.error is None
    assert not orch.state.is_loading
    assert rainfall.calls == [Coordinate(32.2226, -110.9747)]
    assert geocoder.calls == []
    assert len(orch.state.dataset.intensity) == 8
    assert all(len(r.values) == 6 for r in orch.state.dataset.depth)


@pytest.mark.parametrize(
    "lat, lon",
    [
        ("95", "-110"),
        ("-90.0001", "0"),
        ("0", "180.5"),
        ("0", "-181"),
        ("abc", "10"),
        ("", ""),
        ("nan", "0"),
        ("inf", "0"),
    ],
)
def test_invalid_coordinates_never_call_clients(lat, lon):
    orch, geocoder, rainfall = make(form=CoordinateForm(latitude=lat, longitude=lon))
    asyncio.run(orch.submit())

    assert orch.state.phase is Phase.FAILED
    assert orch.state.error.kind is ErrorKind.VALIDATION
    assert orch.state.error.message == INVALID_COORDINATES
    assert orch.state.error.code == "invalid_coordinates"
    assert rainfall.calls == []
    assert geocoder.calls == []


def test_boundary_coordinates_are_accepted(dataset):
    orch, _, rainfall = make(
        form=CoordinateForm(latitude="-90", longitude="180"),
        rainfall=FakeRainfall(dataset=dataset),
    )
    asyncio.run(orch.submit())
    assert orch.state.phase is Phase.SUCCESS
    assert rainfall.calls == [Coordinate(-90.0, 180.0)]


@pytest.mark.parametrize("address", ["", "   ", "\t\n"])
def test_blank_address_fails_before_any_call(address):
    orch, geocoder, rainfall = make(form=CoordinateForm(address=address, mode=InputMode.ADDRESS))
    asyncio.run(orch.submit())

    assert orch.state.phase is Phase.FAILED
    assert orch.state.error.kind is ErrorKind.VALIDATION
    assert orch.state.error.message == EMPTY_ADDRESS
    assert geocoder.calls == []
    assert rainfall.calls == []


def test_address_mode_geocodes_then_fetches(dataset):
    order = []

    class Geo(FakeGeocoder):
        async def geocode(self, address):
            order.append("geocode")
            return await super().geocode(address)

    class Rain(FakeRainfall):
        async def fetch_estimates(self, coord):
            order.append("fetch")
            return await super().fetch_estimates(coord)

    geocoder = Geo(result=Coordinate(37.4224764, -122.0842499))
    rainfall = Rain(dataset=dataset)
    orch, _, _ = make(
        form=CoordinateForm(address="  1600 Amphitheatre Parkway  ", mode=InputMode.ADDRESS),
        geocoder=geocoder,
        rainfall=rainfall,
    )
    asyncio.run(orch.submit())

    assert order == ["geocode", "fetch"]
    assert geocoder.calls == ["1600 Amphitheatre Parkway"]
    assert orch.form.latitude == "37.422476"
    assert orch.form.longitude == "-122.084250"
    assert rainfall.calls == [Coordinate(37.422476, -122.08425)]
    assert orch.state.phase is Phase.SUCCESS


def test_geocoding_failure_skips_rainfall(geocoding_failure):
    orch, _, rainfall = make(
        form=CoordinateForm(address="nowhere", mode=InputMode.ADDRESS),
        geocoder=FakeGeocoder(error=geocoding_failure),
    )
    asyncio.run(orch.submit())

    assert orch.state.phase is Phase.FAILED
    assert orch.state.error.kind is ErrorKind.GEOCODING
    assert rainfall.calls == []
    assert error_message(orch.state.error).startswith("Failed to find coordinates for the address")
    # Fields keep their previous values
    assert orch.form.latitude == "32.2226"


def test_retrieval_failure_is_classified(retrieval_failure):
    orch, _, _ = make(rainfall=FakeRainfall(error=retrieval_failure))
    asyncio.run(orch.submit())

    assert orch.state.error.kind is ErrorKind.RETRIEVAL
    assert error_message(orch.state.error) == "Failed to get valid data from the AI model."


def test_unexpected_error_is_classified_and_loading_cleared():
    orch, _, _ = make(rainfall=FakeRainfall(error=KeyError("boom")))
    asyncio.run(orch.submit())

    assert orch.state.phase is Phase.FAILED
    assert orch.state.error.kind is ErrorKind.UNEXPECTED
    assert not orch.state.is_loading
    assert error_message(orch.state.error) == "An unexpected error occurred. Please try again later."


def test_loading_clears_previous_result_and_error(dataset, retrieval_failure):
    rainfall = FakeRainfall(dataset=dataset)
    orch, _, _ = make(rainfall=rainfall)
    seen = []
    orch.subscribe(lambda form, state: seen.append(state))

    asyncio.run(orch.submit())
    rainfall.dataset, rainfall.error = None, retrieval_failure
    asyncio.run(orch.submit())
    rainfall.error = None
    rainfall.dataset = dataset
    asyncio.run(orch.submit())

    phases = [s.phase for s in seen]
    assert phases == [
        Phase.LOADING,
        Phase.SUCCESS,
        Phase.LOADING,
        Phase.FAILED,
        Phase.LOADING,
        Phase.SUCCESS,
    ]
    for state in seen:
        if state.phase is Phase.LOADING:
            assert state.dataset is None and state.error is None


def test_submit_while_loading_is_refused(dataset):
    async def scenario():
        gate = asyncio.Event()
        rainfall = FakeRainfall(dataset=dataset, gate=gate)
        orch, _, _ = make(rainfall=rainfall)

        first = asyncio.create_task(orch.submit())
        await asyncio.sleep(0)
        assert orch.state.is_loading

        assert await orch.submit() is False
        gate.set()
        assert await first is True
        return orch, rainfall

    orch, rainfall = asyncio.run(scenario())
    assert len(rainfall.calls) == 1
    assert orch.state.phase is Phase.SUCCESS


def test_late_result_after_close_is_discarded(dataset):
    async def scenario():
        gate = asyncio.Event()
        orch, _, _ = make(rainfall=FakeRainfall(dataset=dataset, gate=gate))
        seen = []
        orch.subscribe(lambda form, state: seen.append(state.phase))

        task = asyncio.create_task(orch.submit())
        await asyncio.sleep(0)
        orch.close()
        gate.set()
        await task
        return orch, seen

    orch, seen = asyncio.run(scenario())
    assert seen == [Phase.LOADING]
    assert orch.state.phase is Phase.LOADING
    assert asyncio.run(orch.submit()) is False


def test_map_interaction_forces_coords_mode():
    orch, _, _ = make(form=CoordinateForm(address="somewhere", mode=InputMode.ADDRESS))
    orch.on_map_interaction(40.0, -105.0)

    assert orch.form.latitude == "40.000000"
    assert orch.form.longitude == "-105.000000"
    assert orch.form.mode is InputMode.COORDS


def test_form_edits_notify_but_never_submit():
    orch, geocoder, rainfall = make()
    seen = []
    unsubscribe = orch.subscribe(lambda form, state: seen.append(form.latitude))

    orch.set_latitude("33.1")
    orch.set_latitude("33.1")
    orch.set_mode(InputMode.ADDRESS)
    unsubscribe()
    orch.set_longitude("-111")

    assert seen == ["33.1", "33.1"]
    assert orch.state.phase is Phase.IDLE
    assert rainfall.calls == [] and geocoder.calls == []


def test_failing_listener_does_not_leave_loading_stuck(dataset):
    orch, _, rainfall = make(rainfall=FakeRainfall(dataset=dataset))
    seen = []

    def broken(form, state):
        if state.is_loading:
            raise RuntimeError("listener blew up")

    orch.subscribe(broken)
    orch.subscribe(lambda form, state: seen.append(state.phase))

    assert asyncio.run(orch.submit()) is True
    assert orch.state.phase is Phase.SUCCESS
    assert seen == [Phase.LOADING, Phase.SUCCESS]

    assert asyncio.run(orch.submit()) is True
    assert len(rainfall.calls) == 2
