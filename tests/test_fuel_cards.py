from __future__ import annotations

import pytest
from conftest import NOW, FakeStore, driver_row

from fleetops.exceptions import FleetValidationError, IllegalTransitionError
from fleetops.models import FuelCardStatus
from fleetops.workflows import FuelCardWorkflow


@pytest.mark.asyncio
async def test_request_accept_return_lifecycle(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1", plate="B-NT-123"))
    ctx = load_context()
    cards = FuelCardWorkflow(ctx)

    request = await cards.request("d1", 48210)
    assert request.id is not None
    assert request.status == FuelCardStatus.PENDING
    assert request.vehicle_plate == "B-NT-123"
    assert request.driver_name == "Dana Kraus"
    assert request.card_number is None
    assert request.request_date == NOW

    accepted = await cards.accept(request.id, " 7001-22 ")
    assert accepted.status == FuelCardStatus.ACCEPTED
    assert accepted.card_number == "7001-22"
    assert accepted.accepted_date == NOW

    returned = await cards.return_card(request.id)
    assert returned.status == FuelCardStatus.RETURNED
    assert returned.return_date == NOW
    assert cards.active_request("d1") is None


@pytest.mark.asyncio
async def test_request_uses_store_column_names(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1", plate="B-NT-123"))

    await FuelCardWorkflow(load_context()).request("d1", 100)

    payload = store.writes[0][2]
    assert payload["driverid"] == "d1"
    assert payload["vehicleplate"] == "B-NT-123"
    assert payload["mileage"] == 100
    assert payload["cardnumber"] is None
    assert payload["user_id"] == "operator-1"


@pytest.mark.asyncio
async def test_return_on_pending_is_rejected(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1", plate="B-NT-123"))
    ctx = load_context()
    cards = FuelCardWorkflow(ctx)
    request = await cards.request("d1", 100)
    assert request.id is not None

    with pytest.raises(IllegalTransitionError):
        await cards.return_card(request.id)
    assert ctx.state.fuel_cards()[0].status == FuelCardStatus.PENDING


@pytest.mark.asyncio
async def test_accept_twice_is_rejected(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1", plate="B-NT-123"))
    cards = FuelCardWorkflow(load_context())
    request = await cards.request("d1", 100)
    assert request.id is not None
    await cards.accept(request.id, "7001")

    with pytest.raises(IllegalTransitionError):
        await cards.accept(request.id, "7002")


@pytest.mark.asyncio
async def test_one_outstanding_request_per_driver(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1", plate="B-NT-123"))
    store.seed("fuel_cards", {"id": "f1", "driverid": "d1", "status": "ACCEPTED", "cardnumber": "7001"})
    cards = FuelCardWorkflow(load_context())

    with pytest.raises(FleetValidationError):
        await cards.request("d1", 100)
    assert store.writes == []


@pytest.mark.asyncio
async def test_request_needs_a_vehicle(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1"))
    cards = FuelCardWorkflow(load_context())

    with pytest.raises(FleetValidationError):
        await cards.request("d1", 100)

    request = await cards.request("d1", 100, vehicle_plate="b-nt 7")
    assert request.vehicle_plate == "B-NT 7"


@pytest.mark.asyncio
async def test_accept_requires_card_number(store: FakeStore, load_context) -> None:
    store.seed("fuel_cards", {"id": "f1", "driverid": "d1", "status": "PENDING"})

    with pytest.raises(FleetValidationError):
        await FuelCardWorkflow(load_context()).accept("f1", "  ")


def test_pending_requests_oldest_first(store: FakeStore, load_context) -> None:
    store.seed(
        "fuel_cards",
        {"id": "f1", "driverid": "d1", "status": "PENDING", "requestdate": "2026-03-01T10:00:00+00:00"},
        {"id": "f2", "driverid": "d2", "status": "PENDING", "requestdate": "2026-02-27T08:00:00+00:00"},
        {"id": "f3", "driverid": "d3", "status": "RETURNED", "requestdate": "2026-02-01T08:00:00+00:00"},
    )
    cards = FuelCardWorkflow(load_context())

    assert [r.id for r in cards.pending_requests()] == ["f2", "f1"]
    assert cards.active_request("d3") is None
