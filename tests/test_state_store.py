from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import driver_row, vehicle_row

from fleetops.exceptions import EntityNotFoundError, FleetValidationError, IllegalTransitionError
from fleetops.models import ComplaintStatus, Driver, DriverStatus, InventoryItem, VehicleStatus
from fleetops.state.events import Collection
from fleetops.state.policy import (
    COMPLAINT_TRANSITIONS,
    DRIVER_TRANSITIONS,
    can_transition,
    check_transition,
    pairing_violations,
)
from fleetops.state.store import FleetState


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _driver(driver_id: str, **extra: object) -> Driver:
    return Driver.model_validate(driver_row(driver_id, **extra))


def _vehicle(vehicle_id: str, plate: str, **extra: object) -> InventoryItem:
    return InventoryItem.model_validate(vehicle_row(vehicle_id, plate, **extra))


def test_replace_all_skips_records_without_id() -> None:
    state = FleetState(clock=_dt)
    state.replace_all(Collection.DRIVERS, [_driver("d1"), Driver(first_name="No", last_name="Id")])

    assert [d.id for d in state.drivers()] == ["d1"]
    state.mark_loaded()
    assert state.loaded_at == _dt()


def test_typed_lookups_distinguish_vehicles_from_stock() -> None:
    state = FleetState(clock=_dt)
    stock = InventoryItem.model_validate({"id": "i1", "type": "Clothing", "name": "Jacket", "quantity": 4})
    state.replace_all(Collection.INVENTORY, [_vehicle("v1", "B-NT-123"), stock])

    assert state.vehicle("v1").plate == "B-NT-123"
    assert state.stock_item("i1").name == "Jacket"
    with pytest.raises(FleetValidationError):
        state.vehicle("i1")
    with pytest.raises(EntityNotFoundError) as excinfo:
        state.driver("missing")
    assert excinfo.value.record_id == "missing"


def test_plate_lookups_and_clear() -> None:
    state = FleetState(clock=_dt)
    state.replace_all(Collection.DRIVERS, [_driver("d1", plate="B-NT-123"), _driver("d2")])
    state.replace_all(Collection.INVENTORY, [_vehicle("v1", "B-NT-123")])

    assert state.driver_by_plate("B-NT-123").id == "d1"  # type: ignore[union-attr]
    assert state.vehicle_by_plate("B-NT-123").id == "v1"  # type: ignore[union-attr]
    assert state.drivers_holding(None) == []

    state.clear()
    assert state.count(Collection.DRIVERS) == 0
    assert state.loaded_at is None


def test_driver_machine_returns_to_available_only() -> None:
    assert can_transition(DRIVER_TRANSITIONS, DriverStatus.AVAILABLE, DriverStatus.SICK)
    assert can_transition(DRIVER_TRANSITIONS, DriverStatus.SICK, DriverStatus.AVAILABLE)
    assert not can_transition(DRIVER_TRANSITIONS, DriverStatus.SICK, DriverStatus.ON_LEAVE)


def test_terminal_complaint_cannot_move() -> None:
    with pytest.raises(IllegalTransitionError) as excinfo:
        check_transition("complaint", COMPLAINT_TRANSITIONS, ComplaintStatus.RESOLVED, ComplaintStatus.DAMAGE)
    assert "RESOLVED" in str(excinfo.value)


def test_consistent_pairing_has_no_violations() -> None:
    drivers = [_driver("d1", plate="B-NT-123"), _driver("d2")]
    vehicles = [
        _vehicle("v1", "B-NT-123", assignedTo="d1", vehicleStatus="Allocated"),
        _vehicle("v2", "B-NT-456"),
        _vehicle("v3", "B-NT-789", vehicleStatus="Service"),
    ]

    assert pairing_violations(drivers, vehicles) == []


def test_pairing_violations_describe_each_breach() -> None:
    drivers = [
        _driver("d1", plate="B-NT-123"),
        _driver("d2", plate="B-NT-123"),
        _driver("d3", plate="B-XX-000"),
    ]
    vehicles = [
        _vehicle("v1", "B-NT-123"),
        _vehicle("v2", "B-NT-456", assignedTo="d9", vehicleStatus="Allocated"),
    ]

    problems = pairing_violations(drivers, vehicles)

    assert "plate B-NT-123 is held by 2 drivers (d1, d2)" in problems
    assert any("B-NT-123 but the vehicle is not assigned" in p for p in problems)
    assert "vehicle B-NT-456 is assigned to d9 but no driver holds it" in problems
    assert "driver d3 holds plate B-XX-000 which matches no vehicle" in problems


def test_in_service_vehicle_must_not_stay_assigned() -> None:
    vehicles = [_vehicle("v1", "B-NT-123", assignedTo="d1", vehicleStatus=VehicleStatus.IN_SERVICE.value)]

    problems = pairing_violations([_driver("d1", plate="B-NT-123")], vehicles)

    assert problems == ["vehicle B-NT-123 is IN_SERVICE but still assigned to d1"]
