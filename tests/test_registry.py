from __future__ import annotations

import pytest
from conftest import NOW, FakeStore, driver_row, vehicle_row

from fleetops.exceptions import (
    FleetStoreError,
    FleetValidationError,
    IllegalTransitionError,
    InvariantViolation,
    LeaveReturnDecisionRequired,
)
from fleetops.models import DriverStatus, VehicleStatus
from fleetops.workflows import AssignmentRegistry, DriverWorkflow


def _seed_pool(store: FakeStore) -> None:
    store.seed("drivers", driver_row("d1"), driver_row("d2", "Eli", "Berg"))
    store.seed("inventory", vehicle_row("v1", "B-NT-123"), vehicle_row("v2", "B-NT-456"))


@pytest.mark.asyncio
async def test_assign_then_leave_with_vehicle_returned(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    drivers = DriverWorkflow(ctx, registry)

    driver, vehicle = await registry.assign("d1", "v1", "sig1")

    assert vehicle.vehicle_status == VehicleStatus.ALLOCATED
    assert vehicle.assigned_to == "d1"
    assert vehicle.signature == "sig1"
    assert vehicle.assignment_date == NOW
    assert driver.plate == "B-NT-123"

    on_leave = await drivers.change_status("d1", DriverStatus.ON_LEAVE, vehicle_returned=True)

    v1 = ctx.state.vehicle("v1")
    assert v1.vehicle_status == VehicleStatus.ACTIVE
    assert v1.assigned_to is None
    assert v1.signature is None
    assert on_leave.plate is None
    assert on_leave.status == DriverStatus.ON_LEAVE
    assert store.row("drivers", "d1")["plate"] is None
    assert store.row("drivers", "d1")["status"] == "Urlaub"
    assert ctx.state.check_pairing() == []


@pytest.mark.asyncio
async def test_assign_writes_vehicle_before_driver(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    registry = AssignmentRegistry(load_context())

    await registry.assign("d1", "v1", "sig1")

    assert [(op, coll) for op, coll, _ in store.writes] == [("upsert", "inventory"), ("upsert", "drivers")]
    vehicle_payload = store.writes[0][2]
    assert vehicle_payload["assignedTo"] == "d1"
    assert vehicle_payload["vehicleStatus"] == "Allocated"


@pytest.mark.asyncio
async def test_reassign_releases_previous_vehicle_first(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)

    await registry.assign("d1", "v1", "sig1")
    store.calls.clear()
    driver, v2 = await registry.assign("d1", "v2", "sig2")

    v1 = ctx.state.vehicle("v1")
    assert v1.assigned_to is None
    assert v1.vehicle_status == VehicleStatus.ACTIVE
    assert v2.assigned_to == "d1"
    assert v2.vehicle_status == VehicleStatus.ALLOCATED
    assert driver.plate == "B-NT-456"
    assert [payload.get("plate") for _, _, payload in store.writes] == ["B-NT-123", "B-NT-456", "B-NT-456"]
    assert ctx.state.check_pairing() == []


@pytest.mark.asyncio
async def test_assign_requires_signature(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    registry = AssignmentRegistry(load_context())

    with pytest.raises(FleetValidationError):
        await registry.assign("d1", "v1", "   ")
    assert store.writes == []


@pytest.mark.asyncio
async def test_assign_rejects_vehicle_that_is_not_active(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1"))
    store.seed("inventory", vehicle_row("v1", "B-NT-123", vehicleStatus="Service"))
    registry = AssignmentRegistry(load_context())

    with pytest.raises(IllegalTransitionError):
        await registry.assign("d1", "v1", "sig1")
    assert store.writes == []


@pytest.mark.asyncio
async def test_assign_rejects_vehicle_held_by_someone_else(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    await registry.assign("d2", "v1", "sig")

    with pytest.raises((FleetValidationError, IllegalTransitionError)):
        await registry.assign("d1", "v1", "sig1")


@pytest.mark.asyncio
async def test_release_from_vehicle_side_clears_driver(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    await registry.assign("d1", "v1", "sig1")

    vehicle = await registry.release_vehicle("v1")

    assert vehicle.assigned_to is None
    assert vehicle.assignment_date is None
    assert vehicle.vehicle_status == VehicleStatus.ACTIVE
    assert ctx.state.driver("d1").plate is None
    assert ctx.state.check_pairing() == []


@pytest.mark.asyncio
async def test_release_from_driver_side_clears_vehicle(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    await registry.assign("d1", "v1", "sig1")

    driver = await registry.release_driver("d1")

    assert driver.plate is None
    assert ctx.state.vehicle("v1").assigned_to is None
    assert store.row("inventory", "v1")["vehicleStatus"] == "Active"


@pytest.mark.asyncio
async def test_release_of_unassigned_driver_is_rejected(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    registry = AssignmentRegistry(load_context())

    with pytest.raises(FleetValidationError):
        await registry.release_driver("d1")


@pytest.mark.asyncio
async def test_leave_without_decision_writes_nothing(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    drivers = DriverWorkflow(ctx, registry)
    await registry.assign("d1", "v1", "sig1")
    store.calls.clear()

    with pytest.raises(LeaveReturnDecisionRequired) as excinfo:
        await drivers.change_status("d1", DriverStatus.ON_LEAVE)

    assert excinfo.value.plate == "B-NT-123"
    assert store.writes == []
    assert ctx.state.driver("d1").status == DriverStatus.AVAILABLE


@pytest.mark.asyncio
async def test_leave_with_vehicle_kept_only_changes_status(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    drivers = DriverWorkflow(ctx, registry)
    await registry.assign("d1", "v1", "sig1")

    driver = await drivers.change_status("d1", DriverStatus.ON_LEAVE, vehicle_returned=False)

    assert driver.status == DriverStatus.ON_LEAVE
    assert driver.plate == "B-NT-123"
    assert ctx.state.vehicle("v1").assigned_to == "d1"


@pytest.mark.asyncio
async def test_failed_first_write_leaves_state_untouched(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    store.fail_after(0)

    with pytest.raises(FleetStoreError):
        await registry.assign("d1", "v1", "sig1")

    assert ctx.state.vehicle("v1").assigned_to is None
    assert ctx.state.driver("d1").plate is None


@pytest.mark.asyncio
async def test_failed_driver_write_reports_partial_sequence(store: FakeStore, load_context) -> None:
    _seed_pool(store)
    ctx = load_context()
    registry = AssignmentRegistry(ctx)
    store.fail_after(1)

    with pytest.raises(InvariantViolation) as excinfo:
        await registry.assign("d1", "v1", "sig1")

    error = excinfo.value
    assert isinstance(error.__cause__, FleetStoreError)
    assert [w.collection for w in error.completed] == ["inventory"]
    assert [w.collection for w in error.pending] == ["drivers"]
    # The vehicle write reached the store and is reflected; the driver is not.
    assert ctx.state.vehicle("v1").assigned_to == "d1"
    assert ctx.state.driver("d1").plate is None


@pytest.mark.asyncio
async def test_strict_mode_raises_on_inconsistent_loaded_data(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1"), driver_row("d2", plate="B-NT-999"))
    store.seed("inventory", vehicle_row("v1", "B-NT-123"))
    registry = AssignmentRegistry(load_context(strict=True))

    with pytest.raises(InvariantViolation) as excinfo:
        await registry.assign("d1", "v1", "sig1")

    assert any("B-NT-999" in v for v in excinfo.value.violations)


def test_check_reports_shared_plate(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1", plate="B-NT-123"), driver_row("d2", plate="B-NT-123"))
    store.seed("inventory", vehicle_row("v1", "B-NT-123", assignedTo="d1", vehicleStatus="Allocated"))
    registry = AssignmentRegistry(load_context())

    problems = registry.check()

    assert any("held by 2 drivers" in p for p in problems)


def test_holder_and_vehicle_lookups_follow_the_plate(store: FakeStore, load_context) -> None:
    store.seed("drivers", driver_row("d1", plate="B-NT-123"), driver_row("d2"))
    store.seed(
        "inventory",
        vehicle_row("v1", "B-NT-123", assignedTo="d1", vehicleStatus="Allocated"),
        vehicle_row("v2", "B-NT-456"),
    )
    registry = AssignmentRegistry(load_context())

    assert registry.holder_of("v1").id == "d1"  # type: ignore[union-attr]
    assert registry.holder_of("v2") is None
    assert registry.vehicle_of("d1").id == "v1"  # type: ignore[union-attr]
    assert registry.vehicle_of("d2") is None
