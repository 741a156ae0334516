"""Status machines and the driver/vehicle pairing rule.

This module contains no I/O.  Workflows consult it before planning any
store write, and the reconciliation layer uses :func:`pairing_violations`
as the post-condition of assign/release sequences.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import TypeVar

from fleetops.exceptions import IllegalTransitionError
from fleetops.models import (
    ComplaintStatus,
    Driver,
    DriverStatus,
    FuelCardStatus,
    InventoryItem,
    TourStatus,
    VehicleStatus,
)

E = TypeVar("E", bound=Enum)

# AVAILABLE fans out; every state may return to AVAILABLE.  Re-entering the
# current state is allowed so date ranges can be corrected.
DRIVER_TRANSITIONS: dict[DriverStatus, frozenset[DriverStatus]] = {
    DriverStatus.AVAILABLE: frozenset(DriverStatus),
    DriverStatus.ABSENT: frozenset({DriverStatus.AVAILABLE, DriverStatus.ABSENT}),
    DriverStatus.ON_LEAVE: frozenset({DriverStatus.AVAILABLE, DriverStatus.ON_LEAVE}),
    DriverStatus.SICK: frozenset({DriverStatus.AVAILABLE, DriverStatus.SICK}),
}

VEHICLE_TRANSITIONS: dict[VehicleStatus, frozenset[VehicleStatus]] = {
    VehicleStatus.ACTIVE: frozenset({VehicleStatus.ALLOCATED, VehicleStatus.IN_SERVICE}),
    VehicleStatus.ALLOCATED: frozenset({VehicleStatus.ACTIVE, VehicleStatus.IN_SERVICE}),
    VehicleStatus.IN_SERVICE: frozenset({VehicleStatus.ACTIVE}),
}

COMPLAINT_TRANSITIONS: dict[ComplaintStatus, frozenset[ComplaintStatus]] = {
    ComplaintStatus.PENDING: frozenset({ComplaintStatus.RESOLVED, ComplaintStatus.DAMAGE}),
    ComplaintStatus.RESOLVED: frozenset(),
    ComplaintStatus.DAMAGE: frozenset(),
}

FUEL_CARD_TRANSITIONS: dict[FuelCardStatus, frozenset[FuelCardStatus]] = {
    FuelCardStatus.PENDING: frozenset({FuelCardStatus.ACCEPTED}),
    FuelCardStatus.ACCEPTED: frozenset({FuelCardStatus.RETURNED}),
    FuelCardStatus.RETURNED: frozenset(),
}

TOUR_TRANSITIONS: dict[TourStatus, frozenset[TourStatus]] = {
    TourStatus.PENDING: frozenset({TourStatus.ACTIVE, TourStatus.COMPLETED, TourStatus.CANCELLED}),
    TourStatus.ACTIVE: frozenset({TourStatus.COMPLETED, TourStatus.CANCELLED}),
    TourStatus.COMPLETED: frozenset(),
    TourStatus.CANCELLED: frozenset(),
}


def can_transition(table: Mapping[E, frozenset[E]], current: E, target: E) -> bool:
    return target in table.get(current, frozenset())


def check_transition(machine: str, table: Mapping[E, frozenset[E]], current: E, target: E) -> None:
    """Raise :class:`IllegalTransitionError` unless *current* -> *target* is allowed."""
    if not can_transition(table, current, target):
        raise IllegalTransitionError(machine, current.name, target.name)


def pairing_violations(drivers: Iterable[Driver], vehicles: Iterable[InventoryItem]) -> list[str]:
    """Describe every breach of the driver/vehicle pairing rule.

    For every vehicle ``v``: ``v.assigned_to`` is set iff exactly one driver
    holds ``v.plate``, and that driver is ``v.assigned_to``; ``v`` is
    ALLOCATED iff assigned, unless it is IN_SERVICE.  No two drivers share
    a non-empty plate.  An empty list means the data is consistent.
    """
    holders: dict[str, list[Driver]] = {}
    for driver in drivers:
        if driver.plate:
            holders.setdefault(driver.plate, []).append(driver)

    problems: list[str] = []
    for plate, owners in holders.items():
        if len(owners) > 1:
            ids = ", ".join(sorted(str(d.id) for d in owners))
            problems.append(f"plate {plate} is held by {len(owners)} drivers ({ids})")

    plates_with_vehicle: set[str] = set()
    for vehicle in vehicles:
        if not vehicle.plate:
            continue
        plates_with_vehicle.add(vehicle.plate)
        owners = holders.get(vehicle.plate, [])
        if vehicle.assigned_to:
            if not owners:
                problems.append(f"vehicle {vehicle.plate} is assigned to {vehicle.assigned_to} but no driver holds it")
            elif all(d.id != vehicle.assigned_to for d in owners):
                problems.append(
                    f"vehicle {vehicle.plate} is assigned to {vehicle.assigned_to} but held by {owners[0].id}"
                )
        elif owners:
            problems.append(f"driver {owners[0].id} holds {vehicle.plate} but the vehicle is not assigned")

        status = vehicle.effective_status
        if status != VehicleStatus.IN_SERVICE and (status == VehicleStatus.ALLOCATED) != bool(vehicle.assigned_to):
            problems.append(f"vehicle {vehicle.plate} is {status.name} with assigned_to={vehicle.assigned_to!r}")
        if status == VehicleStatus.IN_SERVICE and vehicle.assigned_to:
            problems.append(f"vehicle {vehicle.plate} is IN_SERVICE but still assigned to {vehicle.assigned_to}")

    for plate, owners in holders.items():
        if plate not in plates_with_vehicle:
            problems.append(f"driver {owners[0].id} holds plate {plate} which matches no vehicle")
    return problems
