"""Driver/vehicle assignment registry.

This module is the only writer of the two denormalized ends of the
assignment link: ``Driver.plate`` and ``InventoryItem.assigned_to`` (plus
the vehicle's status and assignment fields).  Other workflows that need to
break the link (leave, service, driver deletion) build their write
sequences from the ``plan_*`` helpers here.

Every sequence writes the vehicle before the driver, and releases a
previously held vehicle before the new one is assigned.
"""

from __future__ import annotations

import logging

from fleetops.exceptions import FleetValidationError, IllegalTransitionError
from fleetops.models import Driver, InventoryItem, VehicleStatus
from fleetops.state.events import Collection, StoreWrite
from fleetops.workflows._context import FleetContext

_logger = logging.getLogger(__name__)


def released_vehicle(vehicle: InventoryItem) -> InventoryItem:
    """Vehicle with its assignment cleared and status back to ACTIVE."""
    return vehicle.model_copy(
        update={
            "assigned_to": None,
            "signature": None,
            "assignment_date": None,
            "vehicle_status": VehicleStatus.ACTIVE,
        }
    )


def unassigned_vehicle(vehicle: InventoryItem) -> InventoryItem:
    """Vehicle with its assignment cleared, status unchanged."""
    return vehicle.model_copy(update={"assigned_to": None, "signature": None, "assignment_date": None})


class AssignmentRegistry:
    """Assigns vehicles to drivers and releases them."""

    def __init__(self, ctx: FleetContext) -> None:
        self._ctx = ctx

    # ------------------------------------------------------------------
    # Planning helpers
    # ------------------------------------------------------------------

    def plan_driver_unlinks(self, vehicle: InventoryItem, *, skip: str | None = None) -> list[StoreWrite]:
        """Driver writes that clear *vehicle*'s plate from every holder.

        ``skip`` names a driver whose write the caller builds itself (for
        example combined with a status change).
        """
        writes: list[StoreWrite] = []
        for holder in self._ctx.state.drivers_holding(vehicle.plate):
            if holder.id == skip:
                continue
            writes.append(
                StoreWrite.upsert(
                    Collection.DRIVERS,
                    holder.model_copy(update={"plate": None}),
                    f"clear plate {vehicle.plate} from driver",
                )
            )
        return writes

    @staticmethod
    def release_write(vehicle: InventoryItem) -> StoreWrite:
        """Vehicle write that drops its assignment.

        A vehicle in service keeps its status; any other goes back to ACTIVE.
        """
        if vehicle.effective_status == VehicleStatus.IN_SERVICE:
            return StoreWrite.upsert(Collection.INVENTORY, unassigned_vehicle(vehicle), "unlink vehicle")
        return StoreWrite.upsert(Collection.INVENTORY, released_vehicle(vehicle), "release vehicle")

    def plan_release_vehicle(self, vehicle: InventoryItem, *, skip_driver: str | None = None) -> list[StoreWrite]:
        """Vehicle write first, then its holder(s) unlinked."""
        writes = [self.release_write(vehicle)]
        writes.extend(self.plan_driver_unlinks(vehicle, skip=skip_driver))
        return writes

    def plan_release_driver(self, driver: Driver, *, driver_update: dict | None = None) -> list[StoreWrite]:
        """Release whatever *driver* holds; the driver write comes last.

        ``driver_update`` is merged into the driver write, so a status
        change and the plate clear reach the store as one record.
        """
        update = {"plate": None, **(driver_update or {})}
        writes: list[StoreWrite] = []
        vehicle = self._ctx.state.vehicle_by_plate(driver.plate)
        if vehicle is not None:
            # An in-service vehicle is already out of rotation; only a stale link goes.
            if vehicle.effective_status != VehicleStatus.IN_SERVICE or vehicle.assigned_to:
                writes.append(self.release_write(vehicle))
        elif driver.plate:
            _logger.warning("Driver %s holds plate %s which matches no vehicle", driver.id, driver.plate)
        writes.append(StoreWrite.upsert(Collection.DRIVERS, driver.model_copy(update=update), "unlink driver"))
        return writes

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def assign(self, driver_id: str, vehicle_id: str, signature: str) -> tuple[Driver, InventoryItem]:
        """Hand *vehicle_id* to *driver_id*, capturing the driver's signature.

        The vehicle must be ACTIVE.  A vehicle the driver already holds is
        released first, as its own write.
        """
        state = self._ctx.state
        if not signature or not signature.strip():
            raise FleetValidationError("a signature is required to assign a vehicle")
        driver = state.driver(driver_id)
        vehicle = state.vehicle(vehicle_id)
        if not vehicle.plate:
            raise FleetValidationError(f"vehicle {vehicle_id!r} has no plate")

        current = vehicle.effective_status
        if current != VehicleStatus.ACTIVE:
            raise IllegalTransitionError("vehicle", current.name, VehicleStatus.ALLOCATED.name)
        other_holder = next((d for d in state.drivers_holding(vehicle.plate) if d.id != driver.id), None)
        if vehicle.assigned_to or other_holder is not None:
            raise FleetValidationError(f"vehicle {vehicle.plate} is already held by another driver")

        writes: list[StoreWrite] = []
        if driver.plate and driver.plate != vehicle.plate:
            previous = state.vehicle_by_plate(driver.plate)
            if previous is not None and (previous.assigned_to or previous.effective_status == VehicleStatus.ALLOCATED):
                writes.append(self.release_write(previous))

        allocated = vehicle.model_copy(
            update={
                "assigned_to": driver.id,
                "signature": signature,
                "assignment_date": self._ctx.now(),
                "vehicle_status": VehicleStatus.ALLOCATED,
            }
        )
        writes.append(StoreWrite.upsert(Collection.INVENTORY, allocated, "allocate vehicle"))
        linked = driver.model_copy(update={"plate": vehicle.plate})
        writes.append(StoreWrite.upsert(Collection.DRIVERS, linked, "link driver"))

        result = await self._ctx.reconciler.run(writes, action=f"assign {vehicle.plate}", check_pairing=True)
        saved_vehicle, saved_driver = result.saved[-2], result.saved[-1]
        assert isinstance(saved_driver, Driver) and isinstance(saved_vehicle, InventoryItem)  # noqa: S101
        _logger.info("Assigned vehicle %s to driver %s", vehicle.plate, driver.id)
        return saved_driver, saved_vehicle

    async def release_driver(self, driver_id: str) -> Driver:
        """Take back whatever vehicle *driver_id* holds."""
        driver = self._ctx.state.driver(driver_id)
        if not driver.plate:
            raise FleetValidationError(f"driver {driver_id!r} holds no vehicle")
        result = await self._ctx.reconciler.run(
            self.plan_release_driver(driver),
            action=f"release {driver.plate}",
            check_pairing=True,
        )
        saved = result.saved[-1]
        assert isinstance(saved, Driver)  # noqa: S101
        return saved

    async def release_vehicle(self, vehicle_id: str) -> InventoryItem:
        """Take *vehicle_id* back from its driver."""
        vehicle = self._ctx.state.vehicle(vehicle_id)
        if not vehicle.assigned_to and not self._ctx.state.drivers_holding(vehicle.plate):
            raise FleetValidationError(f"vehicle {vehicle.plate or vehicle_id} is not assigned")
        result = await self._ctx.reconciler.run(
            self.plan_release_vehicle(vehicle),
            action=f"release {vehicle.plate}",
            check_pairing=True,
        )
        saved = result.saved[0]
        assert isinstance(saved, InventoryItem)  # noqa: S101
        return saved

    def holder_of(self, vehicle_id: str) -> Driver | None:
        vehicle = self._ctx.state.vehicle(vehicle_id)
        return self._ctx.state.driver_by_plate(vehicle.plate)

    def vehicle_of(self, driver_id: str) -> InventoryItem | None:
        driver = self._ctx.state.driver(driver_id)
        return self._ctx.state.vehicle_by_plate(driver.plate)

    def check(self) -> list[str]:
        """Pairing violations in the loaded data (empty when consistent)."""
        return self._ctx.state.check_pairing()
