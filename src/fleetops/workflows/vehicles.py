"""Vehicle records and the vehicle service machine."""

from __future__ import annotations

import logging
from datetime import date

from fleetops.exceptions import FleetValidationError, IllegalTransitionError
from fleetops.models import InventoryItem, InventoryType, VehicleStatus, normalize_plate
from fleetops.state.alerts import InspectionAlert, ServiceAlert, inspection_alerts, service_alerts
from fleetops.state.events import Collection, StoreWrite
from fleetops.state.policy import VEHICLE_TRANSITIONS, check_transition
from fleetops.workflows._context import FleetContext
from fleetops.workflows.registry import AssignmentRegistry, unassigned_vehicle

_logger = logging.getLogger(__name__)

_SERVICE_CLEARED = {
    "service_location": None,
    "service_problem": None,
    "service_end_date": None,
}


class VehicleWorkflow:
    """Register vehicles, send them to service and bring them back."""

    def __init__(self, ctx: FleetContext, registry: AssignmentRegistry) -> None:
        self._ctx = ctx
        self._registry = registry

    def _check_plate_free(self, plate: str, *, vehicle_id: str | None = None) -> None:
        other = self._ctx.state.vehicle_by_plate(plate)
        if other is not None and other.id != vehicle_id:
            raise FleetValidationError(f"plate {plate} is already registered")

    async def _save(self, vehicle: InventoryItem, action: str) -> InventoryItem:
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.INVENTORY, vehicle, action)],
            action=action,
        )
        saved = result.saved[0]
        assert isinstance(saved, InventoryItem)  # noqa: S101
        return saved

    async def register(self, name: str, plate: str, *, hu_expiration: date | None = None) -> InventoryItem:
        """Add a vehicle to the pool (ACTIVE, unassigned)."""
        plate = normalize_plate(plate)
        if not plate:
            raise FleetValidationError("a vehicle needs a plate")
        self._check_plate_free(plate)
        vehicle = InventoryItem(
            type=InventoryType.VEHICLE,
            name=name.strip(),
            plate=plate,
            quantity=1,
            vehicle_status=VehicleStatus.ACTIVE,
            hu_expiration=hu_expiration,
        )
        return await self._save(vehicle, f"register vehicle {plate}")

    async def update_details(
        self,
        vehicle_id: str,
        *,
        name: str | None = None,
        plate: str | None = None,
        hu_expiration: date | None = None,
    ) -> InventoryItem:
        """Edit name, plate or inspection expiry.

        The plate is the link a driver holds, so it cannot change while the
        vehicle is assigned.
        """
        vehicle = self._ctx.state.vehicle(vehicle_id)
        update: dict[str, object] = {}
        if name is not None:
            update["name"] = name.strip()
        if hu_expiration is not None:
            update["hu_expiration"] = hu_expiration
        if plate is not None:
            new_plate = normalize_plate(plate)
            if not new_plate:
                raise FleetValidationError("a vehicle needs a plate")
            if new_plate != vehicle.plate:
                if vehicle.assigned_to or self._ctx.state.drivers_holding(vehicle.plate):
                    raise FleetValidationError(f"release {vehicle.plate} before changing its plate")
                self._check_plate_free(new_plate, vehicle_id=vehicle.id)
                update["plate"] = new_plate
        if not update:
            return vehicle
        return await self._save(vehicle.model_copy(update=update), f"edit vehicle {vehicle.plate}")

    async def send_to_service(
        self,
        vehicle_id: str,
        *,
        location: str,
        problem: str,
        immediate: bool = True,
        end_date: date | None = None,
    ) -> InventoryItem:
        """Send a vehicle to service now, or schedule a service window.

        Immediate service takes precedence over assignment: the vehicle is
        unassigned and its driver loses the plate.  A scheduled window only
        records ``end_date``, location and problem; status and assignment are
        unchanged.  Location and problem are required in both modes;
        ``end_date`` belongs to the scheduled mode only.
        """
        if not location.strip() or not problem.strip():
            raise FleetValidationError("a service needs a location and a problem description")
        if immediate and end_date is not None:
            raise FleetValidationError("an end date is only recorded for a scheduled service")
        vehicle = self._ctx.state.vehicle(vehicle_id)
        service = {"service_location": location.strip(), "service_problem": problem.strip()}

        if not immediate:
            if end_date is None:
                raise FleetValidationError("a scheduled service needs an end date")
            if vehicle.effective_status == VehicleStatus.IN_SERVICE:
                raise IllegalTransitionError("vehicle", VehicleStatus.IN_SERVICE.name, "scheduled service")
            scheduled = vehicle.model_copy(update={**service, "service_end_date": end_date})
            return await self._save(scheduled, f"schedule service for {vehicle.plate}")

        check_transition("vehicle", VEHICLE_TRANSITIONS, vehicle.effective_status, VehicleStatus.IN_SERVICE)
        in_service = unassigned_vehicle(vehicle).model_copy(
            update={**service, "service_end_date": None, "vehicle_status": VehicleStatus.IN_SERVICE}
        )
        writes = [StoreWrite.upsert(Collection.INVENTORY, in_service, "enter service")]
        writes.extend(self._registry.plan_driver_unlinks(vehicle))
        result = await self._ctx.reconciler.run(writes, action=f"service {vehicle.plate}", check_pairing=True)
        saved = result.saved[0]
        assert isinstance(saved, InventoryItem)  # noqa: S101
        if vehicle.assigned_to:
            _logger.info("Vehicle %s taken from driver %s for service", vehicle.plate, vehicle.assigned_to)
        return saved

    async def return_from_service(self, vehicle_id: str) -> InventoryItem:
        """Back to ACTIVE with service fields cleared; no assignment is restored."""
        vehicle = self._ctx.state.vehicle(vehicle_id)
        if vehicle.effective_status != VehicleStatus.IN_SERVICE:
            raise IllegalTransitionError("vehicle", vehicle.effective_status.name, VehicleStatus.ACTIVE.name)
        returned = vehicle.model_copy(update={**_SERVICE_CLEARED, "vehicle_status": VehicleStatus.ACTIVE})
        return await self._save(returned, f"return {vehicle.plate} from service")

    async def cancel_scheduled_service(self, vehicle_id: str) -> InventoryItem:
        """Drop a scheduled window that has not started."""
        vehicle = self._ctx.state.vehicle(vehicle_id)
        if vehicle.effective_status == VehicleStatus.IN_SERVICE:
            raise FleetValidationError(f"{vehicle.plate} is in service; use return_from_service")
        if vehicle.service_end_date is None:
            return vehicle
        return await self._save(vehicle.model_copy(update=_SERVICE_CLEARED), f"cancel service for {vehicle.plate}")

    def available(self) -> list[InventoryItem]:
        """Vehicles that can be assigned right now."""
        return [v for v in self._ctx.state.vehicles() if v.effective_status == VehicleStatus.ACTIVE]

    def inspection_alerts(self) -> list[InspectionAlert]:
        return inspection_alerts(
            self._ctx.state.vehicles(),
            self._ctx.today(),
            self._ctx.config.inspection_warning_days,
        )

    def service_alerts(self) -> list[ServiceAlert]:
        return service_alerts(
            self._ctx.state.vehicles(),
            self._ctx.today(),
            self._ctx.config.service_warning_days,
        )
