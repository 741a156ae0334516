"""Driver records and the driver availability machine."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fleetops.exceptions import FleetValidationError, LeaveReturnDecisionRequired
from fleetops.models import Driver, DriverStatus
from fleetops.state.events import Collection, StoreWrite
from fleetops.state.policy import DRIVER_TRANSITIONS, check_transition
from fleetops.workflows._context import FleetContext
from fleetops.workflows.registry import AssignmentRegistry

_logger = logging.getLogger(__name__)

_PROFILE_FIELDS = frozenset({"first_name", "last_name", "gls_number", "phone", "is_beginner"})

_DATE_RANGE_FIELDS: dict[DriverStatus, tuple[str, str]] = {
    DriverStatus.ON_LEAVE: ("vacation_start", "vacation_end"),
    DriverStatus.SICK: ("sick_start", "sick_end"),
}


class DriverWorkflow:
    """Create, edit, delete drivers and move them between availability states."""

    def __init__(self, ctx: FleetContext, registry: AssignmentRegistry) -> None:
        self._ctx = ctx
        self._registry = registry

    async def create(
        self,
        *,
        first_name: str,
        last_name: str,
        gls_number: str = "",
        phone: str = "",
        is_beginner: bool = False,
        status: DriverStatus | None = None,
    ) -> Driver:
        """Create a driver.  New drivers always start AVAILABLE with no vehicle."""
        if not first_name.strip() and not last_name.strip():
            raise FleetValidationError("a driver needs a first or last name")
        if status is not None and status != DriverStatus.AVAILABLE:
            _logger.debug("Ignoring requested status %s for new driver", status.name)
        driver = Driver(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            gls_number=gls_number.strip(),
            phone=phone.strip(),
            is_beginner=is_beginner,
            status=DriverStatus.AVAILABLE,
            created_at=self._ctx.now(),
        )
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.DRIVERS, driver, "create driver")],
            action=f"create driver {driver.full_name}",
        )
        saved = result.saved[0]
        assert isinstance(saved, Driver)  # noqa: S101
        return saved

    async def update_profile(self, driver_id: str, **changes: Any) -> Driver:
        """Edit name, contact and beginner flag.

        ``plate`` and ``status`` are not editable here; they change only
        through the registry and :meth:`change_status`.
        """
        unknown = set(changes) - _PROFILE_FIELDS
        if unknown:
            raise FleetValidationError(f"fields not editable on a driver profile: {', '.join(sorted(unknown))}")
        driver = self._ctx.state.driver(driver_id)
        updated = driver.model_copy(update=changes)
        if updated == driver:
            return driver
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.DRIVERS, updated, "edit driver")],
            action=f"edit driver {driver_id}",
        )
        saved = result.saved[0]
        assert isinstance(saved, Driver)  # noqa: S101
        return saved

    async def change_status(
        self,
        driver_id: str,
        status: DriverStatus,
        *,
        start: date | None = None,
        end: date | None = None,
        vehicle_returned: bool | None = None,
    ) -> Driver:
        """Move a driver to *status*.

        ``start``/``end`` record the leave or sick range and are only
        accepted for ON_LEAVE and SICK.  Leaving either state keeps the
        stored range.

        A driver who holds a vehicle and goes on leave needs an explicit
        ``vehicle_returned``: ``True`` releases the vehicle in the same
        sequence, ``False`` keeps it with the driver.  Without a decision
        :class:`LeaveReturnDecisionRequired` is raised and nothing is
        written.
        """
        driver = self._ctx.state.driver(driver_id)
        check_transition("driver", DRIVER_TRANSITIONS, driver.status, status)

        update: dict[str, Any] = {"status": status}
        range_fields = _DATE_RANGE_FIELDS.get(status)
        if range_fields is None:
            if start is not None or end is not None:
                raise FleetValidationError(f"a date range is only recorded for leave or sickness, not {status.name}")
        else:
            if start is not None and end is not None and end < start:
                raise FleetValidationError(f"range end {end} is before its start {start}")
            if start is not None:
                update[range_fields[0]] = start
            if end is not None:
                update[range_fields[1]] = end

        entering_leave = status == DriverStatus.ON_LEAVE and driver.status != DriverStatus.ON_LEAVE
        if entering_leave and driver.plate:
            if vehicle_returned is None:
                raise LeaveReturnDecisionRequired(str(driver.id), driver.plate)
            if vehicle_returned:
                writes = self._registry.plan_release_driver(driver, driver_update=update)
                result = await self._ctx.reconciler.run(
                    writes,
                    action=f"driver {driver_id} on leave, {driver.plate} returned",
                    check_pairing=True,
                )
                saved = result.saved[-1]
                assert isinstance(saved, Driver)  # noqa: S101
                return saved

        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.DRIVERS, driver.model_copy(update=update), f"status {status.name}")],
            action=f"driver {driver_id} {driver.status.name} -> {status.name}",
        )
        saved = result.saved[0]
        assert isinstance(saved, Driver)  # noqa: S101
        return saved

    async def delete(self, driver_id: str) -> None:
        """Delete a driver, releasing any vehicle they hold first."""
        driver = self._ctx.state.driver(driver_id)
        writes: list[StoreWrite] = []
        vehicle = self._ctx.state.vehicle_by_plate(driver.plate)
        if vehicle is not None:
            writes.extend(self._registry.plan_release_vehicle(vehicle, skip_driver=driver.id))
        writes.append(StoreWrite.delete(Collection.DRIVERS, str(driver.id), "delete driver"))
        await self._ctx.reconciler.run(writes, action=f"delete driver {driver_id}", check_pairing=vehicle is not None)

    def available(self) -> list[Driver]:
        return [d for d in self._ctx.state.drivers() if d.status == DriverStatus.AVAILABLE]

    def without_vehicle(self) -> list[Driver]:
        return [d for d in self._ctx.state.drivers() if not d.plate]
