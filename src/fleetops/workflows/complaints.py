"""Complaint records and the guarded resolution transition."""

from __future__ import annotations

import logging

from fleetops.exceptions import ConfirmationMismatchError, FleetValidationError
from fleetops.models import Complaint, ComplaintStatus, Driver, Tour
from fleetops.state.events import Collection, StoreWrite
from fleetops.state.policy import COMPLAINT_TRANSITIONS, check_transition
from fleetops.workflows._context import FleetContext

_logger = logging.getLogger(__name__)

UNKNOWN_DRIVER = "Unknown"


class ComplaintWorkflow:
    """Raise complaints against tours and resolve them."""

    def __init__(self, ctx: FleetContext) -> None:
        self._ctx = ctx

    async def _save(self, complaint: Complaint, action: str) -> Complaint:
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.COMPLAINTS, complaint, action)],
            action=action,
        )
        saved = result.saved[0]
        assert isinstance(saved, Complaint)  # noqa: S101
        return saved

    async def create(
        self,
        tour_id: str,
        package_number: str,
        *,
        address: str = "",
        postal_code: str = "",
    ) -> Complaint:
        """Open a complaint for a tour.

        Tour number, tour date, driver name and vehicle plate are copied
        from the tour and its driver now and never recomputed.
        """
        tour = self._ctx.state.require(Collection.TOURS, tour_id, Tour)
        package_number = package_number.strip()
        if not package_number:
            raise FleetValidationError("a complaint needs a package number")

        driver_name = UNKNOWN_DRIVER
        if tour.driver_id:
            driver = self._ctx.state.get(Collection.DRIVERS, tour.driver_id)
            if isinstance(driver, Driver):
                driver_name = driver.full_name or UNKNOWN_DRIVER

        complaint = Complaint(
            user_id=self._ctx.owner_id,
            tour_id=str(tour.id),
            tour_number_snapshot=tour.tour_number,
            tour_date_snapshot=tour.day,
            driver_name_snapshot=driver_name,
            vehicle_plate_snapshot=tour.vehicle_plate,
            tour_number=tour.tour_number,
            driver_id=tour.driver_id,
            day=tour.day,
            package_number=package_number,
            address=address.strip(),
            postal_code=postal_code.strip(),
            status=ComplaintStatus.PENDING,
        )
        return await self._save(complaint, f"complaint for tour {tour.tour_number}")

    async def update(
        self,
        complaint_id: str,
        *,
        package_number: str | None = None,
        address: str | None = None,
        postal_code: str | None = None,
    ) -> Complaint:
        """Edit the mutable fields of a pending complaint."""
        complaint = self._ctx.state.require(Collection.COMPLAINTS, complaint_id, Complaint)
        if complaint.status.is_terminal:
            raise FleetValidationError(
                f"complaint {complaint_id} is {complaint.status.name} and can no longer be edited"
            )
        update: dict[str, str] = {}
        if package_number is not None:
            if not package_number.strip():
                raise FleetValidationError("a complaint needs a package number")
            update["package_number"] = package_number.strip()
        if address is not None:
            update["address"] = address.strip()
        if postal_code is not None:
            update["postal_code"] = postal_code.strip()
        if not update:
            return complaint
        return await self._save(complaint.model_copy(update=update), f"edit complaint {complaint_id}")

    async def resolve(self, complaint_id: str, target: ComplaintStatus, confirmation: str) -> Complaint:
        """Close a complaint as RESOLVED or DAMAGE.

        ``confirmation`` must equal the stored package number exactly
        (case-sensitive, no trimming); otherwise nothing is written.
        """
        complaint = self._ctx.state.require(Collection.COMPLAINTS, complaint_id, Complaint)
        check_transition("complaint", COMPLAINT_TRANSITIONS, complaint.status, target)
        if confirmation != complaint.package_number:
            raise ConfirmationMismatchError(
                f"confirmation does not match the package number of complaint {complaint_id}"
            )
        resolved = complaint.model_copy(
            update={"status": target, "resolved": True, "resolved_at": self._ctx.now()}
        )
        saved = await self._save(resolved, f"resolve complaint {complaint_id} as {target.name}")
        _logger.info("Complaint %s resolved as %s", complaint_id, target.name)
        return saved

    def pending(self) -> list[Complaint]:
        return [c for c in self._ctx.state.complaints() if c.status == ComplaintStatus.PENDING]

    def for_driver(self, driver_id: str) -> list[Complaint]:
        return [c for c in self._ctx.state.complaints() if c.driver_id == driver_id]
