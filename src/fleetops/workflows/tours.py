"""Tours, daily stop plans and vehicle safety controls."""

from __future__ import annotations

import logging
from datetime import date

from fleetops._constants import TOUR_CONFLICT_KEY
from fleetops.exceptions import FleetValidationError
from fleetops.models import ControlChecklist, StopPlan, Tour, TourStatus, TourType
from fleetops.state.events import Collection, StoreWrite
from fleetops.state.policy import TOUR_TRANSITIONS, check_transition
from fleetops.workflows._context import FleetContext

_logger = logging.getLogger(__name__)


class TourWorkflow:
    """Plan and finish tours.  ``(day, tour_number)`` identifies a tour."""

    def __init__(self, ctx: FleetContext) -> None:
        self._ctx = ctx

    def find(self, day: date, tour_number: str) -> Tour | None:
        for tour in self._ctx.state.tours():
            if tour.day == day and tour.tour_number == tour_number:
                return tour
        return None

    async def save(self, tour: Tour) -> Tour:
        """Upsert on the natural key; an existing tour for the same day and number is updated."""
        if not tour.tour_number.strip():
            raise FleetValidationError("a tour needs a tour number")
        if tour.id is None:
            existing = self.find(tour.day, tour.tour_number)
            if existing is not None:
                tour = tour.model_copy(update={"id": existing.id})
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.TOURS, tour, "save tour", on_conflict=TOUR_CONFLICT_KEY)],
            action=f"save tour {tour.tour_number} on {tour.day}",
        )
        saved = result.saved[0]
        assert isinstance(saved, Tour)  # noqa: S101
        # Merged rows come back under the stored id; drop stale copies.
        for other in self._ctx.state.tours():
            if other.id != saved.id and other.day == saved.day and other.tour_number == saved.tour_number:
                self._ctx.state.remove(Collection.TOURS, str(other.id))
        return saved

    async def plan(
        self,
        tour_number: str,
        day: date,
        *,
        driver_id: str | None = None,
        beginner_driver_id: str | None = None,
        vehicle_plate: str | None = None,
        city: str = "",
        tour_type: TourType = TourType.FIXED,
    ) -> Tour:
        """Create or replace the tour for *day* and *tour_number*.

        The vehicle plate defaults to the driver's assigned vehicle.
        """
        if not tour_number.strip():
            raise FleetValidationError("a tour needs a tour number")
        plate = vehicle_plate
        if driver_id is not None:
            driver = self._ctx.state.driver(driver_id)
            plate = plate or driver.plate
        if beginner_driver_id is not None:
            self._ctx.state.driver(beginner_driver_id)
        tour = Tour(
            tour_number=tour_number.strip(),
            day=day,
            city=city.strip(),
            driver_id=driver_id,
            beginner_driver_id=beginner_driver_id,
            vehicle_plate=plate,
            tour_type=tour_type,
        )
        return await self.save(tour)

    async def _transition(self, tour_id: str, target: TourStatus, **update: object) -> Tour:
        tour = self._ctx.state.require(Collection.TOURS, tour_id, Tour)
        check_transition("tour", TOUR_TRANSITIONS, tour.status, target)
        return await self.save(tour.model_copy(update={"status": target, **update}))

    async def start(self, tour_id: str) -> Tour:
        return await self._transition(tour_id, TourStatus.ACTIVE)

    async def cancel(self, tour_id: str) -> Tour:
        return await self._transition(tour_id, TourStatus.CANCELLED)

    async def finish(self, tour_id: str, *, stops: int, packages: int) -> Tour:
        """Record delivered totals and mark the tour COMPLETED."""
        if stops < 0 or packages < 0:
            raise FleetValidationError("stop and package totals cannot be negative")
        saved = await self._transition(tour_id, TourStatus.COMPLETED, total_stops=stops, total_packages=packages)
        _logger.info("Tour %s finished: %d stops, %d packages", saved.tour_number, stops, packages)
        return saved

    def for_day(self, day: date, *, driver_id: str | None = None) -> list[Tour]:
        """Tours on *day* in tour-number order (``T2`` before ``T10``)."""
        tours = [
            t for t in self._ctx.state.tours() if t.day == day and (driver_id is None or t.driver_id == driver_id)
        ]
        tours.sort(key=Tour.sort_key)
        return tours

    async def save_stop_plan(self, day: date, *, addresses: str = "", packages: int = 0, stops: int = 0) -> StopPlan:
        if packages < 0 or stops < 0:
            raise FleetValidationError("stop and package counts cannot be negative")
        existing = next((p for p in self._ctx.state.stop_plans() if p.day == day), None)
        plan = StopPlan(
            id=existing.id if existing is not None else None,
            user_id=self._ctx.owner_id,
            day=day,
            addresses=addresses,
            packages=packages,
            stops=stops,
        )
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.STOPS, plan, "save stop plan")],
            action=f"stop plan for {day}",
        )
        saved = result.saved[0]
        assert isinstance(saved, StopPlan)  # noqa: S101
        return saved


class ControlWorkflow:
    """Pre-departure safety checks."""

    def __init__(self, ctx: FleetContext) -> None:
        self._ctx = ctx

    async def record(
        self,
        driver_id: str,
        *,
        safety_net: bool = False,
        fire_extinguisher: bool = False,
        safe_shoes: bool = False,
        cleanliness: bool = False,
        signature: str | None = None,
    ) -> ControlChecklist:
        driver = self._ctx.state.driver(driver_id)
        control = ControlChecklist(
            driver_id=str(driver.id),
            checked_at=self._ctx.now(),
            safety_net=safety_net,
            fire_extinguisher=fire_extinguisher,
            safe_shoes=safe_shoes,
            cleanliness=cleanliness,
            signature=signature,
        )
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.CONTROLS, control, "record control")],
            action=f"control for driver {driver_id}",
        )
        saved = result.saved[0]
        assert isinstance(saved, ControlChecklist)  # noqa: S101
        if not saved.passed:
            _logger.warning("Control for driver %s did not pass", driver_id)
        return saved

    def for_driver(self, driver_id: str) -> list[ControlChecklist]:
        controls = [c for c in self._ctx.state.controls() if c.driver_id == driver_id]
        controls.sort(key=lambda c: c.checked_at, reverse=True)
        return controls
