"""Fuel-card custody: request, accept, return."""

from __future__ import annotations

import logging

from fleetops.exceptions import FleetValidationError
from fleetops.models import FuelCardRequest, FuelCardStatus, normalize_plate
from fleetops.state.events import Collection, StoreWrite
from fleetops.state.policy import FUEL_CARD_TRANSITIONS, check_transition
from fleetops.workflows._context import FleetContext

_logger = logging.getLogger(__name__)


class FuelCardWorkflow:
    """PENDING -> ACCEPTED -> RETURNED, one open request per driver."""

    def __init__(self, ctx: FleetContext) -> None:
        self._ctx = ctx

    async def _save(self, request: FuelCardRequest, action: str) -> FuelCardRequest:
        result = await self._ctx.reconciler.run(
            [StoreWrite.upsert(Collection.FUEL_CARDS, request, action)],
            action=action,
        )
        saved = result.saved[0]
        assert isinstance(saved, FuelCardRequest)  # noqa: S101
        return saved

    def _require(self, request_id: str) -> FuelCardRequest:
        return self._ctx.state.require(Collection.FUEL_CARDS, request_id, FuelCardRequest)

    def active_request(self, driver_id: str) -> FuelCardRequest | None:
        """The driver's PENDING or ACCEPTED request, if any."""
        for request in self._ctx.state.fuel_cards():
            if request.driver_id == driver_id and request.is_outstanding:
                return request
        return None

    def pending_requests(self) -> list[FuelCardRequest]:
        pending = [r for r in self._ctx.state.fuel_cards() if r.status == FuelCardStatus.PENDING]
        pending.sort(key=lambda r: r.request_date.timestamp() if r.request_date else float("inf"))
        return pending

    def history(self, driver_id: str | None = None) -> list[FuelCardRequest]:
        """All requests (optionally for one driver), newest first."""
        requests = [r for r in self._ctx.state.fuel_cards() if driver_id is None or r.driver_id == driver_id]
        requests.sort(key=lambda r: r.request_date.timestamp() if r.request_date else 0.0, reverse=True)
        return requests

    async def request(self, driver_id: str, odometer: int, *, vehicle_plate: str | None = None) -> FuelCardRequest:
        """Open a request for *driver_id*.

        ``vehicle_plate`` defaults to the driver's assigned vehicle.  Rejected
        while the driver already has a PENDING or ACCEPTED request.
        """
        driver = self._ctx.state.driver(driver_id)
        if isinstance(odometer, bool) or not isinstance(odometer, int) or odometer < 0:
            raise FleetValidationError(f"odometer must be a non-negative whole number, got {odometer!r}")
        outstanding = self.active_request(driver_id)
        if outstanding is not None:
            raise FleetValidationError(
                f"driver {driver_id} already has a {outstanding.status.name} fuel card request ({outstanding.id})"
            )
        plate = normalize_plate(vehicle_plate) if vehicle_plate else driver.plate
        if not plate:
            raise FleetValidationError(f"driver {driver_id} has no vehicle; pass vehicle_plate")

        request = FuelCardRequest(
            user_id=self._ctx.owner_id,
            driver_id=str(driver.id),
            driver_name=driver.full_name,
            vehicle_plate=plate,
            odometer=odometer,
            request_date=self._ctx.now(),
            status=FuelCardStatus.PENDING,
        )
        return await self._save(request, f"fuel card request for {driver.full_name}")

    async def accept(self, request_id: str, card_number: str) -> FuelCardRequest:
        """Hand a card over: PENDING -> ACCEPTED."""
        request = self._require(request_id)
        check_transition("fuel card", FUEL_CARD_TRANSITIONS, request.status, FuelCardStatus.ACCEPTED)
        card_number = card_number.strip()
        if not card_number:
            raise FleetValidationError("a card number is required to accept a request")
        accepted = request.model_copy(
            update={
                "status": FuelCardStatus.ACCEPTED,
                "card_number": card_number,
                "accepted_date": self._ctx.now(),
            }
        )
        saved = await self._save(accepted, f"accept fuel card request {request_id}")
        _logger.info("Fuel card %s handed to driver %s", card_number, request.driver_id)
        return saved

    async def return_card(self, request_id: str) -> FuelCardRequest:
        """Card back: ACCEPTED -> RETURNED."""
        request = self._require(request_id)
        check_transition("fuel card", FUEL_CARD_TRANSITIONS, request.status, FuelCardStatus.RETURNED)
        returned = request.model_copy(update={"status": FuelCardStatus.RETURNED, "return_date": self._ctx.now()})
        return await self._save(returned, f"return fuel card {request.card_number}")
