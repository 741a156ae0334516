"""In-memory session state.

The :class:`FleetState` holds the collections loaded for the current
operator session.  Only :class:`fleetops.reconcile.Reconciler` mutates it
after a store write has been confirmed; workflows only read from it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from fleetops.exceptions import EntityNotFoundError, FleetStoreError, FleetValidationError
from fleetops.models import (
    Complaint,
    ControlChecklist,
    Driver,
    FleetBaseModel,
    FuelCardRequest,
    InventoryItem,
    StopPlan,
    Tour,
)
from fleetops.state.events import COLLECTION_MODELS, Collection
from fleetops.state.policy import pairing_violations

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=FleetBaseModel)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_rows(collection: Collection, rows: Iterable[dict[str, Any]]) -> list[FleetBaseModel]:
    """Validate raw store rows into models for *collection*."""
    model = COLLECTION_MODELS[collection]
    parsed: list[FleetBaseModel] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            raise FleetStoreError(
                f"Invalid {collection} record {row.get('id')!r}: {exc.error_count()} validation error(s)",
                collection=collection,
                code="invalid_record",
            ) from exc
    return parsed


class FleetState:
    """Loaded collections keyed by record id."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._records: dict[Collection, dict[str, FleetBaseModel]] = {c: {} for c in Collection}
        self.loaded_at: datetime | None = None

    # ------------------------------------------------------------------
    # Mutation (reconciliation layer only)
    # ------------------------------------------------------------------

    def replace_all(self, collection: Collection, records: Iterable[FleetBaseModel]) -> None:
        bucket: dict[str, FleetBaseModel] = {}
        for record in records:
            if record.id is None:
                _logger.warning("Skipping %s record without id", collection)
                continue
            bucket[record.id] = record
        self._records[collection] = bucket

    def put(self, collection: Collection, record: FleetBaseModel) -> None:
        if record.id is None:
            raise FleetStoreError(f"Store returned a {collection} record without id", collection=collection)
        self._records[collection][record.id] = record

    def remove(self, collection: Collection, record_id: str) -> None:
        self._records[collection].pop(record_id, None)

    def mark_loaded(self) -> None:
        self.loaded_at = self._clock()

    def clear(self) -> None:
        """Drop all loaded data (end of session)."""
        for bucket in self._records.values():
            bucket.clear()
        self.loaded_at = None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, collection: Collection, record_id: str | None) -> FleetBaseModel | None:
        if not record_id:
            return None
        return self._records[collection].get(record_id)

    def require(self, collection: Collection, record_id: str | None, model: type[M]) -> M:
        record = self.get(collection, record_id)
        if record is None or not isinstance(record, model):
            raise EntityNotFoundError(collection, str(record_id))
        return record

    def all(self, collection: Collection) -> list[FleetBaseModel]:
        return list(self._records[collection].values())

    def count(self, collection: Collection) -> int:
        return len(self._records[collection])

    def drivers(self) -> list[Driver]:
        return [r for r in self._records[Collection.DRIVERS].values() if isinstance(r, Driver)]

    def inventory(self) -> list[InventoryItem]:
        return [r for r in self._records[Collection.INVENTORY].values() if isinstance(r, InventoryItem)]

    def vehicles(self) -> list[InventoryItem]:
        return [item for item in self.inventory() if item.is_vehicle]

    def stock_items(self) -> list[InventoryItem]:
        return [item for item in self.inventory() if not item.is_vehicle]

    def tours(self) -> list[Tour]:
        return [r for r in self._records[Collection.TOURS].values() if isinstance(r, Tour)]

    def complaints(self) -> list[Complaint]:
        return [r for r in self._records[Collection.COMPLAINTS].values() if isinstance(r, Complaint)]

    def controls(self) -> list[ControlChecklist]:
        return [r for r in self._records[Collection.CONTROLS].values() if isinstance(r, ControlChecklist)]

    def fuel_cards(self) -> list[FuelCardRequest]:
        return [r for r in self._records[Collection.FUEL_CARDS].values() if isinstance(r, FuelCardRequest)]

    def stop_plans(self) -> list[StopPlan]:
        return [r for r in self._records[Collection.STOPS].values() if isinstance(r, StopPlan)]

    def driver(self, driver_id: str | None) -> Driver:
        return self.require(Collection.DRIVERS, driver_id, Driver)

    def vehicle(self, vehicle_id: str | None) -> InventoryItem:
        item = self.require(Collection.INVENTORY, vehicle_id, InventoryItem)
        if not item.is_vehicle:
            raise FleetValidationError(f"inventory item {vehicle_id!r} is not a vehicle")
        return item

    def stock_item(self, item_id: str | None) -> InventoryItem:
        item = self.require(Collection.INVENTORY, item_id, InventoryItem)
        if item.is_vehicle:
            raise FleetValidationError(f"inventory item {item_id!r} is a vehicle, not a stock item")
        return item

    def drivers_holding(self, plate: str | None) -> list[Driver]:
        if not plate:
            return []
        return [d for d in self.drivers() if d.plate == plate]

    def driver_by_plate(self, plate: str | None) -> Driver | None:
        holders = self.drivers_holding(plate)
        return holders[0] if holders else None

    def vehicle_by_plate(self, plate: str | None) -> InventoryItem | None:
        if not plate:
            return None
        for vehicle in self.vehicles():
            if vehicle.plate == plate:
                return vehicle
        return None

    def check_pairing(self) -> list[str]:
        """Evaluate the driver/vehicle pairing rule on the loaded data."""
        return pairing_violations(self.drivers(), self.vehicles())
