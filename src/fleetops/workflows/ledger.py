"""Assignment ledger for non-vehicle inventory.

Each hand-out decrements stock and prepends an :class:`AssignmentRecord` to
the item's ``history`` (newest first).  Records are never edited afterwards,
except that :meth:`AssignmentLedger.mark_returned` may stamp
``returned_at`` once.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fleetops.exceptions import EntityNotFoundError, FleetValidationError
from fleetops.models import AssignmentRecord, InventoryItem, InventoryType
from fleetops.state.events import Collection, StoreWrite
from fleetops.workflows._context import FleetContext

_logger = logging.getLogger(__name__)

_ITEM_FIELDS = frozenset({"name", "size", "brand", "quantity", "is_consumable", "type"})


def _record_id() -> str:
    return f"rec-{uuid.uuid4().hex[:12]}"


class AssignmentLedger:
    """Stock items and their hand-out history."""

    def __init__(self, ctx: FleetContext) -> None:
        self._ctx = ctx

    async def _save(self, item: InventoryItem, action: str) -> InventoryItem:
        result = await self._ctx.reconciler.run([StoreWrite.upsert(Collection.INVENTORY, item, action)], action=action)
        saved = result.saved[0]
        assert isinstance(saved, InventoryItem)  # noqa: S101
        return saved

    async def add_item(
        self,
        name: str,
        *,
        type: InventoryType = InventoryType.CLOTHING,
        quantity: int = 0,
        size: str | None = None,
        brand: str | None = None,
        is_consumable: bool = False,
    ) -> InventoryItem:
        if type == InventoryType.VEHICLE:
            raise FleetValidationError("vehicles are registered through the vehicle workflow")
        if not name.strip():
            raise FleetValidationError("an item needs a name")
        if quantity < 0:
            raise FleetValidationError(f"stock cannot be negative, got {quantity}")
        item = InventoryItem(
            type=type,
            name=name.strip(),
            quantity=quantity,
            size=size,
            brand=brand,
            is_consumable=is_consumable,
        )
        return await self._save(item, f"add item {item.name}")

    async def update_item(self, item_id: str, **changes: Any) -> InventoryItem:
        """Edit item details or restock.  ``history`` is never editable."""
        unknown = set(changes) - _ITEM_FIELDS
        if unknown:
            raise FleetValidationError(f"fields not editable on an item: {', '.join(sorted(unknown))}")
        if changes.get("type") == InventoryType.VEHICLE:
            raise FleetValidationError("a stock item cannot become a vehicle")
        if changes.get("quantity", 0) < 0:
            raise FleetValidationError(f"stock cannot be negative, got {changes['quantity']}")
        item = self._ctx.state.stock_item(item_id)
        return await self._save(item.model_copy(update=changes), f"edit item {item.name}")

    async def hand_out(self, item_id: str, driver_id: str, quantity: int, signature: str) -> AssignmentRecord:
        """Give *quantity* of *item_id* to *driver_id* against their signature.

        The record keeps the driver's plate at this moment; it is not
        updated when the driver's vehicle changes later.
        """
        if not signature or not signature.strip():
            raise FleetValidationError("a signature is required to hand out an item")
        item = self._ctx.state.stock_item(item_id)
        driver = self._ctx.state.driver(driver_id)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise FleetValidationError(f"quantity must be a positive whole number, got {quantity!r}")
        if quantity > item.quantity:
            raise FleetValidationError(f"only {item.quantity} of {item.name} in stock, {quantity} requested")

        record = AssignmentRecord(
            id=_record_id(),
            driver_id=str(driver.id),
            item_id=str(item.id),
            quantity=quantity,
            handed_out_at=self._ctx.now(),
            signature=signature,
            plate_snapshot=driver.plate,
        )
        updated = item.model_copy(
            update={
                "quantity": max(0, item.quantity - quantity),
                "history": [record, *item.history],
            }
        )
        await self._save(updated, f"hand out {quantity} x {item.name}")
        _logger.info("Handed out %d x %s to driver %s", quantity, item.name, driver.id)
        return record

    async def mark_returned(self, item_id: str, record_id: str) -> AssignmentRecord:
        """Stamp ``returned_at`` on a hand-out record.

        Returned non-consumables go back into stock.
        """
        item = self._ctx.state.stock_item(item_id)
        record = next((r for r in item.history if r.id == record_id), None)
        if record is None:
            raise EntityNotFoundError(f"{Collection.INVENTORY}.history", record_id)
        if record.returned_at is not None:
            raise FleetValidationError(f"record {record_id} was already returned")

        returned = record.model_copy(update={"returned_at": self._ctx.now()})
        update: dict[str, Any] = {"history": [returned if r.id == record_id else r for r in item.history]}
        if not item.is_consumable:
            update["quantity"] = item.quantity + record.quantity
        await self._save(item.model_copy(update=update), f"return {record.quantity} x {item.name}")
        return returned

    def history(self, item_id: str) -> list[AssignmentRecord]:
        return list(self._ctx.state.stock_item(item_id).history)

    def records_for_driver(self, driver_id: str) -> list[AssignmentRecord]:
        """All hand-outs to *driver_id*, newest first."""
        records = [r for item in self._ctx.state.stock_items() for r in item.history if r.driver_id == driver_id]
        records.sort(key=lambda r: r.handed_out_at, reverse=True)
        return records
