"""Planned store writes.

Every workflow expresses its outcome as an ordered list of
:class:`StoreWrite` steps.  Only :mod:`fleetops.reconcile` executes them and
merges the saved rows back into the session state.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator

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


class Collection(StrEnum):
    DRIVERS = "drivers"
    INVENTORY = "inventory"
    TOURS = "tours"
    COMPLAINTS = "complaints"
    CONTROLS = "controls"
    FUEL_CARDS = "fuel_cards"
    STOPS = "stops"


COLLECTION_MODELS: dict[Collection, type[FleetBaseModel]] = {
    Collection.DRIVERS: Driver,
    Collection.INVENTORY: InventoryItem,
    Collection.TOURS: Tour,
    Collection.COMPLAINTS: Complaint,
    Collection.CONTROLS: ControlChecklist,
    Collection.FUEL_CARDS: FuelCardRequest,
    Collection.STOPS: StopPlan,
}


class WriteOp(StrEnum):
    UPSERT = "upsert"
    DELETE = "delete"


class StoreWrite(BaseModel):
    """A single store call within a workflow's write sequence."""

    model_config = ConfigDict(frozen=True)

    collection: Collection
    op: WriteOp = WriteOp.UPSERT
    record: FleetBaseModel | None = None
    record_id: str | None = None
    on_conflict: tuple[str, ...] | None = None
    label: str = ""

    @model_validator(mode="after")
    def _check_shape(self) -> StoreWrite:
        if self.op == WriteOp.UPSERT and self.record is None:
            raise ValueError("upsert requires a record")
        if self.op == WriteOp.DELETE and not self.record_id:
            raise ValueError("delete requires a record_id")
        return self

    @classmethod
    def upsert(
        cls,
        collection: Collection,
        record: FleetBaseModel,
        label: str = "",
        *,
        on_conflict: tuple[str, ...] | None = None,
    ) -> StoreWrite:
        return cls(collection=collection, record=record, label=label, on_conflict=on_conflict)

    @classmethod
    def delete(cls, collection: Collection, record_id: str, label: str = "") -> StoreWrite:
        return cls(collection=collection, op=WriteOp.DELETE, record_id=record_id, label=label)

    def describe(self) -> str:
        target = self.record_id or (self.record.id if self.record is not None else None) or "<new>"
        text = f"{self.op} {self.collection}/{target}"
        return f"{text} ({self.label})" if self.label else text
