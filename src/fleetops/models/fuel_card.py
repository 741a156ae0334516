"""Fuel-card request model and its store column mapping.

The ``fuel_cards`` table uses lower-case concatenated column names
(``driverid``, ``vehicleplate``, ``requestdate`` ...) while every other
collection uses camelCase.  The mapping lives entirely in the field aliases
below: rows are read with :meth:`FuelCardRequest.from_store` and written
with :meth:`FuelCardRequest.to_store`.  A full row (``to_store(create=True)``)
reads back to the same request.  An update payload for a saved request
leaves out the write-once ``drivername``, ``vehicleplate`` and
``requestdate`` columns, so it is a patch rather than a full row.
Reads also accept the camelCase spelling, which older clients wrote.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from pydantic import AliasChoices, Field

from fleetops.models._base import FleetBaseModel, FleetEnum


class FuelCardStatus(FleetEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    RETURNED = "RETURNED"


def _column(name: str, camel: str) -> Any:
    return Field(
        default=None,
        alias=name,
        validation_alias=AliasChoices(name, camel),
    )


class FuelCardRequest(FleetBaseModel):
    """A driver's request for a fuel card, and its custody afterwards."""

    _WRITE_ONCE: ClassVar[frozenset[str]] = frozenset({"driver_name", "vehicle_plate", "request_date"})

    user_id: str | None = Field(default=None, alias="user_id")
    driver_id: str = Field(alias="driverid", validation_alias=AliasChoices("driverid", "driverId", "driver_id"))
    driver_name: str = Field(
        default="",
        alias="drivername",
        validation_alias=AliasChoices("drivername", "driverName", "driver_name"),
    )
    vehicle_plate: str | None = _column("vehicleplate", "vehiclePlate")
    odometer: int | None = Field(default=None, alias="mileage", validation_alias=AliasChoices("mileage", "odometer"))
    card_number: str | None = _column("cardnumber", "cardNumber")
    request_date: datetime | None = _column("requestdate", "requestDate")
    accepted_date: datetime | None = _column("accepteddate", "acceptedDate")
    return_date: datetime | None = _column("returndate", "returnDate")
    status: FuelCardStatus = FuelCardStatus.PENDING

    @classmethod
    def from_store(cls, row: dict[str, Any]) -> FuelCardRequest:
        return cls.model_validate(row)

    @property
    def is_outstanding(self) -> bool:
        """Whether the request still blocks a new one for the same driver."""
        return self.status in (FuelCardStatus.PENDING, FuelCardStatus.ACCEPTED)


#: Model field name -> store column, for callers building filters by hand.
FUEL_CARD_COLUMNS: dict[str, str] = {
    name: str(info.alias or name) for name, info in FuelCardRequest.model_fields.items() if name != "raw"
}
