"""Inventory models: vehicles, stock items and their hand-out records."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, field_validator

from fleetops.models._base import FleetBaseModel, FleetEnum


class InventoryType(FleetEnum):
    CLOTHING = "Clothing"
    VEHICLE = "Vehicle"
    OTHER = "Other"


class VehicleStatus(FleetEnum):
    ACTIVE = "Active"
    ALLOCATED = "Allocated"
    IN_SERVICE = "Service"


class AssignmentRecord(FleetBaseModel):
    """One hand-out of a stock item to a driver.

    Everything except ``returned_at`` is fixed when the record is written.
    ``plate_snapshot`` is the driver's plate at hand-out time and is never
    recomputed.
    """

    driver_id: str
    item_id: str
    quantity: int = Field(gt=0)
    handed_out_at: datetime = Field(alias="date")
    signature: str = ""
    returned_at: datetime | None = None
    plate_snapshot: str | None = Field(default=None, alias="driverPlateAtTime")


class InventoryItem(FleetBaseModel):
    """An inventory row.

    Vehicles and stock items share the ``inventory`` collection; the
    vehicle-only columns (plate, assignment, service) are empty for stock
    items and ``history`` stays empty for vehicles.
    """

    user_id: str | None = Field(default=None, alias="user_id")
    type: InventoryType = InventoryType.OTHER
    name: str = ""
    size: str | None = None
    brand: str | None = None
    quantity: int = 0
    is_consumable: bool = False
    history: list[AssignmentRecord] = Field(default_factory=list)

    plate: str | None = None
    assigned_to: str | None = None
    signature: str | None = None
    assignment_date: datetime | None = None
    vehicle_status: VehicleStatus | None = None
    service_location: str | None = None
    service_problem: str | None = None
    service_end_date: date | None = None
    hu_expiration: date | None = None

    @field_validator("history", mode="before")
    @classmethod
    def _history_list(cls, value: object) -> object:
        return value if isinstance(value, list) else []

    @field_validator("service_end_date", "hu_expiration", mode="before")
    @classmethod
    def _date_part(cls, value: object) -> object:
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    @property
    def is_vehicle(self) -> bool:
        return self.type == InventoryType.VEHICLE

    @property
    def effective_status(self) -> VehicleStatus:
        """Vehicle status, treating a missing value as ACTIVE."""
        return self.vehicle_status or VehicleStatus.ACTIVE


def normalize_plate(plate: str) -> str:
    """Upper-case a plate and collapse its whitespace (``"b nt 123"`` -> ``"B NT 123"``)."""
    return " ".join(plate.upper().split())
