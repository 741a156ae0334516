"""Driver model."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, field_validator

from fleetops.models._base import FleetBaseModel, FleetEnum


class DriverStatus(FleetEnum):
    """Driver availability.  Values are the labels stored by the dispatch app."""

    AVAILABLE = "Available"
    ABSENT = "Fehlt"
    ON_LEAVE = "Urlaub"
    SICK = "Sick"


class Driver(FleetBaseModel):
    """A driver of the fleet.

    ``plate`` is a denormalized link to the assigned vehicle's plate.  Only
    :mod:`fleetops.workflows.registry` writes it.
    """

    user_id: str | None = Field(default=None, alias="user_id")
    first_name: str = ""
    last_name: str = ""
    gls_number: str = ""
    phone: str = ""
    plate: str | None = None
    is_beginner: bool = False
    status: DriverStatus = DriverStatus.AVAILABLE
    created_at: datetime | None = Field(default=None, alias="created_at")
    vacation_start: date | None = None
    vacation_end: date | None = None
    sick_start: date | None = None
    sick_end: date | None = None

    @field_validator("vacation_start", "vacation_end", "sick_start", "sick_end", mode="before")
    @classmethod
    def _date_part(cls, value: object) -> object:
        # Some rows carry full timestamps in the date columns.
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_vehicle(self) -> bool:
        return bool(self.plate)
