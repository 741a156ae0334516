"""Complaint model."""

from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar

from pydantic import Field

from fleetops.models._base import FleetBaseModel, FleetEnum


class ComplaintStatus(FleetEnum):
    PENDING = "PENDING"
    RESOLVED = "ERLEDIGT"
    DAMAGE = "SCHADEN"

    @property
    def is_terminal(self) -> bool:
        return self is not ComplaintStatus.PENDING


class Complaint(FleetBaseModel):
    """A customer complaint raised against a tour.

    The ``*_snapshot`` fields copy the tour, driver and vehicle as they were
    when the complaint was created.
    """

    _WRITE_ONCE: ClassVar[frozenset[str]] = frozenset(
        {
            "tour_number_snapshot",
            "tour_date_snapshot",
            "driver_name_snapshot",
            "vehicle_plate_snapshot",
        }
    )

    user_id: str | None = Field(default=None, alias="user_id")
    tour_id: str
    tour_number_snapshot: str = Field(default="", alias="tour_number_snapshot")
    tour_date_snapshot: date | None = Field(default=None, alias="tour_date_snapshot")
    driver_name_snapshot: str = Field(default="", alias="driver_name_snapshot")
    vehicle_plate_snapshot: str | None = Field(default=None, alias="vehicle_plate_snapshot")

    tour_number: str = ""
    driver_id: str | None = None
    day: date | None = Field(default=None, alias="date")
    package_number: str
    address: str = ""
    postal_code: str = ""
    status: ComplaintStatus = ComplaintStatus.PENDING
    resolved: bool = False
    resolved_at: datetime | None = None
