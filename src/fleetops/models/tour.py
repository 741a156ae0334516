"""Tour and stop-plan models."""

from __future__ import annotations

import re
from datetime import date

from pydantic import Field

from fleetops.models._base import FleetBaseModel, FleetEnum


class TourStatus(FleetEnum):
    PENDING = "Pending"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TourType(FleetEnum):
    FIXED = "Fest Tour"
    SPRINGER = "Springer"


class Tour(FleetBaseModel):
    """A delivery tour.  ``(day, tour_number)`` is unique in the store."""

    user_id: str | None = Field(default=None, alias="user_id")
    tour_number: str
    day: date = Field(alias="date")
    city: str = ""
    driver_id: str | None = None
    beginner_driver_id: str | None = None
    vehicle_plate: str | None = None
    status: TourStatus = TourStatus.PENDING
    tour_type: TourType = TourType.FIXED
    progress: int = 0
    total_packages: int = 0
    total_stops: int = 0

    def sort_key(self) -> tuple[int, str]:
        """Numeric-aware ordering key (``"T2"`` before ``"T10"``)."""
        match = re.search(r"\d+", self.tour_number)
        return (int(match.group()) if match else 0, self.tour_number)


class StopPlan(FleetBaseModel):
    """Planned stops and packages for a day."""

    user_id: str | None = Field(default=None, alias="user_id")
    day: date | None = Field(default=None, alias="date")
    addresses: str = ""
    packages: int = 0
    stops: int = 0
