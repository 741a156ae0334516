"""Vehicle safety control checklist."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from fleetops.models._base import FleetBaseModel


class ControlChecklist(FleetBaseModel):
    """A driver's pre-departure safety check."""

    user_id: str | None = Field(default=None, alias="user_id")
    driver_id: str
    checked_at: datetime = Field(alias="date")
    safety_net: bool = False
    fire_extinguisher: bool = False
    safe_shoes: bool = False
    cleanliness: bool = False
    signature: str | None = None

    @property
    def passed(self) -> bool:
        return self.safety_net and self.fire_extinguisher and self.safe_shoes and self.cleanliness
