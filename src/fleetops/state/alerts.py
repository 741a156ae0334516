"""Inspection and service urgency for vehicles.

Pure functions over vehicle records and a reference day.  A date counts as
expired once its day has started, so an inspection due today is already
overdue.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from fleetops.models import InventoryItem, VehicleStatus


class Urgency(StrEnum):
    EXPIRED = "expired"
    DUE = "due"
    OK = "ok"


class InspectionAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str | None
    plate: str | None
    expires_on: date
    days_left: int
    urgency: Urgency


class ServiceAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str | None
    plate: str | None
    in_service: bool
    location: str | None
    problem: str | None
    ends_on: date | None
    days_left: int | None
    urgent: bool


def inspection_urgency(expires_on: date | None, today: date, horizon_days: int) -> Urgency:
    if expires_on is None:
        return Urgency.OK
    if expires_on <= today:
        return Urgency.EXPIRED
    if (expires_on - today).days <= horizon_days:
        return Urgency.DUE
    return Urgency.OK


def inspection_alerts(vehicles: Iterable[InventoryItem], today: date, horizon_days: int = 30) -> list[InspectionAlert]:
    """Vehicles whose inspection is expired or due within *horizon_days*, soonest first."""
    alerts: list[InspectionAlert] = []
    for vehicle in vehicles:
        if not vehicle.is_vehicle or vehicle.hu_expiration is None:
            continue
        urgency = inspection_urgency(vehicle.hu_expiration, today, horizon_days)
        if urgency == Urgency.OK:
            continue
        alerts.append(
            InspectionAlert(
                vehicle_id=vehicle.id,
                plate=vehicle.plate,
                expires_on=vehicle.hu_expiration,
                days_left=(vehicle.hu_expiration - today).days,
                urgency=urgency,
            )
        )
    alerts.sort(key=lambda a: a.expires_on)
    return alerts


def service_alerts(vehicles: Iterable[InventoryItem], today: date, horizon_days: int = 3) -> list[ServiceAlert]:
    """Vehicles in service or with a scheduled service window.

    ``urgent`` is set when the window ends within *horizon_days* (or has
    already ended).
    """
    alerts: list[ServiceAlert] = []
    for vehicle in vehicles:
        if not vehicle.is_vehicle:
            continue
        in_service = vehicle.effective_status == VehicleStatus.IN_SERVICE
        if not in_service and vehicle.service_end_date is None:
            continue
        days_left = (vehicle.service_end_date - today).days if vehicle.service_end_date else None
        alerts.append(
            ServiceAlert(
                vehicle_id=vehicle.id,
                plate=vehicle.plate,
                in_service=in_service,
                location=vehicle.service_location,
                problem=vehicle.service_problem,
                ends_on=vehicle.service_end_date,
                days_left=days_left,
                urgent=days_left is not None and days_left <= horizon_days,
            )
        )
    alerts.sort(key=lambda a: a.ends_on or date.max)
    return alerts
