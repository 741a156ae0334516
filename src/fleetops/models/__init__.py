"""Data models for fleet store records."""

from fleetops.models._base import FleetBaseModel, FleetEnum, blank_to_none
from fleetops.models.complaint import Complaint, ComplaintStatus
from fleetops.models.control import ControlChecklist
from fleetops.models.driver import Driver, DriverStatus
from fleetops.models.fuel_card import FUEL_CARD_COLUMNS, FuelCardRequest, FuelCardStatus
from fleetops.models.inventory import AssignmentRecord, InventoryItem, InventoryType, VehicleStatus, normalize_plate
from fleetops.models.tour import StopPlan, Tour, TourStatus, TourType

__all__ = [
    "AssignmentRecord",
    "Complaint",
    "ComplaintStatus",
    "ControlChecklist",
    "Driver",
    "DriverStatus",
    "FUEL_CARD_COLUMNS",
    "FleetBaseModel",
    "FleetEnum",
    "FuelCardRequest",
    "FuelCardStatus",
    "InventoryItem",
    "InventoryType",
    "StopPlan",
    "Tour",
    "TourStatus",
    "TourType",
    "VehicleStatus",
    "blank_to_none",
    "normalize_plate",
]
