"""Operator workflows over the loaded fleet state."""

from fleetops.workflows._context import FleetContext
from fleetops.workflows.complaints import ComplaintWorkflow
from fleetops.workflows.drivers import DriverWorkflow
from fleetops.workflows.fuel_cards import FuelCardWorkflow
from fleetops.workflows.ledger import AssignmentLedger
from fleetops.workflows.registry import AssignmentRegistry
from fleetops.workflows.tours import ControlWorkflow, TourWorkflow
from fleetops.workflows.vehicles import VehicleWorkflow

__all__ = [
    "AssignmentLedger",
    "AssignmentRegistry",
    "ComplaintWorkflow",
    "ControlWorkflow",
    "DriverWorkflow",
    "FleetContext",
    "FuelCardWorkflow",
    "TourWorkflow",
    "VehicleWorkflow",
]
