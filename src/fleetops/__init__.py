"""fleetops - Assignment and status-lifecycle engine for a small delivery fleet."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetops")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetops.client import FleetClient
from fleetops.config import FleetConfig
from fleetops.exceptions import (
    ConfirmationMismatchError,
    EntityNotFoundError,
    FleetConfigError,
    FleetError,
    FleetStoreError,
    FleetTransportError,
    FleetValidationError,
    IllegalTransitionError,
    InvariantViolation,
    LeaveReturnDecisionRequired,
)
from fleetops.models import (
    AssignmentRecord,
    Complaint,
    ComplaintStatus,
    ControlChecklist,
    Driver,
    DriverStatus,
    FuelCardRequest,
    FuelCardStatus,
    InventoryItem,
    InventoryType,
    StopPlan,
    Tour,
    TourStatus,
    TourType,
    VehicleStatus,
)
from fleetops.state import Collection, FleetState, InspectionAlert, ServiceAlert, Urgency

__all__ = [
    "__version__",
    "AssignmentRecord",
    "Collection",
    "Complaint",
    "ComplaintStatus",
    "ConfirmationMismatchError",
    "ControlChecklist",
    "Driver",
    "DriverStatus",
    "EntityNotFoundError",
    "FleetClient",
    "FleetConfig",
    "FleetConfigError",
    "FleetError",
    "FleetState",
    "FleetStoreError",
    "FleetTransportError",
    "FleetValidationError",
    "FuelCardRequest",
    "FuelCardStatus",
    "IllegalTransitionError",
    "InspectionAlert",
    "InvariantViolation",
    "InventoryItem",
    "InventoryType",
    "LeaveReturnDecisionRequired",
    "ServiceAlert",
    "StopPlan",
    "Tour",
    "TourStatus",
    "TourType",
    "Urgency",
    "VehicleStatus",
]
