"""Session state, write plans and consistency policy."""

from fleetops.state.alerts import InspectionAlert, ServiceAlert, Urgency, inspection_alerts, service_alerts
from fleetops.state.events import COLLECTION_MODELS, Collection, StoreWrite, WriteOp
from fleetops.state.policy import check_transition, pairing_violations
from fleetops.state.store import FleetState, parse_rows

__all__ = [
    "COLLECTION_MODELS",
    "Collection",
    "FleetState",
    "InspectionAlert",
    "ServiceAlert",
    "StoreWrite",
    "Urgency",
    "WriteOp",
    "check_transition",
    "inspection_alerts",
    "pairing_violations",
    "parse_rows",
    "service_alerts",
]
