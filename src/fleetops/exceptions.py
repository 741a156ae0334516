"""Custom exception hierarchy for fleetops."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fleetops.state.events import StoreWrite


class FleetError(Exception):
    """Base exception for all fleetops errors."""


class FleetConfigError(FleetError):
    """Invalid or missing configuration."""


class FleetValidationError(FleetError):
    """Caller-supplied input failed a precondition.

    Raised before anything is sent to the store, so the in-memory state
    and the remote records are both untouched.
    """


class EntityNotFoundError(FleetValidationError):
    """The referenced record is not present in the loaded collections."""

    def __init__(self, collection: str, record_id: str) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record {record_id!r} not found")


class IllegalTransitionError(FleetValidationError):
    """A state machine does not allow the requested transition."""

    def __init__(self, machine: str, current: Any, target: Any) -> None:
        self.machine = machine
        self.current = current
        self.target = target
        super().__init__(f"{machine}: transition {current} -> {target} is not allowed")


class LeaveReturnDecisionRequired(FleetValidationError):
    """A driver holding a vehicle is going on leave without a return decision.

    The caller must re-invoke the transition with ``vehicle_returned`` set
    to ``True`` (vehicle back at base) or ``False`` (vehicle stays with the
    driver).
    """

    def __init__(self, driver_id: str, plate: str) -> None:
        self.driver_id = driver_id
        self.plate = plate
        super().__init__(f"driver {driver_id!r} holds vehicle {plate!r}: vehicle_returned must be decided")


class ConfirmationMismatchError(FleetValidationError):
    """The re-entered confirmation token does not match the stored value."""


class FleetStoreError(FleetError):
    """The entity store rejected or could not complete an operation."""

    def __init__(
        self,
        message: str,
        *,
        collection: str = "",
        status_code: int | None = None,
        code: str = "",
    ) -> None:
        self.collection = collection
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class FleetTransportError(FleetStoreError):
    """HTTP-level failure (network, timeout, invalid JSON)."""


class InvariantViolation(FleetError):
    """A post-condition spanning several records does not hold.

    Raised when a multi-write sequence stops part way (``completed`` holds
    the writes that reached the store, ``pending`` the ones that did not),
    or, in strict mode, when the pairing check fails after a sequence that
    completed.  Nothing is rolled back automatically.
    """

    def __init__(
        self,
        message: str,
        *,
        violations: list[str] | None = None,
        completed: list[StoreWrite] | None = None,
        pending: list[StoreWrite] | None = None,
    ) -> None:
        self.violations = list(violations or [])
        self.completed = list(completed or [])
        self.pending = list(pending or [])
        super().__init__(message)
