"""Execution of planned write sequences against the entity store.

The :class:`Reconciler` is the only component that talks to the store on
behalf of workflows and the only one allowed to mutate
:class:`~fleetops.state.store.FleetState`.  Writes run strictly in order and
each saved row is merged into state as soon as the store confirms it, so
the state never shows a write the store did not accept.

Failure policy:

* The first write fails: nothing was applied; the
  :class:`~fleetops.exceptions.FleetStoreError` propagates unchanged.
* A later write fails: earlier writes are already in the store.  An
  :class:`~fleetops.exceptions.InvariantViolation` is raised carrying the
  completed and pending steps, chained from the store error.  No
  compensating writes are attempted.
* All writes succeed but the pairing check fails (only for sequences that
  touch the driver/vehicle link): the violations are logged and returned;
  with ``strict`` they are raised instead.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fleetops._transport import EntityStore
from fleetops.exceptions import FleetStoreError, InvariantViolation
from fleetops.models import FleetBaseModel
from fleetops.state.events import StoreWrite, WriteOp
from fleetops.state.store import FleetState

_logger = logging.getLogger(__name__)


class WriteResult(BaseModel):
    """Outcome of a completed write sequence."""

    model_config = ConfigDict(frozen=True)

    saved: list[FleetBaseModel | None] = Field(default_factory=list)
    """Saved record per write, in order (``None`` for deletes)."""
    violations: list[str] = Field(default_factory=list)


class Reconciler:
    """Runs write sequences and keeps :class:`FleetState` in step."""

    def __init__(self, store: EntityStore, state: FleetState, *, strict: bool = False) -> None:
        self._store = store
        self._state = state
        self._strict = strict

    @property
    def state(self) -> FleetState:
        return self._state

    async def _apply(self, write: StoreWrite) -> FleetBaseModel | None:
        if write.op == WriteOp.DELETE:
            assert write.record_id is not None  # noqa: S101
            await self._store.delete(write.collection, write.record_id)
            self._state.remove(write.collection, write.record_id)
            return None

        record = write.record
        assert record is not None  # noqa: S101
        row = await self._store.upsert(write.collection, record.to_store(), on_conflict=write.on_conflict)
        try:
            saved = type(record).model_validate(row)
        except ValidationError as exc:
            raise FleetStoreError(
                f"Store returned an invalid {write.collection} record",
                collection=write.collection,
                code="invalid_record",
            ) from exc
        self._state.put(write.collection, saved)
        return saved

    async def run(self, writes: Sequence[StoreWrite], *, action: str, check_pairing: bool = False) -> WriteResult:
        """Execute *writes* in order.

        Parameters
        ----------
        writes : sequence of StoreWrite
            The planned steps.  An empty sequence is a no-op.
        action : str
            Human-readable name of the operation, used in logs and errors.
        check_pairing : bool
            Evaluate the driver/vehicle pairing rule once every write has
            succeeded.
        """
        steps = list(writes)
        saved: list[FleetBaseModel | None] = []
        for index, write in enumerate(steps):
            try:
                saved.append(await self._apply(write))
            except FleetStoreError as exc:
                if index == 0:
                    _logger.warning("%s failed before any write was applied: %s", action, exc)
                    raise
                completed, pending = steps[:index], steps[index:]
                _logger.error(
                    "%s stopped after %d of %d writes; pending: %s",
                    action,
                    index,
                    len(steps),
                    "; ".join(w.describe() for w in pending),
                )
                raise InvariantViolation(
                    f"{action}: write {index + 1} of {len(steps)} failed ({pending[0].describe()}): {exc}",
                    violations=[str(exc)],
                    completed=completed,
                    pending=pending,
                ) from exc
            _logger.debug("%s: %s", action, write.describe())

        violations = self._state.check_pairing() if check_pairing else []
        if violations:
            _logger.warning("%s left the driver/vehicle pairing inconsistent: %s", action, "; ".join(violations))
            if self._strict:
                raise InvariantViolation(
                    f"{action}: pairing check failed",
                    violations=violations,
                    completed=steps,
                )
        if steps:
            _logger.info("%s: %d write(s) committed", action, len(steps))
        return WriteResult(saved=saved, violations=violations)
