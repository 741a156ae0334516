"""Shared context handed to every workflow."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from fleetops.config import FleetConfig
from fleetops.reconcile import Reconciler
from fleetops.state.store import FleetState


@dataclass(frozen=True, slots=True)
class FleetContext:
    """Session state, write path, configuration and clock.

    Workflows read from ``state`` and write only through ``reconciler``.
    """

    state: FleetState
    reconciler: Reconciler
    config: FleetConfig
    clock: Callable[[], datetime]

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().date()

    @property
    def owner_id(self) -> str | None:
        return self.config.owner_id
