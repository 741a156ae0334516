"""High-level async client for the fleet entity store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from fleetops._transport import EntityStore, RestEntityStore
from fleetops.config import FleetConfig
from fleetops.exceptions import FleetError
from fleetops.reconcile import Reconciler
from fleetops.state.events import Collection
from fleetops.state.store import FleetState, parse_rows
from fleetops.workflows import (
    AssignmentLedger,
    AssignmentRegistry,
    ComplaintWorkflow,
    ControlWorkflow,
    DriverWorkflow,
    FleetContext,
    FuelCardWorkflow,
    TourWorkflow,
    VehicleWorkflow,
)

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FleetClient:
    """Async client for one operator session.

    Usage::

        async with FleetClient(FleetConfig.from_env()) as fleet:
            driver, vehicle = await fleet.registry.assign(driver_id, vehicle_id, signature)

    Entering the context loads every collection; leaving it drops the loaded
    state and closes the HTTP session the client created.  Pass ``store`` to
    run against another :class:`~fleetops._transport.EntityStore`
    implementation.
    """

    def __init__(
        self,
        config: FleetConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        store: EntityStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._store = store
        self._custom_store = store is not None
        self._clock = clock
        self._state = FleetState(clock=clock)
        self._ctx: FleetContext | None = None
        self._registry: AssignmentRegistry | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetClient:
        if not self._custom_store:
            self._config.validate()
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._store = RestEntityStore(self._config, self._http_session)
        assert self._store is not None  # noqa: S101
        reconciler = Reconciler(self._store, self._state, strict=self._config.strict_invariants)
        self._ctx = FleetContext(state=self._state, reconciler=reconciler, config=self._config, clock=self._clock)
        self._registry = AssignmentRegistry(self._ctx)
        try:
            await self.refresh()
        except BaseException:
            await self.__aexit__()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._state.clear()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._custom_store:
            self._store = None
        self._ctx = None
        self._registry = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_ctx(self) -> FleetContext:
        if self._ctx is None:
            raise FleetError("Client not initialized. Use 'async with FleetClient(...) as fleet:'")
        return self._ctx

    def _require_store(self) -> EntityStore:
        if self._store is None:
            raise FleetError("Client not initialized. Use 'async with FleetClient(...) as fleet:'")
        return self._store

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def fetch_raw(self, collection: Collection) -> list[dict[str, Any]]:
        """Fetch the unparsed rows of one collection."""
        return await self._require_store().fetch_all(collection)

    async def refresh(self) -> None:
        """Reload every collection concurrently.

        State is replaced only once all fetches and parses succeed; on any
        failure the previously loaded data stays in place.
        """
        store = self._require_store()
        collections = list(Collection)
        results = await asyncio.gather(*(store.fetch_all(c) for c in collections))
        parsed = {c: parse_rows(c, rows) for c, rows in zip(collections, results, strict=True)}
        for collection, records in parsed.items():
            self._state.replace_all(collection, records)
        self._state.mark_loaded()
        _logger.info(
            "Loaded %s",
            ", ".join(f"{self._state.count(c)} {c}" for c in collections),
        )
        violations = self._state.check_pairing()
        if violations:
            _logger.warning("Loaded data breaks the driver/vehicle pairing: %s", "; ".join(violations))

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    @property
    def config(self) -> FleetConfig:
        return self._config

    @property
    def state(self) -> FleetState:
        return self._state

    @property
    def registry(self) -> AssignmentRegistry:
        self._require_ctx()
        assert self._registry is not None  # noqa: S101
        return self._registry

    @property
    def drivers(self) -> DriverWorkflow:
        return DriverWorkflow(self._require_ctx(), self.registry)

    @property
    def vehicles(self) -> VehicleWorkflow:
        return VehicleWorkflow(self._require_ctx(), self.registry)

    @property
    def ledger(self) -> AssignmentLedger:
        return AssignmentLedger(self._require_ctx())

    @property
    def complaints(self) -> ComplaintWorkflow:
        return ComplaintWorkflow(self._require_ctx())

    @property
    def fuel_cards(self) -> FuelCardWorkflow:
        return FuelCardWorkflow(self._require_ctx())

    @property
    def tours(self) -> TourWorkflow:
        return TourWorkflow(self._require_ctx())

    @property
    def controls(self) -> ControlWorkflow:
        return ControlWorkflow(self._require_ctx())
