from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from fleetops.config import FleetConfig
from fleetops.exceptions import FleetStoreError
from fleetops.reconcile import Reconciler
from fleetops.state.events import Collection
from fleetops.state.store import FleetState, parse_rows
from fleetops.workflows import FleetContext

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


class FakeStore:
    """In-memory entity store with merge-upsert semantics.

    Records every call and can fail a chosen upcoming write.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self._counter = 0
        self._fail_after: int | None = None
        self._failure: FleetStoreError | None = None

    def seed(self, collection: str, *rows: dict[str, Any]) -> None:
        table = self.tables.setdefault(collection, {})
        for row in rows:
            table[row["id"]] = copy.deepcopy(row)

    def row(self, collection: str, record_id: str) -> dict[str, Any]:
        return self.tables[collection][record_id]

    def fail_after(self, successful_writes: int, error: FleetStoreError | None = None) -> None:
        """Let *successful_writes* writes through, then fail the next one."""
        self._fail_after = successful_writes
        self._failure = error or FleetStoreError("HTTP 503 from store: unavailable", status_code=503)

    @property
    def writes(self) -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] in ("upsert", "delete")]

    def _maybe_fail(self) -> None:
        if self._fail_after is None:
            return
        if self._fail_after == 0:
            self._fail_after = None
            assert self._failure is not None
            raise self._failure
        self._fail_after -= 1

    async def fetch_all(self, collection: str) -> list[dict[str, Any]]:
        self.calls.append(("fetch_all", collection, None))
        return [copy.deepcopy(row) for row in self.tables.get(collection, {}).values()]

    async def upsert(
        self,
        collection: str,
        record: Mapping[str, Any],
        *,
        on_conflict: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        self._maybe_fail()
        self.calls.append(("upsert", collection, copy.deepcopy(dict(record))))
        table = self.tables.setdefault(collection, {})
        row_id = record.get("id")
        if not row_id and on_conflict:
            for existing_id, existing in table.items():
                if all(existing.get(key) == record.get(key) for key in on_conflict):
                    row_id = existing_id
                    break
        if not row_id:
            self._counter += 1
            row_id = f"{collection}-{self._counter}"
        merged = {**table.get(row_id, {}), **copy.deepcopy(dict(record)), "id": row_id}
        table[row_id] = merged
        return copy.deepcopy(merged)

    async def delete(self, collection: str, record_id: str) -> None:
        self._maybe_fail()
        self.calls.append(("delete", collection, record_id))
        self.tables.get(collection, {}).pop(record_id, None)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def config() -> FleetConfig:
    return FleetConfig(store_url="https://fleet.example.test", api_key="anon-key", owner_id="operator-1")


@pytest.fixture
def load_context(store: FakeStore, config: FleetConfig) -> Callable[..., FleetContext]:
    """Build a context over whatever has been seeded into ``store`` so far."""

    def _load(*, strict: bool = False, now: datetime = NOW) -> FleetContext:
        state = FleetState(clock=lambda: now)
        for collection in Collection:
            state.replace_all(collection, parse_rows(collection, store.tables.get(collection, {}).values()))
        reconciler = Reconciler(store, state, strict=strict)
        return FleetContext(state=state, reconciler=reconciler, config=config, clock=lambda: now)

    return _load


def driver_row(driver_id: str, first: str = "Dana", last: str = "Kraus", **extra: Any) -> dict[str, Any]:
    return {"id": driver_id, "firstName": first, "lastName": last, "status": "Available", **extra}


def vehicle_row(vehicle_id: str, plate: str, **extra: Any) -> dict[str, Any]:
    return {
        "id": vehicle_id,
        "type": "Vehicle",
        "name": "Sprinter",
        "plate": plate,
        "quantity": 1,
        "vehicleStatus": "Active",
        "history": [],
        **extra,
    }
