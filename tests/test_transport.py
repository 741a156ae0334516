from __future__ import annotations

import json
from typing import Any

import aiohttp
import pytest
from aiohttp import test_utils, web

from fleetops._transport import RestEntityStore
from fleetops.config import FleetConfig
from fleetops.exceptions import FleetStoreError, FleetTransportError


class _PostgrestStub:
    """Tiny PostgREST look-alike recording what it receives."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.error: tuple[int, str] | None = None

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.text()
        self.requests.append(
            {
                "method": request.method,
                "table": request.match_info["table"],
                "query": dict(request.query),
                "headers": request.headers.copy(),
                "body": json.loads(body) if body else None,
            }
        )
        if self.error is not None:
            status, text = self.error
            return web.Response(status=status, text=text, content_type="application/json")
        if request.method == "GET":
            return web.json_response([{"id": "d1", "firstName": "Dana"}])
        if request.method == "POST":
            row = {"id": "new-1", **json.loads(body)}
            return web.json_response([row], status=201)
        return web.Response(status=204)


async def _start(stub: _PostgrestStub) -> test_utils.TestServer:
    app = web.Application()
    app.router.add_route("*", "/rest/v1/{table}", stub.handle)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


def _config(server: test_utils.TestServer, **overrides: Any) -> FleetConfig:
    return FleetConfig(
        store_url=str(server.make_url("")).rstrip("/"),
        api_key="anon-key",
        access_token="user-jwt",
        schema="fleet",
        **overrides,
    )


@pytest.mark.asyncio
async def test_fetch_all_sends_auth_and_profile_headers() -> None:
    stub = _PostgrestStub()
    server = await _start(stub)
    try:
        async with aiohttp.ClientSession() as session:
            rows = await RestEntityStore(_config(server), session).fetch_all("drivers")
    finally:
        await server.close()

    assert rows == [{"id": "d1", "firstName": "Dana"}]
    sent = stub.requests[0]
    assert sent["query"] == {"select": "*"}
    assert sent["headers"]["apikey"] == "anon-key"
    assert sent["headers"]["Authorization"] == "Bearer user-jwt"
    assert sent["headers"]["Accept-Profile"] == "fleet"


@pytest.mark.asyncio
async def test_upsert_merges_on_conflict_key_and_returns_single_row() -> None:
    stub = _PostgrestStub()
    server = await _start(stub)
    try:
        async with aiohttp.ClientSession() as session:
            saved = await RestEntityStore(_config(server), session).upsert(
                "tours",
                {"tourNumber": "T7", "date": "2026-03-02"},
                on_conflict=("date", "tourNumber"),
            )
    finally:
        await server.close()

    assert saved == {"id": "new-1", "tourNumber": "T7", "date": "2026-03-02"}
    sent = stub.requests[0]
    assert sent["method"] == "POST"
    assert sent["query"] == {"on_conflict": "date,tourNumber"}
    assert "resolution=merge-duplicates" in sent["headers"]["Prefer"]
    assert sent["headers"]["Content-Profile"] == "fleet"


@pytest.mark.asyncio
async def test_delete_filters_by_id() -> None:
    stub = _PostgrestStub()
    server = await _start(stub)
    try:
        async with aiohttp.ClientSession() as session:
            await RestEntityStore(_config(server), session).delete("drivers", "d1")
    finally:
        await server.close()

    assert stub.requests[0]["method"] == "DELETE"
    assert stub.requests[0]["query"] == {"id": "eq.d1"}


@pytest.mark.asyncio
async def test_error_body_becomes_store_error() -> None:
    stub = _PostgrestStub()
    stub.error = (409, json.dumps({"code": "23505", "message": "duplicate key", "details": "Key (plate) exists"}))
    server = await _start(stub)
    try:
        async with aiohttp.ClientSession() as session:
            with pytest.raises(FleetStoreError) as excinfo:
                await RestEntityStore(_config(server), session).upsert("inventory", {"plate": "B-1"})
    finally:
        await server.close()

    error = excinfo.value
    assert not isinstance(error, FleetTransportError)
    assert error.status_code == 409
    assert error.code == "23505"
    assert error.collection == "inventory"
    assert "duplicate key" in str(error)


@pytest.mark.asyncio
async def test_invalid_json_is_a_transport_error() -> None:
    stub = _PostgrestStub()
    stub.error = (200, "not json")
    server = await _start(stub)
    try:
        async with aiohttp.ClientSession() as session:
            with pytest.raises(FleetTransportError):
                await RestEntityStore(_config(server), session).fetch_all("drivers")
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_connection_failure_is_a_transport_error() -> None:
    config = FleetConfig(store_url="http://127.0.0.1:9", api_key="anon-key", request_timeout=2.0)
    async with aiohttp.ClientSession() as session:
        with pytest.raises(FleetTransportError) as excinfo:
            await RestEntityStore(config, session).fetch_all("drivers")

    assert isinstance(excinfo.value.__cause__, aiohttp.ClientError)
