"""Entity store transport over the PostgREST HTTP API."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import aiohttp

from fleetops._constants import UPSERT_PREFER, USER_AGENT
from fleetops._redact import redact_for_log
from fleetops.config import FleetConfig
from fleetops.exceptions import FleetStoreError, FleetTransportError

_logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    """Structural interface of the remote entity store.

    Workflows never call it directly; the reconciliation layer does.
    Having a protocol here makes it easy to pass in-memory doubles in tests
    while keeping the production implementation (:class:`RestEntityStore`)
    concrete.
    """

    async def fetch_all(self, collection: str) -> list[dict[str, Any]]:
        ...

    async def upsert(
        self,
        collection: str,
        record: Mapping[str, Any],
        *,
        on_conflict: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        ...

    async def delete(self, collection: str, record_id: str) -> None:
        ...


class RestEntityStore:
    """PostgREST client for the fleet collections.

    Upserts merge on conflict (by ``id``, or by the given natural key) and
    return the saved row, so the caller always sees store-assigned ids and
    defaults.
    """

    def __init__(self, config: FleetConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self, *, write: bool = False, prefer: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {
            "apikey": self._config.api_key,
            "authorization": f"Bearer {self._config.access_token or self._config.api_key}",
            "accept": "application/json",
            "user-agent": USER_AGENT,
            "accept-profile": self._config.schema,
        }
        if write:
            headers["content-type"] = "application/json"
            headers["content-profile"] = self._config.schema
        if prefer:
            headers["prefer"] = prefer
        return headers

    def _trace(self, message: str, *args: Any) -> None:
        if self._config.api_trace_enabled:
            _logger.debug(message, *args)

    async def _request(
        self,
        method: str,
        collection: str,
        *,
        params: Mapping[str, str],
        headers: dict[str, str],
        body: Any = None,
    ) -> Any:
        url = f"{self._config.rest_url}/{collection}"
        data = json.dumps(body) if body is not None else None

        _logger.debug("%s %s", method, url)
        self._trace("Request %s %s params=%s body=%s", method, collection, params, redact_for_log(body))

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise _store_error(collection, resp.status, text)
        except FleetStoreError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FleetTransportError(
                f"{method} {collection} failed: {exc!r}",
                collection=collection,
            ) from exc

        if not text.strip():
            return None
        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FleetTransportError(
                f"Invalid JSON from {collection}: {text[:200]}",
                collection=collection,
                status_code=resp.status,
            ) from exc

        self._trace("Response %s %s status=%s body=%s", method, collection, resp.status, redact_for_log(result))
        return result

    async def fetch_all(self, collection: str) -> list[dict[str, Any]]:
        result = await self._request(
            "GET",
            collection,
            params={"select": "*"},
            headers=self._headers(),
        )
        if result is None:
            return []
        if not isinstance(result, list):
            raise FleetTransportError(
                f"Expected a list of {collection} rows, got {type(result).__name__}",
                collection=collection,
            )
        return [row for row in result if isinstance(row, dict)]

    async def upsert(
        self,
        collection: str,
        record: Mapping[str, Any],
        *,
        on_conflict: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, str] = {}
        if on_conflict:
            params["on_conflict"] = ",".join(on_conflict)
        result = await self._request(
            "POST",
            collection,
            params=params,
            headers=self._headers(write=True, prefer=UPSERT_PREFER),
            body=dict(record),
        )
        if isinstance(result, list):
            result = result[0] if result else None
        if not isinstance(result, dict):
            raise FleetStoreError(
                f"Upsert into {collection} returned no row",
                collection=collection,
                code="empty_result",
            )
        return result

    async def delete(self, collection: str, record_id: str) -> None:
        await self._request(
            "DELETE",
            collection,
            params={"id": f"eq.{record_id}"},
            headers=self._headers(prefer="return=minimal"),
        )


def _store_error(collection: str, status: int, text: str) -> FleetStoreError:
    """Build a :class:`FleetStoreError` from a PostgREST error body."""
    code = ""
    message = text[:200]
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        body = None
    if isinstance(body, dict):
        code = str(body.get("code") or "")
        parts = [str(body[key]) for key in ("message", "details", "hint") if body.get(key)]
        if parts:
            message = " | ".join(parts)
    return FleetStoreError(
        f"HTTP {status} from {collection}: {message}",
        collection=collection,
        status_code=status,
        code=code,
    )
