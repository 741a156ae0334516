"""Client configuration for fleetops."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fleetops.exceptions import FleetConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class FleetConfig:
    """Client configuration.

    Parameters
    ----------
    store_url : str
        Base URL of the entity store (the project URL, without ``/rest/v1``).
    api_key : str
        Public API key sent as the ``apikey`` header.
    access_token : str or None
        Bearer token of the signed-in operator.  Falls back to ``api_key``
        when not provided.
    schema : str
        Database schema the collections live in.
    owner_id : str or None
        Operator id stamped as ``user_id`` on new complaints, stop plans and
        fuel-card requests.
    request_timeout : float
        Total timeout in seconds for a single store call.
    inspection_warning_days : int
        Inspection expiry within this many days is flagged as due.
    service_warning_days : int
        A scheduled service ending within this many days is flagged urgent.
    strict_invariants : bool
        Raise :class:`~fleetops.exceptions.InvariantViolation` when the
        pairing check fails after a completed write sequence, instead of
        only logging it.
    api_trace_enabled : bool
        Log redacted request and response bodies at DEBUG level.
    """

    store_url: str
    api_key: str
    access_token: str | None = None
    schema: str = "public"
    owner_id: str | None = None
    request_timeout: float = 15.0
    inspection_warning_days: int = 30
    service_warning_days: int = 3
    strict_invariants: bool = False
    api_trace_enabled: bool = False

    @property
    def rest_url(self) -> str:
        return f"{self.store_url.rstrip('/')}/rest/v1"

    def validate(self) -> None:
        """Raise :class:`FleetConfigError` for settings the client cannot run with."""
        if not self.store_url:
            raise FleetConfigError("store_url is required (set FLEET_STORE_URL)")
        if not self.api_key:
            raise FleetConfigError("api_key is required (set FLEET_API_KEY)")
        if self.request_timeout <= 0:
            raise FleetConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.inspection_warning_days < 0 or self.service_warning_days < 0:
            raise FleetConfigError("warning horizons must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetConfig:
        """Create configuration from environment variables.

        Reads ``FLEET_STORE_URL``, ``FLEET_API_KEY`` and the optional
        ``FLEET_*`` variables.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FLEET_STORE_URL": "store_url",
            "FLEET_API_KEY": "api_key",
            "FLEET_ACCESS_TOKEN": "access_token",
            "FLEET_SCHEMA": "schema",
            "FLEET_OWNER_ID": "owner_id",
        }
        config_kwargs: dict[str, Any] = {"store_url": "", "api_key": ""}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        timeout_env = env.get("FLEET_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        inspection_env = env.get("FLEET_INSPECTION_WARNING_DAYS")
        if inspection_env is not None and "inspection_warning_days" not in overrides:
            config_kwargs["inspection_warning_days"] = int(inspection_env)

        service_env = env.get("FLEET_SERVICE_WARNING_DAYS")
        if service_env is not None and "service_warning_days" not in overrides:
            config_kwargs["service_warning_days"] = int(service_env)

        if "strict_invariants" not in overrides:
            config_kwargs["strict_invariants"] = _env_bool(env.get("FLEET_STRICT_INVARIANTS"), False)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(env.get("FLEET_API_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
