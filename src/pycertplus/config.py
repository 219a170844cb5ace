"""Client configuration for pycertplus."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pycertplus._constants import BASE_URL, DEFAULT_CACHE_TTL
from pycertplus.exceptions import CertConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise CertConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class CertConfig:
    """Client configuration.

    Parameters
    ----------
    api_key : str
        Static key sent in the ``x-api-key`` header of every request.
    base_url : str
        Service base URL, without a trailing slash.
    company_id : str
        Company the field operator works for. Sent with intervention writes.
    user_id : str
        Operator identifier recorded as ``created_by`` on new assets.
    cache_ttl : float
        Freshness window of the asset and intervention snapshots, in
        seconds. Defaults to 5 minutes.
    request_timeout : float
        Total timeout of a single HTTP request, in seconds.
    api_trace_enabled : bool
        Log (redacted) request and response bodies at DEBUG level.
    """

    api_key: str = ""
    base_url: str = BASE_URL
    company_id: str = "default-company"
    user_id: str = "default-user"
    cache_ttl: float = DEFAULT_CACHE_TTL
    request_timeout: float = 30.0
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if self.cache_ttl < 0:
            raise CertConfigError(f"cache_ttl must be >= 0, got {self.cache_ttl}")
        if self.request_timeout <= 0:
            raise CertConfigError(f"request_timeout must be > 0, got {self.request_timeout}")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> CertConfig:
        """Create configuration from environment variables.

        Reads ``CERTPLUS_API_KEY``, ``CERTPLUS_BASE_URL`` and the other
        optional ``CERTPLUS_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        CertConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "CERTPLUS_API_KEY": "api_key",
            "CERTPLUS_BASE_URL": "base_url",
            "CERTPLUS_COMPANY_ID": "company_id",
            "CERTPLUS_USER_ID": "user_id",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        ttl_env = env.get("CERTPLUS_CACHE_TTL")
        if ttl_env is not None and "cache_ttl" not in overrides:
            config_kwargs["cache_ttl"] = _env_float("CERTPLUS_CACHE_TTL", ttl_env)

        timeout_env = env.get("CERTPLUS_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_float("CERTPLUS_REQUEST_TIMEOUT", timeout_env)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("CERTPLUS_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
