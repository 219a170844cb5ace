from __future__ import annotations

import pytest

from pycertplus._constants import BASE_URL, DEFAULT_CACHE_TTL
from pycertplus.config import CertConfig
from pycertplus.exceptions import CertConfigError

_ENV_KEYS = (
    "CERTPLUS_API_KEY",
    "CERTPLUS_BASE_URL",
    "CERTPLUS_COMPANY_ID",
    "CERTPLUS_USER_ID",
    "CERTPLUS_CACHE_TTL",
    "CERTPLUS_REQUEST_TIMEOUT",
    "CERTPLUS_API_TRACE_ENABLED",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = CertConfig.from_env()
    assert config.base_url == BASE_URL
    assert config.cache_ttl == DEFAULT_CACHE_TTL
    assert config.api_key == ""
    assert config.api_trace_enabled is False


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CERTPLUS_API_KEY", "secret")
    monkeypatch.setenv("CERTPLUS_BASE_URL", "https://inventory.example/api/")
    monkeypatch.setenv("CERTPLUS_COMPANY_ID", "acme")
    monkeypatch.setenv("CERTPLUS_USER_ID", "operator-7")
    monkeypatch.setenv("CERTPLUS_CACHE_TTL", "60")
    monkeypatch.setenv("CERTPLUS_REQUEST_TIMEOUT", "5.5")
    monkeypatch.setenv("CERTPLUS_API_TRACE_ENABLED", "yes")

    config = CertConfig.from_env()

    assert config.api_key == "secret"
    assert config.base_url == "https://inventory.example/api"
    assert config.company_id == "acme"
    assert config.user_id == "operator-7"
    assert config.cache_ttl == 60.0
    assert config.request_timeout == 5.5
    assert config.api_trace_enabled is True


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CERTPLUS_API_KEY", "from-env")
    monkeypatch.setenv("CERTPLUS_CACHE_TTL", "not-a-number")

    config = CertConfig.from_env(api_key="explicit", cache_ttl=10)

    assert config.api_key == "explicit"
    assert config.cache_ttl == 10


def test_invalid_numbers_raise_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CERTPLUS_REQUEST_TIMEOUT", "soon")
    with pytest.raises(CertConfigError):
        CertConfig.from_env()


@pytest.mark.parametrize(("field", "value"), [("cache_ttl", -1), ("request_timeout", 0)])
def test_out_of_range_values_rejected(field: str, value: float) -> None:
    with pytest.raises(CertConfigError):
        CertConfig(**{field: value})


def test_unrecognised_boolean_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CERTPLUS_API_TRACE_ENABLED", "maybe")
    assert CertConfig.from_env().api_trace_enabled is False
