"""Base model and enum for inventory service payloads.

Every response model inherits from :class:`CertBaseModel` which
provides:

* Frozen instances, so snapshots handed out by the cache can be shared
  without defensive copies.
* A ``model_validator(mode="before")`` that drops ``None`` and blank
  string values so the field default is used.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_logger = logging.getLogger(__name__)


class InterventionType(StrEnum):
    """Kinds of intervention the service records, by wire value."""

    INSTALL = "installation"
    MAINTAIN = "maintenance"
    REPLACE = "replacement"
    VERIFY = "verification"
    DECOMMISSION = "dismissal"

    @classmethod
    def _missing_(cls, value: object) -> InterventionType | None:
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        return _LABEL_ALIASES.get(key)

    @classmethod
    def parse(cls, value: Any, default: InterventionType | None = None) -> InterventionType | None:
        """Lenient lookup used for payloads; unknown values resolve to *default*."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            _logger.debug("Unknown intervention type %r, using %s", value, default)
            return default


# Labels used by the field client's UI.
_LABEL_ALIASES: dict[str, InterventionType] = {
    "installazione": InterventionType.INSTALL,
    "manutenzione": InterventionType.MAINTAIN,
    "sostituzione": InterventionType.REPLACE,
    "verifica": InterventionType.VERIFY,
    "dismissione": InterventionType.DECOMMISSION,
}


class InstallStatus(StrEnum):
    INSTALLED = "installed"
    NOT_INSTALLED = "not installed"


class CertBaseModel(BaseModel):
    """Base for inventory service response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original API response dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Drop empty values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        # Only auto-stash raw when not explicitly provided.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
