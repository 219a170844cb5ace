"""Asset model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pycertplus._normalize import parse_timestamp, safe_float, safe_int
from pycertplus.models._base import CertBaseModel
from pycertplus.models.intervention import InterventionRecord, KnownAsset


class Asset(CertBaseModel):
    """A physical inventory item identified by its scan tag.

    Fields are mapped from the ``GET /product`` listing, where each
    asset carries its own interventions nested under ``maintenances``.
    The service keeps no location on the asset itself; see
    :attr:`location`.
    """

    uuid: str
    """Opaque asset id."""
    qr_code: str = ""
    """Scan tag, unique across live assets and immutable once issued."""
    signal_type: str = ""
    signal_category: str = ""
    production_year: int | None = None
    shape: str = ""
    dimension: str = ""
    wl_code: str = ""
    support_material: str = ""
    support_thickness: float | None = None
    fixation_class: str = ""
    fixation_method: str = ""
    created_by: str = ""
    created_at: datetime | None = None
    ledger_asset_id: int | None = Field(default=None, validation_alias=AliasChoices("asset_id", "ledger_asset_id"))
    """Receipt id issued by the service's ledger; opaque to this library."""
    metadata_cid: str | None = None
    interventions: tuple[InterventionRecord, ...] = Field(
        default=(),
        validation_alias=AliasChoices("maintenances", "interventions"),
    )

    @model_validator(mode="after")
    def _attach_owner(self) -> Asset:
        """Nested interventions belong to this asset by construction."""
        ref = KnownAsset(asset_id=self.uuid)
        owned = tuple(record.with_asset_ref(ref) for record in self.interventions)
        object.__setattr__(self, "interventions", owned)
        return self

    @field_validator("production_year", "ledger_asset_id", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("support_thickness", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("interventions", mode="before")
    @classmethod
    def _coerce_interventions(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(value)

    @property
    def tag(self) -> str:
        return self.qr_code

    @property
    def location(self) -> tuple[float, float] | None:
        """Last-known ``(lat, lng)``, taken from the first located intervention."""
        for record in self.interventions:
            if record.location is not None:
                return record.location
        return None
