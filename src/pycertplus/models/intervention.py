"""Intervention record model and asset reference."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from pycertplus._constants import SENTINEL_ASSET_ID
from pycertplus._normalize import parse_timestamp, safe_float, safe_int
from pycertplus.models._base import CertBaseModel, InterventionType


class KnownAsset(BaseModel):
    """Reference to the asset that owns an intervention."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["known"] = "known"
    asset_id: str


class UnresolvedAsset(BaseModel):
    """Owner could not be determined from the remote data.

    Reports the well-known sentinel id so that callers keyed on asset
    ids keep working; see :func:`pycertplus.reconcile.filter_by_asset`
    for how such records must be filtered.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["unresolved"] = "unresolved"

    @property
    def asset_id(self) -> str:
        return SENTINEL_ASSET_ID


AssetRef = Annotated[KnownAsset | UnresolvedAsset, Field(discriminator="kind")]


class InterventionRecord(CertBaseModel):
    """An event performed against exactly one asset.

    ``GET /maintenance`` omits the owner, so records parsed from that
    listing start out as :class:`UnresolvedAsset` until reconciled.
    Records nested in an asset, or whose payload names the owner, are
    :class:`KnownAsset` from the start.
    """

    uuid: str
    intervention_type: InterventionType = InterventionType.MAINTAIN
    gps_lat: float | None = None
    gps_lng: float | None = None
    year: int | None = None
    poles_number: int | None = None
    company_id: str = ""
    certificate_number: str = ""
    reason: str = ""
    notes: str = ""
    created_at: datetime | None = None
    asset_ref: AssetRef = Field(
        default_factory=UnresolvedAsset,
        validation_alias=AliasChoices("asset_ref", "assetRef"),
    )

    @model_validator(mode="before")
    @classmethod
    def _owner_from_payload(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "asset_ref" in values:
            return values
        owner = values.get("product_uuid") or values.get("asset_uuid")
        if isinstance(owner, str) and owner.strip():
            merged = dict(values)
            merged["asset_ref"] = {"kind": "known", "asset_id": owner.strip()}
            merged.setdefault("raw", values)
            return merged
        return values

    @field_validator("intervention_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> InterventionType:
        return InterventionType.parse(value, InterventionType.MAINTAIN) or InterventionType.MAINTAIN

    @field_validator("gps_lat", "gps_lng", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("year", "poles_number", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("company_id", "certificate_number", "reason", "notes", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return str(value).strip()

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @property
    def asset_id(self) -> str:
        """Owning asset id, or the sentinel id when unresolved."""
        return self.asset_ref.asset_id

    @property
    def is_resolved(self) -> bool:
        return isinstance(self.asset_ref, KnownAsset)

    @property
    def location(self) -> tuple[float, float] | None:
        """``(lat, lng)`` when both coordinates are present and non-zero."""
        if not self.gps_lat or not self.gps_lng:
            return None
        return self.gps_lat, self.gps_lng

    def with_asset_ref(self, ref: KnownAsset | UnresolvedAsset) -> InterventionRecord:
        if ref == self.asset_ref:
            return self
        return self.model_copy(update={"asset_ref": ref})
