"""Write request models.

Drafts carry what a field operator typed or the device measured; they
are deliberately lenient. ``*CreateRequest.from_draft`` is the
"validate → normalize" step: it raises :class:`~pycertplus.exceptions.CertValidationError`
subclasses for anything the service would reject, and the resulting
request is what goes on the wire.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pycertplus._constants import SENTINEL_ASSET_ID
from pycertplus._normalize import safe_float, safe_int, safe_str
from pycertplus.exceptions import MissingFieldError
from pycertplus.geo import format_point
from pycertplus.models._base import CertBaseModel, InterventionType

_SIGNAL_SEPARATOR = " - "


class _Draft(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class AssetDraft(_Draft):
    """Operator input for a new asset."""

    qr_code: str = ""
    signal_type: str = ""
    """Either the bare type, or ``"type - category"`` when *signal_category* is empty."""
    signal_category: str = ""
    production_year: int | None = None
    shape: str = ""
    dimension: str = ""
    wl_code: str = ""
    support_material: str = ""
    support_thickness: float | None = None
    fixation_class: str = ""
    fixation_method: str = ""
    gps_lat: float | None = None
    gps_lng: float | None = None
    """Optional fix taken while filling the form; not stored on the asset."""

    @field_validator("gps_lat", "gps_lng", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float | None:
        return safe_float(value)

    def validated_location(self) -> tuple[str, str] | None:
        """Formatted ``(lat, lng)``, or ``None`` when no coordinate was given.

        A single coordinate without its pair is rejected.
        """
        if self.gps_lat is None and self.gps_lng is None:
            return None
        return format_point(self.gps_lat, self.gps_lng)


class InterventionDraft(_Draft):
    """Operator input for a new intervention; coordinates come from the device."""

    intervention_type: InterventionType = InterventionType.MAINTAIN
    gps_lat: float | None = None
    gps_lng: float | None = None
    year: int | None = None
    poles_number: int | None = None
    certificate_number: str = ""
    reason: str = ""
    notes: str = ""

    @field_validator("intervention_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> InterventionType:
        return InterventionType.parse(value, InterventionType.MAINTAIN) or InterventionType.MAINTAIN

    @field_validator("gps_lat", "gps_lng", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("year", "poles_number", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    def validated_location(self) -> tuple[str, str]:
        return format_point(self.gps_lat, self.gps_lng)


def _split_signal(signal_type: str, signal_category: str) -> tuple[str, str]:
    if signal_category:
        return signal_type, signal_category
    head, sep, tail = signal_type.partition(_SIGNAL_SEPARATOR)
    head = head.strip()
    tail = tail.strip()
    if sep and tail:
        return head, tail
    # No separator: the category mirrors the type.
    return head, head


class AssetCreateRequest(BaseModel):
    """Body of ``POST /product/create``.

    Location is not part of an asset; it travels with the installation
    intervention instead.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    qr_code: str
    signal_type: str
    signal_category: str
    production_year: int
    shape: str = ""
    dimension: str = ""
    wl_code: str | None = None
    support_material: str = ""
    support_thickness: str = "0"
    fixation_class: str = ""
    fixation_method: str = ""
    created_by: str

    @classmethod
    def from_draft(
        cls,
        draft: AssetDraft,
        *,
        created_by: str,
        now: datetime | None = None,
    ) -> AssetCreateRequest:
        draft.validated_location()
        if not draft.qr_code:
            raise MissingFieldError("qr_code is required to create an asset", field="qr_code")
        if not created_by.strip():
            raise MissingFieldError("created_by is required to create an asset", field="created_by")
        signal_type, signal_category = _split_signal(draft.signal_type, draft.signal_category)
        thickness = draft.support_thickness or 0
        return cls(
            qr_code=draft.qr_code,
            signal_type=signal_type,
            signal_category=signal_category,
            production_year=draft.production_year or (now or datetime.now(UTC)).year,
            shape=draft.shape,
            dimension=draft.dimension,
            wl_code=safe_str(draft.wl_code),
            support_material=draft.support_material,
            support_thickness=f"{thickness:g}",
            fixation_class=draft.fixation_class,
            fixation_method=draft.fixation_method,
            created_by=created_by.strip(),
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class InterventionCreateRequest(BaseModel):
    """Body of ``POST /maintenance/create``.

    Coordinates are 6-decimal strings; the service's validator rejects
    numbers here.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    intervention_type: InterventionType
    gps_lat: str
    gps_lng: str
    company_id: str
    certificate_number: str
    reason: str = ""
    notes: str = ""
    product_uuid: str
    year: int
    poles_number: int | None = None

    @classmethod
    def from_draft(
        cls,
        draft: InterventionDraft,
        *,
        asset_uuid: str,
        company_id: str,
        now: datetime | None = None,
    ) -> InterventionCreateRequest:
        """Validate *draft* for *asset_uuid*.

        Coordinates are checked first, so a missing fix is reported
        before any other problem.
        """
        gps_lat, gps_lng = draft.validated_location()
        owner = (asset_uuid or "").strip()
        if not owner or owner == SENTINEL_ASSET_ID:
            raise MissingFieldError("an intervention needs a resolved asset", field="product_uuid")
        if not company_id.strip():
            raise MissingFieldError("company_id is required for interventions", field="company_id")
        moment = now or datetime.now(UTC)
        certificate = draft.certificate_number or f"CERT-{int(moment.timestamp() * 1000)}"
        return cls(
            intervention_type=draft.intervention_type,
            gps_lat=gps_lat,
            gps_lng=gps_lng,
            company_id=company_id.strip(),
            certificate_number=certificate,
            reason=draft.reason,
            notes=draft.notes,
            product_uuid=owner,
            year=draft.year or moment.year,
            poles_number=draft.poles_number,
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class AssetCreateResponse(CertBaseModel):
    """``payload`` of a successful asset creation."""

    uuid: str
    signal_type: str = ""
    ledger_asset_id: int | None = Field(default=None, validation_alias=AliasChoices("asset_id", "ledger_asset_id"))
    metadata_cid: str | None = None


class InterventionCreateResponse(CertBaseModel):
    """``payload`` of a successful intervention creation."""

    uuid: str
    intervention_type: InterventionType = InterventionType.MAINTAIN
    ledger_asset_id: int | None = Field(default=None, validation_alias=AliasChoices("asset_id", "ledger_asset_id"))
    metadata_cid: str | None = None
    transaction_id: str | None = None

    @field_validator("intervention_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> InterventionType:
        return InterventionType.parse(value, InterventionType.MAINTAIN) or InterventionType.MAINTAIN
