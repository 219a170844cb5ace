"""Data models for inventory service payloads."""

from pycertplus.models._base import CertBaseModel, InstallStatus, InterventionType
from pycertplus.models.asset import Asset
from pycertplus.models.intervention import AssetRef, InterventionRecord, KnownAsset, UnresolvedAsset
from pycertplus.models.requests import (
    AssetCreateRequest,
    AssetCreateResponse,
    AssetDraft,
    InterventionCreateRequest,
    InterventionCreateResponse,
    InterventionDraft,
)

__all__ = [
    "Asset",
    "AssetCreateRequest",
    "AssetCreateResponse",
    "AssetDraft",
    "AssetRef",
    "CertBaseModel",
    "InstallStatus",
    "InterventionCreateRequest",
    "InterventionCreateResponse",
    "InterventionDraft",
    "InterventionRecord",
    "InterventionType",
    "KnownAsset",
    "UnresolvedAsset",
]
