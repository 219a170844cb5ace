"""pycertplus - Async Python client for a certified road-sign inventory service."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycertplus")
except PackageNotFoundError:
    __version__ = "0+local"
from pycertplus.cache import CacheStatus, CollectionCache
from pycertplus.client import CertClient
from pycertplus.config import CertConfig
from pycertplus.exceptions import (
    AssetConflictError,
    AssetNotFoundError,
    CertApiError,
    CertConfigError,
    CertError,
    CertTransportError,
    CertValidationError,
    CoordinateError,
    CoordinateRangeError,
    DigitLimitError,
    InvalidTransitionError,
    MissingFieldError,
    PrecisionError,
    ReconciliationWarning,
    StaleDataWarning,
    TransientFetchError,
)
from pycertplus.geo import GeoAxis, format_coordinate, format_point, is_valid_point
from pycertplus.models import (
    Asset,
    AssetDraft,
    InstallStatus,
    InterventionDraft,
    InterventionRecord,
    InterventionType,
    KnownAsset,
    UnresolvedAsset,
)
from pycertplus.reconcile import Reconciler
from pycertplus.scan import ModalId, OutcomeKind, ScanOperation, ScanOrchestrator, ScanOutcome, ScanState
from pycertplus.tags import extract_tag, normalize_tag, tags_match

__all__ = [
    "__version__",
    "Asset",
    "AssetConflictError",
    "AssetDraft",
    "AssetNotFoundError",
    "CacheStatus",
    "CertApiError",
    "CertClient",
    "CertConfig",
    "CertConfigError",
    "CertError",
    "CertTransportError",
    "CertValidationError",
    "CollectionCache",
    "CoordinateError",
    "CoordinateRangeError",
    "DigitLimitError",
    "GeoAxis",
    "InstallStatus",
    "InterventionDraft",
    "InterventionRecord",
    "InterventionType",
    "InvalidTransitionError",
    "KnownAsset",
    "MissingFieldError",
    "ModalId",
    "OutcomeKind",
    "PrecisionError",
    "Reconciler",
    "ReconciliationWarning",
    "ScanOperation",
    "ScanOrchestrator",
    "ScanOutcome",
    "ScanState",
    "StaleDataWarning",
    "TransientFetchError",
    "UnresolvedAsset",
    "extract_tag",
    "format_coordinate",
    "format_point",
    "is_valid_point",
    "normalize_tag",
    "tags_match",
]
