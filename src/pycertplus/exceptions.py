"""Custom exception hierarchy for pycertplus."""

from __future__ import annotations


class CertError(Exception):
    """Base exception for all pycertplus errors."""


class CertConfigError(CertError):
    """Invalid or missing configuration."""


class CertValidationError(CertError):
    """Input rejected locally; never sent to the remote service."""

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class MissingFieldError(CertValidationError):
    """A field required by the remote service is empty or absent."""


class CoordinateError(CertValidationError):
    """Base for geolocation precision/range failures."""


class PrecisionError(CoordinateError):
    """Coordinate is absent, not a finite number, or exactly zero.

    Zero is never a legitimate field location; it is what a device
    reports when no fix was acquired.
    """


class CoordinateRangeError(CoordinateError):
    """Coordinate lies outside [-90, 90] (lat) or [-180, 180] (lng)."""


class DigitLimitError(CoordinateError):
    """Coordinate needs more than 9 digits once rounded to 6 decimals."""


class AssetNotFoundError(CertError):
    """A scanned tag does not resolve to any asset."""

    def __init__(self, message: str, *, tag: str = "") -> None:
        self.tag = tag
        super().__init__(message)


class AssetConflictError(CertError):
    """A tag is already issued to an asset (raised during creation)."""

    def __init__(self, message: str, *, tag: str = "", asset_uuid: str = "") -> None:
        self.tag = tag
        self.asset_uuid = asset_uuid
        super().__init__(message)


class InvalidTransitionError(CertError):
    """A scan workflow step was requested from a state that does not allow it."""


class TransientFetchError(CertError):
    """Remote read or write failed; the service may succeed later."""


class CertTransportError(TransientFetchError):
    """HTTP-level failure (network, non-2xx, invalid JSON, missing envelope)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class CertApiError(TransientFetchError):
    """Response arrived but its payload could not be interpreted."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class StaleDataWarning(UserWarning):
    """A refresh failed and a previously cached snapshot was served instead."""


class ReconciliationWarning(UserWarning):
    """Some intervention records could not be attributed to an asset."""
