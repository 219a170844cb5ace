"""Helpers for reading the ``payload`` member of a response envelope."""

from __future__ import annotations

from typing import Any

from pycertplus.exceptions import CertApiError


def unwrap_list(payload: Any, endpoint: str) -> list[dict[str, Any]]:
    """Return the item list of a ``GET`` listing (``payload.data``).

    Raises
    ------
    CertApiError
        The payload has no ``data`` list.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        raise CertApiError(
            f"Listing from {endpoint} has no 'data' list (got {type(data).__name__})",
            endpoint=endpoint,
        )
    return [item for item in data if isinstance(item, dict)]


def unwrap_object(payload: Any, endpoint: str) -> dict[str, Any]:
    """Return the object carried directly in ``payload`` by write endpoints."""
    if not isinstance(payload, dict):
        raise CertApiError(
            f"Response from {endpoint} is not an object (got {type(payload).__name__})",
            endpoint=endpoint,
        )
    return payload
