"""Fixed-precision coordinate validation and wire formatting.

The remote service stores coordinates in a column that holds at most
9 digits with exactly 6 of them after the decimal point, and its field
validator only accepts the value as a *string*. Every write that carries
a location must pass through :func:`format_coordinate` first; a failure
here means nothing is sent.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any

from pycertplus._constants import (
    COORDINATE_DECIMALS,
    COORDINATE_MAX_DIGITS,
    LATITUDE_LIMIT,
    LONGITUDE_LIMIT,
)
from pycertplus._normalize import safe_float
from pycertplus.exceptions import (
    CoordinateError,
    CoordinateRangeError,
    DigitLimitError,
    PrecisionError,
)


class GeoAxis(StrEnum):
    LAT = "lat"
    LNG = "lng"


_LIMITS: dict[GeoAxis, float] = {
    GeoAxis.LAT: LATITUDE_LIMIT,
    GeoAxis.LNG: LONGITUDE_LIMIT,
}


def _digit_count(value: float) -> int:
    """Integer plus fractional digits of *value* at wire precision, sign excluded."""
    text = f"{abs(value):.{COORDINATE_DECIMALS}f}"
    return len(text.replace(".", ""))


def format_coordinate(coordinate: Any, axis: GeoAxis | str) -> str:
    """Return *coordinate* as a 6-decimal string accepted by the service.

    Raises
    ------
    PrecisionError
        The value is missing, not a finite number, or zero at 6 decimals.
    DigitLimitError
        The rounded value needs more than 9 digits.
    CoordinateRangeError
        The value lies outside the legal range of *axis*.
    """
    axis = GeoAxis(axis)
    value = safe_float(coordinate)
    if value is None or not math.isfinite(value) or float(f"{value:.{COORDINATE_DECIMALS}f}") == 0:
        raise PrecisionError(
            f"{axis} coordinate is required and must be non-zero, got {coordinate!r}",
            field=f"gps_{axis}",
        )

    digits = _digit_count(value)
    if digits > COORDINATE_MAX_DIGITS:
        raise DigitLimitError(
            f"{axis} coordinate {value} needs {digits} digits at "
            f"{COORDINATE_DECIMALS} decimals (max {COORDINATE_MAX_DIGITS})",
            field=f"gps_{axis}",
        )

    limit = _LIMITS[axis]
    if not -limit <= value <= limit:
        raise CoordinateRangeError(
            f"{axis} coordinate must be between {-limit:g} and {limit:g}, got {value}",
            field=f"gps_{axis}",
        )

    return f"{value:.{COORDINATE_DECIMALS}f}"


def format_point(lat: Any, lng: Any) -> tuple[str, str]:
    """Format a latitude/longitude pair; both must pass :func:`format_coordinate`."""
    return format_coordinate(lat, GeoAxis.LAT), format_coordinate(lng, GeoAxis.LNG)


def is_valid_point(lat: Any, lng: Any) -> bool:
    """Non-raising variant of :func:`format_point`."""
    try:
        format_point(lat, lng)
    except CoordinateError:
        return False
    return True
