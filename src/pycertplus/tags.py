"""Scan tag normalization.

A physical tag can reach the client in several textual encodings:

* a full landing-page URL: ``https://host/public/product/QRY59331623016``
* a path: ``/product/QRY59331623016``
* the bare tag: ``QRY59331623016``

Assets store the bare tag, so every lookup goes through
:func:`extract_tag` and every comparison through :func:`tags_match`.
"""

from __future__ import annotations

import re
from typing import NamedTuple

# ``product`` segment, optionally preceded by ``public``; the tag is the next segment.
_MARKER_PATTERN = re.compile(r"(?:^|/)(?:public/)?product/([^/?#]+)", re.IGNORECASE)
_SUFFIX_PATTERN = re.compile(r"[?#].*$", re.DOTALL)


class NormalizedTag(NamedTuple):
    extracted: str
    original: str


def extract_tag(raw: str) -> str:
    """Strip a scan payload down to the bare tag.

    Inputs without a path separator are returned trimmed and otherwise
    unchanged. The result never contains ``/`` and carries no surrounding
    whitespace, so ``extract_tag(extract_tag(x)) == extract_tag(x)``.
    """
    if not raw:
        return ""
    trimmed = raw.strip()
    if "/" not in trimmed:
        return trimmed

    match = _MARKER_PATTERN.search(trimmed)
    if match:
        candidate = match.group(1).strip()
        if candidate:
            return candidate

    path = _SUFFIX_PATTERN.sub("", trimmed)
    segments = [segment.strip() for segment in path.split("/") if segment.strip()]
    if segments:
        return segments[-1]
    return ""


def normalize_tag(raw: str) -> NormalizedTag:
    """Return both the extracted tag and the trimmed original for flexible matching."""
    return NormalizedTag(extracted=extract_tag(raw), original=(raw or "").strip())


def tags_match(a: str, b: str) -> bool:
    """Whether two scan payloads refer to the same tag.

    True when the extracted forms, the trimmed raw forms, or either
    raw-vs-extracted cross pair are equal. Empty input never matches.
    """
    if not a or not b:
        return False
    left = normalize_tag(a)
    right = normalize_tag(b)
    return (
        left.extracted == right.extracted
        or left.original == right.original
        or left.extracted == right.original
        or left.original == right.extracted
    )
