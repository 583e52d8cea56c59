"""Normalize free-text repository input into a canonical ``owner/repo`` token."""

from __future__ import annotations

import re
import string

from .config import HOST_PREFIX_MARKERS
from .errors import ValidationError

_SEGMENT = re.compile(r"^[A-Za-z0-9._-]+$")
# host names are case-insensitive
_HOST_MARKERS = [re.compile(re.escape(m), re.IGNORECASE) for m in HOST_PREFIX_MARKERS]


def sanitize_repo_input(text: str) -> str:
    """Strip NULs and whitespace, drop a host prefix and the trailing slash.

    ``sanitize_repo_input("https://github.com/acme/widget/") == "acme/widget"``.
    Shape is not checked here; see :func:`parse_repo_id`.
    """
    clean = text.replace("\x00", "").strip()
    for marker in _HOST_MARKERS:
        matches = list(marker.finditer(clean))
        if matches:
            clean = clean[matches[-1].end():]
    # "a/ /" must not shed one more separator on a second pass
    return clean.rstrip("/" + string.whitespace).lstrip()


def parse_repo_id(text: str) -> tuple[str, str]:
    """Sanitize ``text`` and split it into ``(owner, repo)``.

    Raises ValidationError for empty input or anything that is not exactly
    two non-empty path segments.
    """
    clean = sanitize_repo_input(text)
    if not clean:
        raise ValidationError("please enter a valid repository (owner/repo or GitHub URL)")
    parts = clean.split("/")
    if len(parts) != 2 or not all(_SEGMENT.match(p) for p in parts):
        raise ValidationError(f"repository must be in owner/repo format (got '{clean}')")
    return parts[0], parts[1]
