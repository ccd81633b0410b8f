"""Small text helpers shared by the engine and the stores."""

from __future__ import annotations

import re
from typing import Any, Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def slugify(text: str) -> str:
    """Lowercase ``text`` and collapse every non-alphanumeric run into ``-``.

    >>> slugify("source_separation-Separate Metals onsite")
    'source-separation-separate-metals-onsite'
    """
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def stream_id_for(stream_name: str) -> str:
    """Stable id for a stream plan: whitespace runs become ``-``, lowercased."""
    return _WHITESPACE.sub("-", stream_name).lower()


def clean_str(value: Any) -> Optional[str]:
    """Return ``value`` stripped, or ``None`` when missing or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
