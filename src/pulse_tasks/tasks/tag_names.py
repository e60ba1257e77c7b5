# src/pulse_tasks/tasks/tag_names.py

"""
Tag name normalization.

Free-form tag text ("Feature Epic", "ops_team") becomes a canonical identifier
("feature-epic", "ops-team"). Nothing here raises: callers decide what to do
with a name that normalizes to nothing.
"""

from __future__ import annotations

import re

_SEPARATORS_RE = re.compile(r"[\s_]+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9-]")
_HYPHENS_RE = re.compile(r"-+")
_CANONICAL_RE = re.compile(r"[a-z0-9-]+")


def normalize_tag(text: str) -> str:
    out = (text or "").lower()
    out = _SEPARATORS_RE.sub("-", out)
    out = _DISALLOWED_RE.sub("", out)
    out = _HYPHENS_RE.sub("-", out)
    return out.strip("-")


def is_valid_tag(tag: str) -> bool:
    return bool(tag) and _CANONICAL_RE.fullmatch(tag) is not None


def canonical_tag(text: str | None, fallback: str | None = None) -> str | None:
    """Normalize `text`; return `fallback` if nothing valid is left."""
    if text is None:
        return fallback
    tag = normalize_tag(text)
    return tag if is_valid_tag(tag) else fallback
