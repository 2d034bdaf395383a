"""
Utilities: normalization, LLM response cleanup and small helpers.
"""

from __future__ import annotations

import re

_SOFT_HYPHEN = "\u00ad"
_FENCE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def norm_text(s: str) -> str:
    """Light normalization for display."""
    s = s.replace(_SOFT_HYPHEN, "")
    s = re.sub(r"\s+", " ", s).strip()
    return s


def strip_code_fences(text: str) -> str:
    """
    Remove a markdown code fence wrapped around a whole LLM response.
    Inner fences and unfenced text are left untouched.
    """
    t = text.strip()
    m = _FENCE.match(t)
    if m:
        return m.group(1).strip()
    return t


def preview(text: str, limit: int = 60) -> str:
    """Single-line, truncated rendering for logs."""
    t = norm_text(text)
    if len(t) <= limit:
        return t
    return t[: max(0, limit - 3)] + "..."
