"""
Shared text helpers for extracted source text.

- collapse_ws: collapse consecutive whitespace into single spaces
- truncate: hard cap on length, no ellipsis (prompt budget, not display)
- clean_text: convenience wrapper applying both and trimming
"""

from __future__ import annotations

import re as _re

__all__ = ["collapse_ws", "truncate", "clean_text"]

_WS_RE = _re.compile(r"\s+")


def collapse_ws(text: str) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", str(text)).strip()


def truncate(text: str, max_len: int | None) -> str:
    if not text:
        return ""
    if max_len is not None and len(text) > max_len:
        return text[:max_len]
    return text


def clean_text(text: str, *, max_len: int | None = None) -> str:
    return truncate(collapse_ws(text), max_len)
