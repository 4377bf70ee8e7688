"""
Lenient parsing of JSON objects returned by language models.

Models asked for JSON sometimes wrap it in Markdown code fences or add a
sentence before or after the object. ``parse_json_object`` strips those and
returns the decoded object, or None when nothing parseable remains.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

__all__ = ["strip_code_fences", "parse_json_object"]

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        s = s.lstrip("`")
        # Remove an optional language tag like json, JSON
        s = s[s.find("\n") + 1:] if "\n" in s else s
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse ``text`` into a JSON object (dict); None if that is impossible."""
    if not text or not isinstance(text, str):
        return None

    s = strip_code_fences(text)
    try:
        parsed = json.loads(s)
    except json.JSONDecodeError:
        # Extract the outermost {...} block to drop pre/post commentary
        first = s.find("{")
        last = s.rfind("}")
        if first == -1 or last <= first:
            return None
        candidate = _TRAILING_COMMA_RE.sub(r"\1", s[first:last + 1])
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            return None

    return parsed if isinstance(parsed, dict) else None
