"""Deterministic cache keys for analysis requests."""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional

from policylens.models.analysis import PartyInput

# Whitespace cannot appear unescaped in a URL
SOURCE_SEPARATOR = "\n"
QUESTION_DELIMITER = "\n#question\n"


def source_identifier(party: PartyInput) -> str:
    """Identify a party's source for caching purposes."""
    if party.url:
        return party.url
    if party.text:
        digest = hashlib.sha256(party.text.encode("utf-8")).hexdigest()
        return f"text:{digest}"
    return f"none:{party.id}"


def build_cache_key(parties: Iterable[PartyInput], question: Optional[str] = None) -> str:
    """Order-independent key over the request's sources plus the question.

    Identifiers are deduplicated and sorted so reordering parties never
    causes a miss; the question is appended verbatim because answers are
    question-specific.
    """
    identifiers = sorted({source_identifier(p) for p in parties})
    return SOURCE_SEPARATOR.join(identifiers) + QUESTION_DELIMITER + (question or "")
