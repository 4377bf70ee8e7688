"""
Analysis request/response models and pipeline value types.

Pydantic models describe the JSON wire format (camelCase aliases, as the
browser client sends them); the frozen dataclasses are what flows through the
pipeline once a request has been accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Placeholder stored for every requested theme of a party whose source failed
FAILURE_SENTINEL = "information retrieval failed"

# Prefix of every extraction failure reason
EXTRACTION_FAILURE_MARKER = "[extraction failed]"

# partyId -> themeKey -> summary
AnalysisResult = Dict[str, Dict[str, str]]


# ────────────────────────────────────────────────────────────
#  Pipeline value types
# ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PartyInput:
    id: str
    name: str
    url: Optional[str] = None
    text: Optional[str] = None


@dataclass(frozen=True)
class Theme:
    key: str
    label: str


@dataclass(frozen=True)
class ExtractionSuccess:
    party_id: str
    name: str
    text: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ExtractionFailure:
    party_id: str
    name: str
    reason: str

    @property
    def ok(self) -> bool:
        return False


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]


def extraction_failure(party: PartyInput, detail: str) -> ExtractionFailure:
    """Build a failure outcome whose reason starts with the failure marker."""
    return ExtractionFailure(
        party_id=party.id,
        name=party.name,
        reason=f"{EXTRACTION_FAILURE_MARKER} {detail}",
    )


# ────────────────────────────────────────────────────────────
#  Wire models
# ────────────────────────────────────────────────────────────

class PartyIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    policy_url: Optional[str] = Field(default=None, alias="policyUrl")
    policy_text: Optional[str] = Field(default=None, alias="policyText")

    @field_validator("policy_url", "policy_text")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value

    def to_party(self) -> PartyInput:
        # A URL wins over raw text; it is also the cache identifier
        if self.policy_url:
            return PartyInput(id=self.id, name=self.name, url=self.policy_url.strip())
        return PartyInput(id=self.id, name=self.name, text=self.policy_text)


class ThemeIn(BaseModel):
    key: str = Field(..., min_length=1)
    label: str

    def to_theme(self) -> Theme:
        return Theme(key=self.key, label=self.label)


class AnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parties: List[PartyIn] = Field(..., min_length=1)
    themes: List[ThemeIn]
    freeform_question: Optional[str] = Field(default=None, alias="freeformQuestion")

    @model_validator(mode="after")
    def _unique_identifiers(self) -> "AnalysisRequest":
        party_ids = [p.id for p in self.parties]
        if len(set(party_ids)) != len(party_ids):
            raise ValueError("party ids must be unique")
        theme_keys = [t.key for t in self.themes]
        if len(set(theme_keys)) != len(theme_keys):
            raise ValueError("theme keys must be unique")
        return self

    def to_parties(self) -> List[PartyInput]:
        return [p.to_party() for p in self.parties]

    def to_themes(self) -> List[Theme]:
        return [t.to_theme() for t in self.themes]


class FreeformAnswer(BaseModel):
    question: str
    answer: str


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    analysis: AnalysisResult = Field(default_factory=dict)
    freeform_answer: Optional[FreeformAnswer] = Field(default=None, alias="freeformAnswer")
    from_cache: bool = Field(default=False, alias="fromCache")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_cache_entry(self) -> dict:
        """Cached shape: the response minus the ``fromCache`` flag."""
        entry = self.model_dump(by_alias=True, exclude_none=True)
        entry.pop("fromCache", None)
        return entry

    @classmethod
    def from_cache_entry(cls, entry: dict) -> "AnalysisResponse":
        return cls.model_validate({**entry, "fromCache": True})


class SummarizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text_to_summarize: str = Field(..., alias="textToSummarize")

    @field_validator("text_to_summarize")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("there is no text to summarize")
        return value


class SummarizeResponse(BaseModel):
    summary: str
