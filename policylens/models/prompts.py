"""
Prompt templates (shared)

System prompts keyed by task, plus the user-prompt builders for theme
summarization, free-form answering and single-text bullet summaries. Party
texts are embedded as JSON so party boundaries stay unambiguous to the model.
"""

from __future__ import annotations

import json
from typing import Dict, Sequence

from policylens.models.analysis import ExtractionSuccess, Theme

SYSTEM_PROMPTS: Dict[str, str] = {
    "summarize": (
        "You are a neutral policy analyst. You summarize political party policy "
        "documents strictly from the text you are given. You never add facts, "
        "opinions or knowledge that is not present in the supplied documents."
    ),
    "freeform": (
        "You are a neutral policy analyst answering a voter's question. "
        "You rely only on the supplied party policy documents, compare the "
        "parties explicitly by name and never add outside knowledge or opinion."
    ),
    "summarize_text": (
        "You are a concise assistant. You summarize the text you are given without "
        "adding information that is not in it."
    ),
}


def _documents_block(successes: Sequence[ExtractionSuccess]) -> str:
    documents = [
        {"id": s.party_id, "name": s.name, "text": s.text}
        for s in successes
    ]
    return json.dumps(documents, ensure_ascii=False, indent=2)


def build_summary_prompt(
    successes: Sequence[ExtractionSuccess],
    themes: Sequence[Theme],
    *,
    target_chars: int = 100,
) -> str:
    theme_list = json.dumps(
        [{"key": t.key, "label": t.label} for t in themes],
        ensure_ascii=False,
        indent=2,
    )
    example_party = successes[0].party_id if successes else "partyId"
    example = json.dumps(
        {example_party: {t.key: "..." for t in themes}},
        ensure_ascii=False,
    )
    return (
        "Below are policy documents for several political parties, given as a "
        "JSON list of objects with `id`, `name` and `text`.\n\n"
        f"=== DOCUMENTS START ===\n{_documents_block(successes)}\n=== DOCUMENTS END ===\n\n"
        "For every party and every theme in the following list, summarize the "
        "party's position on that theme using only its own document:\n"
        f"{theme_list}\n\n"
        "Rules:\n"
        f"- Keep each summary to about {target_chars} characters.\n"
        "- If a document says nothing about a theme, say that no mention was found.\n"
        "- Do not use any knowledge beyond the documents.\n"
        "- Reply with a single JSON object only, keyed first by party `id` and "
        "then by theme `key`, with string values. For example:\n"
        f"{example}\n"
    )


def build_freeform_prompt(successes: Sequence[ExtractionSuccess], question: str) -> str:
    return (
        "Below are policy documents for several political parties, given as a "
        "JSON list of objects with `id`, `name` and `text`.\n\n"
        f"=== DOCUMENTS START ===\n{_documents_block(successes)}\n=== DOCUMENTS END ===\n\n"
        f"Question: {question}\n\n"
        "Answer the question using only the documents above. Compare the parties "
        "explicitly, naming each one. Do not add your own opinion or any outside "
        "knowledge. If the documents do not address the question for a party, "
        "say so for that party."
    )


def build_text_summary_prompt(text: str, *, points: int = 3) -> str:
    return (
        f"Summarize the following text as a bulleted list of the {points} most "
        "important points.\n\n"
        f"---\n{text}"
    )
