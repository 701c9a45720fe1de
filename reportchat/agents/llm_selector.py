# =============================================================================
# LLM-Assisted Document Selection
# =============================================================================
#
# Delegates the choice of documents to a (cheap) language model. The model
# sees only metadata (a numbered list of reports with year, quarter, page
# count and company), plus the question and the page budget, and answers
# with JSON:
#
#   {
#     "reasoning": "...",
#     "selectedDocuments": [1, 3, 5],     ← 1-based indices
#     "totalPages": 30,
#     "coverageAnalysis": "..."
#   }
#
# PARSING:
#   1. Extract the outermost {...} from the response and json.loads it.
#   2. If that fails, clean the text (code fences, smart quotes, comments,
#      trailing commas) and try once more.
#   3. Still unparseable → MalformedSelectionError. The fallback chain
#      (fallback.py) decides what happens next.
#
# The model's own `totalPages` is informational only. The page budget is
# re-enforced here: indices that would overflow it are skipped, so this
# strategy honours the same budget invariant as the algorithmic selector.
# =============================================================================

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from reportchat.config import settings
from reportchat.selection.documents import Document, resolve_year
from reportchat.selection.selector import SelectionResult
from reportchat.services.llm import LLMProvider

logger = logging.getLogger(__name__)

# Score reported for an LLM selection; the model gives no per-document score.
LLM_SELECTION_SCORE = 100

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_LINE_COMMENT = re.compile(r"^\s*//.*$", re.MULTILINE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


class MalformedSelectionError(ValueError):
    """The selector model's response could not be turned into a selection."""


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

_SELECTION_SYSTEM = (
    "You are a financial analyst choosing the best report documents for "
    "answering a question. Respond with ONLY valid JSON."
)


def build_selection_prompt(
    documents: Sequence[Document],
    query: str,
    max_pages: int,
) -> str:
    """The user message sent to the selector model."""
    lines = []
    for index, document in enumerate(documents, 1):
        year = resolve_year(document) or "unknown year"
        period = f"Q{document.quarter}" if document.quarter else "annual"
        lines.append(
            f"{index}. {document.display_name} ({year}, {period}, "
            f"{document.pages} pages, Company: {document.company or 'unknown'})"
        )

    return (
        f'QUERY: "{query}"\n\n'
        f"AVAILABLE DOCUMENTS:\n" + "\n".join(lines) + "\n\n"
        "CONSTRAINTS:\n"
        f"- Maximum total pages: {max_pages}\n"
        "- Select documents that provide the BEST data for answering the query\n"
        "- For multi-year analysis, ensure coverage of all required years\n"
        "- Prioritize year-end/annual reports over quarterly for annual comparisons\n"
        "- Consider data completeness and relevance\n\n"
        "INSTRUCTIONS:\n"
        "1. Analyze what data is needed for this query\n"
        "2. Select the most appropriate documents (by number)\n"
        "3. Explain your reasoning\n\n"
        "Respond in this exact JSON format:\n"
        "{\n"
        '  "reasoning": "Explain your selection logic and why these documents are best",\n'
        '  "selectedDocuments": [1, 3, 5],\n'
        '  "totalPages": 30,\n'
        '  "coverageAnalysis": "Explain what years/quarters are covered"\n'
        "}"
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def select_with_llm(
    documents: Sequence[Document],
    query: str,
    max_pages: int,
    llm: LLMProvider,
) -> SelectionResult:
    """
    Ask the selector model which documents to use.

    Raises:
        MalformedSelectionError: Response unparseable after one cleaned
            retry, or it selects no usable document.
    """
    documents = list(documents)
    logger.info(
        "LLM document selection: query='%s', candidates=%d, max_pages=%d",
        query[:80], len(documents), max_pages,
    )

    response = await llm.complete(
        messages=[{
            "role": "user",
            "content": build_selection_prompt(documents, query, max_pages),
        }],
        system=_SELECTION_SYSTEM,
        temperature=0.1,
        max_tokens=settings.selector_max_tokens,
    )

    data = parse_selection_response(response.content)
    return _build_result(documents, data, max_pages)


def parse_selection_response(text: str) -> dict[str, Any]:
    """Parse the selector JSON, retrying once on cleaned text."""
    try:
        return _load_selection(text)
    except (json.JSONDecodeError, MalformedSelectionError) as e:
        logger.warning("Selector response unparseable (%s); retrying on cleaned text", e)

    try:
        return _load_selection(clean_json_text(text))
    except json.JSONDecodeError as e:
        raise MalformedSelectionError(f"Could not parse selector response: {e}") from e


def clean_json_text(text: str) -> str:
    """Normalise the usual ways models break JSON."""
    cleaned = text.translate(_SMART_QUOTES)
    cleaned = _CODE_FENCE.sub("", cleaned)
    cleaned = _LINE_COMMENT.sub("", cleaned)
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    return cleaned.strip()


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _load_selection(text: str) -> dict[str, Any]:
    match = _JSON_OBJECT.search(text)
    if not match:
        raise MalformedSelectionError("No JSON object in selector response")

    data = json.loads(match.group(0))
    if not isinstance(data, dict) or not isinstance(data.get("selectedDocuments"), list):
        raise MalformedSelectionError("Selector response has no selectedDocuments list")
    return data


def _build_result(
    documents: list[Document],
    data: dict[str, Any],
    max_pages: int,
) -> SelectionResult:
    chosen: list[int] = []
    reasons: list[str] = []
    total_pages = 0

    for raw_index in data["selectedDocuments"]:
        if isinstance(raw_index, bool) or not isinstance(raw_index, (int, str)):
            reasons.append(f"Ignored invalid document reference {raw_index!r}")
            continue
        try:
            position = int(raw_index) - 1
        except ValueError:
            reasons.append(f"Ignored invalid document reference {raw_index!r}")
            continue

        if not 0 <= position < len(documents) or position in chosen:
            reasons.append(f"Ignored out-of-range or duplicate document number {raw_index}")
            continue

        document = documents[position]
        if total_pages + document.pages > max_pages:
            reasons.append(
                f"Skipped {document.display_name} ({document.pages} pages): "
                f"would exceed page limit ({total_pages + document.pages}/{max_pages})"
            )
            continue

        chosen.append(position)
        total_pages += document.pages
        reasons.append(
            f"{document.display_name}: Selected by LLM for relevance ({document.pages} pages)"
        )

    if not chosen:
        raise MalformedSelectionError("Selector response selected no usable documents")

    logger.info("LLM selection reasoning: %s", data.get("reasoning", ""))
    logger.info(
        "LLM selected %d documents, %d pages", len(chosen), total_pages,
    )

    chosen_set = set(chosen)
    return SelectionResult(
        selected=tuple(documents[position] for position in chosen),
        total_score=LLM_SELECTION_SCORE,
        selection_reasons=(
            f"LLM Reasoning: {data.get('reasoning', '')}",
            f"Coverage: {data.get('coverageAnalysis', '')}",
            *reasons,
            f"Total pages used: {total_pages}/{max_pages}",
        ),
        dropped=tuple(
            document for position, document in enumerate(documents)
            if position not in chosen_set
        ),
        total_pages=total_pages,
        strategy="llm",
    )
