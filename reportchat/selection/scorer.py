# =============================================================================
# Relevance Scorer — Per-Document Sub-Scores
# =============================================================================
#
# Three additive, independent sub-scores, each a pure function of the
# document and the raw query string:
#
#   temporal — how recent the report is, adjusted by recent/historical
#              vocabulary in the question
#   content  — keyword-category matches in the question, plus filename
#              markers that reliably encode report semantics
#   type     — base weight per document type, plus type-specific vocabulary
#
# Totals are unbounded and only meaningful for ranking within ONE selection
# call. They are never normalised, compared across calls, or persisted.
#
# The scorer never excludes a document. Dropping documents outside the
# inferred timeframe is the context filter's job.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass

from reportchat.selection.clock import Clock, current_year
from reportchat.selection.documents import (
    Document,
    DocumentType,
    is_annual_report,
    is_financial_report,
    is_quarterly_report,
    resolve_year,
)
from reportchat.selection.vocabulary import (
    FILENAME_BONUSES,
    FILENAME_COMBINED_BONUSES,
    QUERY_KEYWORDS,
    contains_any,
    count_matches,
)

# Reason thresholds: a sub-score above its threshold is worth explaining.
TEMPORAL_REASON_THRESHOLD = 20
CONTENT_REASON_THRESHOLD = 15
TYPE_REASON_THRESHOLD = 20

# Age in full years → base temporal score.
_AGE_SCORES: tuple[tuple[int, int], ...] = (
    (0, 30),
    (1, 25),
    (2, 20),
    (3, 15),
    (5, 10),
)
_OLDEST_SCORE = 5

# (document type, base score, vocabulary category that adds a bonus, bonus)
_TYPE_SCORES: dict[DocumentType, tuple[int, str | None, int]] = {
    DocumentType.QUARTERLY: (20, "quarterly", 15),
    DocumentType.ANNUAL: (25, "annual", 20),
    DocumentType.PRESENTATION: (15, None, 0),
    DocumentType.FINANCIAL: (30, None, 0),
    DocumentType.OTHER: (10, None, 0),
}


@dataclass(frozen=True)
class ScoreBreakdown:
    """Sub-scores for one document against one question."""

    temporal: int
    content: int
    type: int
    reasons: tuple[str, ...]

    @property
    def total(self) -> int:
        return self.temporal + self.content + self.type


# ---------------------------------------------------------------------------
# Sub-Scores
# ---------------------------------------------------------------------------


def temporal_score(document: Document, query: str, clock: Clock | None = None) -> int:
    """Recency score; 0 when the year cannot be resolved."""
    year = resolve_year(document)
    if not year:
        return 0

    # Future-dated metadata counts as current.
    age = max(current_year(clock) - year, 0)

    score = _OLDEST_SCORE
    for max_age, age_score in _AGE_SCORES:
        if age <= max_age:
            score = age_score
            break

    lower_query = query.lower()
    if age > 2 and contains_any(lower_query, QUERY_KEYWORDS["historical"]):
        score += 15
    if age <= 1 and contains_any(lower_query, QUERY_KEYWORDS["recent"]):
        score += 20
    return score


def content_score(document: Document, query: str) -> int:
    """Keyword-category matches plus filename marker bonuses."""
    lower_query = query.lower()
    filename = document.filename.lower()
    score = 0

    for category, keywords in QUERY_KEYWORDS.items():
        matches = count_matches(lower_query, keywords)
        if not matches:
            continue
        score += 5 * matches
        if category == "quarterly" and is_quarterly_report(document):
            score += 10
        elif category == "annual" and is_annual_report(document):
            score += 10
        elif category in ("revenue", "profit") and is_financial_report(document):
            score += 15

    for markers, bonus in FILENAME_BONUSES:
        if contains_any(filename, markers):
            score += bonus

    for alternatives, bonus in FILENAME_COMBINED_BONUSES:
        if any(all(token in filename for token in tokens) for tokens in alternatives):
            score += bonus

    return score


def document_type_score(document: Document, query: str) -> int:
    base, category, bonus = _TYPE_SCORES[document.document_type]
    if category and contains_any(query.lower(), QUERY_KEYWORDS[category]):
        return base + bonus
    return base


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def score(document: Document, query: str, clock: Clock | None = None) -> ScoreBreakdown:
    """Score one document; reasons are for observability only."""
    temporal = temporal_score(document, query, clock)
    content = content_score(document, query)
    type_ = document_type_score(document, query)

    reasons: list[str] = []
    if temporal > TEMPORAL_REASON_THRESHOLD:
        reasons.append(f"Recent data ({resolve_year(document) or 'unknown year'})")
    if content > CONTENT_REASON_THRESHOLD:
        reasons.append("High content relevance")
    if type_ > TYPE_REASON_THRESHOLD:
        reasons.append(f"Relevant document type ({document.document_type.value})")

    return ScoreBreakdown(
        temporal=temporal,
        content=content,
        type=type_,
        reasons=tuple(reasons),
    )
