# =============================================================================
# Query Interpreter — Free Text → Structured Query Context
# =============================================================================
#
# Turns a user question into a QueryContext: an optional timeframe and an
# information-type classification. Pure and deterministic; no I/O.
#
# CLASSIFICATION PRIORITY (first satisfied wins):
#   1. annual_summary   — totals vocabulary AND "last N years"
#   2. trend_analysis   — trend vocabulary OR "last N years"
#   3. quarterly_detail — quarter vocabulary
#   4. general          — default
#
# A question mentioning both "profit" and "trend" over "last 3 years" is an
# annual_summary, so it gets the year-end-only filter.
#
# RELEVANT YEARS: "recent" means the most recent complete fiscal year,
# i.e. current year − 1. With no timeframe the window is the last two
# complete years.
# =============================================================================

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from reportchat.selection.clock import Clock, current_year
from reportchat.selection.vocabulary import (
    ANNUAL_SUMMARY_KEYWORDS,
    QUARTERLY_KEYWORDS,
    TIMEFRAME_PATTERNS,
    TREND_KEYWORDS,
    contains_any,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_YEARS = 2

# No report predates this; windows reaching further back are cut here.
EARLIEST_FISCAL_YEAR = 1900


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


class InformationType(str, enum.Enum):
    ANNUAL_SUMMARY = "annual_summary"
    TREND_ANALYSIS = "trend_analysis"
    QUARTERLY_DETAIL = "quarterly_detail"
    GENERAL = "general"


@dataclass(frozen=True)
class Timeframe:
    """
    A timeframe extracted from the question.

    Exactly one value group is populated, according to ``kind``:
        years / months / quarters → count
        year_range                → start_year, end_year
        single_year               → year
    """

    kind: str
    count: int | None = None
    start_year: int | None = None
    end_year: int | None = None
    year: int | None = None

    def describe(self) -> str:
        if self.kind == "year_range":
            return f"{self.kind}: {self.start_year}-{self.end_year}"
        if self.kind == "single_year":
            return f"{self.kind}: {self.year}"
        return f"{self.kind}: {self.count}"


@dataclass(frozen=True)
class QueryContext:
    """What the question is asking for, derived fresh per request."""

    timeframe: Timeframe | None
    information_type: InformationType
    preferred_document_types: tuple[str, ...]
    needs_comprehensive_data: bool

    def describe(self) -> str:
        timeframe = self.timeframe.describe() if self.timeframe else "no timeframe"
        return f"{self.information_type.value} ({timeframe})"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_timeframe(query: str) -> Timeframe | None:
    """Match the ordered timeframe patterns; first match wins."""
    for kind, pattern in TIMEFRAME_PATTERNS:
        match = pattern.search(query)
        if not match:
            continue
        if kind == "year_range":
            start, end = int(match.group(1)), int(match.group(2))
            return Timeframe(kind=kind, start_year=min(start, end), end_year=max(start, end))
        if kind == "single_year":
            return Timeframe(kind=kind, year=int(match.group(1)))
        return Timeframe(kind=kind, count=int(match.group(1)))
    return None


def interpret(query: str) -> QueryContext:
    """
    Build the QueryContext for a question.

    Example:
        >>> interpret("son 3 yıl gelir").information_type
        <InformationType.ANNUAL_SUMMARY: 'annual_summary'>
    """
    lower_query = query.lower()
    timeframe = extract_timeframe(query)
    relative_years = timeframe is not None and timeframe.kind == "years"

    if contains_any(lower_query, ANNUAL_SUMMARY_KEYWORDS) and relative_years:
        context = QueryContext(
            timeframe=timeframe,
            information_type=InformationType.ANNUAL_SUMMARY,
            preferred_document_types=("annual", "quarterly_q4", "year_end"),
            needs_comprehensive_data=False,
        )
    elif contains_any(lower_query, TREND_KEYWORDS) or relative_years:
        context = QueryContext(
            timeframe=timeframe,
            information_type=InformationType.TREND_ANALYSIS,
            preferred_document_types=("annual", "quarterly_q4"),
            needs_comprehensive_data=bool(
                relative_years and timeframe.count and timeframe.count > 3
            ),
        )
    elif contains_any(lower_query, QUARTERLY_KEYWORDS):
        context = QueryContext(
            timeframe=timeframe,
            information_type=InformationType.QUARTERLY_DETAIL,
            preferred_document_types=(
                "quarterly", "quarterly_q1", "quarterly_q2",
                "quarterly_q3", "quarterly_q4",
            ),
            needs_comprehensive_data=True,
        )
    else:
        context = QueryContext(
            timeframe=timeframe,
            information_type=InformationType.GENERAL,
            preferred_document_types=("quarterly", "annual"),
            needs_comprehensive_data=True,
        )

    logger.debug("Interpreted query '%s' as %s", query[:80], context.describe())
    return context


def relevant_years(timeframe: Timeframe | None, clock: Clock | None = None) -> list[int]:
    """
    Years a timeframe covers, in priority order (most recent first for
    relative timeframes, ascending for explicit ranges).
    """
    latest_complete = current_year(clock) - 1

    if timeframe is None:
        return _years_back(latest_complete, DEFAULT_WINDOW_YEARS)

    if timeframe.kind == "years":
        return _years_back(latest_complete, timeframe.count or 0)
    if timeframe.kind == "months":
        return _years_back(latest_complete, -(-(timeframe.count or 0) // 12))
    if timeframe.kind == "quarters":
        return _years_back(latest_complete, -(-(timeframe.count or 0) // 4))
    if timeframe.kind == "year_range":
        start = max(timeframe.start_year, EARLIEST_FISCAL_YEAR)
        return list(range(start, timeframe.end_year + 1))
    if timeframe.kind == "single_year":
        return [timeframe.year]

    return _years_back(latest_complete, DEFAULT_WINDOW_YEARS)


def is_multi_year_query(query: str) -> bool:
    """True for explicit "last N years" phrasing with N > 1."""
    timeframe = extract_timeframe(query)
    return (
        timeframe is not None
        and timeframe.kind == "years"
        and (timeframe.count or 0) > 1
    )


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _years_back(latest: int, count: int) -> list[int]:
    count = min(count, latest - EARLIEST_FISCAL_YEAR + 1)
    return [latest - offset for offset in range(count)]
