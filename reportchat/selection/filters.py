# =============================================================================
# Context Filter — Pre-Selection Inclusion Predicate
# =============================================================================
#
# Runs before scoring and drops documents that clearly do not belong to the
# question:
#
#   Step 1 — year window: a document whose (resolved) year is outside the
#            relevant years of the timeframe is rejected. Unknown year → kept.
#   Step 2 — annual-summary strictness (annual_summary only). Checked in
#            priority order:
#              a. filename says year-end            → include
#              b. filename has Q1–Q3 markers        → include only if Q4 too
#              c. quarter metadata present          → include only if 4
#              d. classified as an annual report    → include
#              e. anything else                     → reject
# =============================================================================

from __future__ import annotations

from reportchat.selection.clock import Clock
from reportchat.selection.documents import Document, is_annual_report, resolve_year
from reportchat.selection.interpreter import InformationType, QueryContext, relevant_years
from reportchat.selection.vocabulary import (
    Q4_MARKERS,
    QUARTER_MARKERS,
    YEAR_END_MARKERS,
    YEAR_END_PAIRS,
    contains_any,
)


def is_year_end_filename(filename: str) -> bool:
    lower = filename.lower()
    if any(first in lower and second in lower for first, second in YEAR_END_PAIRS):
        return True
    return contains_any(lower, YEAR_END_MARKERS)


def in_year_window(
    document: Document,
    context: QueryContext,
    clock: Clock | None = None,
    years: frozenset[int] | None = None,
) -> bool:
    year = resolve_year(document)
    if years is None:
        years = frozenset(relevant_years(context.timeframe, clock))
    return not (year and years and year not in years)


def passes_annual_summary(document: Document) -> bool:
    filename = document.filename.lower()

    if is_year_end_filename(filename):
        return True

    if contains_any(filename, QUARTER_MARKERS):
        return contains_any(filename, Q4_MARKERS)

    if document.quarter is not None:
        return document.quarter == 4

    return is_annual_report(document)


def should_include(
    document: Document,
    context: QueryContext,
    clock: Clock | None = None,
    years: frozenset[int] | None = None,
) -> bool:
    """Context filter predicate for one document.

    Pass ``years`` when filtering many documents against one context so the
    window is computed once.
    """
    if not in_year_window(document, context, clock, years):
        return False

    if context.information_type is InformationType.ANNUAL_SUMMARY:
        return passes_annual_summary(document)

    return True
