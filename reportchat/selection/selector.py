# =============================================================================
# Budgeted Selector — Greedy Document Selection Under a Page Budget
# =============================================================================
#
# The model provider caps the number of PDF pages per request, so the
# selector has to pick the most useful subset of reports whose page counts
# sum to at most `max_pages`.
#
# PIPELINE:
#   1. Context filter (interpreter + filters.py). If it rejects everything,
#      rerun on the unfiltered pool — never return nothing just because the
#      filter was too strict.
#   2. Score (scorer.py) + context bonus:
#        +25  annual_summary question and a Q4/annual document
#        +15  document year inside the relevant-years window
#   3. Stable sort, highest score first.
#   4a. Multi-year trend path (trend_analysis + "last N years", N > 1):
#        best document per required year first, then fill the remaining
#        budget by score. Year coverage before depth.
#   4b. Standard path: one pass over the sorted list, admitting whatever
#        still fits. Each admitted document earns a +10 quarter-diversity
#        bonus when its quarter is new to the selection.
#
# OUTPUT INVARIANTS:
#   - total pages of `selected` <= max_pages
#   - `selected` and `dropped` partition the input (by position, so two
#     records with the same id are still tracked separately)
#   - every admit/skip/filter decision leaves a reason string
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from reportchat.selection.clock import Clock
from reportchat.selection.documents import Document, is_year_end, resolve_year
from reportchat.selection.filters import in_year_window, should_include
from reportchat.selection.interpreter import (
    InformationType,
    QueryContext,
    interpret,
    relevant_years,
)
from reportchat.selection.scorer import score

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 100

ANNUAL_CONTEXT_BONUS = 25
TIMEFRAME_CONTEXT_BONUS = 15
QUARTER_DIVERSITY_BONUS = 10


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentScore:
    """A document with its ranking score and the reasons behind it."""

    document: Document
    score: int
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class SelectionResult:
    """
    Outcome of one selection call.

    `selection_reasons` is ordered: context summary first, then one line
    per decision, then the page total.
    """

    selected: tuple[Document, ...]
    total_score: int
    selection_reasons: tuple[str, ...]
    dropped: tuple[Document, ...]
    total_pages: int = 0
    strategy: str = "context"

    def with_leading_reasons(self, *reasons: str) -> SelectionResult:
        return replace(self, selection_reasons=(*reasons, *self.selection_reasons))


@dataclass
class _Ranked:
    position: int
    candidate: DocumentScore


@dataclass
class _Accumulator:
    """Mutable working state of a single selection pass."""

    max_pages: int
    positions: list[int] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    total_score: int = 0
    total_pages: int = 0

    def contains(self, ranked: _Ranked) -> bool:
        return ranked.position in self.positions

    def fits(self, document: Document) -> bool:
        return self.total_pages + document.pages <= self.max_pages

    def admit(self, ranked: _Ranked, points: int, reasons: Iterable[str]) -> None:
        document = ranked.candidate.document
        self.positions.append(ranked.position)
        self.documents.append(document)
        self.total_score += points
        self.total_pages += document.pages
        self.reasons.append(
            f"{document.display_name}: {points} points "
            f"({', '.join([*reasons, f'{document.pages} pages'])})"
        )
        logger.debug(
            "Selected %s (%d pages) - total pages %d/%d",
            document.display_name, document.pages,
            self.total_pages, self.max_pages,
        )

    def skip_for_budget(self, ranked: _Ranked, label: str = "") -> None:
        document = ranked.candidate.document
        self.reasons.append(
            f"Skipped {label}{document.display_name} ({document.pages} pages): "
            f"would exceed page limit "
            f"({self.total_pages + document.pages}/{self.max_pages})"
        )
        logger.debug(
            "Skipping %s (%d pages) - would exceed page limit",
            document.display_name, document.pages,
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def select(
    documents: Sequence[Document],
    query: str,
    max_pages: int = DEFAULT_MAX_PAGES,
    clock: Clock | None = None,
) -> SelectionResult:
    """
    Context-aware selection: filter, score with context bonuses, then take
    the multi-year or standard path.
    """
    return _select_in_context(documents, query, max_pages, clock, force_year_coverage=False)


def select_multi_year(
    documents: Sequence[Document],
    query: str,
    max_pages: int = DEFAULT_MAX_PAGES,
    clock: Clock | None = None,
) -> SelectionResult:
    """
    Year-coverage selection regardless of the information type: one
    document per relevant year first, then the rest of the budget by score.
    """
    result = _select_in_context(documents, query, max_pages, clock, force_year_coverage=True)
    if result.strategy != "context":
        return result
    return replace(result, strategy="multi_year")


def select_with_page_limit(
    documents: Sequence[Document],
    query: str,
    max_pages: int = DEFAULT_MAX_PAGES,
    clock: Clock | None = None,
) -> SelectionResult:
    """Plain score-then-pack selection with no context filter or bonus."""
    _check_budget(max_pages)
    documents = list(documents)

    ranked = _rank(
        _Ranked(position, _base_score(document, query, clock))
        for position, document in enumerate(documents)
    )
    accumulator = _Accumulator(max_pages=max_pages)
    _fill_standard(accumulator, ranked)
    return _finish(documents, accumulator, strategy="page_limit")


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _select_in_context(
    documents: Sequence[Document],
    query: str,
    max_pages: int,
    clock: Clock | None,
    force_year_coverage: bool,
) -> SelectionResult:
    _check_budget(max_pages)
    documents = list(documents)
    context = interpret(query)
    context_line = f"Query context: {context.describe()}"

    logger.info(
        "Selecting documents: query='%s', candidates=%d, max_pages=%d, context=%s",
        query[:80], len(documents), max_pages, context.describe(),
    )

    if not documents:
        return SelectionResult(
            selected=(),
            total_score=0,
            selection_reasons=(context_line, "No documents available", f"Total pages used: 0/{max_pages}"),
            dropped=(),
            total_pages=0,
        )

    years = relevant_years(context.timeframe, clock)
    year_set = frozenset(years)

    kept: list[tuple[int, Document]] = []
    filter_reasons: list[str] = []
    for position, document in enumerate(documents):
        if should_include(document, context, clock, year_set):
            kept.append((position, document))
        else:
            filter_reasons.append(_filter_reason(document, context, year_set))

    if not kept:
        logger.warning(
            "Context filter rejected all %d documents; selecting from the unfiltered set",
            len(documents),
        )
        fallback = select_with_page_limit(documents, query, max_pages, clock)
        return fallback.with_leading_reasons(
            context_line,
            f"Pre-filtering: 0/{len(documents)} documents passed context analysis, "
            f"falling back to unfiltered selection",
        )

    ranked = _rank(
        _Ranked(position, _context_score(document, query, context, year_set, clock))
        for position, document in kept
    )

    accumulator = _Accumulator(max_pages=max_pages)
    if force_year_coverage or _is_multi_year_trend(context):
        logger.info("Multi-year selection: required years %s", years)
        _fill_year_coverage(accumulator, ranked, years)
    else:
        _fill_standard(accumulator, ranked)

    result = _finish(documents, accumulator, strategy="context")

    logger.info(
        "Context filtering eliminated %d of %d documents",
        len(documents) - len(kept), len(documents),
    )

    return replace(
        result,
        selection_reasons=(
            context_line,
            f"Pre-filtering: {len(kept)}/{len(documents)} documents passed context analysis",
            *filter_reasons,
            *result.selection_reasons,
        ),
    )


def _fill_standard(accumulator: _Accumulator, ranked: list[_Ranked]) -> None:
    for entry in ranked:
        document = entry.candidate.document
        if not accumulator.fits(document):
            accumulator.skip_for_budget(entry)
            continue

        represented = {d.quarter for d in accumulator.documents if d.quarter is not None}
        reasons = list(entry.candidate.reasons)
        points = entry.candidate.score
        if document.quarter is not None and document.quarter not in represented:
            points += QUARTER_DIVERSITY_BONUS
            reasons.append("Adds quarter diversity")

        accumulator.admit(entry, points, reasons)


def _fill_year_coverage(
    accumulator: _Accumulator,
    ranked: list[_Ranked],
    required_years: list[int],
) -> None:
    by_year: dict[int, list[_Ranked]] = {}
    for entry in ranked:
        year = resolve_year(entry.candidate.document)
        if year:
            by_year.setdefault(year, []).append(entry)

    for year in required_years:
        candidates = by_year.get(year)
        if not candidates:
            accumulator.reasons.append(f"No documents found for required year {year}")
            logger.info("No documents found for required year %d", year)
            continue

        # `ranked` is sorted, so the first entry per year is its best.
        best = candidates[0]
        if accumulator.fits(best.candidate.document):
            accumulator.admit(
                best, best.candidate.score,
                [*best.candidate.reasons, f"Best {year} document"],
            )
        else:
            accumulator.skip_for_budget(best, label=f"{year} document ")
            logger.info("Cannot fit best %d document within the page limit", year)

    for entry in ranked:
        if accumulator.contains(entry):
            continue
        if not accumulator.fits(entry.candidate.document):
            accumulator.skip_for_budget(entry)
            continue
        accumulator.admit(
            entry, entry.candidate.score,
            [*entry.candidate.reasons, "Additional context"],
        )


def _finish(
    documents: list[Document],
    accumulator: _Accumulator,
    strategy: str,
) -> SelectionResult:
    chosen = set(accumulator.positions)
    dropped = tuple(
        document for position, document in enumerate(documents)
        if position not in chosen
    )

    logger.info(
        "Final selection (%s): %d documents, %d/%d pages, %d dropped",
        strategy, len(accumulator.documents), accumulator.total_pages,
        accumulator.max_pages, len(dropped),
    )

    return SelectionResult(
        selected=tuple(accumulator.documents),
        total_score=accumulator.total_score,
        selection_reasons=(
            *accumulator.reasons,
            f"Total pages used: {accumulator.total_pages}/{accumulator.max_pages}",
        ),
        dropped=dropped,
        total_pages=accumulator.total_pages,
        strategy=strategy,
    )


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _check_budget(max_pages: int) -> None:
    if isinstance(max_pages, bool) or not isinstance(max_pages, int) or max_pages <= 0:
        raise ValueError(f"max_pages must be a positive integer, got {max_pages!r}")


def _rank(entries: Iterable[_Ranked]) -> list[_Ranked]:
    # sorted() is stable: ties keep input order.
    return sorted(entries, key=lambda entry: entry.candidate.score, reverse=True)


def _is_multi_year_trend(context: QueryContext) -> bool:
    timeframe = context.timeframe
    return (
        context.information_type is InformationType.TREND_ANALYSIS
        and timeframe is not None
        and timeframe.kind == "years"
        and (timeframe.count or 0) > 1
    )


def _base_score(document: Document, query: str, clock: Clock | None) -> DocumentScore:
    breakdown = score(document, query, clock)
    return DocumentScore(document=document, score=breakdown.total, reasons=breakdown.reasons)


def _context_score(
    document: Document,
    query: str,
    context: QueryContext,
    years: frozenset[int],
    clock: Clock | None,
) -> DocumentScore:
    breakdown = score(document, query, clock)

    bonus = 0
    if context.information_type is InformationType.ANNUAL_SUMMARY and is_year_end(document):
        bonus += ANNUAL_CONTEXT_BONUS
    year = resolve_year(document)
    if year and year in years:
        bonus += TIMEFRAME_CONTEXT_BONUS

    reasons = breakdown.reasons
    if bonus:
        reasons = (*reasons, f"Context match bonus (+{bonus})")

    return DocumentScore(document=document, score=breakdown.total + bonus, reasons=reasons)


def _filter_reason(document: Document, context: QueryContext, years: frozenset[int]) -> str:
    if not in_year_window(document, context, years=years):
        return (
            f"Filtered out {document.display_name}: "
            f"year {resolve_year(document)} outside the query timeframe"
        )
    return f"Filtered out {document.display_name}: not a year-end report"
