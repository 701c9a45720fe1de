# =============================================================================
# Unit Tests — Budgeted Selector
# =============================================================================
#
# Covers the output guarantees of every selection entry point (page budget,
# partition of the input, determinism) and the worked scenarios from the
# selection design: annual summaries, quarter questions under a tight
# budget, multi-year coverage and the filter fallback.
#
# The clock is pinned to 2025, so "recent" means 2024.
# =============================================================================

from __future__ import annotations

from unittest.mock import patch

import pytest

from reportchat.selection.clock import FixedClock
from reportchat.selection.documents import Document, DocumentType, resolve_year
from reportchat.selection.filters import is_year_end_filename
from reportchat.selection.interpreter import relevant_years
from reportchat.selection.selector import (
    select,
    select_multi_year,
    select_with_page_limit,
)

CLOCK = FixedClock.for_year(2025)


def _doc(filename, year=None, quarter=None, pages=10, **kwargs) -> Document:
    return Document(
        id=filename,
        filename=filename,
        year=year,
        quarter=quarter,
        page_count=pages,
        **kwargs,
    )


def _pool() -> list[Document]:
    """A mixed catalog used for the invariant checks."""
    return [
        _doc("THYAO_2024_Q4.pdf", 2024, 4, 40),
        _doc("THYAO_2024_Q1.pdf", 2024, 1, 25),
        _doc("THYAO_2023_Q4.pdf", 2023, 4, 35),
        _doc("THYAO_2023_Q2.pdf", 2023, 2, 30),
        _doc("THYAO_2022_yıl_sonu.pdf", 2022, None, 50, document_type=DocumentType.ANNUAL),
        _doc("THYAO_sunum_2024.pdf", 2024, None, 15, document_type=DocumentType.PRESENTATION),
        _doc("report.pdf", None, None, None),
        _doc("THYAO_2019_Q4.pdf", 2019, 4, 20),
    ]


QUERIES = [
    "son 3 yıl gelir",
    "growth over the last 3 years",
    "what was Q2 2023 performance",
    "tell me something",
    "2022 yılı kar",
]


# ---------------------------------------------------------------------------
# Test: Output Invariants
# ---------------------------------------------------------------------------


class TestSelectionInvariants:
    """Guarantees that hold for every query, pool and budget."""

    @pytest.mark.parametrize("select_fn", [select, select_multi_year, select_with_page_limit])
    @pytest.mark.parametrize("query", QUERIES)
    @pytest.mark.parametrize("max_pages", [10, 45, 100, 500])
    def test_budget_and_partition(self, select_fn, query, max_pages):
        pool = _pool()
        result = select_fn(pool, query, max_pages, CLOCK)

        assert sum(d.pages for d in result.selected) <= max_pages
        assert result.total_pages == sum(d.pages for d in result.selected)
        assert sorted(d.id for d in (*result.selected, *result.dropped)) == sorted(
            d.id for d in pool
        )
        assert result.selection_reasons[-1] == f"Total pages used: {result.total_pages}/{max_pages}"

    @pytest.mark.parametrize("query", QUERIES)
    def test_deterministic(self, query):
        assert select(_pool(), query, 100, CLOCK) == select(_pool(), query, 100, CLOCK)

    def test_duplicate_records_are_tracked_separately(self):
        twin = _doc("THYAO_2024_Q4.pdf", 2024, 4, 10)
        result = select([twin, twin, twin], "tell me something", 20, CLOCK)

        assert len(result.selected) == 2
        assert len(result.dropped) == 1

    def test_unknown_page_count_is_budgeted_at_default(self):
        pool = [_doc(f"THYAO_2024_{i}.pdf", 2024, pages=None) for i in range(3)]
        result = select(pool, "tell me something", 25, CLOCK)

        assert len(result.selected) == 2
        assert result.total_pages == 20

    @pytest.mark.parametrize("max_pages", [0, -5, True, 1.5, "100"])
    def test_invalid_budget_raises(self, max_pages):
        with pytest.raises(ValueError, match="max_pages"):
            select(_pool(), "tell me something", max_pages, CLOCK)

    def test_score_orders_before_size(self):
        small = _doc("THYAO_brochure_2024.pdf", 2024, pages=10, document_type=DocumentType.OTHER)
        large = _doc("THYAO_2024.pdf", 2024, pages=95, document_type=DocumentType.ANNUAL)

        result = select([small, large], "tell me something", 100, CLOCK)

        assert result.selected == (large,)
        assert result.dropped == (small,)
        assert any("would exceed page limit (105/100)" in r for r in result.selection_reasons)

    @pytest.mark.parametrize("select_fn", [select, select_multi_year])
    def test_enormous_year_count_stays_bounded(self, select_fn):
        pool = _pool()
        result = select_fn(pool, "growth over the last 3000000000 years", 100, CLOCK)

        assert result.total_pages <= 100
        assert len(result.selected) + len(result.dropped) == len(pool)
        assert "No documents found for required year 1900" in result.selection_reasons

    def test_year_window_is_computed_once_per_selection(self):
        with patch(
            "reportchat.selection.filters.relevant_years", wraps=relevant_years,
        ) as per_document, patch(
            "reportchat.selection.selector.relevant_years", wraps=relevant_years,
        ) as per_selection:
            select(_pool(), "son 3 yıl gelir", 100, CLOCK)

        per_document.assert_not_called()
        assert per_selection.call_count == 1


# ---------------------------------------------------------------------------
# Test: Worked Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_annual_summary_uses_year_end_reports_only(self):
        q4s = [_doc(f"THYAO_{year}_Q4.pdf", year, 4) for year in (2024, 2023, 2022)]
        interim = _doc("THYAO_2024_Q1.pdf", 2024, 1)

        result = select([*q4s, interim], "son 3 yıl gelir", 100, CLOCK)

        assert set(result.selected) == set(q4s)
        assert result.dropped == (interim,)
        assert result.selection_reasons[0] == "Query context: annual_summary (years: 3)"
        assert result.selection_reasons[1] == "Pre-filtering: 3/4 documents passed context analysis"
        assert "Filtered out THYAO_2024_Q1.pdf: not a year-end report" in result.selection_reasons

    def test_quarter_question_under_tight_budget(self):
        q2 = _doc("THYAO_2023_Q2.pdf", 2023, 2, 30)
        q4 = _doc("THYAO_2023_Q4.pdf", 2023, 4, 20)

        result = select([q2, q4], "what was Q2 2023 performance", 25, CLOCK)

        assert result.selected == (q4,)
        assert result.total_pages == 20
        assert any(
            r.startswith("Skipped THYAO_2023_Q2.pdf (30 pages)")
            for r in result.selection_reasons
        )

    def test_budget_fills_greedily(self):
        pool = [_doc(f"THYAO_2024_{i}.pdf", 2024, pages=15) for i in range(10)]

        result = select(pool, "tell me something", 100, CLOCK)

        assert len(result.selected) == 6
        assert result.total_pages == 90
        assert len(result.dropped) == 4
        skipped = [r for r in result.selection_reasons if "would exceed page limit (105/100)" in r]
        assert len(skipped) == 4

    def test_empty_pool(self):
        result = select([], "anything", 100, CLOCK)

        assert result.selected == ()
        assert result.dropped == ()
        assert result.total_pages == 0
        assert result.total_score == 0

    def test_general_question_keeps_interim_reports(self):
        q1 = _doc("THYAO_2024_Q1.pdf", 2024, 1)
        result = select([q1], "tell me something", 100, CLOCK)
        assert result.selected == (q1,)


# ---------------------------------------------------------------------------
# Test: Annual Summary Exclusivity
# ---------------------------------------------------------------------------


class TestAnnualSummary:
    def test_interim_reports_never_selected_when_filter_passes_something(self):
        pool = [
            _doc("finansal_sonuc_q1_2024.pdf", 2024, 1, 5),
            _doc("THYAO_2024_Q4.pdf", 2024, 4, 30),
            _doc("THYAO_2023.pdf", 2023, 2, 10),
        ]

        result = select(pool, "last 2 years total profit", 100, CLOCK)

        assert [d.filename for d in result.selected] == ["THYAO_2024_Q4.pdf"]
        for document in result.selected:
            assert document.quarter == 4 or is_year_end_filename(document.filename)

    def test_year_end_bonus_reported(self):
        result = select([_doc("THYAO_2024_Q4.pdf", 2024, 4)], "son 2 yıl gelir", 100, CLOCK)
        assert any("Context match bonus (+40)" in r for r in result.selection_reasons)

    def test_filter_rejecting_everything_falls_back_to_unfiltered(self):
        pool = [_doc("THYAO_2024_Q1.pdf", 2024, 1), _doc("THYAO_2024_Q2.pdf", 2024, 2)]

        result = select(pool, "son 2 yıl gelir", 100, CLOCK)

        assert result.strategy == "page_limit"
        assert len(result.selected) == 2
        assert result.selection_reasons[0] == "Query context: annual_summary (years: 2)"
        assert result.selection_reasons[1].startswith("Pre-filtering: 0/2 documents")
        assert "falling back to unfiltered selection" in result.selection_reasons[1]


# ---------------------------------------------------------------------------
# Test: Multi-Year Coverage
# ---------------------------------------------------------------------------


class TestMultiYear:
    def _pool(self) -> list[Document]:
        recent = [
            _doc(f"THYAO_2024_part{i}.pdf", 2024, pages=30, document_type=DocumentType.FINANCIAL)
            for i in range(3)
        ]
        return [
            *recent,
            _doc("THYAO_2023_Q4.pdf", 2023, 4, 30),
            _doc("THYAO_2022_Q4.pdf", 2022, 4, 30),
        ]

    def test_covers_every_required_year_first(self):
        result = select(self._pool(), "growth over the last 3 years", 100, CLOCK)

        assert {resolve_year(d) for d in result.selected} == {2024, 2023, 2022}
        assert "Best 2022 document" in " ".join(result.selection_reasons)

    def test_page_limit_alone_goes_deep_on_one_year(self):
        result = select_with_page_limit(self._pool(), "growth over the last 3 years", 100, CLOCK)
        assert {resolve_year(d) for d in result.selected} == {2024}

    def test_missing_year_is_reported(self):
        result = select(self._pool(), "growth over the last 4 years", 200, CLOCK)

        assert "No documents found for required year 2021" in result.selection_reasons
        assert len(result.selected) == 5
        assert any("Additional context" in r for r in result.selection_reasons)

    def test_select_multi_year_forces_coverage(self):
        result = select_multi_year(self._pool(), "show me the numbers", 100, CLOCK)

        assert result.strategy == "multi_year"
        assert {resolve_year(d) for d in result.selected} == {2024, 2023}


# ---------------------------------------------------------------------------
# Test: Quarter Diversity
# ---------------------------------------------------------------------------


class TestQuarterDiversity:
    def test_bonus_once_per_quarter(self):
        pool = [
            _doc("THYAO_2024_Q1.pdf", 2024, 1),
            _doc("THYAO_2024_Q2.pdf", 2024, 2),
            _doc("THYAO_2023_Q1.pdf", 2023, 1),
        ]

        result = select(pool, "tell me something", 100, CLOCK)

        bonus_lines = [r for r in result.selection_reasons if "Adds quarter diversity" in r]
        assert len(bonus_lines) == 2
        assert result.strategy == "context"
