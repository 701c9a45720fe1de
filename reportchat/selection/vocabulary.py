# =============================================================================
# Selection Vocabulary — Bilingual Keyword and Pattern Tables
# =============================================================================
#
# Static data consumed by the interpreter, scorer and context filter.
# Reports come from Borsa Istanbul companies, so every table carries the
# Turkish terms next to the English ones.
#
# DESIGN DECISION: Tables, not if/else chains.
# Adding a locale means extending these tuples; control flow in the
# interpreter/scorer/filter never changes. Tests iterate the tables directly.
#
# All keyword matching is plain substring matching against the lower-cased
# query or filename.
# =============================================================================

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Query Keyword Taxonomy
# ---------------------------------------------------------------------------
# Category order matters only for the order of score reasons.

QUERY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "revenue": ("gelir", "revenue", "hasılat", "satış", "income"),
    "profit": ("kar", "profit", "net kar", "net profit", "kazanç"),
    "loss": ("zarar", "loss", "kayıp"),
    "financial": ("finansal", "financial", "mali", "economic"),
    "quarterly": ("çeyrek", "quarter", "quarterly", "q1", "q2", "q3", "q4"),
    "annual": ("yıllık", "annual", "yearly", "senelik"),
    "growth": ("büyüme", "growth", "artış", "increase"),
    "comparison": ("karşılaştır", "compare", "vs", "göre", "compared"),
    "trend": ("trend", "eğilim", "değişim", "change"),
    "recent": ("son", "recent", "latest", "güncel", "current"),
    "historical": ("geçmiş", "historical", "önceki", "previous", "eski"),
}

# Vocabulary that marks a question as asking for full-period totals.
ANNUAL_SUMMARY_KEYWORDS: tuple[str, ...] = (
    *QUERY_KEYWORDS["revenue"],
    *QUERY_KEYWORDS["profit"],
    "toplam", "total", "genel", "overall", "summary", "özet",
)

TREND_KEYWORDS: tuple[str, ...] = (
    *QUERY_KEYWORDS["trend"],
    *QUERY_KEYWORDS["growth"],
    *QUERY_KEYWORDS["comparison"],
    "azalış", "decrease",
)

QUARTERLY_KEYWORDS: tuple[str, ...] = QUERY_KEYWORDS["quarterly"]


# ---------------------------------------------------------------------------
# Timeframe Patterns
# ---------------------------------------------------------------------------
# (kind, compiled pattern) — tried in order, first match wins.

TIMEFRAME_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("years", re.compile(r"(?:son|last|past)\s+(\d+)\s+(?:yıl|year|years)", re.IGNORECASE)),
    ("months", re.compile(r"(?:son|last|past)\s+(\d+)\s+(?:ay|month|months)", re.IGNORECASE)),
    ("quarters", re.compile(r"(?:son|last|past)\s+(\d+)\s+(?:çeyrek|quarter|quarters)", re.IGNORECASE)),
    ("year_range", re.compile(r"(\d{4})\s*-\s*(\d{4})")),
    ("single_year", re.compile(r"(\d{4})\s+(?:yılı|year)", re.IGNORECASE)),
)


# ---------------------------------------------------------------------------
# Filename Year Patterns
# ---------------------------------------------------------------------------
# (pattern, extractor) — the extractor maps the match to a year.

FILENAME_YEAR_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(\d{4})-y[ıi]l", re.IGNORECASE), "group1"),
    (re.compile(r"(\d{4})[-_]?y[ıi]l", re.IGNORECASE), "group1"),
    (re.compile(r"3112(20\d{2})"), "group1"),  # 31.12.20XX compacted
    (re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), "group1"),
    (re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})"), "group3"),
    (re.compile(r"(\d{4})"), "group1"),
)


# ---------------------------------------------------------------------------
# Filename Markers
# ---------------------------------------------------------------------------
# Each entry is a tuple of alternatives; a "pair" entry requires both tokens.

YEAR_END_PAIRS: tuple[tuple[str, str], ...] = (
    ("yıl", "sonu"),
    ("year", "end"),
)

YEAR_END_MARKERS: tuple[str, ...] = (
    "annual", "yıllık",
    "31122", "1231",
    "december", "aralık",
)

QUARTER_MARKERS: tuple[str, ...] = (
    "çeyrek", "quarter",
    "q1", "q2", "q3",
    "1.çeyrek", "2.çeyrek", "3.çeyrek",
    "1ceyrek", "2ceyrek", "3ceyrek",
    "03.", "06.", "09.",
)

Q4_MARKERS: tuple[str, ...] = (
    "4.çeyrek", "4ceyrek", "q4", "12.", "december", "aralık",
)

FINANCIAL_FILENAME_MARKERS: tuple[str, ...] = (
    "finansal", "financial", "sonuc", "result",
)

# (markers, bonus) — flat content-score bonuses keyed on the filename.
FILENAME_BONUSES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("sonuc", "result"), 10),
    (("sunum", "presentation"), 8),
    (("finansal", "financial"), 12),
    (("kar", "profit"), 10),
    (("gelir", "revenue"), 10),
)

# (alternatives, bonus) — the bonus applies once if every token of any
# alternative is present.
FILENAME_COMBINED_BONUSES: tuple[tuple[tuple[tuple[str, ...], ...], int], ...] = (
    ((("yıl", "sonu"),), 15),
    ((("31122",), ("1231",)), 15),
    ((("annual", "report"),), 12),
)


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    """True if any keyword is a substring of ``text``."""
    return any(keyword in text for keyword in keywords)


def count_matches(text: str, keywords: tuple[str, ...]) -> int:
    """Number of keywords that occur in ``text``."""
    return sum(1 for keyword in keywords if keyword in text)
