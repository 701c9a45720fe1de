# =============================================================================
# Report Documents — Metadata Model Consumed by the Selector
# =============================================================================
#
# A Document is the metadata of one uploaded PDF report. The selector never
# touches PDF bytes; everything it needs is here.
#
# DESIGN DECISION: Frozen dataclass (not a Pydantic model).
# Documents are internal values passed through a pure pipeline. Pydantic
# models are reserved for the API boundary (reportchat/models/).
#
# Page count: an unknown page count is NOT zero. A zero would let any number
# of documents slip under the page budget, so `Document.pages` falls back to
# DEFAULT_PAGE_COUNT.
# =============================================================================

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from reportchat.selection.vocabulary import (
    FILENAME_YEAR_PATTERNS,
    FINANCIAL_FILENAME_MARKERS,
    QUERY_KEYWORDS,
    contains_any,
)

DEFAULT_PAGE_COUNT = 10

_QUARTER_DIGIT = re.compile(r"[1-4]")


class DocumentType(str, enum.Enum):
    """Closed set of report types."""

    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    PRESENTATION = "presentation"
    FINANCIAL = "financial"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | DocumentType | None) -> DocumentType:
        """
        Coerce stored metadata into a DocumentType.

        Missing values default to QUARTERLY (most uploads are interim
        reports); unrecognised strings become OTHER.
        """
        if isinstance(value, DocumentType):
            return value
        if not value:
            return cls.QUARTERLY
        normalised = value.strip().lower()
        if normalised in ("financial-statement", "financial_statement"):
            return cls.FINANCIAL
        try:
            return cls(normalised)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class Document:
    """Metadata for a single uploaded report."""

    id: str
    filename: str
    original_name: str = ""
    company: str | None = None
    year: int | None = None
    quarter: int | None = None          # None = annual / year-end
    document_type: DocumentType = DocumentType.QUARTERLY
    page_count: int | None = None
    upload_date: datetime | None = None

    @property
    def pages(self) -> int:
        """Page count used for budgeting (never zero)."""
        if self.page_count and self.page_count > 0:
            return self.page_count
        return DEFAULT_PAGE_COUNT

    @property
    def display_name(self) -> str:
        return self.original_name or self.filename

    @classmethod
    def from_metadata(cls, data: dict[str, Any]) -> Document:
        """
        Build a Document from a metadata dict.

        Accepts both the camelCase keys of the upload sidecars
        (``originalName``, ``documentType``, ``pageCount``, ``uploadDate``)
        and snake_case keys.
        """
        upload_date = data.get("uploadDate", data.get("upload_date"))
        if isinstance(upload_date, str):
            upload_date = datetime.fromisoformat(upload_date.replace("Z", "+00:00"))

        year = data.get("year")
        page_count = data.get("pageCount", data.get("page_count"))

        return cls(
            id=str(data["id"]),
            filename=data["filename"],
            original_name=data.get("originalName", data.get("original_name")) or "",
            company=data.get("company"),
            year=int(year) if year not in (None, "") else None,
            quarter=parse_quarter(data.get("quarter")),
            document_type=DocumentType.parse(
                data.get("documentType", data.get("document_type"))
            ),
            page_count=int(page_count) if page_count else None,
            upload_date=upload_date,
        )


# ---------------------------------------------------------------------------
# Metadata Resolution Helpers
# ---------------------------------------------------------------------------


def parse_quarter(value: Any) -> int | None:
    """Normalise 4, "4", "Q4" or "4.çeyrek" to an int in 1..4."""
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value if 1 <= value <= 4 else None
    match = _QUARTER_DIGIT.search(str(value))
    return int(match.group(0)) if match else None


def extract_year_from_filename(filename: str) -> int | None:
    """
    Infer the fiscal year from a report filename.

    Patterns are tried in order (see FILENAME_YEAR_PATTERNS):
        "THYAO_2024-yıl-sonu.pdf"  → 2024
        "finansal_rapor_31122023.pdf" → 2023
        "rapor_30.09.2022.pdf"     → 2022
    """
    for pattern, extractor in FILENAME_YEAR_PATTERNS:
        match = pattern.search(filename)
        if not match:
            continue
        if extractor == "group3":
            return int(match.group(3))
        return int(match.group(1))
    return None


def resolve_year(document: Document) -> int | None:
    """Explicit year metadata wins over the filename."""
    return document.year or extract_year_from_filename(document.filename)


def is_quarterly_report(document: Document) -> bool:
    return document.quarter is not None or contains_any(
        document.filename.lower(), QUERY_KEYWORDS["quarterly"]
    )


def is_annual_report(document: Document) -> bool:
    return document.document_type is DocumentType.ANNUAL or contains_any(
        document.filename.lower(), QUERY_KEYWORDS["annual"]
    )


def is_financial_report(document: Document) -> bool:
    return document.document_type is DocumentType.FINANCIAL or contains_any(
        document.filename.lower(), FINANCIAL_FILENAME_MARKERS
    )


def is_year_end(document: Document) -> bool:
    """Q4 or full-year report."""
    return document.quarter == 4 or is_annual_report(document)
