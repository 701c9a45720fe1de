# =============================================================================
# Report Catalog — File-System Backed Report Metadata
# =============================================================================
#
# Lists uploaded reports as selection Documents and reads their PDF bytes.
#
# LAYOUT:
#   <upload_dir>/companies/<COMPANY>/<stored-name>.pdf
#   <upload_dir>/companies/<COMPANY>/<stored-name>.pdf.meta.json
#
# The sidecar holds the upload metadata (id, filename, originalName,
# company, year, quarter, documentType, pageCount, uploadDate). The company
# directory name is authoritative for `company`.
#
# A sidecar whose PDF has disappeared, or that cannot be parsed, is logged
# and skipped; one bad upload never hides the rest of the catalog.
#
# Company codes and stored filenames are single path components. Anything
# else (separators, "..", absolute paths) is treated as not found, so no
# lookup leaves <upload_dir>/companies.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path

from reportchat.config import settings
from reportchat.selection.documents import Document

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".meta.json"


class ReportCatalog:
    """Read-only view over the upload directory."""

    def __init__(self, upload_dir: str | Path | None = None) -> None:
        self._companies_dir = Path(upload_dir or settings.upload_dir) / "companies"

    @property
    def companies_dir(self) -> Path:
        return self._companies_dir

    def companies(self) -> list[str]:
        if not self._companies_dir.is_dir():
            return []
        return sorted(p.name for p in self._companies_dir.iterdir() if p.is_dir())

    def list_reports(self, company: str | None = None) -> list[Document]:
        """
        All readable reports, newest upload first.

        Args:
            company: Restrict to one company code (e.g. "THYAO").
        """
        companies = [company] if company else self.companies()
        documents: list[Document] = []

        for code in companies:
            if not _is_plain_name(code):
                logger.warning("Rejected company code outside the catalog: %r", code)
                continue
            company_dir = self._companies_dir / code
            if not company_dir.is_dir():
                logger.info("Company directory does not exist: %s", company_dir)
                continue

            for meta_path in sorted(company_dir.glob(f"*{METADATA_SUFFIX}")):
                document = self._load_sidecar(meta_path, code)
                if document is not None:
                    documents.append(document)

        documents.sort(key=_upload_sort_key, reverse=True)
        logger.info(
            "Catalog listed %d reports (company=%s)", len(documents), company or "all",
        )
        return documents

    def report_path(self, document: Document) -> Path:
        company = document.company or "default"
        if not (_is_plain_name(company) and _is_plain_name(document.filename)):
            raise FileNotFoundError(
                f"Report path outside the catalog: {company}/{document.filename}"
            )
        return self._companies_dir / company / document.filename

    def read_report_bytes(self, document: Document) -> bytes:
        """Raw PDF bytes; raises FileNotFoundError if the file is gone."""
        return self.report_path(document).read_bytes()

    def _load_sidecar(self, meta_path: Path, company: str) -> Document | None:
        try:
            metadata = json.loads(meta_path.read_text(encoding="utf-8"))
            document = Document.from_metadata(metadata)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Metadata could not be read: %s (%s)", meta_path.name, e)
            return None

        if not _is_plain_name(document.filename):
            logger.warning(
                "Metadata %s names a file outside its company directory: %r",
                meta_path.name, document.filename,
            )
            return None

        if not (meta_path.parent / document.filename).is_file():
            logger.warning("PDF file missing for metadata %s", meta_path.name)
            return None

        page_count = document.page_count or settings.default_page_count
        return replace(document, company=company, page_count=page_count)


def _is_plain_name(name: str) -> bool:
    """True for a single relative path component such as "THYAO"."""
    if name in ("", ".", ".."):
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name


def _upload_sort_key(document: Document) -> float:
    if document.upload_date is None:
        return 0.0
    return document.upload_date.timestamp()


# Lazy singleton, mirrors get_llm_provider()
_catalog: ReportCatalog | None = None


def get_catalog() -> ReportCatalog:
    global _catalog
    if _catalog is None:
        _catalog = ReportCatalog()
    return _catalog

