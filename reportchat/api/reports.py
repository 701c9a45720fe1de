# =============================================================================
# Reports API — Catalog Listing and Selection Preview
# =============================================================================
#
#   GET  /reports — list uploaded report metadata (optionally per company)
#   POST /select  — run document selection only, no LLM analysis call
#                   (unless strategy="llm", which calls the selector model)
#
# /select exists so users and developers can see WHY a question would be
# answered from a given set of reports before paying for the analysis call.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from reportchat.agents.fallback import SelectionFailedError, select_with_fallback
from reportchat.config import settings
from reportchat.models.requests import SelectRequest
from reportchat.models.responses import (
    ReportListResponse,
    ReportResponse,
    SelectionResponse,
)
from reportchat.selection.documents import Document
from reportchat.services.catalog import get_catalog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reports"])


def to_report_response(document: Document) -> ReportResponse:
    return ReportResponse(
        id=document.id,
        filename=document.filename,
        original_name=document.display_name,
        company=document.company,
        year=document.year,
        quarter=document.quarter,
        document_type=document.document_type.value,
        page_count=document.page_count,
        upload_date=document.upload_date,
    )


# ---------------------------------------------------------------------------
# GET /reports
# ---------------------------------------------------------------------------


@router.get(
    "/reports",
    response_model=ReportListResponse,
    summary="List uploaded reports",
)
async def list_reports_endpoint(
    company: str | None = Query(default=None, description="Company code filter"),
) -> ReportListResponse:
    catalog = get_catalog()
    documents = catalog.list_reports(company)
    return ReportListResponse(
        reports=[to_report_response(d) for d in documents],
        companies=catalog.companies(),
        total=len(documents),
    )


# ---------------------------------------------------------------------------
# POST /select
# ---------------------------------------------------------------------------


@router.post(
    "/select",
    response_model=SelectionResponse,
    summary="Preview the report selection for a question",
)
async def select_endpoint(request: SelectRequest) -> SelectionResponse:
    """
    Run the selection pipeline and return selected/dropped reports.

    Error handling:
    - All selection strategies failed → 502 Bad Gateway
    """
    max_pages = request.max_pages or settings.max_pages
    documents = get_catalog().list_reports(request.company)

    logger.info(
        "Select request: question='%s', company=%s, candidates=%d",
        request.question[:80], request.company, len(documents),
    )

    try:
        selection = await select_with_fallback(
            documents=documents,
            query=request.question,
            max_pages=max_pages,
            strategy=request.strategy,
        )
    except SelectionFailedError as e:
        logger.error("Selection failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    return SelectionResponse(
        selected=[to_report_response(d) for d in selection.selected],
        dropped=[to_report_response(d) for d in selection.dropped],
        total_score=selection.total_score,
        total_pages=selection.total_pages,
        max_pages=max_pages,
        strategy=selection.strategy,
        selection_reasons=list(selection.selection_reasons),
    )
