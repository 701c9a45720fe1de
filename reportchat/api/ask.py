# =============================================================================
# Ask API — Report Q&A Endpoint
# =============================================================================
#
# Provides the POST /ask endpoint that invokes the LangGraph agent graph
# (load → select → analyse) to answer a question from uploaded reports.
#
# This endpoint is thin: request validation, error mapping and response
# mapping. Selection and retry logic live in the agents package.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from reportchat.agents.fallback import ContentTooLargeError, SelectionFailedError
from reportchat.agents.orchestrator import ask
from reportchat.models.requests import AskRequest
from reportchat.models.responses import AskResponse
from reportchat.services.catalog import get_catalog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Question Answering"])


@router.post(
    "/ask",
    response_model=AskResponse,
    summary="Ask a question about uploaded financial reports",
    description=(
        "Selects the most relevant reports within the page budget and "
        "answers the question from them."
    ),
)
async def ask_endpoint(request: AskRequest) -> AskResponse:
    """
    Error handling:
    - No reports uploaded → 400 Bad Request
    - Selection still too large after shrinking → 413 Payload Too Large
    - Missing API key → 503 Service Unavailable
    - Other LLM/selection errors → 502 Bad Gateway
    """
    catalog = get_catalog()
    if not catalog.list_reports(request.company):
        raise HTTPException(status_code=400, detail="No PDF files available for analysis")

    logger.info(
        "Ask request: question='%s', company=%s, strategy=%s",
        request.question[:80], request.company, request.strategy,
    )

    try:
        result = await ask(
            question=request.question,
            company=request.company,
            context=request.context,
            max_pages=request.max_pages,
            strategy=request.strategy,
            catalog=catalog,
        )
    except ContentTooLargeError as e:
        logger.error("Content too large for analysis: %s", e)
        raise HTTPException(
            status_code=413,
            detail="Content too large for analysis. Try a narrower question.",
        ) from e
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise HTTPException(
            status_code=503,
            detail=f"Service configuration error: {e}",
        ) from e
    except SelectionFailedError as e:
        logger.error("Selection failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e
    except Exception as e:
        logger.exception("Agent graph failed: %s", e)
        raise HTTPException(
            status_code=502,
            detail=f"LLM service error: {e}",
        ) from e

    return AskResponse(
        answer=result.get("answer", "No answer generated."),
        question=request.question,
        used_files=result.get("used_files", []),
        model=result.get("model", "unknown"),
        selection_reasons=result.get("selection_reasons", []),
        retry_reasons=result.get("retry_reasons", []),
        dropped_count=result.get("dropped_count", 0),
    )
