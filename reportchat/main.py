# =============================================================================
# FastAPI Application
# =============================================================================
#
# Run locally:
#   uvicorn reportchat.main:app --reload
# =============================================================================

import logging

from fastapi import FastAPI

from reportchat.api.ask import router as ask_router
from reportchat.api.reports import router as reports_router
from reportchat.config import settings
from reportchat.models.responses import HealthResponse

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
)

app.include_router(ask_router)
app.include_router(reports_router)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(version=settings.app_version, service=settings.app_name)
