# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# These models define the shape of data coming OUT of the API. Internal
# values (selection dataclasses, agent state) are mapped onto them in the
# route handlers, so internals can change without breaking clients.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response for GET /health — confirms the API is running."""

    status: str = "ok"
    version: str
    service: str


class ReportResponse(BaseModel):
    """Metadata for one uploaded report."""

    id: str
    filename: str
    original_name: str
    company: str | None
    year: int | None
    quarter: int | None
    document_type: str
    page_count: int | None
    upload_date: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ReportListResponse(BaseModel):
    """Response for GET /reports."""

    reports: list[ReportResponse]
    companies: list[str] = Field(description="Companies present in the catalog")
    total: int


class SelectionResponse(BaseModel):
    """
    Response for POST /select — the selected and dropped reports, with the
    reasons behind every decision.
    """

    selected: list[ReportResponse]
    dropped: list[ReportResponse]
    total_score: int = Field(description="Sum of selected scores (call-local, unbounded)")
    total_pages: int = Field(description="Pages of the selected reports")
    max_pages: int
    strategy: str = Field(description="Strategy that produced the selection")
    selection_reasons: list[str]


class AskResponse(BaseModel):
    """Response for POST /ask — the answer and the selection that fed it."""

    answer: str = Field(description="The generated answer")
    question: str = Field(description="The original question (echoed back)")
    used_files: list[str] = Field(description="Stored filenames of the reports sent to the model")
    model: str = Field(description="LLM model used for generation")
    selection_reasons: list[str]
    retry_reasons: list[str] = Field(
        default_factory=list,
        description="Why the selection was shrunk before analysis, if it was",
    )
    dropped_count: int = Field(description="Candidate reports that were not sent to the model")
