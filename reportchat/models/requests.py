# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# These models define the shape of data coming INTO the API. FastAPI uses
# them for request validation (automatic 422s) and OpenAPI docs.
# =============================================================================

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SelectRequest(BaseModel):
    """
    Request body for POST /select — preview which reports a question uses.

    Example:
        {
            "question": "son 3 yıl gelir",
            "company": "THYAO",
            "max_pages": 100
        }
    """

    question: str = Field(
        ...,
        min_length=3,
        max_length=2000,
        description="The question the reports will be selected for",
        examples=["What was revenue over the last 3 years?"],
    )

    company: str | None = Field(
        default=None,
        description="Restrict candidates to one company code. If omitted, all companies.",
        examples=["THYAO"],
    )

    # Positive page budget; the provider limit is 100 pages per request.
    max_pages: int | None = Field(
        default=None,
        gt=0,
        le=1000,
        description="Page budget. Defaults to the configured provider limit.",
    )

    strategy: Literal["algorithmic", "llm"] | None = Field(
        default=None,
        description=(
            "Selection strategy. 'algorithmic' scores and packs reports; "
            "'llm' lets a model choose, with algorithmic fallbacks. "
            "Defaults to the configured strategy."
        ),
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"question": "son 3 yıl gelir", "company": "THYAO", "max_pages": 100},
                {"question": "What was Q2 2023 performance?", "strategy": "llm"},
            ]
        }
    )


class AskRequest(SelectRequest):
    """
    Request body for POST /ask — answer a question from uploaded reports.

    Same selection fields as /select, plus optional free-text context that
    is passed to the analyst.
    """

    context: str | None = Field(
        default=None,
        max_length=4000,
        description="Additional context for the analysis (optional)",
    )
