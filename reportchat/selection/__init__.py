# =============================================================================
# Selection Package — Document Relevance Selection
# =============================================================================
# Decides which uploaded reports are forwarded to the LLM for a question:
#   - vocabulary.py: bilingual keyword and pattern tables
#   - clock.py: injectable "now" (temporal scoring, default timeframe)
#   - documents.py: Document metadata model + year/type resolution
#   - interpreter.py: question → QueryContext (timeframe, information type)
#   - scorer.py: temporal / content / type sub-scores
#   - filters.py: context filter (year window, annual-summary strictness)
#   - selector.py: greedy selection under a page budget
#
# Everything here is synchronous and side-effect free apart from logging.
# =============================================================================

from reportchat.selection.clock import Clock, FixedClock, SystemClock
from reportchat.selection.documents import Document, DocumentType
from reportchat.selection.interpreter import (
    InformationType,
    QueryContext,
    Timeframe,
    interpret,
    is_multi_year_query,
    relevant_years,
)
from reportchat.selection.selector import (
    DEFAULT_MAX_PAGES,
    DocumentScore,
    SelectionResult,
    select,
    select_multi_year,
    select_with_page_limit,
)

__all__ = [
    "Clock",
    "DEFAULT_MAX_PAGES",
    "Document",
    "DocumentScore",
    "DocumentType",
    "FixedClock",
    "InformationType",
    "QueryContext",
    "SelectionResult",
    "SystemClock",
    "Timeframe",
    "interpret",
    "is_multi_year_query",
    "relevant_years",
    "select",
    "select_multi_year",
    "select_with_page_limit",
]
