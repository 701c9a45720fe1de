# =============================================================================
# LangGraph Orchestrator — Agent Graph Assembly
# =============================================================================
#
# Wires report loading, document selection and analysis into a LangGraph
# StateGraph.
#
# GRAPH TOPOLOGY:
#   START ──▶ load ──▶ select ──▶ analyse ──▶ END
#
# DESIGN DECISION: Linear graph (no conditional edges).
# Degraded paths (LLM selection → algorithmic selection, oversized payload →
# smaller selection) live INSIDE the select and analyse nodes, in
# agents/fallback.py, where they can be tested without a graph.
#
# DESIGN DECISION: Plain TypedDict state (not MessagesState).
# Each question is independent; there is no chat history to manage.
#
# Collaborators (LLM providers, catalog, clock) can be injected through the
# state; when absent the module singletons are used.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from reportchat.agents.analyst import AnalysisResult, analyse
from reportchat.agents.fallback import analyse_with_retry, select_with_fallback
from reportchat.selection.clock import Clock
from reportchat.selection.documents import Document
from reportchat.selection.selector import SelectionResult
from reportchat.services.catalog import ReportCatalog, get_catalog
from reportchat.services.llm import LLMProvider, get_llm_provider

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Agent State Schema
# ---------------------------------------------------------------------------


class AgentState(TypedDict, total=False):
    """
    State that flows through the LangGraph graph.

    Uses total=False so nodes only need to return the keys they update.
    """

    # --- Input (set by caller) ---
    question: str
    company: str | None
    context: str | None
    max_pages: int | None
    strategy: str | None

    # --- Collaborator injection ---
    # NOTE: Not JSON-serialisable. Safe as long as no checkpointer is
    # configured on the graph.
    llm_override: LLMProvider | None
    selector_override: LLMProvider | None
    catalog: ReportCatalog | None
    clock: Clock | None

    # --- Intermediate (set by nodes) ---
    documents: list[Document]
    selection: SelectionResult
    analysis_result: AnalysisResult | None

    # --- Output (set by analyse node) ---
    answer: str
    used_files: list[str]
    selection_reasons: list[str]
    retry_reasons: list[str]
    dropped_count: int
    model: str
    input_tokens: int
    output_tokens: int


# ---------------------------------------------------------------------------
# Node Functions
# ---------------------------------------------------------------------------


async def load_node(state: AgentState) -> dict:
    """List the candidate reports (optionally for one company)."""
    catalog = state.get("catalog") or get_catalog()
    documents = catalog.list_reports(state.get("company"))
    logger.info("Loaded %d candidate reports", len(documents))
    return {"documents": documents}


async def select_node(state: AgentState) -> dict:
    """Pick the reports to send, with the selection fallback ladder."""
    selection = await select_with_fallback(
        documents=state.get("documents", []),
        query=state["question"],
        max_pages=state.get("max_pages"),
        llm=state.get("selector_override"),
        strategy=state.get("strategy"),
        clock=state.get("clock"),
    )
    return {
        "selection": selection,
        "selection_reasons": list(selection.selection_reasons),
        "dropped_count": len(selection.dropped),
    }


async def analyse_node(state: AgentState) -> dict:
    """Answer from the selected reports, shrinking the selection if too large."""
    llm = state.get("llm_override") or get_llm_provider()
    catalog = state.get("catalog") or get_catalog()
    selection: SelectionResult = state["selection"]

    async def run(documents: list[Document]) -> AnalysisResult:
        return await analyse(
            question=state["question"],
            documents=documents,
            llm=llm,
            load_bytes=catalog.read_report_bytes,
            context=state.get("context"),
        )

    outcome = await analyse_with_retry(list(selection.selected), run)
    result: AnalysisResult = outcome.result

    # Reports cut by the payload ladder or missing on disk count as dropped.
    candidates = len(selection.selected) + len(selection.dropped)
    dropped_count = candidates - len(result.used_files)
    if dropped_count != len(selection.dropped):
        logger.info(
            "Sent %d of %d selected reports to the model",
            len(result.used_files), len(selection.selected),
        )

    return {
        "analysis_result": result,
        "answer": result.answer,
        "used_files": result.used_files,
        "retry_reasons": outcome.retry_reasons,
        "dropped_count": dropped_count,
        "model": result.model,
        "input_tokens": result.input_tokens,
        "output_tokens": result.output_tokens,
    }


# ---------------------------------------------------------------------------
# Graph Assembly
# ---------------------------------------------------------------------------

_builder = StateGraph(AgentState)
_builder.add_node("load", load_node)
_builder.add_node("select", select_node)
_builder.add_node("analyse", analyse_node)

_builder.add_edge(START, "load")
_builder.add_edge("load", "select")
_builder.add_edge("select", "analyse")
_builder.add_edge("analyse", END)

graph = _builder.compile()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def ask(
    question: str,
    company: str | None = None,
    context: str | None = None,
    max_pages: int | None = None,
    strategy: str | None = None,
    llm: LLMProvider | None = None,
    selector_llm: LLMProvider | None = None,
    catalog: ReportCatalog | None = None,
    clock: Clock | None = None,
) -> AgentState:
    """
    Entry point: invoke the agent graph and return the final state.

    Args:
        question: The user's question.
        company: Restrict candidates to one company.
        context: Optional extra context passed to the analyst.
        max_pages: Page budget (default from settings).
        strategy: "algorithmic" or "llm" selection (default from settings).
        llm: Analysis provider override.
        selector_llm: Selector provider override (strategy="llm").
        catalog: Report catalog override.
        clock: Clock override for selection.
    """
    initial_state: AgentState = {
        "question": question,
        "company": company,
        "context": context,
        "max_pages": max_pages,
        "strategy": strategy,
    }
    overrides: dict[str, Any] = {
        "llm_override": llm,
        "selector_override": selector_llm,
        "catalog": catalog,
        "clock": clock,
    }
    initial_state.update({k: v for k, v in overrides.items() if v is not None})

    logger.info(
        "Invoking agent graph: question='%s', company=%s, strategy=%s",
        question[:80], company, strategy,
    )

    result = await graph.ainvoke(initial_state)

    logger.info(
        "Agent graph complete: model=%s, used_files=%d",
        result.get("model", "n/a"),
        len(result.get("used_files", [])),
    )

    return result
