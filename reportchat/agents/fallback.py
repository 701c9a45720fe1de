# =============================================================================
# Selection Fallback Chain — Degraded Strategies and Shrinking Retries
# =============================================================================
#
# Two ladders keep a question answerable when something downstream fails.
#
# 1. SELECTION LADDER (select_with_fallback)
#      llm ──(malformed / failed)──▶ multi_year  (query says "last N years")
#                                 └─▶ context     (otherwise)
#      multi_year ──(failed)──▶ context
#      context ──(failed)──▶ SelectionFailedError(attempts)
#    With strategy="algorithmic" the ladder starts at `context`.
#
# 2. PAYLOAD LADDER (analyse_with_retry)
#    State machine: INITIAL → RETRYING(n) → SUCCEEDED | EXHAUSTED
#    On PayloadTooLargeError the document list is cut to its first half
#    (rounded up, so the highest-priority documents survive) and the call
#    is retried. A single document that is still too large ends in
#    ContentTooLargeError. Attempts are bounded by max_analysis_attempts.
#
# Every transition is logged at WARNING and recorded as a reason string.
# Nothing is swallowed silently.
# =============================================================================

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from reportchat.agents.llm_selector import MalformedSelectionError, select_with_llm
from reportchat.config import settings
from reportchat.selection.clock import Clock
from reportchat.selection.documents import Document
from reportchat.selection.interpreter import is_multi_year_query
from reportchat.selection.selector import SelectionResult, select, select_multi_year
from reportchat.services.llm import LLMProvider, PayloadTooLargeError, get_selector_provider

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SelectionFailedError(RuntimeError):
    """Every selection strategy failed."""

    def __init__(self, message: str, attempts: list[str]) -> None:
        super().__init__(f"{message}: {'; '.join(attempts)}")
        self.attempts = attempts


class ContentTooLargeError(RuntimeError):
    """Even the smallest selection exceeds the provider's size limit."""

    def __init__(self, message: str, attempts: list[AnalysisAttempt]) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.state = AnalysisState.EXHAUSTED


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


class AnalysisState(str, enum.Enum):
    INITIAL = "initial"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class AnalysisAttempt:
    """One call in the payload ladder."""

    number: int
    state: AnalysisState      # State the attempt ran in (INITIAL or RETRYING)
    document_count: int
    total_pages: int
    error: str | None = None


@dataclass
class AnalysisOutcome:
    """Result of analyse_with_retry."""

    result: Any
    documents: list[Document]
    state: AnalysisState
    attempts: list[AnalysisAttempt] = field(default_factory=list)

    @property
    def retry_reasons(self) -> list[str]:
        return [
            f"Attempt {a.number} with {a.document_count} documents "
            f"({a.total_pages} pages) failed: {a.error}"
            for a in self.attempts
            if a.error
        ]


# ---------------------------------------------------------------------------
# Selection Ladder
# ---------------------------------------------------------------------------


async def select_with_fallback(
    documents: Sequence[Document],
    query: str,
    max_pages: int | None = None,
    llm: LLMProvider | None = None,
    strategy: str | None = None,
    clock: Clock | None = None,
) -> SelectionResult:
    """
    Select documents with the configured strategy, degrading on failure.

    Args:
        documents: Candidate reports.
        query: The user's question.
        max_pages: Page budget (default from settings).
        llm: Selector model for strategy="llm" (default: selector provider).
        strategy: "algorithmic" or "llm" (default from settings).
        clock: Clock for the algorithmic strategies.

    Raises:
        ValueError: max_pages is not a positive integer.
        SelectionFailedError: No strategy produced a selection.
    """
    max_pages = settings.max_pages if max_pages is None else max_pages
    strategy = strategy or settings.selection_strategy
    if isinstance(max_pages, bool) or not isinstance(max_pages, int) or max_pages <= 0:
        raise ValueError(f"max_pages must be a positive integer, got {max_pages!r}")

    documents = list(documents)
    transitions: list[str] = []
    ladder: list[tuple[str, Callable[..., SelectionResult]]] = [("context", select)]

    if strategy == "llm" and documents:
        try:
            selector_llm = llm or get_selector_provider()
            return await select_with_llm(documents, query, max_pages, selector_llm)
        except MalformedSelectionError as e:
            reason = f"malformed selector response ({e})"
        except Exception as e:
            reason = f"selector call failed ({e})"

        if is_multi_year_query(query):
            ladder.insert(0, ("multi_year", select_multi_year))
        transitions.append(
            f"Fallback: llm selection → {ladder[0][0]} selection: {reason}"
        )
        logger.warning(
            "LLM document selection failed, falling back to %s selection: %s",
            ladder[0][0], reason,
        )

    for position, (name, strategy_fn) in enumerate(ladder):
        try:
            result = strategy_fn(documents, query, max_pages, clock)
        except Exception as e:
            if position == len(ladder) - 1:
                transitions.append(f"{name} selection failed ({e})")
                logger.error("All selection strategies failed: %s", transitions)
                raise SelectionFailedError("Document selection failed", transitions) from e

            next_name = ladder[position + 1][0]
            transitions.append(f"Fallback: {name} selection → {next_name} selection: {e}")
            logger.warning(
                "%s selection failed, falling back to %s selection: %s",
                name, next_name, e,
            )
            continue

        return result.with_leading_reasons(*transitions)

    # Unreachable: the ladder always has at least one strategy.
    raise SelectionFailedError("Document selection failed", transitions)


# ---------------------------------------------------------------------------
# Payload Ladder
# ---------------------------------------------------------------------------


async def analyse_with_retry(
    documents: Sequence[Document],
    analyse_fn: Callable[[list[Document]], Awaitable[Any]],
    max_attempts: int | None = None,
) -> AnalysisOutcome:
    """
    Run `analyse_fn` on the selection, halving it while the provider
    reports the payload as too large.

    `documents` must be in priority order (as returned by the selector);
    the tail is cut first.

    The attempt bound never stops the ladder before it has tried a single
    document: halving n documents down to one takes ceil(log2 n) retries,
    and the bound is raised to that when it is lower.

    Raises:
        ContentTooLargeError: One document alone is still too large.
    """
    current = list(documents)
    max_attempts = max(
        max_attempts or settings.max_analysis_attempts,
        _attempts_to_single(len(current)),
    )
    state = AnalysisState.INITIAL
    attempts: list[AnalysisAttempt] = []

    for number in range(1, max_attempts + 1):
        pages = sum(document.pages for document in current)
        try:
            result = await analyse_fn(current)
        except PayloadTooLargeError as e:
            attempts.append(AnalysisAttempt(
                number=number,
                state=state,
                document_count=len(current),
                total_pages=pages,
                error=str(e),
            ))
            if len(current) <= 1:
                logger.warning(
                    "Payload too large with a single document (%d pages); giving up",
                    pages,
                )
                break

            shrunk = current[: math.ceil(len(current) / 2)]
            logger.warning(
                "Payload too large with %d documents (%d pages); retrying with %d",
                len(current), pages, len(shrunk),
            )
            current = shrunk
            state = AnalysisState.RETRYING
            continue

        attempts.append(AnalysisAttempt(
            number=number,
            state=state,
            document_count=len(current),
            total_pages=pages,
        ))
        if state is AnalysisState.RETRYING:
            logger.info(
                "Analysis succeeded after %d attempts with %d documents",
                number, len(current),
            )
        return AnalysisOutcome(
            result=result,
            documents=current,
            state=AnalysisState.SUCCEEDED,
            attempts=attempts,
        )

    raise ContentTooLargeError(
        f"Content too large for analysis after {len(attempts)} attempts "
        f"(smallest try: {attempts[-1].document_count} documents, "
        f"{attempts[-1].total_pages} pages)",
        attempts,
    )


def _attempts_to_single(count: int) -> int:
    """Attempts the halving ladder needs to go from `count` documents to one."""
    return max(count - 1, 0).bit_length() + 1
