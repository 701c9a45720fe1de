# =============================================================================
# Multi-Provider LLM Abstraction — Pluggable AI Backend
# =============================================================================
#
# Provides a common interface for LLM completions with optional PDF
# attachments, with concrete implementations for Anthropic (Claude) and
# OpenAI-compatible APIs.
#
# DESIGN DECISION: Protocol (structural typing) over ABC.
# Any class with the right `complete()` method works, including the
# AsyncMock doubles used in tests.
#
# DESIGN DECISION: Native SDKs over LangChain wrappers.
# PDF attachments are provider-specific content blocks; the native SDKs
# expose them directly.
#
# ERROR TRANSLATION:
# Both providers reject oversized requests (too many PDF pages, request
# body too large) with an HTTP 413 or a 400 carrying a size message.
# Those are re-raised as PayloadTooLargeError so the fallback chain can
# shrink the selection and retry. Every other SDK error propagates as-is.
#
# ARCHITECTURE:
#   LLMProvider (Protocol)
#   ├── AnthropicProvider        — Claude, PDFs as `document` blocks
#   ├── OpenAICompatibleProvider — PDFs as `file` content parts
#   ├── get_llm_provider()       — singleton factory for analysis
#   └── create_provider()        — fresh instance (e.g. selector model)
# =============================================================================

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from reportchat.config import settings

logger = logging.getLogger(__name__)

# Lower-cased fragments of provider error messages that mean "request too big".
_PAYLOAD_TOO_LARGE_MARKERS = (
    "too large",
    "too long",
    "request_too_large",
    "pdf pages",
    "exceeds the maximum",
    "maximum context length",
)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class LLMResponse:
    """Standardised response from any LLM provider."""

    content: str           # The generated text
    model: str             # Model identifier (e.g., "claude-sonnet-4-6")
    input_tokens: int      # Tokens consumed by the prompt
    output_tokens: int     # Tokens generated in the response


@dataclass(frozen=True)
class DocumentAttachment:
    """A PDF sent alongside the user message."""

    name: str
    data: bytes

    def as_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class PayloadTooLargeError(RuntimeError):
    """The provider rejected the request because of its size."""


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class LLMProvider(Protocol):
    """Protocol defining the LLM provider interface."""

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        documents: list[DocumentAttachment] | None = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages as dicts with "role" and "content".
                Roles: "user", "assistant" (no "system" — use the system param).
            system: System prompt for the LLM.
            temperature: Override sampling temperature (default from config).
            max_tokens: Override max output tokens (default from config).
            documents: PDFs attached to the LAST user message.

        Returns:
            LLMResponse with generated text and usage metrics.

        Raises:
            PayloadTooLargeError: The provider rejected the request size.
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Anthropic Claude provider using the native SDK.

    KEY API DIFFERENCE: Anthropic takes system prompts as a top-level
    `system=` kwarg, NOT as a message with role "system".
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        from anthropic import AsyncAnthropic

        resolved_key = api_key or settings.llm_api_key or settings.anthropic_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Set LLM_API_KEY or "
                "ANTHROPIC_API_KEY in .env"
            )

        self._client = AsyncAnthropic(api_key=resolved_key)
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self._model)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        documents: list[DocumentAttachment] | None = None,
    ) -> LLMResponse:
        """Generate a completion using Claude."""
        from anthropic import APIStatusError

        kwargs: dict = {
            "model": self._model,
            "messages": _attach_anthropic_documents(messages, documents),
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self._client.messages.create(**kwargs)
        except APIStatusError as e:
            if _is_payload_too_large(e.status_code, str(e)):
                raise PayloadTooLargeError(str(e)) from e
            raise

        content = ""
        for block in response.content:
            if block.type == "text":
                content = block.text
                break

        return LLMResponse(
            content=content,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# Implementation 2: OpenAI-Compatible
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Provider for any API that follows the OpenAI chat-completions spec.

    Switching providers is a config change:
        LLM_PROVIDER=openai_compatible
        LLM_BASE_URL=https://api.openai.com/v1
        LLM_API_KEY=your-key
        LLM_MODEL=gpt-4.1
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        from openai import AsyncOpenAI

        resolved_key = api_key or settings.llm_api_key or settings.openai_api_key
        if not resolved_key:
            raise ValueError(
                "No API key configured for OpenAI-compatible provider. "
                "Set LLM_API_KEY in .env"
            )

        client_kwargs: dict = {"api_key": resolved_key}
        resolved_base_url = base_url or settings.llm_base_url
        if resolved_base_url:
            client_kwargs["base_url"] = resolved_base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self._model,
            resolved_base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        documents: list[DocumentAttachment] | None = None,
    ) -> LLMResponse:
        """Generate a completion using an OpenAI-compatible API."""
        from openai import APIStatusError

        all_messages: list[dict] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(_attach_openai_documents(messages, documents))

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=all_messages,
                max_tokens=max_tokens or self._max_tokens,
                temperature=self._temperature if temperature is None else temperature,
            )
        except APIStatusError as e:
            if _is_payload_too_large(e.status_code, str(e)):
                raise PayloadTooLargeError(str(e)) from e
            raise

        content = response.choices[0].message.content or ""

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return LLMResponse(
            content=content,
            model=response.model or self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


# ---------------------------------------------------------------------------
# Factory Functions
# ---------------------------------------------------------------------------

# Lazy singleton — avoid re-creating client on every request
_provider: AnthropicProvider | OpenAICompatibleProvider | None = None


def get_llm_provider() -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Factory that returns the configured analysis provider.

    Reads `llm_provider` from settings:
    - "anthropic" → AnthropicProvider
    - "openai_compatible" → OpenAICompatibleProvider
    """
    global _provider
    if _provider is None:
        _provider = create_provider()
    return _provider


def create_provider(
    model: str | None = None,
) -> AnthropicProvider | OpenAICompatibleProvider:
    """Create a fresh provider of the configured type, optionally for another model."""
    if settings.llm_provider == "openai_compatible":
        return OpenAICompatibleProvider(model=model)
    return AnthropicProvider(model=model)


def get_selector_provider() -> AnthropicProvider | OpenAICompatibleProvider:
    """Provider for the LLM-assisted document selector."""
    return create_provider(model=settings.selector_model)


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _is_payload_too_large(status_code: int | None, message: str) -> bool:
    if status_code == 413:
        return True
    lowered = message.lower()
    return status_code == 400 and any(marker in lowered for marker in _PAYLOAD_TOO_LARGE_MARKERS)


def _attach_anthropic_documents(
    messages: list[dict[str, str]],
    documents: list[DocumentAttachment] | None,
) -> list[dict]:
    """Turn the last user message into content blocks with PDF documents."""
    if not documents:
        return list(messages)

    *history, last = messages
    content: list[dict] = [{"type": "text", "text": last["content"]}]
    for document in documents:
        content.append({
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": "application/pdf",
                "data": document.as_base64(),
            },
            "title": document.name,
        })
    return [*history, {"role": last["role"], "content": content}]


def _attach_openai_documents(
    messages: list[dict[str, str]],
    documents: list[DocumentAttachment] | None,
) -> list[dict]:
    if not documents:
        return list(messages)

    *history, last = messages
    content: list[dict] = [{"type": "text", "text": last["content"]}]
    for document in documents:
        content.append({
            "type": "file",
            "file": {
                "filename": document.name,
                "file_data": f"data:application/pdf;base64,{document.as_base64()}",
            },
        })
    return [*history, {"role": last["role"], "content": content}]
