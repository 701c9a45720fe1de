# =============================================================================
# Unit Tests — Agents
# =============================================================================
#
# Tests the analyst, the agent graph and the LLM provider layer without
# API keys. LLM providers are AsyncMock doubles; reports live in a
# temporary upload directory.
# =============================================================================

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reportchat.agents.analyst import SYSTEM_PROMPTS, AnalysisResult, analyse, detect_language
from reportchat.agents.fallback import ContentTooLargeError
from reportchat.agents.orchestrator import ask
from reportchat.selection.clock import FixedClock
from reportchat.selection.documents import Document
from reportchat.services.catalog import ReportCatalog
from reportchat.services.llm import (
    DocumentAttachment,
    LLMResponse,
    PayloadTooLargeError,
    _attach_anthropic_documents,
    _attach_openai_documents,
    _is_payload_too_large,
)

CLOCK = FixedClock.for_year(2025)


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _response(content="Revenue grew 12% [THYAO_2024_Q4.pdf].") -> LLMResponse:
    return LLMResponse(content=content, model="test-model", input_tokens=900, output_tokens=40)


def _write_report(root, company, name, **metadata) -> None:
    company_dir = root / "companies" / company
    company_dir.mkdir(parents=True, exist_ok=True)
    (company_dir / name).write_bytes(b"%PDF-1.4 " + name.encode())
    sidecar = {"id": name, "filename": name, **metadata}
    (company_dir / f"{name}.meta.json").write_text(json.dumps(sidecar), encoding="utf-8")


# ---------------------------------------------------------------------------
# Test: Language Detection
# ---------------------------------------------------------------------------


class TestDetectLanguage:
    def test_turkish_characters(self):
        assert detect_language("son 3 yılın geliri") == "tr"

    def test_turkish_words_without_special_characters(self):
        assert detect_language("kar ve zarar") == "tr"

    def test_english(self):
        assert detect_language("What was revenue in 2024?") == "en"


# ---------------------------------------------------------------------------
# Test: Analyst
# ---------------------------------------------------------------------------


class TestAnalyse:
    """Tests for the analyst agent with mock LLM."""

    DOCS = [
        Document(id="a", filename="THYAO_2024_Q4.pdf", original_name="THY 2024 Q4.pdf", page_count=20),
        Document(id="b", filename="THYAO_2023_Q4.pdf", page_count=18),
    ]

    def test_no_documents_skips_llm(self):
        mock_llm = AsyncMock()

        result = _run(analyse("What was revenue?", [], mock_llm, load_bytes=lambda d: b""))

        assert isinstance(result, AnalysisResult)
        assert "No reports were available" in result.answer
        assert result.model == "n/a"
        mock_llm.complete.assert_not_called()

    def test_attaches_pdfs_and_uses_english_prompt(self):
        mock_llm = AsyncMock()
        mock_llm.complete.return_value = _response()

        result = _run(analyse(
            "What was revenue?", self.DOCS, mock_llm,
            load_bytes=lambda d: b"%PDF " + d.id.encode(),
        ))

        assert result.answer == "Revenue grew 12% [THYAO_2024_Q4.pdf]."
        assert result.used_files == ["THYAO_2024_Q4.pdf", "THYAO_2023_Q4.pdf"]
        assert result.language == "en"

        kwargs = mock_llm.complete.call_args.kwargs
        assert kwargs["system"] == SYSTEM_PROMPTS["en"]
        assert [a.name for a in kwargs["documents"]] == ["THY 2024 Q4.pdf", "THYAO_2023_Q4.pdf"]
        assert kwargs["documents"][0].data == b"%PDF a"
        assert kwargs["messages"][0]["content"].startswith("Question: What was revenue?")

    def test_turkish_question_uses_turkish_prompt(self):
        mock_llm = AsyncMock()
        mock_llm.complete.return_value = _response("Gelir arttı.")

        result = _run(analyse("Son 2 yılın geliri nedir?", self.DOCS, mock_llm, lambda d: b"%PDF"))

        assert result.language == "tr"
        kwargs = mock_llm.complete.call_args.kwargs
        assert kwargs["system"] == SYSTEM_PROMPTS["tr"]
        assert kwargs["messages"][0]["content"].startswith("Soru: ")

    def test_extra_context_is_included(self):
        mock_llm = AsyncMock()
        mock_llm.complete.return_value = _response()

        _run(analyse("What was revenue?", self.DOCS, mock_llm, lambda d: b"%PDF", context="Amounts in TRY"))

        assert "Amounts in TRY" in mock_llm.complete.call_args.kwargs["messages"][0]["content"]

    def test_missing_file_is_skipped(self):
        mock_llm = AsyncMock()
        mock_llm.complete.return_value = _response()

        def load_bytes(document):
            if document.id == "b":
                raise FileNotFoundError(document.filename)
            return b"%PDF"

        result = _run(analyse("What was revenue?", self.DOCS, mock_llm, load_bytes))

        assert result.used_files == ["THYAO_2024_Q4.pdf"]
        assert len(mock_llm.complete.call_args.kwargs["documents"]) == 1

    def test_unreadable_reports_skip_llm(self):
        mock_llm = AsyncMock()

        def load_bytes(document):
            raise FileNotFoundError(document.filename)

        result = _run(analyse("What was revenue?", self.DOCS, mock_llm, load_bytes))

        assert "No reports were available" in result.answer
        assert result.used_files == []
        assert result.model == "n/a"
        mock_llm.complete.assert_not_called()

    def test_payload_errors_propagate(self):
        mock_llm = AsyncMock()
        mock_llm.complete.side_effect = PayloadTooLargeError("too many PDF pages")

        with pytest.raises(PayloadTooLargeError):
            _run(analyse("What was revenue?", self.DOCS, mock_llm, lambda d: b"%PDF"))


# ---------------------------------------------------------------------------
# Test: Agent Graph
# ---------------------------------------------------------------------------


class TestAskGraph:
    """End-to-end graph runs over a temporary upload directory."""

    def _catalog(self, tmp_path) -> ReportCatalog:
        for year in (2024, 2023, 2022):
            _write_report(
                tmp_path, "THYAO", f"THYAO_{year}_Q4.pdf",
                year=year, quarter=4, pageCount=20,
                uploadDate=f"{year + 1}-02-15T09:00:00Z",
            )
        _write_report(
            tmp_path, "THYAO", "THYAO_2024_Q1.pdf",
            year=2024, quarter=1, pageCount=20, uploadDate="2024-05-10T09:00:00Z",
        )
        return ReportCatalog(tmp_path)

    def test_annual_question_answers_from_year_end_reports(self, tmp_path):
        llm = AsyncMock()
        llm.complete.return_value = _response("Gelir üç yılda arttı.")

        result = _run(ask(
            "son 3 yıl gelir",
            strategy="algorithmic",
            llm=llm,
            catalog=self._catalog(tmp_path),
            clock=CLOCK,
        ))

        assert result["answer"] == "Gelir üç yılda arttı."
        assert sorted(result["used_files"]) == [
            "THYAO_2022_Q4.pdf", "THYAO_2023_Q4.pdf", "THYAO_2024_Q4.pdf",
        ]
        assert result["dropped_count"] == 1
        assert result["retry_reasons"] == []
        assert result["model"] == "test-model"
        assert result["selection_reasons"][0] == "Query context: annual_summary (years: 3)"

    def test_oversized_payload_is_retried_with_fewer_reports(self, tmp_path):
        llm = AsyncMock()
        llm.complete.side_effect = [PayloadTooLargeError("request too large"), _response()]

        result = _run(ask(
            "son 3 yıl gelir",
            strategy="algorithmic",
            llm=llm,
            catalog=self._catalog(tmp_path),
            clock=CLOCK,
        ))

        assert len(result["used_files"]) == 2
        assert len(result["retry_reasons"]) == 1
        assert llm.complete.call_count == 2
        # One Q1 filtered by selection plus one year-end report cut by the retry.
        assert result["dropped_count"] == 2

    def test_gives_up_when_one_report_is_too_large(self, tmp_path):
        llm = AsyncMock()
        llm.complete.side_effect = PayloadTooLargeError("request too large")

        with pytest.raises(ContentTooLargeError):
            _run(ask(
                "son 3 yıl gelir",
                strategy="algorithmic",
                llm=llm,
                catalog=self._catalog(tmp_path),
                clock=CLOCK,
            ))

    def test_missing_pdfs_count_as_dropped(self, tmp_path):
        catalog = self._catalog(tmp_path)
        llm = AsyncMock()
        llm.complete.return_value = _response()

        with patch.object(catalog, "read_report_bytes", side_effect=FileNotFoundError("gone")):
            result = _run(ask(
                "son 3 yıl gelir",
                strategy="algorithmic",
                llm=llm,
                catalog=catalog,
                clock=CLOCK,
            ))

        assert result["used_files"] == []
        assert result["dropped_count"] == 4
        assert "Analiz için uygun rapor bulunamadı" in result["answer"]
        llm.complete.assert_not_called()

    def test_llm_selection_strategy(self, tmp_path):
        catalog = self._catalog(tmp_path)
        selector = AsyncMock()
        selector.complete.return_value = LLMResponse(
            content='{"reasoning": "latest year-end", "selectedDocuments": [1]}',
            model="selector-model", input_tokens=10, output_tokens=10,
        )
        llm = AsyncMock()
        llm.complete.return_value = _response()

        result = _run(ask(
            "what was revenue in the latest year?",
            strategy="llm",
            llm=llm,
            selector_llm=selector,
            catalog=catalog,
            clock=CLOCK,
        ))

        # Newest upload first: THYAO_2024_Q4 was uploaded 2025-02-15.
        assert result["used_files"] == ["THYAO_2024_Q4.pdf"]
        assert result["selection_reasons"][0] == "LLM Reasoning: latest year-end"


# ---------------------------------------------------------------------------
# Test: LLM Provider Layer
# ---------------------------------------------------------------------------


class TestLLMProviderFactory:
    """Tests for the LLM provider factory function."""

    def test_factory_raises_without_api_key(self):
        """Factory should raise ValueError when no API key is set."""
        from reportchat.services import llm

        # Reset the singleton
        original = llm._provider
        llm._provider = None

        try:
            with patch.object(
                llm.settings, "llm_provider", "anthropic"
            ), patch.object(
                llm.settings, "llm_api_key", None
            ), patch.object(
                llm.settings, "anthropic_api_key", ""
            ):
                with pytest.raises(ValueError, match="API key"):
                    llm.get_llm_provider()
        finally:
            # Restore singleton
            llm._provider = original

    def test_selector_provider_uses_selector_model(self):
        from reportchat.services import llm

        with patch.object(llm.settings, "selector_model", "small-model"), patch.object(
            llm, "create_provider", MagicMock(return_value="provider")
        ) as create:
            assert llm.get_selector_provider() == "provider"
        create.assert_called_once_with(model="small-model")


class TestPayloadDetection:
    @pytest.mark.parametrize(
        ("status", "message", "expected"),
        [
            (413, "Request Entity Too Large", True),
            (400, "A maximum of 100 PDF pages may be provided", True),
            (400, "prompt is too long: 250000 tokens", True),
            (400, "invalid model", False),
            (429, "too large a burst", False),
            (None, "too large", False),
        ],
    )
    def test_is_payload_too_large(self, status, message, expected):
        assert _is_payload_too_large(status, message) is expected


class TestDocumentAttachments:
    MESSAGES = [{"role": "user", "content": "Question: revenue?"}]
    DOCS = [DocumentAttachment(name="THYAO_2024_Q4.pdf", data=b"%PDF")]

    def test_anthropic_document_blocks(self):
        messages = _attach_anthropic_documents(self.MESSAGES, self.DOCS)
        content = messages[-1]["content"]

        assert content[0] == {"type": "text", "text": "Question: revenue?"}
        assert content[1]["type"] == "document"
        assert content[1]["source"] == {
            "type": "base64", "media_type": "application/pdf", "data": "JVBERg==",
        }
        assert content[1]["title"] == "THYAO_2024_Q4.pdf"

    def test_openai_file_parts(self):
        messages = _attach_openai_documents(self.MESSAGES, self.DOCS)
        part = messages[-1]["content"][1]

        assert part["type"] == "file"
        assert part["file"]["filename"] == "THYAO_2024_Q4.pdf"
        assert part["file"]["file_data"] == "data:application/pdf;base64,JVBERg=="

    def test_no_documents_leaves_messages_unchanged(self):
        assert _attach_anthropic_documents(self.MESSAGES, None) == self.MESSAGES
        assert _attach_openai_documents(self.MESSAGES, []) == self.MESSAGES
