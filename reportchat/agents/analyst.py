# =============================================================================
# Analyst Agent — Answer Generation Over Selected Reports
# =============================================================================
#
# The analyst takes the selected reports and the user's question and makes
# ONE LLM call with the PDFs attached as documents.
#
# LANGUAGE: questions arrive in Turkish or English. The system prompt and
# the user-message framing follow the question's language, and the model is
# told to answer in that language only.
#
# Oversized requests surface as PayloadTooLargeError from the provider;
# shrinking the selection is the fallback chain's job, not the analyst's.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from reportchat.selection.documents import Document
from reportchat.services.llm import DocumentAttachment, LLMProvider

logger = logging.getLogger(__name__)

_TURKISH_CHARS = set("ğüşıöçĞÜŞİÖÇ")
_TURKISH_WORDS = {"ve", "veya", "ile", "için", "bu", "şu", "ne", "nasıl", "neden", "hangi"}


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class AnalysisResult:
    """Result from the analyst agent."""

    answer: str
    model: str
    input_tokens: int
    output_tokens: int
    used_files: list[str] = field(default_factory=list)
    language: str = "en"


# ---------------------------------------------------------------------------
# Language-Specific System Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPTS: dict[str, str] = {
    "tr": (
        "Sen bir finansal şirket analizi uzmanısın. Verilen PDF finansal "
        "raporlarını analiz eder ve sorulara bu raporlara dayanarak cevap "
        "verirsin.\n\n"
        "Önemli kurallar:\n"
        "1. Sadece verilen PDF'lerdeki bilgileri kullan\n"
        "2. Sayısal verileri doğru şekilde çıkar ve hesapla\n"
        "3. Döviz/kur bilgilerine özellikle dikkat et\n"
        "4. İstenen veri PDF'lerde mevcut değilse, bunu açıkça belirt\n"
        "5. Net, detaylı ve spesifik sayı ve yüzdeler içeren cevaplar ver\n"
        "6. Analizinde hangi raporları/çeyrekleri kullandığını belirt\n"
        "7. Cevabını sadece Türkçe olarak ver"
    ),
    "en": (
        "You are a financial company analysis expert. You analyze financial "
        "reports from the provided PDFs and answer questions based on them.\n\n"
        "Important rules:\n"
        "1. Only use information from the provided PDFs\n"
        "2. Extract and calculate numerical data accurately\n"
        "3. Pay special attention to currency/foreign exchange information\n"
        "4. If requested data is not available in the PDFs, clearly state this\n"
        "5. Provide clear, detailed answers with specific numbers and percentages\n"
        "6. Mention which reports/quarters you used for your analysis\n"
        "7. Provide your answer only in English"
    ),
}

_QUESTION_LABEL = {"tr": "Soru", "en": "Question"}
_INSTRUCTION = {
    "tr": "Lütfen yukarıdaki soruyu aşağıdaki PDF raporlarındaki bilgilere dayanarak yanıtlayın.",
    "en": "Please answer the above question based on the information in the attached PDF reports.",
}
_NO_DOCUMENTS = {
    "tr": "Analiz için uygun rapor bulunamadı. Lütfen ilgili raporları yükleyin.",
    "en": "No reports were available for analysis. Please upload the relevant reports.",
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect_language(text: str) -> str:
    """'tr' if the text has Turkish characters or common Turkish words, else 'en'."""
    if any(char in _TURKISH_CHARS for char in text):
        return "tr"
    if _TURKISH_WORDS.intersection(text.lower().split()):
        return "tr"
    return "en"


async def analyse(
    question: str,
    documents: list[Document],
    llm: LLMProvider,
    load_bytes: Callable[[Document], bytes],
    context: str | None = None,
) -> AnalysisResult:
    """
    Answer the question from the attached reports.

    Args:
        question: The user's question.
        documents: Selected reports, in priority order.
        llm: Provider used for the analysis call.
        load_bytes: Reads a report's PDF bytes (the catalog).
        context: Optional extra context from the user.

    Raises:
        PayloadTooLargeError: The provider rejected the attachments' size.
    """
    language = detect_language(question)

    attachments: list[DocumentAttachment] = []
    used_files: list[str] = []
    for document in documents:
        try:
            attachments.append(DocumentAttachment(
                name=document.display_name,
                data=load_bytes(document),
            ))
            used_files.append(document.filename)
        except FileNotFoundError:
            logger.warning("PDF file not found, skipping: %s", document.filename)

    # Nothing to ground an answer in; the model is not asked.
    if not attachments:
        if documents:
            logger.warning(
                "None of the %d selected reports could be read; skipping analysis",
                len(documents),
            )
        return AnalysisResult(
            answer=_NO_DOCUMENTS[language],
            model="n/a",
            input_tokens=0,
            output_tokens=0,
            language=language,
        )

    user_message = f"{_QUESTION_LABEL[language]}: {question}\n\n"
    if context:
        user_message += f"{context}\n\n"
    user_message += _INSTRUCTION[language]

    logger.info(
        "Analyst generating answer: language=%s, documents=%d, pages=%d",
        language, len(attachments), sum(d.pages for d in documents),
    )

    response = await llm.complete(
        messages=[{"role": "user", "content": user_message}],
        system=SYSTEM_PROMPTS[language],
        documents=attachments,
    )

    logger.info(
        "Analyst complete: model=%s, tokens=%d+%d",
        response.model, response.input_tokens, response.output_tokens,
    )

    return AnalysisResult(
        answer=response.content,
        model=response.model,
        input_tokens=response.input_tokens,
        output_tokens=response.output_tokens,
        used_files=used_files,
        language=language,
    )
