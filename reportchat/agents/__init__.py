# =============================================================================
# Agents Package — LangGraph Orchestration
# =============================================================================
#   - orchestrator.py: LangGraph graph — load → select → analyse
#   - llm_selector.py: lets a model choose the reports (metadata only)
#   - fallback.py: selection fallback ladder + shrink-and-retry on
#     oversized payloads
#   - analyst.py: one LLM call with the selected PDFs attached
# =============================================================================
