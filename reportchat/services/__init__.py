# =============================================================================
# Services Package — External Collaborators
# =============================================================================
#   - llm.py: Multi-provider LLM abstraction (Anthropic, OpenAI-compatible)
#     with PDF attachments and payload-size error translation
#   - catalog.py: File-system report catalog (metadata sidecars + PDF bytes)
# =============================================================================
