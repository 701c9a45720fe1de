# =============================================================================
# Financial Report Chat Assistant
# =============================================================================
# Answers questions about uploaded quarterly/annual reports of listed
# companies. The interesting part is choosing WHICH reports to send to the
# model under the provider's page budget.
#
# Package structure:
#   reportchat/
#   ├── api/          → FastAPI route handlers (ask, reports/select)
#   ├── agents/       → LangGraph orchestration, analyst, LLM-assisted
#   │                    selector, fallback ladders
#   ├── models/       → Pydantic V2 request/response schemas
#   ├── selection/    → document relevance selection (interpreter, scorer,
#   │                    context filter, budgeted selector)
#   └── services/     → LLM providers, report catalog
# =============================================================================
