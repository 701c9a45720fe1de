# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - ask.py: Question answering endpoint
#   - reports.py: Report listing and selection preview
# =============================================================================
