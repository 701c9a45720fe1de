# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response schemas for the API. These are SEPARATE from the internal
# selection dataclasses (reportchat/selection/); route handlers map between
# the two.
# =============================================================================
