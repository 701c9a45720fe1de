# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# Settings are loaded in this priority order (highest first):
#   1. Environment variables (e.g., `MAX_PAGES=80`)
#   2. Values from the .env file
#   3. Default values defined below
#
# USAGE:
#   from reportchat.config import settings
#   print(settings.max_pages)
# =============================================================================

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Defaults are suitable for local development. In production, override
    via environment variables or a .env file.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "Financial Report Chat Assistant"
    app_version: str = "0.1.0"
    debug: bool = True
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # API Keys — External Services
    # -------------------------------------------------------------------------
    # No defaults: these MUST come from the environment or .env.
    # -------------------------------------------------------------------------
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # -------------------------------------------------------------------------
    # LLM Configuration — Multi-Provider
    # -------------------------------------------------------------------------
    # "anthropic" sends PDFs as native document blocks. "openai_compatible"
    # covers any OpenAI-spec API that accepts file content parts.
    #
    # Example configs:
    #   Claude:  provider=anthropic, model=claude-sonnet-4-6
    #   OpenAI:  provider=openai_compatible, model=gpt-4.1
    # -------------------------------------------------------------------------
    llm_provider: str = "anthropic"  # "anthropic" or "openai_compatible"
    llm_base_url: str | None = None  # Only needed for openai_compatible
    llm_api_key: str | None = None   # Overrides provider-specific key if set
    llm_model: str = "claude-sonnet-4-6"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 4096

    # Model used by the LLM-assisted document selector. A small, cheap model
    # is enough: it only sees metadata, never PDF content.
    selector_model: str = "claude-haiku-4-5"
    selector_max_tokens: int = 1500

    # -------------------------------------------------------------------------
    # Report Storage
    # -------------------------------------------------------------------------
    # Reports live under <upload_dir>/companies/<COMPANY>/ with a JSON
    # metadata sidecar next to each PDF.
    # -------------------------------------------------------------------------
    upload_dir: str = "uploads"
    default_page_count: int = 10  # Used when a sidecar has no pageCount

    # -------------------------------------------------------------------------
    # Document Selection
    # -------------------------------------------------------------------------
    # max_pages: provider-imposed page budget per analysis request.
    # selection_strategy: "algorithmic" (scorer + budgeted selector) or
    #   "llm" (model picks documents; algorithmic fallbacks on failure).
    # max_analysis_attempts: halve-and-retry attempts when the provider rejects
    #   a payload as too large. Raised per call to whatever halving down to a
    #   single document needs.
    # -------------------------------------------------------------------------
    max_pages: int = 100
    selection_strategy: str = "algorithmic"  # "algorithmic" or "llm"
    max_analysis_attempts: int = 5

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    In tests, override with FastAPI's dependency_overrides:
        app.dependency_overrides[get_settings] = lambda: Settings(debug=False)
    """
    return Settings()


# Module-level convenience instance:
#   from reportchat.config import settings
settings = Settings()
