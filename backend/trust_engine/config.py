from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI (fact-checking, presentation, vision, transcription)
    # Default empty string allows tests to run without .env; adapters that
    # need the key fail per call and degrade to their neutral defaults
    openai_api_key: str = ""
    fact_check_model: str = "gpt-4o-mini"
    presentation_model: str = "gpt-4o-mini"
    vision_model: str = "gpt-4o"
    transcription_model: str = "whisper-1"

    # Google Custom Search (web grounding)
    # Grounding is disabled (returns no hits) unless both are set
    google_search_api_key: str = ""
    google_search_engine_id: str = ""
    web_search_max_results: int = 5

    # Google Web Risk (URL safety lookups)
    web_risk_api_key: str = ""

    # Call-level timeout applied to every collaborator call.
    # A timed-out call is converted to that signal's degraded default.
    collaborator_timeout_seconds: float = 30.0

    # Request caps
    # Extraction and verification are capped for latency and cost
    max_claims: int = 5

    # Web grounding queries
    grounding_query_max_chars: int = 500
    max_reverse_queries: int = 6

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
