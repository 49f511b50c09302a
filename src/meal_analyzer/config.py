"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

KNOWN_ANALYZERS = ("pipeline", "keyword")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "medium"
    openai_store: bool = False
    openai_embedding_model: str = "text-embedding-3-small"
    embeddings_enabled: bool = True
    fdc_api_key: str
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    supabase_url: str
    supabase_service_key: str
    analysis_cache_ttl_seconds: int = 86400
    cache_max_entries: int = 2048
    match_limit: int = 5
    match_min_score: float = 0.7
    external_call_timeout_seconds: float = 10.0
    vision_confidence_floor: float = 0.55
    analyzer_chain: str = "pipeline,keyword"
    daily_analysis_limit: int = 50
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_analyzer_chain(raw: str | None) -> list[str]:
    """Parse the ordered analyzer names from env, ignoring unknown names."""
    if raw is None:
        return list(KNOWN_ANALYZERS)
    names: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if value in KNOWN_ANALYZERS and value not in names:
            names.append(value)
    return names or list(KNOWN_ANALYZERS)
