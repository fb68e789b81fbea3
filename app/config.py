from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    env: str = Field(default="dev", alias="APP_ENV")
    debug: bool = Field(default=False, alias="APP_DEBUG")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")

    # Remote understanding providers, highest priority first
    provider_priority: str = Field(default="sambanova,openai", alias="PROVIDER_PRIORITY")

    sambanova_api_key: str = Field(default="", alias="SAMBANOVA_API_KEY")
    sambanova_base_url: str = Field(default="https://api.sambanova.ai/v1", alias="SAMBANOVA_BASE_URL")
    sambanova_model: str = Field(default="Meta-Llama-3.1-8B-Instruct", alias="SAMBANOVA_MODEL")

    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    intent_temperature: float = Field(default=0.3, alias="INTENT_TEMPERATURE")
    response_temperature: float = Field(default=0.7, alias="RESPONSE_TEMPERATURE")
    intent_max_tokens: int = Field(default=200, alias="INTENT_MAX_TOKENS")
    response_max_tokens: int = Field(default=150, alias="RESPONSE_MAX_TOKENS")

    # Provider chain policy
    assistant_min_confidence: float = Field(default=0.6, ge=0.0, le=1.0, alias="ASSISTANT_MIN_CONFIDENCE")
    provider_timeout_seconds: float = Field(default=3.0, gt=0, alias="PROVIDER_TIMEOUT_SECONDS")
    breaker_failure_threshold: int = Field(default=3, ge=1, alias="BREAKER_FAILURE_THRESHOLD")
    breaker_cooldown_seconds: float = Field(default=60.0, ge=0, alias="BREAKER_COOLDOWN_SECONDS")
    chat_timeout_seconds: float = Field(default=8.0, gt=0, alias="CHAT_TIMEOUT_SECONDS")

    # Session context
    session_ttl_seconds: float = Field(default=1800.0, gt=0, alias="SESSION_TTL_SECONDS")
    session_history_limit: int = Field(default=10, ge=1, alias="SESSION_HISTORY_LIMIT")

    # Rule engine
    rule_min_confidence: float = Field(default=0.15, ge=0.0, le=1.0, alias="RULE_MIN_CONFIDENCE")

    # Product / FAQ catalog collaborator
    catalog_base_url: Optional[str] = Field(default=None, alias="CATALOG_BASE_URL")
    catalog_token: Optional[str] = Field(default=None, alias="CATALOG_TOKEN")
    http_timeout_seconds: float = Field(default=5.0, alias="HTTP_TIMEOUT_SECONDS")
    enable_catalog_enrichment: bool = Field(default=True, alias="ENABLE_CATALOG_ENRICHMENT")

    # LangSmith / LangChain tracing
    langsmith_api_key: str | None = Field(default=None, alias="LANGSMITH_API_KEY")
    langsmith_endpoint: str | None = Field(default=None, alias="LANGSMITH_ENDPOINT")
    langsmith_project: str | None = Field(default=None, alias="LANGSMITH_PROJECT")
    langsmith_tracing_v2: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")
    enable_request_tracing: bool = Field(default=True, alias="ENABLE_REQUEST_TRACING")

    @property
    def provider_priority_list(self) -> List[str]:
        """Provider names in priority order, normalized and without duplicates."""
        names: List[str] = []
        for raw in self.provider_priority.split(","):
            name = raw.strip().lower()
            if name and name not in names:
                names.append(name)
        return names


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
