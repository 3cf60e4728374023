"""
Engine settings.

WHAT: Every tunable the engine reads, from environment variables or a .env file
WHY: Thresholds and confidences are product decisions; keep them out of code
HOW: pydantic-settings BaseSettings, one module-level instance shared by all
     layers (tests monkeypatch its attributes)
"""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Environment-backed engine configuration."""

    model_config = SettingsConfigDict(
        env_file=[str(BACKEND_DIR.parent / ".env"), str(BACKEND_DIR / ".env")],
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Haggle Negotiation Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    # Comma-separated; a JSON list in the environment is joined
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/engine.log"  # empty disables the file log

    # Providers
    LLM_PROVIDER: Literal["lm_studio", "openrouter"] = "lm_studio"
    LM_STUDIO_BASE_URL: str = "http://localhost:1234/v1"
    LM_STUDIO_DEFAULT_MODEL: str = "qwen/qwen3-1.7b"
    LM_STUDIO_TIMEOUT: int = 30  # seconds
    LLM_ENABLE_OPENROUTER: bool = False
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_DEFAULT_MODEL: str = "google/gemini-2.5-flash-lite"
    LLM_MAX_RETRIES: int = 3  # transport-level, inside the provider
    LLM_RETRY_DELAY: float = 2.0  # seconds, doubled per retry
    LLM_DEFAULT_TEMPERATURE: float = 0.7
    LLM_DEFAULT_MAX_TOKENS: int = 512

    # Completion call policy (applied by the caller around the provider)
    COMPLETION_TIMEOUT_MS: int = 15000
    COMPLETION_RETRIES: int = 2

    # Response interpretation
    MAX_CONTENT_LENGTH: int = 500
    PRICE_GRANULARITY: float = 1.0  # whole currency units
    ACCEPT_QUALITY_THRESHOLD: float = 0.9  # currentOffer / basePrice
    COUNTER_QUALITY_THRESHOLD: float = 0.7
    EXTRACTION_MIN_FACTOR: float = 0.8  # candidates below minPrice * factor are discarded
    EXTRACTION_MAX_FACTOR: float = 1.1  # candidates above basePrice * factor are discarded
    EXTRACTED_OFFER_CONFIDENCE: float = 0.8
    CALCULATED_OFFER_CONFIDENCE: float = 0.5
    FALLBACK_OFFER_CONFIDENCE: float = 0.6
    ACCEPT_CONFIDENCE: float = 0.9
    INVALID_DECISION_CONFIDENCE: float = 0.3
    FALLBACK_RESPONSE_CONFIDENCE: float = 0.4

    # Conversation context store
    CONTEXT_MAX_AGE_HOURS: float = 24.0
    CONTEXT_SWEEP_INTERVAL_HOURS: float = 1.0

    # Analytics
    HISTORY_LIMIT: int = 1000
    INACTIVITY_HOURS: float = 24.0

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def join_origin_list(cls, value):
        return ",".join(value) if isinstance(value, list) else value

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
