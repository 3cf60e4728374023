"""
OpenRouter provider implementation.

WHAT: Cloud completion provider via the OpenRouter API
WHY: Hosted models when local inference is insufficient
HOW: OpenAI-compatible client with bearer auth; disabled unless configured
"""

import httpx

from .openai_compatible import OpenAICompatibleProvider
from .types import ProviderDisabledError
from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter provider (disabled by default)."""

    name = "OpenRouter"

    def __init__(self):
        self.enabled = settings.LLM_ENABLE_OPENROUTER
        api_key = settings.OPENROUTER_API_KEY

        if self.enabled and not api_key.strip():
            logger.error("OpenRouter enabled but OPENROUTER_API_KEY is not set or empty!")
            raise ProviderDisabledError(
                "OpenRouter is enabled but OPENROUTER_API_KEY is not set. "
                "Set OPENROUTER_API_KEY in your .env file."
            )

        headers = {"HTTP-Referer": settings.APP_NAME, "X-Title": settings.APP_NAME}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        super().__init__(
            base_url=settings.OPENROUTER_BASE_URL,
            default_model=settings.OPENROUTER_DEFAULT_MODEL,
            client=httpx.AsyncClient(
                timeout=httpx.Timeout(5.0, read=60.0),
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
                headers=headers,
            ),
            max_retries=settings.LLM_MAX_RETRIES,
            retry_delay=settings.LLM_RETRY_DELAY,
        )
        state = f"enabled, model: {self.default_model}" if self.enabled else "disabled"
        logger.info(f"OpenRouter provider initialized ({state})")

    def _check_enabled(self) -> None:
        if not self.enabled:
            raise ProviderDisabledError(
                "OpenRouter provider is disabled. Set LLM_ENABLE_OPENROUTER=true to enable."
            )
