"""
LM Studio provider implementation.

WHAT: Local completion provider via LM Studio
WHY: Local-first inference without external API dependencies
HOW: OpenAI-compatible client with reasoning blocks stripped from replies
"""

import re

import httpx

from .openai_compatible import OpenAICompatibleProvider
from ..core.config import settings

_THINK_BLOCKS = re.compile(r"<think(?:ing)?>.*?</think(?:ing)?>\s*", re.DOTALL | re.IGNORECASE)
_THINK_TAGS = re.compile(r"</?think(?:ing)?>\s*", re.IGNORECASE)


class LMStudioProvider(OpenAICompatibleProvider):
    """LM Studio provider with retry logic."""

    name = "LM Studio"

    def __init__(
        self,
        timeout: int | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None
    ):
        read_timeout = timeout or settings.LM_STUDIO_TIMEOUT
        super().__init__(
            base_url=settings.LM_STUDIO_BASE_URL,
            default_model=settings.LM_STUDIO_DEFAULT_MODEL,
            client=httpx.AsyncClient(
                timeout=httpx.Timeout(5.0, read=read_timeout),
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            ),
            max_retries=max_retries if max_retries is not None else settings.LLM_MAX_RETRIES,
            retry_delay=retry_delay if retry_delay is not None else settings.LLM_RETRY_DELAY,
        )

    def _extract_text(self, raw_text: str) -> str:
        """Drop <think>...</think> blocks local reasoning models emit."""
        text = _THINK_BLOCKS.sub("", raw_text)
        return _THINK_TAGS.sub("", text).strip()
