"""
Shared OpenAI-compatible chat completion client.

WHAT: ping/generate over an OpenAI-style /models and /chat/completions API
WHY: LM Studio and OpenRouter speak the same protocol; only config differs
HOW: HTTPX async client, exponential backoff on timeouts, transport errors and 5xx
"""

import asyncio
import json

import httpx

from .types import (
    ChatMessage,
    LLMResult,
    ProviderStatus,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderResponseError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OpenAICompatibleProvider:
    """Base provider; subclasses set name, URLs, model and HTTP client."""

    name = "provider"

    def __init__(
        self,
        *,
        base_url: str,
        default_model: str,
        client: httpx.AsyncClient,
        max_retries: int,
        retry_delay: float
    ):
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.client = client
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    def _check_enabled(self) -> None:
        """Hook for providers that can be switched off."""

    def _build_payload(
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        stop: list[str] | None,
        user: str | None
    ) -> dict:
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if stop:
            payload["stop"] = stop
        if user:
            payload["user"] = user
        return payload

    def _extract_text(self, raw_text: str) -> str:
        return raw_text

    async def ping(self) -> ProviderStatus:
        """
        Check availability by listing models.

        Returns:
            ProviderStatus; never raises for network failures
        """
        self._check_enabled()
        try:
            response = await self.client.get(f"{self.base_url}/models", timeout=5.0)
            response.raise_for_status()
            data = response.json()
            models = [m.get("id") for m in data.get("data", [])]
            return ProviderStatus(
                available=True,
                base_url=self.base_url,
                models=models[:10] if models else None,
            )
        except httpx.TimeoutException:
            logger.warning(f"{self.name} ping timed out")
            return ProviderStatus(available=False, base_url=self.base_url, error="Connection timeout")
        except httpx.ConnectError:
            logger.warning(f"{self.name} not reachable")
            return ProviderStatus(available=False, base_url=self.base_url, error="Connection refused")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"{self.name} ping failed: {e}")
            return ProviderStatus(available=False, base_url=self.base_url, error=str(e))

    async def generate(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
        stop: list[str] | None = None,
        model: str | None = None,
        user: str | None = None
    ) -> LLMResult:
        """
        Generate a complete response.

        Args:
            messages: Chat messages (system + user)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            stop: Optional stop sequences
            model: Optional model name (uses default_model if not provided)
            user: Caller identity forwarded for provider-side attribution

        Returns:
            LLMResult with text, usage, and model

        Raises:
            ProviderTimeoutError: Request timed out on every attempt
            ProviderUnavailableError: Provider not reachable
            ProviderResponseError: Invalid or error response
        """
        self._check_enabled()
        model_to_use = model or self.default_model
        payload = self._build_payload(
            messages,
            model=model_to_use,
            temperature=temperature,
            max_tokens=max_tokens,
            stop=stop,
            user=user,
        )

        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = await self.client.post(f"{self.base_url}/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()

                text = self._extract_text(data["choices"][0]["message"]["content"] or "")
                usage = data.get("usage", {})
                response_model = data.get("model", model_to_use)

                logger.info(
                    f"{self.name} generate success (model: {response_model}, "
                    f"tokens: {usage.get('total_tokens', 'unknown')})"
                )
                return LLMResult(text=text, usage=usage, model=response_model)

            except httpx.TimeoutException as e:
                logger.warning(f"{self.name} timeout (attempt {attempt + 1}/{self.max_retries})")
                if last_attempt:
                    raise ProviderTimeoutError(f"Request timed out after {self.max_retries} attempts") from e

            except httpx.TransportError as e:
                # Connect, read, write and protocol failures; timeouts are handled above
                logger.error(
                    f"{self.name} transport error {type(e).__name__} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                if last_attempt:
                    raise ProviderUnavailableError(f"{self.name} is not reachable") from e

            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise ProviderResponseError(f"HTTP {e.response.status_code}: {e.response.text}") from e
                logger.error(
                    f"{self.name} server error {e.response.status_code} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                if last_attempt:
                    raise ProviderResponseError(f"Server error: {e.response.status_code}") from e

            except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
                logger.error(f"Invalid response from {self.name}: {e}")
                raise ProviderResponseError(f"Invalid response format: {e}") from e

            await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise ProviderUnavailableError(f"{self.name} gave no response")

    async def aclose(self) -> None:
        await self.client.aclose()
