"""
Text completion client.

WHAT: One call policy around a provider: per-attempt timeout, retries, typed result
WHY: Provider failures must route to the fallback responder, never raise into a turn
HOW: asyncio.wait_for per attempt; timed-out calls are cancelled so a late
     reply cannot leak into a later decision
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Union

from .provider import LLMProvider
from .types import ChatMessage, ProviderDisabledError, ProviderError
from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CompletionSuccess:
    text: str
    model: str
    elapsed_ms: float
    attempts: int = 1


@dataclass
class CompletionFailure:
    """
    Provider call that produced no usable text.

    reason is one of: timeout, unavailable, disabled, response, empty.
    """
    error: str
    reason: str
    attempts: int
    elapsed_ms: float = 0.0


CompletionResult = Union[CompletionSuccess, CompletionFailure]


class TextCompletionClient:
    """
    Wraps an LLMProvider with the engine's call policy.

    Args:
        provider: Provider to call
        temperature: Sampling temperature (defaults to settings)
        max_tokens: Token budget per reply (defaults to settings)
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ):
        self.provider = provider
        self.temperature = temperature if temperature is not None else settings.LLM_DEFAULT_TEMPERATURE
        self.max_tokens = max_tokens or settings.LLM_DEFAULT_MAX_TOKENS

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        user_id: str = "anonymous",
        timeout_ms: Optional[int] = None,
        retries: Optional[int] = None,
        model: Optional[str] = None
    ) -> CompletionResult:
        """
        Request a completion under the timeout/retry policy.

        Args:
            messages: Prompt messages
            user_id: Caller identity forwarded to the provider
            timeout_ms: Per-attempt timeout (defaults to COMPLETION_TIMEOUT_MS)
            retries: Extra attempts after the first (defaults to COMPLETION_RETRIES)
            model: Optional model override

        Returns:
            CompletionSuccess with text, or CompletionFailure with the last error
        """
        timeout_ms = timeout_ms if timeout_ms is not None else settings.COMPLETION_TIMEOUT_MS
        retries = retries if retries is not None else settings.COMPLETION_RETRIES
        total_attempts = max(0, retries) + 1
        started = time.perf_counter()

        failure = CompletionFailure(error="No attempt made", reason="unavailable", attempts=0)
        for attempt in range(1, total_attempts + 1):
            try:
                result = await asyncio.wait_for(
                    self.provider.generate(
                        messages,
                        temperature=self.temperature,
                        max_tokens=self.max_tokens,
                        model=model,
                        user=user_id,
                    ),
                    timeout=timeout_ms / 1000,
                )
            except asyncio.TimeoutError:
                failure = CompletionFailure(f"Completion timed out after {timeout_ms}ms", "timeout", attempt)
            except ProviderDisabledError as e:
                logger.warning(f"Completion provider disabled: {e}")
                return CompletionFailure(str(e), e.reason, attempt, self._elapsed(started))
            except ProviderError as e:
                failure = CompletionFailure(str(e), e.reason, attempt)
            except Exception as e:
                # A provider that leaks a raw client error is still just unavailable
                logger.exception(f"Unexpected provider error on attempt {attempt}/{total_attempts}")
                failure = CompletionFailure(f"{type(e).__name__}: {e}", "unavailable", attempt)
            else:
                if result.text and result.text.strip():
                    elapsed = self._elapsed(started)
                    logger.debug(f"Completion succeeded in {elapsed:.0f}ms (attempt {attempt}/{total_attempts})")
                    return CompletionSuccess(
                        text=result.text,
                        model=result.model,
                        elapsed_ms=elapsed,
                        attempts=attempt,
                    )
                failure = CompletionFailure("Provider returned empty text", "empty", attempt)

            logger.warning(
                f"Completion attempt {attempt}/{total_attempts} failed "
                f"({failure.reason}): {failure.error}"
            )

        failure.elapsed_ms = self._elapsed(started)
        logger.error(f"Completion failed after {failure.attempts} attempt(s): {failure.error}")
        return failure

    async def ping(self):
        return await self.provider.ping()

    @staticmethod
    def _elapsed(started: float) -> float:
        return (time.perf_counter() - started) * 1000
