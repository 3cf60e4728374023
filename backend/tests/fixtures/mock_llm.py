"""
Mock LLM provider for deterministic testing.

WHAT: Fake completion provider that returns scripted replies
WHY: Test interpretation, fallback and API flows without a real model
HOW: Implement the LLMProvider protocol with canned replies, errors or delays
"""

import asyncio
from typing import Dict, List

from haggle.llm.types import ChatMessage, LLMResult, ProviderResponseError, ProviderStatus


class MockLLMProvider:
    """
    Mock provider with scripted responses.

    Each entry in `responses` is either reply text or an exception instance to
    raise for that call; entries are cycled through.
    """

    def __init__(
        self,
        responses: List["str | Exception"] | None = None,
        should_fail: bool = False,
        delay: float = 0.0
    ):
        """
        Initialize mock provider.

        Args:
            responses: Canned replies or exceptions (cycled through)
            should_fail: If True, every call raises ProviderResponseError
            delay: Seconds to sleep before answering (for timeout tests)
        """
        self.responses = responses or ["Mock response"]
        self.should_fail = should_fail
        self.delay = delay
        self.call_count = 0
        self.calls: List[Dict] = []
        self.closed = False

    async def ping(self) -> ProviderStatus:
        """Mock ping."""
        return ProviderStatus(
            available=not self.should_fail,
            base_url="http://mock:1234/v1",
            models=["mock-model"] if not self.should_fail else None,
            error="Mock failure" if self.should_fail else None
        )

    async def generate(
        self,
        messages: List[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
        stop: List[str] | None = None,
        model: str | None = None,
        user: str | None = None
    ) -> LLMResult:
        """Mock generate."""
        self.calls.append({
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stop": stop,
            "model": model,
            "user": user,
        })

        if self.delay:
            await asyncio.sleep(self.delay)

        if self.should_fail:
            raise ProviderResponseError("Mock provider error")

        scripted = self.responses[self.call_count % len(self.responses)]
        self.call_count += 1
        if isinstance(scripted, Exception):
            raise scripted

        return LLMResult(
            text=scripted,
            usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
            model=model or "mock-model"
        )

    async def aclose(self) -> None:
        self.closed = True
