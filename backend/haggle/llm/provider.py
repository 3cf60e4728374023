"""Structural interface every completion backend satisfies."""

from typing import Optional, Protocol

from .types import ChatMessage, LLMResult, ProviderStatus


class LLMProvider(Protocol):
    """
    Chat-completion backend.

    generate raises a ProviderError subclass on failure; TextCompletionClient
    turns those into CompletionFailure results.
    """

    async def ping(self) -> ProviderStatus: ...

    async def generate(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
        stop: Optional[list[str]] = None,
        model: Optional[str] = None,
        user: Optional[str] = None
    ) -> LLMResult: ...

    async def aclose(self) -> None: ...
