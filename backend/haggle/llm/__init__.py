"""Completion provider layer."""

from .types import (
    ChatMessage,
    LLMResult,
    ProviderStatus,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderDisabledError,
    ProviderResponseError,
)
from .provider import LLMProvider
from .provider_factory import get_provider, reset_provider
from .completion import (
    CompletionFailure,
    CompletionResult,
    CompletionSuccess,
    TextCompletionClient,
)

__all__ = [
    "ChatMessage",
    "LLMResult",
    "ProviderStatus",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderDisabledError",
    "ProviderResponseError",
    "LLMProvider",
    "get_provider",
    "reset_provider",
    "CompletionFailure",
    "CompletionResult",
    "CompletionSuccess",
    "TextCompletionClient",
]
