"""
Completion provider types and errors.

WHAT: Chat message shape, generation result, health status, provider failures
WHY: Providers, the completion client and the HTTP layer share one contract
HOW: TypedDict for messages, dataclasses for results, an exception family
     whose members carry the failure reason used for fallback routing
"""

from dataclasses import dataclass, field
from typing import Literal, TypedDict


class ChatMessage(TypedDict):
    """OpenAI-style chat message."""
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class LLMResult:
    """Text produced by one provider call."""
    text: str
    model: str
    usage: dict = field(default_factory=dict)


@dataclass
class ProviderStatus:
    """Result of a provider health check."""
    available: bool
    base_url: str
    models: list[str] | None = None
    error: str | None = None


class ProviderError(Exception):
    """Base for provider failures; `reason` names the failure class."""
    reason = "response"


class ProviderTimeoutError(ProviderError):
    reason = "timeout"


class ProviderUnavailableError(ProviderError):
    reason = "unavailable"


class ProviderDisabledError(ProviderError):
    """Provider switched off or misconfigured; retrying cannot help."""
    reason = "disabled"


class ProviderResponseError(ProviderError):
    """Error status or unparseable body."""
    reason = "response"
