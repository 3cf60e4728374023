"""
Provider selection.

WHAT: Resolve the configured provider name to a shared provider instance
WHY: One HTTP client per process; the completion client never picks providers
HOW: Name -> class path registry, lazily imported and cached
"""

from importlib import import_module
from typing import TYPE_CHECKING, Optional

from ..core.config import settings
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .provider import LLMProvider

logger = get_logger(__name__)

PROVIDERS = {
    "lm_studio": (".lm_studio", "LMStudioProvider"),
    "openrouter": (".openrouter", "OpenRouterProvider"),
}

_instance: "Optional[LLMProvider]" = None


def get_provider(name: Optional[str] = None) -> "LLMProvider":
    """
    Return the shared provider, building it on first use.

    Args:
        name: Provider name; defaults to settings.LLM_PROVIDER. Ignored once
              an instance is cached.

    Raises:
        ValueError: Unknown provider name
    """
    global _instance
    if _instance is not None:
        return _instance

    name = name or settings.LLM_PROVIDER
    try:
        module_path, class_name = PROVIDERS[name]
    except KeyError:
        raise ValueError(f"Unknown LLM provider: {name}") from None

    provider_cls = getattr(import_module(module_path, __package__), class_name)
    _instance = provider_cls()
    logger.info(f"LLM provider initialized: {name}")
    return _instance


def reset_provider() -> None:
    """Drop the cached provider (tests, provider switch)."""
    global _instance
    _instance = None
