"""
Engine wiring.

WHAT: One container holding every engine component for an app instance
WHY: Endpoints and tests share a single explicit object graph instead of globals
HOW: build_engine() assembles defaults from settings; any part can be injected
"""

from dataclasses import dataclass
from typing import Optional

from ..core.context_store import ConversationContextStore, create_context_store
from ..core.repository import InMemoryNegotiationRepository
from ..llm.completion import TextCompletionClient
from ..llm.provider import LLMProvider
from ..llm.provider_factory import get_provider
from ..services.analytics_service import AnalyticsService
from ..services.fallback_responder import FallbackResponder
from ..services.negotiation_service import NegotiationService
from ..services.report_composer import ReportComposer
from ..services.response_interpreter import ResponseInterpreter
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EngineContainer:
    repository: InMemoryNegotiationRepository
    store: ConversationContextStore
    provider: LLMProvider
    completion: TextCompletionClient
    interpreter: ResponseInterpreter
    fallback: FallbackResponder
    negotiations: NegotiationService
    analytics: AnalyticsService

    def start(self) -> None:
        self.store.start()

    async def shutdown(self) -> None:
        self.store.stop()
        await self.provider.aclose()


def build_engine(
    *,
    provider: Optional[LLMProvider] = None,
    repository: Optional[InMemoryNegotiationRepository] = None,
    store: Optional[ConversationContextStore] = None,
    fallback: Optional[FallbackResponder] = None,
    composer: Optional[ReportComposer] = None
) -> EngineContainer:
    """Assemble an engine, defaulting every part from settings."""
    provider = provider or get_provider()
    repository = repository or InMemoryNegotiationRepository()
    store = store or create_context_store()
    fallback = fallback or FallbackResponder()

    completion = TextCompletionClient(provider)
    interpreter = ResponseInterpreter(store=store)

    logger.info("Negotiation engine assembled")
    return EngineContainer(
        repository=repository,
        store=store,
        provider=provider,
        completion=completion,
        interpreter=interpreter,
        fallback=fallback,
        negotiations=NegotiationService(repository, repository, completion, interpreter, fallback),
        analytics=AnalyticsService(repository, repository, composer),
    )
