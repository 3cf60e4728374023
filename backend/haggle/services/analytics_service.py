"""
Analytics orchestration.

WHAT: Load negotiation + history, then produce insights or reports
WHY: Insight and report code stays pure; loading lives here
HOW: Async reads through the repository protocols, then ReportComposer/InsightEngine
"""

from typing import Iterable, Optional, Sequence

from ..core.config import settings
from ..core.repository import MessageHistoryProvider, NegotiationStore
from ..models.message import Message
from ..models.negotiation import Negotiation
from ..services.insight_engine import InsightEngine, InsightType
from ..services.report_composer import ReportComposer, ReportType
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AnalyticsService:
    """
    On-demand analytics for stored negotiations.

    Args:
        negotiations: Negotiation aggregate source
        history: Message history provider
        composer: Report composer (owns the insight engine)
    """

    def __init__(
        self,
        negotiations: NegotiationStore,
        history: MessageHistoryProvider,
        composer: Optional[ReportComposer] = None
    ):
        self.negotiations = negotiations
        self.history = history
        self.composer = composer or ReportComposer()

    @property
    def engine(self) -> InsightEngine:
        return self.composer.engine

    async def load(self, negotiation_id: str) -> tuple[Negotiation, Sequence[Message]]:
        """
        Raises:
            NegotiationNotFoundError: Unknown negotiation
        """
        negotiation = await self.negotiations.load_negotiation(negotiation_id)
        history = await self.history.get_message_history(
            negotiation_id, limit=settings.HISTORY_LIMIT, include_context=True
        )
        return negotiation, history.messages

    async def insights(
        self,
        negotiation_id: str,
        insight_types: Optional[Iterable["InsightType | str"]] = None
    ) -> dict:
        # Parse before loading so a bad type fails fast.
        kinds = [InsightType.parse(t) for t in insight_types] if insight_types else None
        negotiation, messages = await self.load(negotiation_id)
        return self.engine.generate_many(negotiation, messages, kinds)

    async def insight(self, negotiation_id: str, insight_type: "InsightType | str") -> dict:
        kind = InsightType.parse(insight_type)
        negotiation, messages = await self.load(negotiation_id)
        return self.engine.generate(kind, messages, negotiation)

    async def report(self, negotiation_id: str, report_type: "ReportType | str") -> dict:
        kind = ReportType.parse(report_type)
        negotiation, messages = await self.load(negotiation_id)
        logger.info(f"Composing {kind.value} report for {negotiation_id} ({len(messages)} messages)")
        return self.composer.compose(kind, negotiation, messages)

    async def compare(self, negotiation_ids: Sequence[str]) -> dict:
        entries = [await self.load(negotiation_id) for negotiation_id in negotiation_ids]
        logger.info(f"Composing comparison report for {len(entries)} negotiation(s)")
        return self.composer.comparison(entries)
