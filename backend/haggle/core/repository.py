"""
Collaborator interfaces for negotiations and message history.

WHAT: Protocols the engine depends on, plus an in-memory implementation
WHY: Durable persistence lives outside the engine; tests and dev need a stand-in
HOW: typing.Protocol for the seams, asyncio.Lock-guarded dicts for the adapter
"""

import asyncio
from typing import Iterable, Optional, Protocol

from ..models.message import Message, MessageHistory
from ..models.negotiation import Negotiation
from ..utils.exceptions import NegotiationNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class MessageHistoryProvider(Protocol):
    """Source of timestamp-ordered negotiation messages."""

    async def get_message_history(
        self,
        negotiation_id: str,
        *,
        limit: int = 1000,
        include_context: bool = True
    ) -> MessageHistory:
        ...

    async def append_message(self, negotiation_id: str, message: Message) -> None:
        ...


class NegotiationStore(Protocol):
    """Source of negotiation aggregates."""

    async def load_negotiation(self, negotiation_id: str) -> Negotiation:
        ...


class InMemoryNegotiationRepository:
    """
    Dict-backed negotiations and histories.

    Implements both NegotiationStore and MessageHistoryProvider.
    """

    def __init__(self, negotiations: Optional[Iterable[Negotiation]] = None):
        self._negotiations: dict[str, Negotiation] = {}
        self._messages: dict[str, list[Message]] = {}
        self._lock = asyncio.Lock()
        for negotiation in negotiations or []:
            self._negotiations[negotiation.id] = negotiation

    async def save_negotiation(self, negotiation: Negotiation) -> None:
        async with self._lock:
            self._negotiations[negotiation.id] = negotiation

    async def load_negotiation(self, negotiation_id: str) -> Negotiation:
        """
        Raises:
            NegotiationNotFoundError: If the id is unknown
        """
        async with self._lock:
            negotiation = self._negotiations.get(negotiation_id)
        if negotiation is None:
            raise NegotiationNotFoundError(negotiation_id)
        return negotiation.model_copy(deep=True)

    async def get_message_history(
        self,
        negotiation_id: str,
        *,
        limit: int = 1000,
        include_context: bool = True
    ) -> MessageHistory:
        """
        Most recent `limit` messages, oldest first.

        include_context=False drops system messages.
        """
        async with self._lock:
            messages = list(self._messages.get(negotiation_id, []))
        if not include_context:
            messages = [m for m in messages if m.type.value != "system"]
        messages.sort(key=lambda m: m.timestamp)
        if limit and len(messages) > limit:
            messages = messages[-limit:]
        return MessageHistory(
            negotiation_id=negotiation_id,
            messages=[m.model_copy(deep=True) for m in messages],
        )

    async def append_message(self, negotiation_id: str, message: Message) -> None:
        async with self._lock:
            self._messages.setdefault(negotiation_id, []).append(message)
        logger.debug(f"Appended {message.type.value} message to {negotiation_id}")
