"""
Unit tests for the in-memory negotiation repository.

WHAT: Negotiation lookup and message history retrieval
WHY: Turns and analytics read everything through this adapter
"""

import pytest

from haggle.core.repository import InMemoryNegotiationRepository
from haggle.models.message import MessageType, Sender
from haggle.utils.exceptions import NegotiationNotFoundError
from tests.fixtures.factories import make_message, make_negotiation


@pytest.mark.unit
@pytest.mark.asyncio
class TestInMemoryNegotiationRepository:

    async def test_load_returns_copy(self):
        original = make_negotiation()
        repository = InMemoryNegotiationRepository([original])

        loaded = await repository.load_negotiation("neg-1")

        assert loaded == original
        assert loaded is not original

    async def test_unknown_negotiation_raises(self):
        repository = InMemoryNegotiationRepository()
        with pytest.raises(NegotiationNotFoundError):
            await repository.load_negotiation("missing")

    async def test_save_replaces_negotiation(self):
        repository = InMemoryNegotiationRepository([make_negotiation()])
        await repository.save_negotiation(make_negotiation(current_offer=820.0))

        loaded = await repository.load_negotiation("neg-1")
        assert loaded.current_offer == 820.0

    async def test_history_is_timestamp_ordered(self):
        repository = InMemoryNegotiationRepository()
        for minutes in (30, 0, 10):
            await repository.append_message("neg-1", make_message(Sender.BUYER, f"at {minutes}", minutes))

        history = await repository.get_message_history("neg-1")

        assert [m.content for m in history.messages] == ["at 0", "at 10", "at 30"]

    async def test_history_limit_keeps_newest(self):
        repository = InMemoryNegotiationRepository()
        for minutes in range(5):
            await repository.append_message("neg-1", make_message(Sender.SELLER, f"m{minutes}", minutes))

        history = await repository.get_message_history("neg-1", limit=2)

        assert [m.content for m in history.messages] == ["m3", "m4"]

    async def test_exclude_context_drops_system_messages(self):
        repository = InMemoryNegotiationRepository()
        await repository.append_message(
            "neg-1", make_message(Sender.AUTOMATED_AGENT, "Negotiation opened", 0, type=MessageType.SYSTEM)
        )
        await repository.append_message("neg-1", make_message(Sender.BUYER, "$700?", 5, amount=700.0))

        full = await repository.get_message_history("neg-1")
        bare = await repository.get_message_history("neg-1", include_context=False)

        assert len(full.messages) == 2
        assert [m.type for m in bare.messages] == [MessageType.OFFER]

    async def test_empty_history(self):
        history = await InMemoryNegotiationRepository().get_message_history("nobody")
        assert history.negotiation_id == "nobody"
        assert history.messages == []
