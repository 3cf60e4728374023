"""
Message models for negotiation history.

WHAT: Message and offer structures for conversation history
WHY: Analytics and prompts read one shape regardless of the history backend
HOW: Pydantic v2 models with string enums for sender and message type
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class Sender(str, Enum):
    """Participant that authored a message."""
    BUYER = "buyer"
    SELLER = "seller"
    AUTOMATED_AGENT = "automated-agent"


class MessageType(str, Enum):
    """Kind of conversation turn."""
    MESSAGE = "message"
    OFFER = "offer"
    COUNTER_OFFER = "counter_offer"
    ACCEPTANCE = "acceptance"
    REJECTION = "rejection"
    SYSTEM = "system"


class OfferSource(str, Enum):
    """How an offer amount was derived."""
    EXTRACTED = "extracted"
    CALCULATED = "calculated"
    FALLBACK = "fallback"


class Offer(BaseModel):
    """A proposed price, embedded in a message or a decision."""

    amount: float
    final: bool = False
    source: OfferSource | None = None

    model_config = {"frozen": True}


class Message(BaseModel):
    """One turn in the negotiation conversation."""

    sender: Sender
    content: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: MessageType = MessageType.MESSAGE
    offer: Offer | None = None


class MessageHistory(BaseModel):
    """Timestamp-ordered history returned by a message history provider."""

    negotiation_id: str
    messages: list[Message] = Field(default_factory=list)
