"""
Test data builders.

WHAT: Clocks, schedulers and model factories shared across tests
WHY: Deterministic time and compact construction of engine inputs
HOW: Plain helpers with keyword overrides on sensible defaults
"""

from datetime import datetime, timedelta, timezone

from haggle.models.message import Message, MessageType, Offer, Sender
from haggle.models.negotiation import InterpretationContext, Negotiation

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


class ManualSweepScheduler:
    """Scheduler that never fires on its own; tests call run()."""

    def __init__(self):
        self.interval_seconds = None
        self.task = None
        self.started = False
        self.stopped = False

    def start(self, interval_seconds, task):
        self.interval_seconds = interval_seconds
        self.task = task
        self.started = True

    def stop(self):
        self.stopped = True

    def run(self):
        return self.task()


def make_context(**overrides) -> InterpretationContext:
    """Interpretation context with list 1000, floor 600, offer 500, round 3 of 10."""
    fields = {
        "base_price": 1000.0,
        "min_price": 600.0,
        "current_offer": 500.0,
        "rounds": 3,
        "max_rounds": 10,
        "negotiation_id": "neg-1",
        "product_title": "Road bike",
    }
    fields.update(overrides)
    return InterpretationContext(**fields)


def make_negotiation(**overrides) -> Negotiation:
    fields = {
        "id": "neg-1",
        "product_id": "prod-1",
        "product_title": "Road bike",
        "base_price": 1000.0,
        "min_price": 600.0,
        "current_offer": 750.0,
        "rounds": 3,
        "max_rounds": 10,
        "created_at": T0,
    }
    fields.update(overrides)
    return Negotiation(**fields)


def make_message(
    sender: Sender,
    content: str,
    minutes: float = 0,
    amount: float | None = None,
    type: MessageType | None = None
) -> Message:
    """Message stamped `minutes` after T0, with an optional offer."""
    if type is None:
        type = MessageType.OFFER if amount is not None else MessageType.MESSAGE
    return Message(
        sender=sender,
        content=content,
        timestamp=T0 + timedelta(minutes=minutes),
        type=type,
        offer=Offer(amount=amount) if amount is not None else None,
    )


def sample_haggle() -> list[Message]:
    """A short haggle: buyer opens low, seller counters, both converge."""
    return [
        make_message(Sender.BUYER, "Hi, is the bike still available? Would you take $500?", 0, 500.0),
        make_message(Sender.SELLER, "It is a great bike, I can do $900.", 10, 900.0),
        make_message(Sender.BUYER, "Maybe we can meet at $700?", 30, 700.0),
        make_message(Sender.SELLER, "I understand. How about $760?", 45, 760.0),
        make_message(Sender.BUYER, "We could consider $740, that is my limit.", 60, 740.0),
        make_message(Sender.SELLER, "Deal at $750 and it is yours.", 70, 750.0, MessageType.ACCEPTANCE),
    ]
