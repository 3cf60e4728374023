"""
Conversation context store.

WHAT: Per-negotiation rolling memory of interpreted decisions with derived analytics
WHY: Prompts and the API need recent decisions without re-reading full history
HOW: In-memory keyed map, per-key locks, hard-TTL sweep on a background timer

Contexts are created lazily on first record and evicted once older than
max_age measured from creation, regardless of activity. The store is
process-local: each worker holds its own contexts.
"""

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional, Protocol

from ..core.config import settings
from ..models.decision import Action, Decision
from ..utils.logger import get_logger
from ..utils.timing import SECONDS_PER_HOUR, utcnow

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass
class ContextEntry:
    """One recorded decision and the inputs it was made from."""
    timestamp: datetime
    decision: Decision
    input_snapshot: dict


@dataclass
class PricePoint:
    round: int  # entry count when the offer was recorded
    amount: float
    timestamp: datetime


@dataclass
class ContextAnalytics:
    """Aggregates recomputed on every record."""
    average_confidence: float = 0.0
    action_counts: dict[str, int] = field(
        default_factory=lambda: {action.value: 0 for action in Action}
    )
    price_progression: list[PricePoint] = field(default_factory=list)


@dataclass
class ConversationContext:
    negotiation_id: str
    start_time: datetime
    entries: list[ContextEntry] = field(default_factory=list)
    analytics: ContextAnalytics = field(default_factory=ContextAnalytics)
    confidence_total: float = 0.0


class SweepScheduler(Protocol):
    """Runs a task periodically until stopped."""

    def start(self, interval_seconds: float, task: Callable[[], None]) -> None:
        ...

    def stop(self) -> None:
        ...


class ThreadingSweepScheduler:
    """
    Periodic runner built on threading.Timer.

    WHAT: Re-arming daemon timer
    WHY: Eviction must happen without a request to trigger it
    HOW: Each run schedules the next one; stop() cancels the pending timer
    """

    def __init__(self):
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._stopped = False

    def start(self, interval_seconds: float, task: Callable[[], None]) -> None:
        def run():
            try:
                task()
            except Exception as e:
                logger.error(f"Context sweep failed: {e}", exc_info=True)
            self._arm(interval_seconds, run)

        with self._lock:
            self._stopped = False
        self._arm(interval_seconds, run)
        logger.info(f"Started context sweep thread (interval: {interval_seconds / SECONDS_PER_HOUR}h)")

    def _arm(self, interval_seconds: float, run: Callable[[], None]) -> None:
        with self._lock:
            if self._stopped:
                return
            self._timer = threading.Timer(interval_seconds, run)
            self._timer.daemon = True
            self._timer.start()

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class ConversationContextStore:
    """
    Thread-safe store of conversation contexts keyed by negotiation id.

    Args:
        max_age: Hard TTL measured from context creation
        sweep_interval: How often the scheduler runs sweep()
        clock: Returns the current aware datetime (injectable for tests)
        scheduler: Periodic runner for the sweep
    """

    def __init__(
        self,
        max_age: timedelta = timedelta(hours=24),
        sweep_interval: timedelta = timedelta(hours=1),
        clock: Optional[Clock] = None,
        scheduler: Optional[SweepScheduler] = None
    ):
        self.max_age = max_age
        self.sweep_interval = sweep_interval
        self._clock = clock or utcnow
        self._scheduler = scheduler or ThreadingSweepScheduler()

        self._contexts: dict[str, ConversationContext] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

        self._created = 0
        self._evicted = 0

    @contextmanager
    def _locked(self, negotiation_id: str) -> Iterator[None]:
        """
        Hold the per-key lock for negotiation_id.

        The sweep removes a key's lock while holding it, so after acquiring we
        confirm the registry still maps the key to the same lock and retry if not.
        """
        while True:
            with self._registry_lock:
                lock = self._locks.setdefault(negotiation_id, threading.Lock())
            lock.acquire()
            with self._registry_lock:
                if self._locks.get(negotiation_id) is lock:
                    break
            lock.release()
        try:
            yield
        finally:
            lock.release()

    def start(self) -> None:
        self._scheduler.start(self.sweep_interval.total_seconds(), self.sweep)

    def stop(self) -> None:
        self._scheduler.stop()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._contexts)

    def __contains__(self, negotiation_id: str) -> bool:
        with self._registry_lock:
            return negotiation_id in self._contexts

    def record(self, negotiation_id: str, decision: Decision, input_snapshot: dict) -> None:
        """
        Append a decision to the negotiation's context, creating it if needed.

        Args:
            negotiation_id: Negotiation the decision belongs to
            decision: Interpreted decision
            input_snapshot: Context inputs worth keeping next to it
        """
        with self._locked(negotiation_id):
            now = self._clock()
            with self._registry_lock:
                context = self._contexts.get(negotiation_id)
                if context is None:
                    context = ConversationContext(negotiation_id=negotiation_id, start_time=now)
                    self._contexts[negotiation_id] = context
                    self._created += 1
                    logger.debug(f"Created conversation context for {negotiation_id}")

            context.entries.append(
                ContextEntry(timestamp=now, decision=decision, input_snapshot=dict(input_snapshot))
            )
            context.confidence_total += decision.confidence

            analytics = context.analytics
            analytics.average_confidence = context.confidence_total / len(context.entries)
            analytics.action_counts[decision.action.value] += 1
            if decision.offer is not None:
                analytics.price_progression.append(
                    PricePoint(round=len(context.entries), amount=decision.offer.amount, timestamp=now)
                )

    def get(self, negotiation_id: str) -> Optional[ConversationContext]:
        """Detached copy of the context, or None if absent or evicted."""
        if negotiation_id not in self:
            return None
        with self._locked(negotiation_id):
            with self._registry_lock:
                context = self._contexts.get(negotiation_id)
                if context is None:
                    # Swept after the membership check; drop the lock _locked recreated
                    self._locks.pop(negotiation_id, None)
                    return None
            return copy.deepcopy(context)

    def sweep(self) -> int:
        """
        Evict every context older than max_age.

        Returns:
            Number of evicted contexts
        """
        now = self._clock()
        with self._registry_lock:
            candidates = list(self._contexts.keys())

        evicted = 0
        for negotiation_id in candidates:
            with self._locked(negotiation_id):
                with self._registry_lock:
                    context = self._contexts.get(negotiation_id)
                    if context is None or now - context.start_time <= self.max_age:
                        continue
                    del self._contexts[negotiation_id]
                    # Lock is still held; waiters will notice it left the registry.
                    self._locks.pop(negotiation_id, None)
                    self._evicted += 1
                    evicted += 1

        if evicted:
            logger.info(f"Context sweep evicted {evicted} context(s), {len(self)} active")
        else:
            logger.debug(f"Context sweep found nothing to evict ({len(self)} active)")
        return evicted

    def stats(self) -> dict:
        """Store-level counters."""
        with self._registry_lock:
            active = len(self._contexts)
            total_entries = sum(len(c.entries) for c in self._contexts.values())
            created = self._created
            evicted = self._evicted
        return {
            "active_contexts": active,
            "contexts_created": created,
            "contexts_evicted": evicted,
            "average_entries": total_entries / active if active else 0.0,
            "max_age_hours": self.max_age.total_seconds() / SECONDS_PER_HOUR,
            "sweep_interval_hours": self.sweep_interval.total_seconds() / SECONDS_PER_HOUR,
        }

    def conversation_summary(self, negotiation_id: str, last_n: int = 5) -> Optional[dict]:
        """
        Compact view of recent decisions for prompt building.

        Returns:
            Dict with recent entries and rolling stats, or None
        """
        context = self.get(negotiation_id)
        if context is None:
            return None

        recent = [
            {
                "timestamp": entry.timestamp.isoformat(),
                "action": entry.decision.action.value,
                "confidence": entry.decision.confidence,
                "offer": entry.decision.offer.amount if entry.decision.offer else None,
                "content": entry.decision.content,
            }
            for entry in context.entries[-last_n:]
        ]
        progression = context.analytics.price_progression
        return {
            "negotiation_id": negotiation_id,
            "entry_count": len(context.entries),
            "recent": recent,
            "average_confidence": context.analytics.average_confidence,
            "action_counts": dict(context.analytics.action_counts),
            "latest_price": progression[-1].amount if progression else None,
        }

    def negotiation_phase(self, negotiation_id: str, max_rounds: int) -> Optional[str]:
        """
        Coarse phase of the negotiation from its latest recorded round.

        opening (<= 2 rounds), exploration (<= 60% of max), bargaining
        (<= 80% of max), closing otherwise.
        """
        context = self.get(negotiation_id)
        if context is None:
            return None

        latest = context.entries[-1].input_snapshot if context.entries else {}
        rounds = latest.get("rounds", len(context.entries))
        if rounds <= 2:
            return "opening"
        if rounds <= max_rounds * 0.6:
            return "exploration"
        if rounds <= max_rounds * 0.8:
            return "bargaining"
        return "closing"

    def export(self, negotiation_id: str) -> Optional[dict]:
        """Timeline view of a context for inspection."""
        context = self.get(negotiation_id)
        if context is None:
            return None

        analytics = context.analytics
        return {
            "negotiation_id": negotiation_id,
            "start_time": context.start_time.isoformat(),
            "expires_at": (context.start_time + self.max_age).isoformat(),
            "analytics": {
                "average_confidence": analytics.average_confidence,
                "action_counts": dict(analytics.action_counts),
                "price_progression": [
                    {"round": p.round, "amount": p.amount, "timestamp": p.timestamp.isoformat()}
                    for p in analytics.price_progression
                ],
            },
            "timeline": [
                {
                    "timestamp": entry.timestamp.isoformat(),
                    "action": entry.decision.action.value,
                    "confidence": entry.decision.confidence,
                    "offer": entry.decision.offer.model_dump(mode="json") if entry.decision.offer else None,
                    "content": entry.decision.content,
                    "is_fallback": entry.decision.metadata.is_fallback,
                    "input": entry.input_snapshot,
                }
                for entry in context.entries
            ],
        }


def create_context_store(clock: Optional[Clock] = None) -> ConversationContextStore:
    """Build a store from settings with the default threading scheduler."""
    return ConversationContextStore(
        max_age=timedelta(hours=settings.CONTEXT_MAX_AGE_HOURS),
        sweep_interval=timedelta(hours=settings.CONTEXT_SWEEP_INTERVAL_HOURS),
        clock=clock,
    )
