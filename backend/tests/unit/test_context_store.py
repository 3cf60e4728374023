"""
Unit tests for the conversation context store.

WHAT: Recording, analytics, TTL eviction, concurrency and derived views
WHY: The store is shared between request handlers and the sweep thread
HOW: Frozen clock, manual sweep scheduler, thread pool writers
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from haggle.core.context_store import ThreadingSweepScheduler
from haggle.models.decision import Action, Decision
from haggle.models.message import Offer


def decision(action=Action.CONTINUE, confidence=0.5, amount=None):
    return Decision(
        content="ok",
        action=action,
        confidence=confidence,
        offer=Offer(amount=amount) if amount is not None else None,
    )


def snapshot(rounds=1, current_offer=500.0):
    return {"current_offer": current_offer, "rounds": rounds, "user_message": ""}


@pytest.mark.unit
class TestRecording:

    def test_context_created_lazily(self, store):
        assert store.get("neg-1") is None
        store.record("neg-1", decision(), snapshot())
        assert "neg-1" in store
        assert store.stats()["contexts_created"] == 1

    def test_analytics_are_recomputed(self, store):
        store.record("neg-1", decision(Action.ACCEPT, 0.9, 900), snapshot())
        store.record("neg-1", decision(Action.COUNTER, 0.5, 850), snapshot(2))

        analytics = store.get("neg-1").analytics
        assert analytics.average_confidence == pytest.approx(0.7)
        assert analytics.action_counts == {"accept": 1, "reject": 0, "counter": 1, "continue": 0}
        assert [(p.round, p.amount) for p in analytics.price_progression] == [(1, 900.0), (2, 850.0)]

    def test_get_returns_detached_copy(self, store):
        store.record("neg-1", decision(), snapshot())
        copy = store.get("neg-1")
        copy.entries.clear()
        copy.analytics.action_counts["continue"] = 99

        fresh = store.get("neg-1")
        assert len(fresh.entries) == 1
        assert fresh.analytics.action_counts["continue"] == 1

    def test_snapshot_is_copied(self, store):
        data = snapshot()
        store.record("neg-1", decision(), data)
        data["rounds"] = 42
        assert store.get("neg-1").entries[0].input_snapshot["rounds"] == 1


@pytest.mark.unit
class TestEviction:

    def test_context_survives_one_hour_and_expires_after_a_day(self, store, clock):
        store.record("neg-1", decision(), snapshot())

        clock.advance(hours=1)
        assert store.sweep() == 0
        assert store.get("neg-1") is not None

        clock.advance(hours=24)
        assert store.sweep() == 1
        assert store.get("neg-1") is None
        assert store.stats()["contexts_evicted"] == 1

    def test_get_racing_a_sweep_leaves_no_lock_behind(self, store, clock, monkeypatch):
        store.record("neg-1", decision(), snapshot())
        clock.advance(hours=25)
        store.sweep()
        # Membership check answered before the sweep ran
        monkeypatch.setattr(type(store), "__contains__", lambda self, negotiation_id: True)

        assert store.get("neg-1") is None
        assert "neg-1" not in store._locks

    def test_ttl_is_measured_from_creation(self, store, clock):
        store.record("neg-1", decision(), snapshot())
        clock.advance(hours=23)
        store.record("neg-1", decision(), snapshot())
        clock.advance(hours=2)
        assert store.sweep() == 1

    def test_exactly_max_age_is_kept(self, store, clock):
        store.record("neg-1", decision(), snapshot())
        clock.advance(hours=24)
        assert store.sweep() == 0

    def test_record_after_eviction_starts_fresh(self, store, clock):
        store.record("neg-1", decision(), snapshot())
        clock.advance(hours=25)
        store.sweep()
        store.record("neg-1", decision(), snapshot())

        context = store.get("neg-1")
        assert len(context.entries) == 1
        assert context.start_time == clock()

    def test_scheduler_drives_sweep(self, store, scheduler, clock):
        store.start()
        assert scheduler.started
        assert scheduler.interval_seconds == 3600

        store.record("neg-1", decision(), snapshot())
        clock.advance(hours=25)
        assert scheduler.run() == 1

        store.stop()
        assert scheduler.stopped


@pytest.mark.unit
class TestConcurrency:

    def test_concurrent_writers_lose_nothing(self, store):
        writers, per_writer = 8, 50
        actions = list(Action)
        stop = threading.Event()

        def write(worker):
            for i in range(per_writer):
                store.record("neg-1", decision(actions[(worker + i) % len(actions)]), snapshot(i))

        def sweep_until_stopped():
            while not stop.is_set():
                store.sweep()

        sweeper = threading.Thread(target=sweep_until_stopped)
        sweeper.start()
        try:
            with ThreadPoolExecutor(max_workers=writers) as pool:
                list(pool.map(write, range(writers)))
        finally:
            stop.set()
            sweeper.join()

        context = store.get("neg-1")
        assert sum(context.analytics.action_counts.values()) == writers * per_writer
        assert len(context.entries) == writers * per_writer

    def test_concurrent_writers_on_separate_ids(self, store):
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda n: [store.record(f"neg-{n}", decision(), snapshot()) for _ in range(25)], range(4)))

        assert len(store) == 4
        assert store.stats()["average_entries"] == 25


@pytest.mark.unit
class TestDerivedViews:

    @pytest.mark.parametrize("rounds,phase", [
        (1, "opening"),
        (2, "opening"),
        (5, "exploration"),
        (6, "exploration"),
        (7, "bargaining"),
        (8, "bargaining"),
        (9, "closing"),
    ])
    def test_phase_from_latest_round(self, store, rounds, phase):
        store.record("neg-1", decision(), snapshot(rounds))
        assert store.negotiation_phase("neg-1", max_rounds=10) == phase

    def test_phase_of_unknown_negotiation(self, store):
        assert store.negotiation_phase("missing", max_rounds=10) is None

    def test_conversation_summary(self, store):
        for amount in (700, 750, 800):
            store.record("neg-1", decision(Action.COUNTER, 0.7, amount), snapshot())

        summary = store.conversation_summary("neg-1", last_n=2)
        assert summary["entry_count"] == 3
        assert [entry["offer"] for entry in summary["recent"]] == [750.0, 800.0]
        assert summary["latest_price"] == 800.0
        assert summary["action_counts"]["counter"] == 3

    def test_export(self, store, clock):
        store.record("neg-1", decision(Action.COUNTER, 0.7, 850), snapshot())
        exported = store.export("neg-1")

        assert exported["start_time"] == clock().isoformat()
        assert exported["expires_at"] == clock.advance(hours=24).isoformat()
        assert exported["timeline"][0]["offer"] == {"amount": 850.0, "final": False, "source": None}
        assert exported["timeline"][0]["is_fallback"] is False
        assert store.export("missing") is None

    def test_stats_shape(self, store):
        assert store.stats() == {
            "active_contexts": 0,
            "contexts_created": 0,
            "contexts_evicted": 0,
            "average_entries": 0.0,
            "max_age_hours": 24.0,
            "sweep_interval_hours": 1.0,
        }


@pytest.mark.unit
def test_threading_scheduler_runs_and_stops():
    ran = threading.Event()
    scheduler = ThreadingSweepScheduler()
    scheduler.start(0.01, ran.set)
    try:
        assert ran.wait(2.0)
    finally:
        scheduler.stop()
