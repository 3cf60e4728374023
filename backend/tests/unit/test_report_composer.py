"""
Unit tests for the report composer.

WHAT: Summary, detailed and comparison reports plus their helpers
WHY: Reports are the main analytics surface for callers
HOW: Sample haggle history, frozen insight clock
"""

from datetime import timedelta

import pytest

from haggle.models.negotiation import NegotiationStatus
from haggle.services.insight_engine import InsightEngine
from haggle.services.report_composer import (
    ReportComposer,
    conversation_phases,
    critical_moments,
    momentum,
    net_sentiment,
)
from haggle.utils.exceptions import UnknownInsightTypeError
from tests.fixtures.factories import FrozenClock, T0, make_negotiation


@pytest.fixture
def composer():
    return ReportComposer(InsightEngine(clock=FrozenClock(T0 + timedelta(hours=2))))


@pytest.mark.unit
class TestHelpers:

    @pytest.mark.parametrize("count,expected", [
        (0, []),
        (3, [("initiation", 3)]),
        (6, [("initiation", 5), ("conclusion", 1)]),
        (10, [("initiation", 5), ("negotiation", 2), ("conclusion", 3)]),
    ])
    def test_conversation_phases(self, sample_messages, count, expected):
        messages = (sample_messages * 2)[:count]
        phases = conversation_phases(messages)
        assert [(p["phase"], p["message_count"]) for p in phases] == expected

    def test_critical_moments(self, sample_messages):
        moments = critical_moments(sample_messages)
        assert [m["description"] for m in moments] == [
            "First offer of $500.00",
            "Price swing to $900.00 (from $500.00)",
            "Price swing to $700.00 (from $900.00)",
            "Offer accepted",
        ]

    def test_momentum(self, sample_messages):
        assert momentum(sample_messages) == pytest.approx(6 / (70 / 60))
        assert momentum(sample_messages[:1]) == 0.0

    def test_net_sentiment(self):
        assert net_sentiment({"overall": {"positive": 1, "neutral": 5, "negative": 0}}) == pytest.approx(1 / 6)
        assert net_sentiment({"overall": {"positive": 0, "neutral": 0, "negative": 0}}) == 0.0
        assert net_sentiment(None) == 0.0


@pytest.mark.unit
class TestSummary:

    def test_summary_report(self, composer, sample_messages, negotiation):
        report = composer.compose("summary", negotiation, sample_messages)

        assert report["report_type"] == "summary"
        assert report["overview"]["message_count"] == 6
        assert report["overview"]["duration"] == 7200.0
        assert report["key_metrics"]["response_time"] == 840.0
        assert report["key_metrics"]["sentiment_score"] == pytest.approx(1 / 6)
        assert "Price convergence detected" in report["highlights"]
        assert report["next_steps"] == [
            "Review current offers",
            "Consider final terms near $737.50",
            "Continue active engagement",
        ]
        assert report["recommendations"]

    def test_next_steps_for_accepted_negotiation(self, composer, sample_messages):
        negotiation = make_negotiation(status=NegotiationStatus.ACCEPTED, concluded_at=T0 + timedelta(hours=1))
        report = composer.summary(negotiation, sample_messages)
        assert report["next_steps"] == ["Confirm payment and handover details"]
        assert report["overview"]["duration"] == 3600.0

    def test_summary_of_empty_history(self, composer, negotiation):
        report = composer.summary(negotiation, [])
        assert "No messages yet" in report["highlights"]


@pytest.mark.unit
class TestDetailed:

    def test_detailed_report(self, composer, sample_messages, negotiation):
        report = composer.compose("detailed", negotiation, sample_messages)

        overview = report["conversation_overview"]
        assert overview["negotiation"]["id"] == "neg-1"
        assert len(overview["timeline"]) == 6
        assert len(overview["milestones"]) == 6
        assert set(report["detailed_analysis"]) == {"sentiment", "behavior", "performance", "prediction"}
        assert report["participant_profiles"]["buyer"]["share"] == 0.5
        assert len(report["conversation_flow"]["turning_points"]) == 5
        assert report["recommendations"]["strategic"] == ["Steer toward closing while momentum is high"]
        assert report["recommendations"]["tactical"] == ["Use smaller, justified concessions"]


@pytest.mark.unit
class TestComparison:

    def test_comparison_report(self, composer, sample_messages, negotiation):
        quiet = make_negotiation(id="neg-2")
        report = composer.comparison([(negotiation, sample_messages), (quiet, [])])

        assert report["negotiation_ids"] == ["neg-1", "neg-2"]
        assert [row["negotiation_id"] for row in report["comparisons"]["success"]] == ["neg-1", "neg-2"]
        patterns = report["patterns"]
        assert patterns["top_performer"] == "neg-1"
        assert patterns["most_engaged"] == "neg-1"
        assert patterns["least_engaged"] == "neg-2"
        assert patterns["average_success_probability"] == pytest.approx((0.99 + 0.7) / 2)

    def test_comparison_of_nothing(self, composer):
        assert composer.comparison([])["patterns"] == {"commentary": ["No negotiations to compare"]}

    @pytest.mark.parametrize("report_type", ["comparison", "weekly"])
    def test_compose_rejects_non_single_reports(self, composer, negotiation, report_type):
        with pytest.raises(UnknownInsightTypeError):
            composer.compose(report_type, negotiation, [])
