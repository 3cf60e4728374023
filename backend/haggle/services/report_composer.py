"""
Report composer.

WHAT: Summary, detailed and comparison reports built from insight bundles
WHY: Callers want one document per question, not four raw bundles
HOW: Pure transformations of (negotiation, messages) through the InsightEngine
"""

from enum import Enum
from typing import Iterable, Optional, Sequence

from ..models.message import Message, MessageType
from ..models.negotiation import Negotiation, NegotiationStatus
from ..services.insight_engine import (
    ALL_INSIGHT_TYPES,
    InsightEngine,
    extract_milestones,
    offer_messages,
)
from ..utils.exceptions import UnknownInsightTypeError
from ..utils.logger import get_logger
from ..utils.text import preview
from ..utils.timing import SECONDS_PER_HOUR, seconds_between

logger = get_logger(__name__)

INITIATION_MESSAGES = 5
CONCLUSION_MESSAGES = 3
MOMENTUM_WINDOW = 10
CRITICAL_SWING = 0.10


class ReportType(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    COMPARISON = "comparison"

    @classmethod
    def parse(cls, value: "str | ReportType") -> "ReportType":
        try:
            return cls(value)
        except ValueError:
            raise UnknownInsightTypeError("report", str(value), [t.value for t in cls]) from None


def net_sentiment(sentiment: Optional[dict]) -> float:
    """(positive - negative) / total, 0.0 without messages."""
    if not sentiment:
        return 0.0
    overall = sentiment["overall"]
    total = overall["positive"] + overall["neutral"] + overall["negative"]
    return (overall["positive"] - overall["negative"]) / total if total else 0.0


def conversation_phases(messages: Sequence[Message]) -> list[dict]:
    """
    Split the sequence by position: first five messages are initiation, the
    last three conclusion, anything between negotiation. Empty phases are omitted.
    """
    count = len(messages)
    initiation_end = min(INITIATION_MESSAGES, count)
    conclusion_start = max(initiation_end, count - CONCLUSION_MESSAGES)
    phases = [
        ("initiation", 0, initiation_end),
        ("negotiation", initiation_end, conclusion_start),
        ("conclusion", conclusion_start, count),
    ]
    return [
        {"phase": name, "start": start, "end": end, "message_count": end - start}
        for name, start, end in phases
        if end > start
    ]


def momentum(messages: Sequence[Message]) -> float:
    """Messages per hour across the last ten messages."""
    recent = messages[-MOMENTUM_WINDOW:]
    if len(recent) < 2:
        return 0.0
    span = seconds_between(recent[0].timestamp, recent[-1].timestamp)
    return len(recent) / (span / SECONDS_PER_HOUR) if span > 0 else 0.0


def critical_moments(messages: Sequence[Message]) -> list[dict]:
    """First offer, every acceptance, and offers that swing >10% from the prior offer."""
    moments = []
    previous_offer = None
    for message in messages:
        reason = None
        if message.type == MessageType.ACCEPTANCE:
            reason = "Offer accepted"
        if message.offer is not None:
            amount = message.offer.amount
            if previous_offer is None:
                reason = reason or f"First offer of ${amount:,.2f}"
            elif previous_offer > 0 and abs(amount - previous_offer) / previous_offer > CRITICAL_SWING:
                reason = reason or f"Price swing to ${amount:,.2f} (from ${previous_offer:,.2f})"
            previous_offer = amount
        if reason:
            moments.append({
                "timestamp": message.timestamp,
                "type": "critical_moment",
                "sender": message.sender.value,
                "description": reason,
                "impact": "high",
            })
    return moments


def participant_profiles(messages: Sequence[Message]) -> dict:
    profiles = {}
    total = len(messages)
    for sender in dict.fromkeys(m.sender.value for m in messages):
        own = [m for m in messages if m.sender.value == sender]
        profiles[sender] = {
            "message_count": len(own),
            "average_length": sum(len(m.content) for m in own) / len(own),
            "offer_count": sum(1 for m in own if m.offer is not None),
            "share": len(own) / total,
        }
    return profiles


class ReportComposer:
    """
    Builds reports on top of an InsightEngine.

    Args:
        engine: Insight engine (its clock stamps the reports)
    """

    def __init__(self, engine: Optional[InsightEngine] = None):
        self.engine = engine or InsightEngine()

    def compose(
        self,
        report_type: "ReportType | str",
        negotiation: Negotiation,
        messages: Sequence[Message]
    ) -> dict:
        """
        Build a single-negotiation report.

        Raises:
            UnknownInsightTypeError: Unknown type, or comparison (use comparison())
        """
        kind = ReportType.parse(report_type)
        if kind == ReportType.SUMMARY:
            return self.summary(negotiation, messages)
        elif kind == ReportType.DETAILED:
            return self.detailed(negotiation, messages)
        raise UnknownInsightTypeError(
            "single-negotiation report",
            kind.value,
            [ReportType.SUMMARY.value, ReportType.DETAILED.value],
        )

    def summary(self, negotiation: Negotiation, messages: Sequence[Message]) -> dict:
        insights = self.engine.generate_many(negotiation, messages)["insights"]
        performance = insights["performance"]
        prediction = insights["prediction"]

        return {
            "report_type": ReportType.SUMMARY.value,
            "negotiation_id": negotiation.id,
            "generated_at": self.engine.now(),
            "overview": {
                "status": negotiation.status.value,
                "duration": self.engine.negotiation_duration(negotiation),
                "message_count": len(messages),
                "current_round": negotiation.rounds,
                "max_rounds": negotiation.max_rounds,
            },
            "key_metrics": {
                "response_time": performance["efficiency"]["average_response_time"],
                "engagement_level": performance["engagement"]["level"],
                "sentiment_score": net_sentiment(insights["sentiment"]),
                "success_probability": prediction["success_probability"],
            },
            "highlights": self._highlights(insights, messages),
            "recommendations": self._consolidate(insights),
            "next_steps": self._next_steps(negotiation, insights),
        }

    def detailed(self, negotiation: Negotiation, messages: Sequence[Message]) -> dict:
        insights = self.engine.generate_many(negotiation, messages, ALL_INSIGHT_TYPES)["insights"]

        return {
            "report_type": ReportType.DETAILED.value,
            "negotiation_id": negotiation.id,
            "generated_at": self.engine.now(),
            "conversation_overview": {
                "negotiation": negotiation.model_dump(mode="json"),
                "duration": self.engine.negotiation_duration(negotiation),
                "timeline": [
                    {
                        "timestamp": m.timestamp,
                        "event": m.type.value,
                        "sender": m.sender.value,
                        "content": preview(m.content),
                        "offer": m.offer.model_dump(mode="json") if m.offer else None,
                    }
                    for m in messages
                ],
                "milestones": extract_milestones(messages),
            },
            "detailed_analysis": insights,
            "participant_profiles": participant_profiles(messages),
            "conversation_flow": {
                "phases": conversation_phases(messages),
                "turning_points": [
                    {
                        "timestamp": m.timestamp,
                        "type": "turning_point",
                        "description": f"New offer: ${m.offer.amount:,.2f}",
                    }
                    for m in offer_messages(messages[1:])
                ],
                "momentum": momentum(messages),
            },
            "critical_moments": critical_moments(messages),
            "recommendations": {
                "immediate": self._immediate(insights),
                "strategic": self._strategic(insights),
                "tactical": self._tactical(insights),
            },
        }

    def comparison(self, entries: Iterable[tuple[Negotiation, Sequence[Message]]]) -> dict:
        """
        Compare several negotiations side by side.

        Args:
            entries: (negotiation, messages) pairs
        """
        rows = []
        for negotiation, messages in entries:
            insights = self.engine.generate_many(negotiation, messages)["insights"]
            rows.append({
                "negotiation_id": negotiation.id,
                "duration": self.engine.negotiation_duration(negotiation),
                "engagement": insights["performance"]["engagement"]["level"],
                "sentiment": net_sentiment(insights["sentiment"]),
                "success_probability": insights["prediction"]["success_probability"],
                "efficiency": insights["performance"]["efficiency"],
                "risks": [r["type"] for r in insights["prediction"]["risk_factors"]],
                "status": negotiation.status.value,
            })

        return {
            "report_type": ReportType.COMPARISON.value,
            "negotiation_ids": [r["negotiation_id"] for r in rows],
            "generated_at": self.engine.now(),
            "comparisons": {
                "duration": [{"negotiation_id": r["negotiation_id"], "duration": r["duration"]} for r in rows],
                "engagement": [{"negotiation_id": r["negotiation_id"], "engagement": r["engagement"]} for r in rows],
                "sentiment": [{"negotiation_id": r["negotiation_id"], "sentiment": r["sentiment"]} for r in rows],
                "success": [
                    {"negotiation_id": r["negotiation_id"], "success_probability": r["success_probability"]}
                    for r in rows
                ],
                "efficiency": [{"negotiation_id": r["negotiation_id"], "efficiency": r["efficiency"]} for r in rows],
            },
            "patterns": self._comparative_patterns(rows),
        }

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _consolidate(insights: dict) -> list[str]:
        recommendations = []
        for bundle in insights.values():
            recommendations.extend(bundle.get("recommendations", []))
        return recommendations

    @staticmethod
    def _highlights(insights: dict, messages: Sequence[Message]) -> list[str]:
        highlights = []
        if insights["performance"]["engagement"]["level"] >= 0.5:
            highlights.append("Active engagement")
        score = net_sentiment(insights["sentiment"])
        if score > 0:
            highlights.append("Positive sentiment trend")
        elif score < 0:
            highlights.append("Negative sentiment trend")
        if insights["prediction"]["price_convergence"]["converging"]:
            highlights.append("Price convergence detected")
        offers = insights["behavior"]["offer_behavior"]["offer_count"]
        if offers:
            highlights.append(f"{offers} offer(s) exchanged")
        if not messages:
            highlights.append("No messages yet")
        return highlights

    @staticmethod
    def _next_steps(negotiation: Negotiation, insights: dict) -> list[str]:
        if negotiation.status == NegotiationStatus.ACCEPTED:
            return ["Confirm payment and handover details"]
        if negotiation.status in (NegotiationStatus.REJECTED, NegotiationStatus.EXPIRED):
            return ["Review what blocked agreement before relisting"]

        steps = ["Review current offers"]
        convergence = insights["prediction"]["price_convergence"]
        if convergence["converging"] and convergence.get("estimated_convergence_price") is not None:
            steps.append(f"Consider final terms near ${convergence['estimated_convergence_price']:,.2f}")
        if negotiation.at_round_limit or negotiation.rounds > negotiation.max_rounds * 0.8:
            steps.append("Prepare a final accept or reject decision")
        else:
            steps.append("Continue active engagement")
        return steps

    @staticmethod
    def _immediate(insights: dict) -> list[str]:
        recommendations = []
        if any(r["type"] == "inactivity" for r in insights["prediction"]["risk_factors"]):
            recommendations.append("Follow up on the stalled conversation")
        if insights["sentiment"]["triggers"]:
            recommendations.append("Respond to the negative messages before moving on price")
        return recommendations or ["Respond promptly to the latest message"]

    @staticmethod
    def _strategic(insights: dict) -> list[str]:
        outcome = insights["prediction"]["outcome"]
        if outcome == "likely_success":
            return ["Steer toward closing while momentum is high"]
        if outcome == "likely_failure":
            return ["Reassess pricing expectations or walk away"]
        return ["Build rapport and clarify what each side values"]

    @staticmethod
    def _tactical(insights: dict) -> list[str]:
        tactics = []
        strategy = insights["behavior"]["offer_behavior"]["offer_strategy"]
        if strategy["aggressive"]:
            tactics.append("Use smaller, justified concessions")
        if insights["behavior"]["offer_behavior"]["offer_count"] == 0:
            tactics.append("Anchor with a specific price point")
        return tactics or ["Reference comparable listings when justifying price"]

    @staticmethod
    def _comparative_patterns(rows: list[dict]) -> dict:
        if not rows:
            return {"commentary": ["No negotiations to compare"]}

        best = max(rows, key=lambda r: r["success_probability"])
        most_engaged = max(rows, key=lambda r: r["engagement"])
        least_engaged = min(rows, key=lambda r: r["engagement"])
        risk_counts: dict[str, int] = {}
        for row in rows:
            for risk in row["risks"]:
                risk_counts[risk] = risk_counts.get(risk, 0) + 1

        average_success = sum(r["success_probability"] for r in rows) / len(rows)
        average_engagement = sum(r["engagement"] for r in rows) / len(rows)

        commentary = [f"Highest predicted success: {best['negotiation_id']}"]
        if most_engaged["negotiation_id"] != least_engaged["negotiation_id"]:
            commentary.append(
                f"Engagement ranges from {least_engaged['engagement']:.2f} "
                f"({least_engaged['negotiation_id']}) to {most_engaged['engagement']:.2f} "
                f"({most_engaged['negotiation_id']})"
            )
        for risk, count in sorted(risk_counts.items()):
            commentary.append(f"{count} negotiation(s) share risk: {risk}")

        return {
            "average_success_probability": average_success,
            "average_engagement": average_engagement,
            "top_performer": best["negotiation_id"],
            "most_engaged": most_engaged["negotiation_id"],
            "least_engaged": least_engaged["negotiation_id"],
            "common_risks": risk_counts,
            "commentary": commentary,
        }
