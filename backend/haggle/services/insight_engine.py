"""
Insight engine for negotiation analytics.

WHAT: Sentiment, behavior, performance and prediction insights over message history
WHY: Sellers and buyers need to see how a negotiation is going and where it is heading
HOW: Pure functions of (messages, negotiation); lexicon and threshold heuristics

All durations are in seconds. The clock is injectable so "now"-dependent
values (open negotiation duration, inactivity) are testable.
"""

import statistics
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from ..core.config import settings
from ..models.message import Message, MessageType
from ..models.negotiation import Negotiation
from ..utils.exceptions import UnknownInsightTypeError
from ..utils.lexicon import (
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    STYLE_KEYWORDS,
    sentiment_words,
    tokenize,
)
from ..utils.logger import get_logger
from ..utils.text import preview
from ..utils.timing import SECONDS_PER_HOUR, duration_seconds, ensure_aware, mean, seconds_between, utcnow

logger = get_logger(__name__)

TRIGGER_CONFIDENCE = 0.8
ENGAGEMENT_SATURATION = 20  # messages for full engagement
STAGNATION_GAP_SECONDS = 6 * SECONDS_PER_HOUR
COMPLETION_LOOKAHEAD_MESSAGES = 5
RECENT_WINDOW = 5
CONVERGENCE_WINDOW = 4
AGGRESSIVE_STEP = 0.10
MODERATE_STEP = 0.05


class InsightType(str, Enum):
    SENTIMENT = "sentiment"
    BEHAVIOR = "behavior"
    PERFORMANCE = "performance"
    PREDICTION = "prediction"

    @classmethod
    def parse(cls, value: "str | InsightType") -> "InsightType":
        """
        Raises:
            UnknownInsightTypeError: For anything outside the enum
        """
        try:
            return cls(value)
        except ValueError:
            raise UnknownInsightTypeError("insight", str(value), [t.value for t in cls]) from None


ALL_INSIGHT_TYPES = tuple(InsightType)


# ---------------------------------------------------------------------------
# Message-level helpers
# ---------------------------------------------------------------------------

def analyze_sentiment(text: str) -> dict:
    """
    Lexicon score for one message.

    Returns:
        Dict with label (positive/neutral/negative), score and confidence
    """
    words = sentiment_words(text)
    score = sum(1 for w in words if w in POSITIVE_WORDS) - sum(1 for w in words if w in NEGATIVE_WORDS)

    label = "neutral"
    if score > 0:
        label = "positive"
    elif score < 0:
        label = "negative"

    confidence = min(abs(score) / len(words) * 10, 1.0) if words else 0.0
    return {"label": label, "score": score, "confidence": confidence}


def offer_messages(messages: Sequence[Message]) -> list[Message]:
    return [m for m in messages if m.offer is not None]


def response_times(messages: Sequence[Message]) -> list[tuple[Message, float]]:
    """(reply, seconds) for every message that answers a different sender."""
    return [
        (current, seconds_between(previous.timestamp, current.timestamp))
        for previous, current in zip(messages, messages[1:])
        if current.sender != previous.sender
    ]


def average_response_time(messages: Sequence[Message]) -> float:
    """Mean reply latency across sender changes, 0.0 when there are none."""
    return mean(t for _, t in response_times(messages)) or 0.0


def message_gaps(messages: Sequence[Message]) -> list[tuple[Message, float]]:
    """(message, seconds since previous message) for every message after the first."""
    return [
        (current, seconds_between(previous.timestamp, current.timestamp))
        for previous, current in zip(messages, messages[1:])
    ]


def sender_counts(messages: Iterable[Message]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for message in messages:
        counts[message.sender.value] = counts.get(message.sender.value, 0) + 1
    return counts


def participant_balance(messages: Sequence[Message]) -> float:
    """min/max per-sender message count; 1.0 for an empty history."""
    counts = sender_counts(messages).values()
    if not counts:
        return 1.0
    return min(counts) / max(counts)


def engagement_consistency(messages: Sequence[Message]) -> float:
    """
    How even the pacing is: 1 minus the coefficient of variation of message
    gaps, clamped to [0, 1]. Fewer than two gaps count as fully consistent.
    """
    gaps = [gap for _, gap in message_gaps(messages)]
    if len(gaps) < 2:
        return 1.0
    average = statistics.fmean(gaps)
    if average <= 0:
        return 1.0
    variation = statistics.pstdev(gaps) / average
    return max(0.0, min(1.0, 1.0 - variation))


def engagement_level(messages: Sequence[Message]) -> float:
    return min(len(messages) / ENGAGEMENT_SATURATION, 1.0)


def extract_milestones(messages: Sequence[Message]) -> list[dict]:
    """Offers and acceptances, in order."""
    return [
        {
            "timestamp": m.timestamp,
            "type": "milestone",
            "description": f"Offer of ${m.offer.amount:,.2f}" if m.offer else m.type.value,
        }
        for m in messages
        if m.offer is not None or m.type == MessageType.ACCEPTANCE
    ]


def price_trend(prices: Sequence[float]) -> str:
    """Majority direction of consecutive price steps."""
    if len(prices) < 3:
        return "insufficient_data"
    increases = sum(1 for a, b in zip(prices, prices[1:]) if b > a)
    decreases = sum(1 for a, b in zip(prices, prices[1:]) if b < a)
    if increases > decreases:
        return "increasing"
    if decreases > increases:
        return "decreasing"
    return "fluctuating"


def price_convergence(messages: Sequence[Message]) -> dict:
    """
    Compare the spread of the last four offers with the first two.

    Converging means the recent spread is strictly smaller. The settle estimate
    is the mean of the last (up to) four offers.
    """
    prices = [m.offer.amount for m in offer_messages(messages)]
    if len(prices) < 2:
        return {"converging": False, "convergence_rate": 0.0, "estimated_convergence_price": None}

    recent = prices[-CONVERGENCE_WINDOW:]
    recent_range = max(recent) - min(recent)
    initial_range = max(prices[:2]) - min(prices[:2])

    return {
        "converging": recent_range < initial_range,
        "convergence_rate": (initial_range - recent_range) / initial_range if initial_range > 0 else 0.0,
        "estimated_convergence_price": sum(recent) / len(recent),
        "recent_range": recent_range,
        "initial_range": initial_range,
    }


def outcome_label(probability: float) -> str:
    if probability > 0.8:
        return "likely_success"
    if probability > 0.6:
        return "possible_success"
    if probability < 0.3:
        return "likely_failure"
    return "uncertain"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class InsightEngine:
    """
    Computes insight bundles. Holds no per-negotiation state.

    Args:
        clock: Returns the current aware datetime
        inactivity: Idle time after which a negotiation is flagged at risk
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        inactivity: Optional[timedelta] = None
    ):
        self._clock = clock or utcnow
        self.inactivity = inactivity or timedelta(hours=settings.INACTIVITY_HOURS)

    def now(self) -> datetime:
        return self._clock()

    def negotiation_duration(self, negotiation: Negotiation) -> float:
        """Seconds from creation to conclusion, or to now while open."""
        return duration_seconds(negotiation.created_at, negotiation.concluded_at, now=self.now())

    def generate(
        self,
        insight_type: "InsightType | str",
        messages: Sequence[Message],
        negotiation: Negotiation
    ) -> dict:
        """
        Compute one insight bundle.

        Raises:
            UnknownInsightTypeError: For an unsupported insight type
        """
        kind = InsightType.parse(insight_type)
        if kind == InsightType.SENTIMENT:
            return self.sentiment(messages)
        elif kind == InsightType.BEHAVIOR:
            return self.behavior(messages)
        elif kind == InsightType.PERFORMANCE:
            return self.performance(messages, negotiation)
        elif kind == InsightType.PREDICTION:
            return self.prediction(messages, negotiation)
        raise UnknownInsightTypeError("insight", kind.value, [t.value for t in InsightType])

    def generate_many(
        self,
        negotiation: Negotiation,
        messages: Sequence[Message],
        insight_types: Optional[Iterable["InsightType | str"]] = None
    ) -> dict:
        """Bundle several insights keyed by type value."""
        kinds = [InsightType.parse(t) for t in (insight_types or ALL_INSIGHT_TYPES)]
        insights = {kind.value: self.generate(kind, messages, negotiation) for kind in kinds}
        logger.debug(f"Generated {len(insights)} insight(s) for {negotiation.id} over {len(messages)} messages")
        return {
            "negotiation_id": negotiation.id,
            "generated_at": self.now(),
            "insights": insights,
        }

    # -- sentiment ----------------------------------------------------------

    def sentiment(self, messages: Sequence[Message]) -> dict:
        overall = {"positive": 0, "neutral": 0, "negative": 0}
        by_participant: dict[str, dict[str, int]] = {}
        timeline = []
        triggers = []

        for message in messages:
            result = analyze_sentiment(message.content)
            label = result["label"]
            sender = message.sender.value

            overall[label] += 1
            by_participant.setdefault(sender, {"positive": 0, "neutral": 0, "negative": 0})[label] += 1
            timeline.append({
                "timestamp": message.timestamp,
                "sender": sender,
                "sentiment": label,
                "confidence": result["confidence"],
                "content": preview(message.content),
            })
            if label == "negative" and result["confidence"] > TRIGGER_CONFIDENCE:
                triggers.append({
                    "timestamp": message.timestamp,
                    "sender": sender,
                    "trigger": "negative_sentiment",
                    "content": message.content,
                    "confidence": result["confidence"],
                })

        data = {
            "overall": overall,
            "by_participant": by_participant,
            "timeline": timeline,
            "triggers": triggers,
        }
        data["recommendations"] = self._sentiment_recommendations(data)
        return data

    def _sentiment_recommendations(self, data: dict) -> list[str]:
        overall = data["overall"]
        recommendations = []
        if not data["timeline"]:
            return ["Open with a friendly greeting and a clear price anchor"]
        if data["triggers"]:
            recommendations.append(
                f"Address {len(data['triggers'])} strongly negative message(s) before making new offers"
            )
        if overall["negative"] > overall["positive"]:
            recommendations.append("Tone is trending negative; acknowledge concerns and restate shared goals")
        elif overall["positive"] > overall["negative"]:
            recommendations.append("Tone is positive; a good moment to propose closing terms")
        else:
            recommendations.append("Keep communication courteous and specific")
        return recommendations

    # -- behavior -----------------------------------------------------------

    def behavior(self, messages: Sequence[Message]) -> dict:
        data = {
            "communication_patterns": self.communication_patterns(messages),
            "negotiation_style": self.negotiation_style(messages),
            "response_patterns": self.response_patterns(messages),
            "offer_behavior": self.offer_behavior(messages),
        }
        data["recommendations"] = self._behavior_recommendations(data, messages)
        return data

    def communication_patterns(self, messages: Sequence[Message]) -> dict:
        lengths: dict[str, list[int]] = {}
        time_of_day: dict[str, dict[int, int]] = {}
        latencies: dict[str, list[float]] = {}

        for message in messages:
            sender = message.sender.value
            lengths.setdefault(sender, []).append(len(message.content))
            hour = ensure_aware(message.timestamp).astimezone(timezone.utc).hour
            hours = time_of_day.setdefault(sender, {})
            hours[hour] = hours.get(hour, 0) + 1

        for reply, seconds in response_times(messages):
            latencies.setdefault(reply.sender.value, []).append(seconds)

        return {
            "message_frequency": sender_counts(messages),
            "average_length": {s: sum(v) / len(v) for s, v in lengths.items()},
            "time_of_day": time_of_day,
            "response_speed": {s: sum(v) / len(v) for s, v in latencies.items()},
        }

    def negotiation_style(self, messages: Sequence[Message]) -> dict:
        """Per-sender count of messages showing each style indicator."""
        styles: dict[str, dict[str, int]] = {}
        for message in messages:
            scores = styles.setdefault(message.sender.value, {name: 0 for name in STYLE_KEYWORDS})
            words = set(tokenize(message.content))
            for name, keywords in STYLE_KEYWORDS.items():
                hit = bool(words & keywords)
                if name == "directness":
                    hit = hit or message.offer is not None or "$" in message.content
                if hit:
                    scores[name] += 1
        return styles

    def response_patterns(self, messages: Sequence[Message]) -> dict:
        turn_taking = []
        response_types = {"counter_offer": 0, "discussion": 0}
        for current, following in zip(messages, messages[1:]):
            if current.sender == following.sender:
                continue
            turn_taking.append({
                "from": current.sender.value,
                "to": following.sender.value,
                "response_time": seconds_between(current.timestamp, following.timestamp),
            })
            if current.offer is not None:
                response_types["counter_offer" if following.offer is not None else "discussion"] += 1
        return {"turn_taking": turn_taking, "response_types": response_types}

    def offer_behavior(self, messages: Sequence[Message]) -> dict:
        offers = offer_messages(messages)
        prices = [m.offer.amount for m in offers]

        strategy = {"aggressive": 0, "moderate": 0, "conservative": 0}
        for previous, current in zip(prices, prices[1:]):
            if previous <= 0:
                continue
            change = abs(current - previous) / previous
            if change > AGGRESSIVE_STEP:
                strategy["aggressive"] += 1
            elif change > MODERATE_STEP:
                strategy["moderate"] += 1
            else:
                strategy["conservative"] += 1

        if len(prices) < 2:
            movement = {"direction": "stable", "magnitude": 0.0, "percent_change": 0.0, "trend": "insufficient_data"}
        else:
            first, last = prices[0], prices[-1]
            movement = {
                "direction": "up" if last > first else "down" if last < first else "stable",
                "magnitude": abs(last - first),
                "percent_change": (last - first) / first * 100 if first else 0.0,
                "trend": price_trend(prices),
            }

        return {
            "offer_count": len(offers),
            "offer_progression": [
                {"timestamp": m.timestamp, "sender": m.sender.value, "amount": m.offer.amount}
                for m in offers
            ],
            "offer_strategy": strategy,
            "price_movement": movement,
        }

    def _behavior_recommendations(self, data: dict, messages: Sequence[Message]) -> list[str]:
        if not messages:
            return ["Start the conversation with a concrete opening offer"]

        recommendations = []
        speeds = data["communication_patterns"]["response_speed"]
        slow = sorted(s for s, seconds in speeds.items() if seconds > SECONDS_PER_HOUR)
        if slow:
            recommendations.append(f"Improve response time for: {', '.join(slow)}")

        offers = data["offer_behavior"]
        strategy = offers["offer_strategy"]
        if strategy["aggressive"] > strategy["moderate"] + strategy["conservative"]:
            recommendations.append("Large price swings detected; smaller, reasoned concessions build trust")
        if offers["offer_count"] == 0:
            recommendations.append("No offers yet; put a concrete price on the table")

        styles = data["negotiation_style"].values()
        if not any(s["flexibility"] for s in styles):
            recommendations.append("Consider more flexible language to keep options open")

        return recommendations or ["Maintain the current communication rhythm"]

    # -- performance --------------------------------------------------------

    def performance(self, messages: Sequence[Message], negotiation: Negotiation) -> dict:
        data = {
            "efficiency": self.efficiency(messages, negotiation),
            "engagement": {
                "level": engagement_level(messages),
                "consistency": engagement_consistency(messages),
                "participant_balance": participant_balance(messages),
            },
            "progression": {
                "current_progress": negotiation.rounds / negotiation.max_rounds,
                "milestones": extract_milestones(messages),
                "stagnation_points": self.stagnation_points(messages),
                "acceleration_points": self.acceleration_points(messages),
            },
            "bottlenecks": self.bottlenecks(messages),
        }
        data["optimizations"] = self._optimizations(data)
        return data

    def efficiency(self, messages: Sequence[Message], negotiation: Negotiation) -> dict:
        offers = offer_messages(messages)
        duration_hours = self.negotiation_duration(negotiation) / SECONDS_PER_HOUR
        return {
            "messages_per_round": len(messages) / negotiation.rounds if negotiation.rounds else None,
            "average_response_time": average_response_time(messages),
            "offer_efficiency": len(messages) / len(offers) if offers else 0.0,
            "progress_rate": negotiation.rounds / duration_hours if duration_hours > 0 else None,
        }

    def stagnation_points(self, messages: Sequence[Message]) -> list[dict]:
        """Messages that arrived after a silence longer than six hours."""
        return [
            {
                "timestamp": message.timestamp,
                "gap_seconds": gap,
                "description": f"No activity for {gap / SECONDS_PER_HOUR:.1f}h",
            }
            for message, gap in message_gaps(messages)
            if gap > STAGNATION_GAP_SECONDS
        ]

    def acceleration_points(self, messages: Sequence[Message]) -> list[dict]:
        """Messages that followed their predecessor in under half the average gap."""
        gaps = message_gaps(messages)
        if len(gaps) < 2:
            return []
        average = statistics.fmean(gap for _, gap in gaps)
        return [
            {
                "timestamp": message.timestamp,
                "gap_seconds": gap,
                "description": "Exchange sped up",
            }
            for message, gap in gaps
            if gap < average / 2
        ]

    def bottlenecks(self, messages: Sequence[Message]) -> list[dict]:
        """Replies slower than twice the average reply time."""
        replies = response_times(messages)
        average = mean(t for _, t in replies)
        if not average:
            return []
        return [
            {
                "timestamp": reply.timestamp,
                "sender": reply.sender.value,
                "response_time": seconds,
                "description": f"Slow reply from {reply.sender.value} ({seconds / average:.1f}x average)",
            }
            for reply, seconds in replies
            if seconds > 2 * average
        ]

    def _optimizations(self, data: dict) -> list[str]:
        optimizations = []
        engagement = data["engagement"]
        if data["bottlenecks"]:
            optimizations.append("Shorten reply delays at the identified bottlenecks")
        if engagement["participant_balance"] < 0.5:
            optimizations.append("Conversation is one-sided; invite the quieter party to respond")
        if data["progression"]["stagnation_points"]:
            optimizations.append("Re-engage after long pauses with a concrete proposal")
        if data["efficiency"]["offer_efficiency"] > 5:
            optimizations.append("Many messages per offer; focus discussion on price")
        return optimizations or ["Streamline communication around key decision points"]

    # -- prediction ---------------------------------------------------------

    def prediction(self, messages: Sequence[Message], negotiation: Negotiation) -> dict:
        probability = self.success_probability(messages, negotiation)
        convergence = price_convergence(messages)
        data = {
            "success_probability": probability,
            "completion_time_estimate": (
                average_response_time(messages) * COMPLETION_LOOKAHEAD_MESSAGES
                if len(messages) >= 2 else None
            ),
            "price_convergence": convergence,
            "risk_factors": self.risk_factors(messages, negotiation),
            "opportunities": self.opportunities(messages, convergence),
            "outcome": outcome_label(probability),
        }
        data["recommendations"] = self._prediction_recommendations(data)
        return data

    def success_probability(self, messages: Sequence[Message], negotiation: Negotiation) -> float:
        probability = 0.5 + engagement_level(messages) * 0.3
        if negotiation.rounds > 1:
            probability += 0.2
        if any(m.offer is not None for m in messages[-RECENT_WINDOW:]):
            probability += 0.2
        return min(probability, 1.0)

    def risk_factors(self, messages: Sequence[Message], negotiation: Negotiation) -> list[dict]:
        risks = []
        if negotiation.rounds > negotiation.max_rounds * 0.8:
            risks.append({
                "type": "high_round_count",
                "severity": "medium",
                "description": "Approaching maximum rounds",
            })
        if messages:
            idle = seconds_between(messages[-1].timestamp, self.now())
            if idle > self.inactivity.total_seconds():
                risks.append({
                    "type": "inactivity",
                    "severity": "high",
                    "description": "Long period of inactivity",
                })
        return risks

    def opportunities(self, messages: Sequence[Message], convergence: dict) -> list[dict]:
        opportunities = []
        if len(messages[-RECENT_WINDOW:]) >= 3:
            opportunities.append({
                "type": "active_engagement",
                "description": "High recent activity suggests motivated participants",
            })
        if convergence["converging"]:
            opportunities.append({
                "type": "price_convergence",
                "description": "Prices are converging, deal may be close",
            })
        return opportunities

    def _prediction_recommendations(self, data: dict) -> list[str]:
        recommendations = []
        for risk in data["risk_factors"]:
            if risk["type"] == "inactivity":
                recommendations.append("Follow up now; the conversation has gone quiet")
            elif risk["type"] == "high_round_count":
                recommendations.append("Few rounds remain; prepare final terms")
        settle = data["price_convergence"].get("estimated_convergence_price")
        if data["price_convergence"]["converging"] and settle is not None:
            recommendations.append(f"Propose closing near ${settle:,.2f}")
        return recommendations or ["Keep building momentum with specific offers"]
