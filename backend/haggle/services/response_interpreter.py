"""
Response interpretation and validation.

WHAT: Turn free-form provider text into a validated, immutable Decision
WHY: Downstream code (store, history, API) needs a structured action and offer
HOW: Sanitize -> classify by keyword groups -> infer from price context ->
     extract or calculate counter amount -> clean content -> validate -> record

Classification uses group priority (accept > reject > counter), not position
in the text. When no keyword matches, the decision is inferred from the offer
quality (current_offer / base_price) and the round count.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

from ..core.config import Settings, settings
from ..models.decision import (
    Action,
    Decision,
    DecisionMetadata,
    ValidationStatus,
)
from ..models.message import Offer, OfferSource
from ..models.negotiation import InterpretationContext
from ..services.offer_calculator import explain_counter
from ..utils.exceptions import EmptyResponseError
from ..utils.lexicon import ACTION_PATTERN_GROUPS
from ..utils.logger import get_logger
from ..utils.offers import (
    extract_price_candidates,
    filter_candidates,
    select_nearest_candidate,
)
from ..utils.text import MAX_CONTENT_LENGTH, clean_display_content, sanitize_text

logger = get_logger(__name__)

FINAL_ROUND_ACCEPT_CONFIDENCE = 0.8
FINAL_ROUND_REJECT_CONFIDENCE = 0.7
HIGH_QUALITY_ACCEPT_CONFIDENCE = 0.8
MID_QUALITY_COUNTER_CONFIDENCE = 0.7
BELOW_FLOOR_REJECT_CONFIDENCE = 0.6
DEFAULT_CONTINUE_CONFIDENCE = 0.5


class DecisionRecorder(Protocol):
    """Anything that can keep a decision in a negotiation's rolling context."""

    def record(self, negotiation_id: str, decision: Decision, input_snapshot: dict) -> None:
        ...


@dataclass(frozen=True)
class InterpretationThresholds:
    """Empirical constants used by interpretation, overridable via settings."""
    accept_quality: float = 0.9
    counter_quality: float = 0.7
    extraction_min_factor: float = 0.8
    extraction_max_factor: float = 1.1
    extracted_confidence: float = 0.8
    calculated_confidence: float = 0.5
    fallback_confidence: float = 0.6
    accept_confidence: float = 0.9
    invalid_confidence_cap: float = 0.3
    max_content_length: int = MAX_CONTENT_LENGTH
    price_granularity: float = 1.0

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "InterpretationThresholds":
        return cls(
            accept_quality=config.ACCEPT_QUALITY_THRESHOLD,
            counter_quality=config.COUNTER_QUALITY_THRESHOLD,
            extraction_min_factor=config.EXTRACTION_MIN_FACTOR,
            extraction_max_factor=config.EXTRACTION_MAX_FACTOR,
            extracted_confidence=config.EXTRACTED_OFFER_CONFIDENCE,
            calculated_confidence=config.CALCULATED_OFFER_CONFIDENCE,
            fallback_confidence=config.FALLBACK_OFFER_CONFIDENCE,
            accept_confidence=config.ACCEPT_CONFIDENCE,
            invalid_confidence_cap=config.INVALID_DECISION_CONFIDENCE,
            max_content_length=config.MAX_CONTENT_LENGTH,
            price_granularity=config.PRICE_GRANULARITY,
        )


@dataclass
class Classification:
    """Action chosen for a reply and why."""
    action: Action
    confidence: float
    reason: str


@dataclass
class ExtractedOffer:
    """Counter amount plus where it came from."""
    amount: float
    source: OfferSource
    confidence: float
    note: str


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def classify_action(text: str) -> Optional[Classification]:
    """
    Match text against the ordered keyword groups.

    Returns:
        Classification for the first group with a hit, or None
    """
    for group in ACTION_PATTERN_GROUPS:
        if group.matches(text):
            return Classification(
                action=group.action,
                confidence=group.confidence,
                reason=f"Explicit {group.action.value} language in reply",
            )
    return None


def final_round_resolution(context: InterpretationContext) -> Classification:
    """Terminal action once the round limit is reached."""
    if context.current_offer >= context.min_price:
        return Classification(
            Action.ACCEPT,
            FINAL_ROUND_ACCEPT_CONFIDENCE,
            "Final round: offer meets the seller floor",
        )
    return Classification(
        Action.REJECT,
        FINAL_ROUND_REJECT_CONFIDENCE,
        "Final round: offer below the seller floor",
    )


def infer_from_context(
    context: InterpretationContext,
    thresholds: InterpretationThresholds = InterpretationThresholds()
) -> Classification:
    """
    Choose an action from the price context alone.

    Used when the reply carries no recognizable action language.
    """
    if context.at_round_limit:
        return final_round_resolution(context)

    quality = context.offer_quality
    if quality >= thresholds.accept_quality:
        return Classification(
            Action.ACCEPT,
            HIGH_QUALITY_ACCEPT_CONFIDENCE,
            f"Offer is {quality:.0%} of list price",
        )
    if quality >= thresholds.counter_quality:
        return Classification(
            Action.COUNTER,
            MID_QUALITY_COUNTER_CONFIDENCE,
            f"Offer is {quality:.0%} of list price; room to counter",
        )
    if context.current_offer < context.min_price:
        return Classification(
            Action.REJECT,
            BELOW_FLOOR_REJECT_CONFIDENCE,
            "Offer is below the seller floor",
        )
    return Classification(
        Action.CONTINUE,
        DEFAULT_CONTINUE_CONFIDENCE,
        "No clear signal; keep negotiating",
    )


def extract_counter_offer(
    text: str,
    context: InterpretationContext,
    thresholds: InterpretationThresholds = InterpretationThresholds()
) -> ExtractedOffer:
    """
    Find the counter amount in the reply, or calculate one.

    Candidates outside [min * 0.8, base * 1.1] are discarded. Among the rest,
    the one nearest the midpoint of list price and current offer wins. With no
    candidates at all the calculator is used (source=calculated); with
    candidates that were all out of range it is used as a fallback
    (source=fallback).
    """
    candidates = extract_price_candidates(text)
    lower = context.min_price * thresholds.extraction_min_factor
    upper = context.base_price * thresholds.extraction_max_factor
    in_range = filter_candidates(candidates, lower, upper)

    if in_range:
        target = (context.base_price + context.current_offer) / 2
        chosen = select_nearest_candidate(in_range, target)
        return ExtractedOffer(
            amount=chosen.amount,
            source=OfferSource.EXTRACTED,
            confidence=thresholds.extracted_confidence,
            note=f"Counter of {chosen.amount:.2f} taken from reply",
        )

    breakdown = explain_counter(
        context.current_offer,
        context.base_price,
        context.min_price,
        granularity=thresholds.price_granularity,
    )
    if candidates:
        logger.debug(
            f"Discarded {len(candidates)} out-of-range price candidates "
            f"(bounds {lower:.2f}-{upper:.2f})"
        )
        return ExtractedOffer(
            amount=breakdown.amount,
            source=OfferSource.FALLBACK,
            confidence=thresholds.fallback_confidence,
            note=breakdown.describe(),
        )
    return ExtractedOffer(
        amount=breakdown.amount,
        source=OfferSource.CALCULATED,
        confidence=thresholds.calculated_confidence,
        note=breakdown.describe(),
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_decision(
    decision: Decision | Mapping[str, Any],
    max_content_length: int = MAX_CONTENT_LENGTH
) -> ValidationResult:
    """
    Structural validation of a decision record.

    Pure: accumulates every error instead of stopping at the first one.
    Accepts a Decision or a plain mapping with the same fields.
    """
    data = decision.model_dump() if isinstance(decision, Decision) else dict(decision)
    errors = []

    for required in ("content", "action", "confidence"):
        if data.get(required) is None:
            errors.append(f"Missing required field: {required}")

    action = data.get("action")
    if action is not None:
        try:
            Action(action)
        except ValueError:
            errors.append(f"Invalid action: {action}")

    confidence = data.get("confidence")
    if confidence is not None:
        if not _is_number(confidence):
            errors.append("Confidence must be a number")
        elif not 0.0 <= confidence <= 1.0:
            errors.append("Confidence must be between 0 and 1")

    offer = data.get("offer")
    if offer is not None:
        if not isinstance(offer, Mapping):
            errors.append("Offer must be an object")
        else:
            amount = offer.get("amount")
            if not _is_number(amount) or amount <= 0:
                errors.append("Offer amount must be a positive number")
            if not isinstance(offer.get("final", False), bool):
                errors.append("Offer final flag must be a boolean")

    content = data.get("content")
    if content is not None:
        if not isinstance(content, str):
            errors.append("Content must be a string")
        elif not content:
            errors.append("Content must not be empty")
        elif len(content) > max_content_length:
            errors.append(f"Content exceeds {max_content_length} characters")

    return ValidationResult(is_valid=not errors, errors=errors)


def validate_business_rules(decision: Decision, context: InterpretationContext) -> list[str]:
    """
    Sanity checks of a decision against the negotiation's prices and rounds.

    These never invalidate the decision; they are reported in
    metadata.business_errors.
    """
    errors = []
    if decision.offer is not None:
        if decision.offer.amount > context.base_price * 2:
            errors.append("Offer amount unreasonably high")
        if decision.action == Action.COUNTER and decision.offer.amount < context.min_price * 0.5:
            errors.append("Counter-offer too low to be reasonable")

    if decision.action == Action.ACCEPT and context.current_offer < context.min_price * 0.9:
        errors.append("Accepting offer below reasonable minimum")
    if decision.action == Action.COUNTER and decision.offer is None:
        errors.append("Counter action requires offer amount")
    if context.at_round_limit and decision.action == Action.CONTINUE:
        errors.append("Cannot continue negotiation past maximum rounds")
    return errors


def finalize_decision(
    decision: Decision,
    context: InterpretationContext,
    thresholds: InterpretationThresholds = InterpretationThresholds()
) -> Decision:
    """
    Attach validation results to a freshly built decision.

    Invalid decisions keep their content but have confidence capped.
    """
    result = validate_decision(decision, thresholds.max_content_length)
    business_errors = validate_business_rules(decision, context)
    if business_errors:
        logger.warning(f"Business rule warnings for {context.negotiation_id}: {business_errors}")

    status = ValidationStatus.VALID if result.is_valid else ValidationStatus.INVALID
    decision = decision.with_metadata(
        validation_status=status,
        validation_errors=result.errors,
        business_errors=business_errors,
    )
    if not result.is_valid:
        logger.warning(f"Invalid decision for {context.negotiation_id}: {result.errors}")
        decision = decision.model_copy(
            update={"confidence": min(decision.confidence, thresholds.invalid_confidence_cap)}
        )
    return decision


class ResponseInterpreter:
    """
    Interprets provider replies for one engine instance.

    Args:
        store: Optional recorder for the rolling conversation context
        thresholds: Interpretation constants (defaults from settings)
    """

    def __init__(
        self,
        store: Optional[DecisionRecorder] = None,
        thresholds: Optional[InterpretationThresholds] = None
    ):
        self.store = store
        self.thresholds = thresholds or InterpretationThresholds.from_settings()

    def interpret(
        self,
        raw_text: str,
        context: InterpretationContext,
        *,
        model: Optional[str] = None,
        prompt_id: Optional[str] = None
    ) -> Decision:
        """
        Interpret one provider reply.

        Args:
            raw_text: Raw provider output
            context: Negotiation state for this turn
            model: Model that produced the text
            prompt_id: Identifier of the prompt that was sent

        Returns:
            Validated Decision (possibly flagged invalid)

        Raises:
            EmptyResponseError: If raw_text is empty or whitespace
        """
        if raw_text is None or not raw_text.strip():
            raise EmptyResponseError()

        started = time.perf_counter()
        th = self.thresholds
        text = sanitize_text(raw_text, th.max_content_length)

        classification = classify_action(text) or infer_from_context(context, th)
        if context.at_round_limit and classification.action in (Action.COUNTER, Action.CONTINUE):
            logger.info(
                f"Round limit reached for {context.negotiation_id}; "
                f"overriding {classification.action.value}"
            )
            classification = final_round_resolution(context)

        offer = None
        confidence = classification.confidence
        reasoning = classification.reason

        if classification.action == Action.ACCEPT:
            offer = Offer(amount=context.current_offer, final=True)
            confidence = th.accept_confidence
        elif classification.action == Action.COUNTER:
            extracted = extract_counter_offer(text, context, th)
            offer = Offer(amount=extracted.amount, source=extracted.source)
            confidence = min(confidence, extracted.confidence)
            reasoning = f"{reasoning}. {extracted.note}"

        decision = Decision(
            content=clean_display_content(text, classification.action, th.max_content_length),
            action=classification.action,
            offer=offer,
            confidence=confidence,
            reasoning=reasoning,
            metadata=DecisionMetadata(
                model=model or "unknown",
                prompt_id=prompt_id,
                raw_text=raw_text,
                processing_time_ms=(time.perf_counter() - started) * 1000,
            ),
        )
        decision = finalize_decision(decision, context, th)

        logger.info(
            f"Interpreted reply for {context.negotiation_id or 'ad-hoc'}: "
            f"action={decision.action.value}, confidence={decision.confidence:.2f}, "
            f"offer={decision.offer.amount if decision.offer else None}"
        )

        if self.store is not None and context.negotiation_id:
            self.store.record(context.negotiation_id, decision, context.snapshot())

        return decision
