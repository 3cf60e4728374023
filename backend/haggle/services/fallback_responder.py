"""
Fallback responder for provider failures.

WHAT: Canned, personality-flavoured replies when the completion provider fails
WHY: A turn must always produce a decision, even with the provider down
HOW: Uniform pick from a per-personality message set; simple price-based action
"""

import random
from typing import Optional

from ..core.config import settings
from ..models.decision import Action, Decision, DecisionMetadata
from ..models.message import Offer, OfferSource
from ..models.negotiation import InterpretationContext
from ..services.offer_calculator import compute_counter
from ..services.response_interpreter import final_round_resolution
from ..utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_MODEL = "fallback"
COUNTER_FLOOR_FACTOR = 1.1
REJECT_FLOOR_FACTOR = 0.8

PERSONALITY_MESSAGES = {
    "friendly": (
        "Thanks for your offer! Let me think about this and get back to you soon.",
        "I appreciate your interest! Give me a moment to consider your proposal.",
        "That's an interesting offer! Let me review it carefully.",
    ),
    "professional": (
        "Thank you for your offer. I will review it and respond shortly.",
        "I have received your proposal and will provide a response momentarily.",
        "Your offer is under consideration. Please allow me a moment to respond.",
    ),
    "firm": (
        "I need to consider your offer carefully given my pricing.",
        "Let me review your proposal against my minimum requirements.",
        "I'll evaluate your offer and respond accordingly.",
    ),
    "flexible": (
        "Thanks for the offer! I'm sure we can work something out.",
        "I appreciate your proposal. Let me see what we can do.",
        "Interesting offer! I'm open to finding a middle ground.",
    ),
}


class FallbackResponder:
    """
    Produces decisions without a provider.

    Args:
        rng: Random source for message selection (seed it in tests)
        confidence: Fixed confidence of fallback decisions
    """

    def __init__(self, rng: Optional[random.Random] = None, confidence: Optional[float] = None):
        self.rng = rng or random.Random()
        self.confidence = confidence if confidence is not None else settings.FALLBACK_RESPONSE_CONFIDENCE

    def pick_message(self, personality: str) -> str:
        messages = PERSONALITY_MESSAGES.get(personality, PERSONALITY_MESSAGES["professional"])
        return self.rng.choice(messages)

    def respond(self, context: InterpretationContext, reason: Optional[str] = None) -> Decision:
        """
        Build a fallback decision. Never raises for a valid context.

        Args:
            context: Negotiation state for this turn
            reason: Provider error that triggered the fallback

        Returns:
            Decision flagged is_fallback with model 'fallback'
        """
        offer = None
        if context.at_round_limit:
            action = final_round_resolution(context).action
            if action == Action.ACCEPT:
                offer = Offer(amount=context.current_offer, final=True)
        elif context.current_offer >= context.min_price * COUNTER_FLOOR_FACTOR:
            action = Action.COUNTER
            offer = Offer(
                amount=compute_counter(
                    context.current_offer,
                    context.base_price,
                    context.min_price,
                    granularity=settings.PRICE_GRANULARITY,
                ),
                source=OfferSource.CALCULATED,
            )
        elif context.current_offer < context.min_price * REJECT_FLOOR_FACTOR:
            action = Action.REJECT
        else:
            action = Action.CONTINUE

        logger.warning(
            f"Using fallback response for {context.negotiation_id or 'ad-hoc'} "
            f"(action={action.value}, reason={reason or 'unspecified'})"
        )

        return Decision(
            content=self.pick_message(context.personality),
            action=action,
            offer=offer,
            confidence=self.confidence,
            reasoning="Fallback response due to provider unavailability",
            metadata=DecisionMetadata(
                model=FALLBACK_MODEL,
                is_fallback=True,
                provider_error=reason,
            ),
        )
