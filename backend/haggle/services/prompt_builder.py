"""
Prompt templates for seller-side negotiation replies.

WHAT: Scenario-specific system/user prompts for the completion provider
WHY: Consistent tone and constraints per negotiation situation
HOW: Template strings with context injection, return ChatMessage lists
"""

from typing import List, Optional

from ..llm.types import ChatMessage
from ..models.message import Message
from ..models.negotiation import InterpretationContext
from ..utils.history_truncation import truncate_conversation_history

SCENARIOS = ("initial", "counter_offer", "final_round", "justify_price", "urgent_sale")

PERSONALITY_STYLES = {
    "friendly": "warm, upbeat and personable",
    "professional": "courteous, precise and businesslike",
    "firm": "polite but unwilling to move far on price",
    "flexible": "open to compromise and creative deals",
}

SYSTEM_PROMPT = """You are a seller's negotiation assistant in an online marketplace.

Your Goals:
1. Protect the seller's minimum price of ${min_price:.2f}
2. Close a deal when the offer is reasonable
3. Keep every reply under 100 words

Important Instructions:
- Start your reply with one of ACCEPT, REJECT or COUNTER when you take a position
- When countering, state one specific dollar amount
- Never reveal the seller's minimum price
- Never include contact details or payment links
- Do NOT reveal internal reasoning or output <think> blocks"""

SCENARIO_TEMPLATES = {
    "initial": """First message from a buyer about "{product}".

PRODUCT DETAILS:
- Listed Price: ${base_price:.2f}

BUYER'S FIRST MESSAGE: "{user_message}"

Your personality is {personality}. Respond warmly but professionally. Show interest in making a deal while protecting your price. End with a specific next step or question.""",

    "counter_offer": """Ongoing negotiation for "{product}":

CURRENT SITUATION:
- Their offer: ${current_offer:.2f}
- Discount requested: {discount:.1f}%
- Round: {rounds}/{max_rounds} ({progress:.1f}% through)
{history}
THEIR LATEST: "{user_message}"

You're {personality} with {urgency} urgency. The offer is {quality}.

Respond with COUNTER, ACCEPT, or REJECT. If countering, suggest a specific price and explain why.""",

    "final_round": """FINAL NEGOTIATION ROUND for "{product}":

CRITICAL DECISION POINT:
- This is round {rounds}/{max_rounds} (LAST CHANCE)
- Their offer: ${current_offer:.2f}
- Gap to list price: ${gap:.2f}
{history}
BUYER SAYS: "{user_message}"

You must decide: ACCEPT or REJECT. If accepting, be enthusiastic. If rejecting, be firm but polite.""",

    "justify_price": """Buyer is pushing far below the asking price for "{product}":

PRICE DEFENSE NEEDED:
- Listed: ${base_price:.2f}
- Their offer: ${current_offer:.2f} ({quality})
{history}
THEIR MESSAGE: "{user_message}"

Defend the pricing professionally: condition, market value and any flexibility you have. Be convincing but not aggressive.""",

    "urgent_sale": """URGENT SALE for "{product}":

TIME PRESSURE:
- You need to sell quickly
- Current offer: ${current_offer:.2f} ({quality})
{history}
BUYER'S MESSAGE: "{user_message}"

You're motivated to close the deal but don't want to seem desperate. Consider accepting reasonable offers.""",
}


def detect_scenario(context: InterpretationContext) -> str:
    """
    Pick the prompt scenario for this turn.

    Order: final round, first round, lowball (< 80% of floor), high urgency,
    then a regular counter-offer turn.
    """
    if context.at_round_limit:
        return "final_round"
    if context.rounds <= 1:
        return "initial"
    if context.current_offer < context.min_price * 0.8:
        return "justify_price"
    if context.urgency == "high":
        return "urgent_sale"
    return "counter_offer"


def offer_quality_label(current_offer: float, base_price: float) -> str:
    """Human label for the offer as a share of list price."""
    percentage = current_offer / base_price * 100
    if percentage >= 95:
        return "excellent"
    if percentage >= 85:
        return "good"
    if percentage >= 75:
        return "fair"
    if percentage >= 60:
        return "low"
    return "very low"


def _render_history(history: List[Message]) -> str:
    if not history:
        return ""
    recent = truncate_conversation_history(history, max_messages=10, max_chars=4000)
    lines = "\n".join(f"{msg.sender.value}: {msg.content}" for msg in recent)
    return f"\nCONVERSATION SO FAR:\n{lines}\n"


def render_negotiation_prompt(
    context: InterpretationContext,
    history: Optional[List[Message]] = None,
    scenario: Optional[str] = None
) -> List[ChatMessage]:
    """
    Render the prompt for one seller-side reply.

    Args:
        context: Negotiation state for this turn
        history: Timestamp-ordered conversation history
        scenario: Force a scenario instead of detecting it

    Returns:
        System and user chat messages
    """
    scenario = scenario or detect_scenario(context)
    if scenario not in SCENARIO_TEMPLATES:
        raise ValueError(f"Unknown prompt scenario: {scenario}")

    user_prompt = SCENARIO_TEMPLATES[scenario].format(
        product=context.product_title or "this item",
        base_price=context.base_price,
        current_offer=context.current_offer,
        discount=(context.base_price - context.current_offer) / context.base_price * 100,
        gap=context.base_price - context.current_offer,
        rounds=context.rounds,
        max_rounds=context.max_rounds,
        progress=context.rounds / context.max_rounds * 100,
        personality=PERSONALITY_STYLES.get(context.personality, context.personality),
        urgency=context.urgency,
        quality=offer_quality_label(context.current_offer, context.base_price),
        user_message=context.user_message,
        history=_render_history(history or []),
    )

    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(min_price=context.min_price)},
        {"role": "user", "content": user_prompt},
    ]
