"""
Strategic counter-offer calculator.

WHAT: Deterministic counter-offer arithmetic with an explainable breakdown
WHY: Used when no usable price can be extracted, and to back fallback replies
HOW: Three tiers keyed on how the current offer compares to the seller floor

Tiers:
- current >= min * 1.1: close 40% of the gap to the list price
- current >= min:       close 60% of the gap
- current <  min:       floor plus 30% of the floor-to-list gap
"""

from dataclasses import dataclass

from ..core.config import settings
from ..utils.offers import round_price

STRONG_OFFER_FACTOR = 1.1
STRONG_GAP_SHARE = 0.4
NEAR_FLOOR_GAP_SHARE = 0.6
BELOW_FLOOR_GAP_SHARE = 0.3


@dataclass
class CounterOfferBreakdown:
    """How a counter-offer was derived."""
    tier: str  # strong | near_floor | below_floor
    gap: float  # base - current
    min_gap: float  # base - min
    share: float
    raw_amount: float
    amount: float

    def describe(self) -> str:
        if self.tier == "below_floor":
            return (
                f"Offer below floor; countering at floor plus {self.share:.0%} "
                f"of the {self.min_gap:.2f} margin ({self.amount:.2f})"
            )
        return (
            f"Closing {self.share:.0%} of the {self.gap:.2f} gap "
            f"({self.tier.replace('_', ' ')} offer) -> {self.amount:.2f}"
        )


def explain_counter(
    current_offer: float,
    base_price: float,
    min_price: float,
    *,
    granularity: float | None = None
) -> CounterOfferBreakdown:
    """
    Compute a counter-offer and the tier that produced it.

    Args:
        current_offer: Buyer's latest offer
        base_price: Seller's list price
        min_price: Seller's floor
        granularity: Rounding step (defaults to settings.PRICE_GRANULARITY)

    Returns:
        CounterOfferBreakdown with the final amount

    Raises:
        ValueError: If any price is non-positive
    """
    if current_offer <= 0 or base_price <= 0 or min_price <= 0:
        raise ValueError(
            f"Prices must be positive (current={current_offer}, base={base_price}, min={min_price})"
        )

    step = granularity if granularity is not None else settings.PRICE_GRANULARITY
    gap = base_price - current_offer
    min_gap = base_price - min_price

    if current_offer >= min_price * STRONG_OFFER_FACTOR:
        tier, share = "strong", STRONG_GAP_SHARE
        raw = current_offer + gap * share
    elif current_offer >= min_price:
        tier, share = "near_floor", NEAR_FLOOR_GAP_SHARE
        raw = current_offer + gap * share
    else:
        tier, share = "below_floor", BELOW_FLOOR_GAP_SHARE
        raw = min_price + min_gap * share

    amount = round_price(raw, step)
    # Rounding (or an offer above list) must not leave the seller's range.
    amount = min(max(amount, min_price), base_price)

    return CounterOfferBreakdown(
        tier=tier,
        gap=gap,
        min_gap=min_gap,
        share=share,
        raw_amount=raw,
        amount=amount,
    )


def compute_counter(
    current_offer: float,
    base_price: float,
    min_price: float,
    *,
    granularity: float | None = None
) -> float:
    """Counter-offer amount for the given prices. See explain_counter."""
    return explain_counter(
        current_offer, base_price, min_price, granularity=granularity
    ).amount
