"""
Offer parsing and rounding utilities.

WHAT: Pull price candidates out of free text and round amounts
WHY: Extract concrete counter-offers from natural language replies
HOW: Several regex patterns, merged in text order, then bounded and ranked
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Sequence

from ..utils.logger import get_logger

logger = get_logger(__name__)

_AMOUNT = r"(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"

PRICE_PATTERNS = (
    re.compile(r"\$\s?" + _AMOUNT),  # $1,250.00
    re.compile(_AMOUNT + r"\s*(?:dollars?|usd|bucks)\b", re.IGNORECASE),  # 900 dollars
    re.compile(r"\bprice of\s+\$?" + _AMOUNT, re.IGNORECASE),  # price of 900
    re.compile(r"\boffer(?:ing)?\s+\$?" + _AMOUNT, re.IGNORECASE),  # offer 900
    re.compile(r"\bhow about\s+\$?" + _AMOUNT, re.IGNORECASE),  # how about 900
)


class PriceCandidate(NamedTuple):
    """A number found in text and where it starts."""
    amount: float
    position: int


def _to_amount(raw: str) -> float | None:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def extract_price_candidates(text: str) -> list[PriceCandidate]:
    """
    Find every price-looking number in text.

    Overlapping matches from different patterns collapse to one candidate per
    number position. Results are ordered by position in the text.

    Args:
        text: Free-form reply

    Returns:
        Candidates in text order (possibly empty)
    """
    if not text:
        return []

    by_position: dict[int, float] = {}
    for pattern in PRICE_PATTERNS:
        for match in pattern.finditer(text):
            amount = _to_amount(match.group(1))
            if amount is None or amount <= 0:
                continue
            by_position.setdefault(match.start(1), amount)

    return [PriceCandidate(amount, pos) for pos, amount in sorted(by_position.items())]


def filter_candidates(
    candidates: Sequence[PriceCandidate],
    lower: float,
    upper: float
) -> list[PriceCandidate]:
    """Keep candidates inside the inclusive [lower, upper] band."""
    return [c for c in candidates if lower <= c.amount <= upper]


def select_nearest_candidate(
    candidates: Sequence[PriceCandidate],
    target: float
) -> PriceCandidate | None:
    """
    Candidate closest to target.

    Ties go to the candidate that appears first in the text.
    """
    best = None
    for candidate in sorted(candidates, key=lambda c: c.position):
        if best is None or abs(candidate.amount - target) < abs(best.amount - target):
            best = candidate
    return best


def round_price(amount: float, granularity: float = 1.0) -> float:
    """
    Round half-up to a multiple of granularity.

    Args:
        amount: Raw amount
        granularity: Step size (1.0 = whole units, 0.01 = cents)

    Returns:
        Rounded amount
    """
    if granularity <= 0:
        raise ValueError("granularity must be positive")
    step = Decimal(str(granularity))
    units = (Decimal(str(amount)) / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(units * step)
