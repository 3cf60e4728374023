"""
Keyword and pattern tables for action detection and analytics.

WHAT: Fixed English word lists and regex groups shared by interpreter and insights
WHY: One place to inspect the heuristics that drive classification and scoring
HOW: Module-level constants; callers never mutate them

The lists are small, English-only and have no documented provenance. They are
heuristics, not a model of meaning.
"""

import re
from dataclasses import dataclass

from ..models.decision import Action

# Negation guard applied in front of affirmative keywords so that
# "no deal" or "cannot accept" never reads as acceptance.
_NOT_NEGATED = r"(?<!\bno )(?<!\bnot )(?<!n't )(?<!\bcannot )(?<!\bnever )"


@dataclass(frozen=True)
class ActionPatternGroup:
    """Ordered keyword group with the confidence carried by a hit."""
    action: Action
    confidence: float
    patterns: tuple[re.Pattern, ...]

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


# Priority order matters: the first group with any hit wins.
ACTION_PATTERN_GROUPS: tuple[ActionPatternGroup, ...] = (
    ActionPatternGroup(
        action=Action.ACCEPT,
        confidence=0.9,
        patterns=(
            re.compile(_NOT_NEGATED + r"\baccept(?:ed|ing)?\b", re.IGNORECASE),
            re.compile(_NOT_NEGATED + r"\bagree[ds]?\b", re.IGNORECASE),
            re.compile(_NOT_NEGATED + r"\bdeal\b", re.IGNORECASE),
            re.compile(r"\bsold\b", re.IGNORECASE),
        ),
    ),
    ActionPatternGroup(
        action=Action.REJECT,
        confidence=0.8,
        patterns=(
            re.compile(r"\breject(?:ed|ing)?\b", re.IGNORECASE),
            re.compile(r"\bdecline[ds]?\b", re.IGNORECASE),
            re.compile(r"\bno deal\b", re.IGNORECASE),
            re.compile(r"\btoo low\b", re.IGNORECASE),
            re.compile(r"\b(?:cannot|can't|won't|not) accept\b", re.IGNORECASE),
        ),
    ),
    ActionPatternGroup(
        action=Action.COUNTER,
        confidence=0.7,
        patterns=(
            re.compile(r"\bcounter\b", re.IGNORECASE),
            re.compile(r"\boffer\b", re.IGNORECASE),
            re.compile(r"\$\s?\d+"),
            re.compile(r"\bhow about\b", re.IGNORECASE),
            re.compile(r"\bwhat if\b", re.IGNORECASE),
            re.compile(r"\bmeet (?:you )?in the middle\b", re.IGNORECASE),
        ),
    ),
)


POSITIVE_WORDS = frozenset({
    "good", "great", "excellent", "perfect", "love", "amazing", "wonderful", "fantastic",
})
NEGATIVE_WORDS = frozenset({
    "bad", "terrible", "awful", "hate", "horrible", "disgusting", "worst",
})

# Negotiation style indicators, matched as whole words per message.
STYLE_KEYWORDS: dict[str, frozenset[str]] = {
    "assertiveness": frozenset({"must", "need", "require"}),
    "cooperation": frozenset({"we", "together", "understand"}),
    "flexibility": frozenset({"maybe", "consider", "flexible"}),
    "directness": frozenset({"price"}),
}

_WORD_RE = re.compile(r"[a-z']+")


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens with punctuation dropped."""
    return _WORD_RE.findall(text.lower())


def sentiment_words(text: str) -> list[str]:
    """
    Whitespace tokens for lexicon scoring.

    Tokens are lower-cased but otherwise left intact, so "deal!" does not
    match "deal". This mirrors exact word-level matching.
    """
    return text.lower().split()
