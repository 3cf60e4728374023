"""
Text processing utilities.

WHAT: Sanitizing provider output and shaping it for display
WHY: Provider text is untrusted; users must never see scripts, PII or directive tokens
HOW: Regex-based passes, repeated until the text stops changing
"""

import re

from ..models.decision import Action
from ..utils.logger import get_logger

logger = get_logger(__name__)

MAX_CONTENT_LENGTH = 500
ELLIPSIS = "..."

_SCRIPT_BLOCKS = re.compile(r"<\s*(script|iframe)\b[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL)
_DANGLING_TAGS = re.compile(r"<\s*/?\s*(?:script|iframe)\b[^>]*>", re.IGNORECASE)
_JS_URI = re.compile(r"javascript\s*:", re.IGNORECASE)

# Brackets are kept so redaction placeholders survive later passes.
_DISALLOWED_CHARS = re.compile(r"[^\w\s$.,!?;:()'\[\]-]")
_WHITESPACE = re.compile(r"\s+")

# Order matters: card and SSN before the looser phone pattern.
_REDACTIONS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+"), "[EMAIL_FILTERED]"),
    (re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"), "[CARD_FILTERED]"),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[SSN_FILTERED]"),
    (re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"), "[PHONE_FILTERED]"),
    (re.compile(r"\b(?:damn|hell|shit|fuck|bitch|crap)\b", re.IGNORECASE), "[FILTERED]"),
    (re.compile(r"\b(?:scam|fraud|fake|counterfeit|stolen|illegal)\b", re.IGNORECASE), "[FILTERED]"),
    (re.compile(r"\b(?:click here|free money|act now|limited time offer|wire transfer)\b", re.IGNORECASE), "[FILTERED]"),
)

_DIRECTIVE_TOKENS = re.compile(r"\b(?:ACCEPT|REJECT|COUNTER|CONTINUE)\b:?")
_LEADING_PUNCTUATION = re.compile(r"^[\s.,;:!?-]+")

DEFAULT_MESSAGES = {
    Action.ACCEPT: "I accept your offer!",
    Action.REJECT: "I cannot accept that offer.",
    Action.COUNTER: "Let me make a counter-offer.",
    Action.CONTINUE: "Let's continue our negotiation.",
}


def truncate(text: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """Cut text to max_length, keeping a trailing ellipsis inside the bound."""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(ELLIPSIS)] + ELLIPSIS


def _strip_nested(pattern: re.Pattern, text: str) -> str:
    # Removing one match can splice a new one together ("javajavascript:script:")
    while pattern.search(text):
        text = pattern.sub("", text)
    return text


def _sanitize_once(text: str, max_length: int) -> str:
    for pattern in (_SCRIPT_BLOCKS, _DANGLING_TAGS, _JS_URI):
        text = _strip_nested(pattern, text)
    for pattern, placeholder in _REDACTIONS:
        text = pattern.sub(placeholder, text)
    text = _DISALLOWED_CHARS.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return truncate(text, max_length)


def sanitize_text(text: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """
    Make untrusted provider text safe to store and display.

    Removes script/iframe blocks and javascript: URIs, redacts personal data
    and unsafe phrases with bracketed placeholders, strips characters outside
    the display set, collapses whitespace and bounds the length.

    The passes repeat until the output is stable, so sanitizing twice gives
    the same result as sanitizing once.

    Args:
        text: Raw provider output
        max_length: Soft cap on the result, ellipsis included

    Returns:
        Sanitized text (possibly empty)
    """
    if not text:
        return ""

    current = text
    while True:
        cleaned = _sanitize_once(current, max_length)
        if cleaned == current:
            break
        current = cleaned

    if current != text:
        logger.debug(f"Sanitized provider text ({len(text)} -> {len(current)} chars)")
    return current


def clean_display_content(
    text: str,
    action: Action,
    max_length: int = MAX_CONTENT_LENGTH
) -> str:
    """
    Shape sanitized text into the message shown to the counterpart.

    Drops upper-case directive tokens the provider may echo (ACCEPT:,
    COUNTER ...), capitalises and terminates the sentence. An empty result
    falls back to a per-action default message.

    Args:
        text: Sanitized provider text
        action: Action the text was classified as
        max_length: Upper bound on the returned content

    Returns:
        Non-empty display content
    """
    content = _DIRECTIVE_TOKENS.sub("", text or "")
    content = _WHITESPACE.sub(" ", content).strip()
    content = _LEADING_PUNCTUATION.sub("", content)

    if not content:
        return DEFAULT_MESSAGES[action]

    content = content[0].upper() + content[1:]
    if content[-1] not in ".!?":
        content += "."
    return truncate(content, max_length)


def preview(text: str, length: int = 100) -> str:
    """Leading slice of a message for timelines."""
    return text[:length]
