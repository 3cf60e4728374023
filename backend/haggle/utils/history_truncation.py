"""
Prompt history budgeting.

WHAT: Pick the slice of message history that goes into a prompt
WHY: Provider context windows are small; recent turns matter most
HOW: Walk newest to oldest, stop at the message or character budget
"""

from ..models.message import Message
from ..utils.logger import get_logger

logger = get_logger(__name__)


def truncate_conversation_history(
    history: list[Message],
    max_messages: int = 10,
    max_chars: int = 4000
) -> list[Message]:
    """
    Return the newest messages that fit both budgets, oldest first.

    The newest message is always kept, even when it alone exceeds max_chars.
    """
    kept: list[Message] = []
    used = 0
    for message in reversed(history):
        if len(kept) >= max_messages:
            break
        size = len(message.content)
        if kept and used + size > max_chars:
            break
        kept.append(message)
        used += size
    kept.reverse()

    dropped = len(history) - len(kept)
    if dropped:
        logger.debug(f"Prompt history: dropped {dropped} oldest message(s), kept {len(kept)} ({used}/{max_chars} chars)")
    return kept
