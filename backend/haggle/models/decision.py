"""
Decision models produced by the response interpreter.

WHAT: Structured interpretation of one negotiation turn
WHY: Callers, the context store and validation share one immutable record
HOW: Frozen Pydantic v2 models; updates go through model_copy
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .message import Offer


class Action(str, Enum):
    """Negotiation action a decision resolves to."""
    ACCEPT = "accept"
    REJECT = "reject"
    COUNTER = "counter"
    CONTINUE = "continue"


class ValidationStatus(str, Enum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"


class DecisionMetadata(BaseModel):
    """Provenance and validation state of a decision."""

    model: str = "unknown"
    prompt_id: str | None = None
    processing_time_ms: float = 0.0
    raw_text: str | None = None
    validation_status: ValidationStatus = ValidationStatus.PENDING
    validation_errors: list[str] = Field(default_factory=list)
    business_errors: list[str] = Field(default_factory=list)
    is_fallback: bool = False
    provider_error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}


class Decision(BaseModel):
    """Engine output for one interpreted response."""

    content: str
    action: Action
    offer: Offer | None = None
    confidence: float
    reasoning: str = ""
    metadata: DecisionMetadata = Field(default_factory=DecisionMetadata)

    model_config = {"frozen": True}

    @property
    def is_valid(self) -> bool:
        return self.metadata.validation_status == ValidationStatus.VALID

    def with_metadata(self, **changes: Any) -> "Decision":
        """Return a copy with metadata fields replaced."""
        return self.model_copy(update={"metadata": self.metadata.model_copy(update=changes)})
