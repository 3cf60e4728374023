"""
Pydantic API schemas.

WHAT: Request and response models for the HTTP surface
WHY: Type-safe validation and serialization at the edge
HOW: Pydantic v2 models with constraints; responses built from engine records
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .decision import Decision
from .message import Message
from .negotiation import Personality, Urgency


class RespondRequest(BaseModel):
    """Buyer turn that needs an automated seller reply."""
    user_message: str = Field(default="", max_length=1000, description="Buyer's latest message")
    personality: Personality = Field(default="professional", description="Seller persona")
    urgency: Urgency = Field(default="medium", description="Seller urgency")
    user_id: str = Field(default="anonymous", min_length=1, max_length=100)


class TurnResponse(BaseModel):
    """Decision for a turn and the message appended to history."""
    negotiation_id: str
    scenario: str
    prompt_id: str
    decision: Decision
    message: Message


class ContextResponse(BaseModel):
    """Rolling context view for one negotiation."""
    negotiation_id: str
    phase: Optional[str] = None
    summary: dict[str, Any]
    context: dict[str, Any]


class ComparisonRequest(BaseModel):
    negotiation_ids: List[str] = Field(..., min_length=1, max_length=50)


class ErrorResponse(BaseModel):
    error: str
    message: str
    detail: Optional[Any] = None
