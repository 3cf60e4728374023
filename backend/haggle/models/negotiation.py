"""
Negotiation domain models.

WHAT: The negotiation aggregate and the per-turn interpretation context
WHY: Consistent typing across interpreter, analytics and the API
HOW: Pydantic v2 models; the context enforces required fields on construction
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..utils.exceptions import InvalidContextError


class NegotiationStatus(str, Enum):
    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


Personality = Literal["friendly", "professional", "firm", "flexible"]
Urgency = Literal["low", "medium", "high"]


class Negotiation(BaseModel):
    """A single buyer/seller haggling session over one product listing."""

    id: str
    product_id: str
    product_title: str = ""
    base_price: float = Field(gt=0.0)  # list price
    min_price: float = Field(gt=0.0)  # seller floor
    current_offer: float = Field(ge=0.0)
    rounds: int = Field(default=0, ge=0)
    max_rounds: int = Field(default=10, ge=1)
    status: NegotiationStatus = NegotiationStatus.INITIATED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    concluded_at: datetime | None = None

    @property
    def at_round_limit(self) -> bool:
        return self.rounds >= self.max_rounds

    def offer_violations(self) -> list[str]:
        """
        Flag invariant violations without correcting them.

        Out-of-range offers and round overruns are reported to the caller;
        the aggregate is never clamped.
        """
        violations = []
        if self.min_price > self.base_price:
            violations.append(
                f"min_price {self.min_price} exceeds base_price {self.base_price}"
            )
        if self.current_offer < self.min_price:
            violations.append(
                f"current_offer {self.current_offer} below min_price {self.min_price}"
            )
        if self.current_offer > self.base_price:
            violations.append(
                f"current_offer {self.current_offer} above base_price {self.base_price}"
            )
        if self.rounds > self.max_rounds:
            violations.append(f"rounds {self.rounds} exceed max_rounds {self.max_rounds}")
        return violations


class InterpretationContext(BaseModel):
    """Everything the interpreter needs to turn provider text into a decision."""

    base_price: float = Field(gt=0.0)
    min_price: float = Field(gt=0.0)
    current_offer: float = Field(gt=0.0)
    rounds: int = Field(ge=0)
    max_rounds: int = Field(ge=1)
    negotiation_id: str | None = None
    product_title: str = ""
    user_message: str = Field(default="", max_length=1000)
    personality: Personality = "professional"
    urgency: Urgency = "medium"
    user_id: str = "anonymous"

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_price_floor(self) -> "InterpretationContext":
        """Ensure the floor does not sit above the list price."""
        if self.min_price > self.base_price:
            raise ValueError("min_price must be <= base_price")
        return self

    @property
    def at_round_limit(self) -> bool:
        return self.rounds >= self.max_rounds

    @property
    def offer_quality(self) -> float:
        return self.current_offer / self.base_price

    def snapshot(self) -> dict:
        """Input fields worth keeping next to a recorded decision."""
        return {
            "current_offer": self.current_offer,
            "rounds": self.rounds,
            "user_message": self.user_message,
        }

    @classmethod
    def build(cls, **fields) -> "InterpretationContext":
        """
        Construct a context, converting validation failures to InvalidContextError.

        Raises:
            InvalidContextError: If required fields are missing or out of range
        """
        try:
            return cls(**fields)
        except ValidationError as e:
            field_errors = [
                {"field": ".".join(str(p) for p in err["loc"]) or "context", "message": err["msg"]}
                for err in e.errors()
            ]
            raise InvalidContextError("Malformed interpretation context", field_errors) from e

    @classmethod
    def from_negotiation(
        cls,
        negotiation: Negotiation,
        *,
        user_message: str = "",
        personality: Personality = "professional",
        urgency: Urgency = "medium",
        user_id: str = "anonymous",
    ) -> "InterpretationContext":
        return cls.build(
            base_price=negotiation.base_price,
            min_price=negotiation.min_price,
            current_offer=negotiation.current_offer,
            rounds=negotiation.rounds,
            max_rounds=negotiation.max_rounds,
            negotiation_id=negotiation.id,
            product_title=negotiation.product_title,
            user_message=user_message,
            personality=personality,
            urgency=urgency,
            user_id=user_id,
        )
