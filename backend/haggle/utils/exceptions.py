"""
Custom business exceptions for the negotiation engine.

WHAT: Domain-specific exceptions for input failures
WHY: Input failures are fatal for the current call and must reach the caller
HOW: Custom exception classes with error codes and messages
"""

from typing import Optional, List, Dict, Any


class BusinessException(Exception):
    """Base class for business logic exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class NegotiationNotFoundError(BusinessException):
    """Raised when a negotiation cannot be loaded."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message=f"Negotiation not found: {negotiation_id}",
            code="NEGOTIATION_NOT_FOUND",
            details={"negotiation_id": negotiation_id}
        )


class InvalidContextError(BusinessException):
    """Raised when an interpretation context is malformed."""

    def __init__(self, message: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(
            message=message,
            code="INVALID_CONTEXT",
            details={"field_errors": field_errors} if field_errors else None
        )


class EmptyResponseError(BusinessException):
    """Raised when the interpreter is handed empty provider text."""

    def __init__(self):
        super().__init__(
            message="Cannot interpret an empty response; route to the fallback responder instead",
            code="EMPTY_RESPONSE"
        )


class UnknownInsightTypeError(BusinessException):
    """Raised for an insight or report type outside the supported set."""

    def __init__(self, kind: str, value: str, supported: List[str]):
        super().__init__(
            message=f"Unknown {kind} type: {value}",
            code="UNKNOWN_TYPE",
            details={"value": value, "supported": supported}
        )


class ContextNotFoundError(BusinessException):
    """Raised when no conversation context exists for a negotiation."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message=f"No conversation context for negotiation: {negotiation_id}",
            code="CONTEXT_NOT_FOUND",
            details={"negotiation_id": negotiation_id}
        )
