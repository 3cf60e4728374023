"""
Global error handling middleware.

WHAT: Translate exceptions to appropriate HTTP responses
WHY: Consistent error bodies with proper status codes, never stack traces
HOW: FastAPI exception handlers for business and provider exceptions
"""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..llm.types import ProviderError
from ..utils.exceptions import BusinessException
from ..utils.logger import get_logger

logger = get_logger(__name__)

BUSINESS_STATUS_CODES = {
    "NEGOTIATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CONTEXT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_CONTEXT": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "EMPTY_RESPONSE": status.HTTP_400_BAD_REQUEST,
    "UNKNOWN_TYPE": status.HTTP_400_BAD_REQUEST,
}

# Keyed by ProviderError.reason
PROVIDER_ERRORS = {
    "disabled": (status.HTTP_400_BAD_REQUEST, "LLM_PROVIDER_DISABLED", "Check LLM provider configuration"),
    "timeout": (status.HTTP_503_SERVICE_UNAVAILABLE, "LLM_TIMEOUT", "LLM provider request timed out"),
    "unavailable": (status.HTTP_503_SERVICE_UNAVAILABLE, "LLM_UNAVAILABLE", "LLM provider is not reachable"),
    "response": (status.HTTP_502_BAD_GATEWAY, "LLM_BAD_GATEWAY", "LLM provider returned an invalid response"),
}


def _error_body(error: str, message: str, detail=None) -> dict:
    return {"error": error, "message": message, "detail": detail}


async def business_exception_handler(request: Request, exc: BusinessException):
    """
    Handle BusinessException subclasses.

    Unknown resources map to 404, malformed contexts to 422, bad input to 400.
    """
    status_code = BUSINESS_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST)
    logger.warning(f"Business exception: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, exc.details),
    )


async def provider_exception_handler(request: Request, exc: ProviderError):
    """
    Handle provider errors that escape the completion client.

    Turns never reach this (they fall back); status endpoints might.
    """
    status_code, code, detail = PROVIDER_ERRORS.get(exc.reason, PROVIDER_ERRORS["response"])
    logger.error(f"Provider error ({code}): {exc}")
    return JSONResponse(status_code=status_code, content=_error_body(code, str(exc), detail))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Handle FastAPI RequestValidationError.

    Returns 422 with JSON-safe field errors.
    """
    logger.warning(f"Validation error: {exc.errors()}")

    cleaned_errors = []
    for error in exc.errors():
        cleaned = {
            "type": error.get("type"),
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
        }
        if "ctx" in error:
            cleaned["ctx"] = {
                k: str(v) if isinstance(v, Exception) else v for k, v in error["ctx"].items()
            }
        cleaned_errors.append(cleaned)

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("VALIDATION_ERROR", "Request validation failed", cleaned_errors),
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(ProviderError, provider_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(BusinessException, business_exception_handler)

    logger.info("Exception handlers registered")
