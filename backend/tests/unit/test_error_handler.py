"""
Unit tests for exception to HTTP response mapping.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from haggle.llm.types import (
    ProviderDisabledError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from haggle.middleware.error_handler import register_exception_handlers
from haggle.utils.exceptions import NegotiationNotFoundError


def client_raising(exc: Exception) -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise exc

    return TestClient(app)


@pytest.mark.unit
@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (ProviderDisabledError("off"), 400, "LLM_PROVIDER_DISABLED"),
        (ProviderTimeoutError("slow"), 503, "LLM_TIMEOUT"),
        (ProviderUnavailableError("down"), 503, "LLM_UNAVAILABLE"),
        (ProviderResponseError("garbage"), 502, "LLM_BAD_GATEWAY"),
        (ProviderError("generic"), 502, "LLM_BAD_GATEWAY"),
    ],
)
def test_provider_errors(exc, status_code, code):
    response = client_raising(exc).get("/boom")

    assert response.status_code == status_code
    body = response.json()
    assert body["error"] == code
    assert body["message"] == str(exc)


@pytest.mark.unit
def test_business_error_maps_to_404():
    response = client_raising(NegotiationNotFoundError("neg-9")).get("/boom")

    assert response.status_code == 404
    assert response.json()["error"] == "NEGOTIATION_NOT_FOUND"
