"""
Integration tests for the HTTP API.

WHAT: Turn, context, status, insight and report endpoints end to end
WHY: Verify routing, engine wiring and error mapping together
HOW: FastAPI TestClient over create_app() with an injected engine and mock provider
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from haggle.core.config import settings
from haggle.core.engine import build_engine
from haggle.core.repository import InMemoryNegotiationRepository
from haggle.main import create_app
from tests.fixtures.factories import make_negotiation, sample_haggle
from tests.fixtures.mock_llm import MockLLMProvider


def seeded_repository(*negotiations, messages=None):
    repository = InMemoryNegotiationRepository(negotiations)

    async def seed():
        for message in messages or []:
            await repository.append_message(negotiations[0].id, message)

    asyncio.run(seed())
    return repository


@pytest.fixture
def provider():
    return MockLLMProvider(["COUNTER: How about $850?"])


@pytest.fixture
def repository():
    return seeded_repository(
        make_negotiation(),
        make_negotiation(id="neg-2", current_offer=0.0),
        messages=sample_haggle(),
    )


@pytest.fixture
def client(provider, repository, store):
    engine = build_engine(provider=provider, repository=repository, store=store)
    with TestClient(create_app(engine=engine)) as test_client:
        yield test_client


@pytest.mark.integration
class TestStatusEndpoints:

    def test_root(self, client):
        assert client.get("/").json()["app"] == settings.APP_NAME

    def test_health(self, client):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "healthy"
        assert body["components"]["context_store"] == {"active_contexts": 0}

    def test_health_degraded_without_provider(self, repository, store):
        engine = build_engine(provider=MockLLMProvider(should_fail=True), repository=repository, store=store)
        with TestClient(create_app(engine=engine)) as client:
            assert client.get("/api/v1/health").json()["status"] == "degraded"

    def test_llm_status(self, client):
        body = client.get("/api/v1/llm/status").json()
        assert body["llm"]["available"] is True
        assert body["llm"]["models"] == ["mock-model"]

    def test_lifespan_starts_and_stops_engine(self, provider, repository, store, scheduler):
        engine = build_engine(provider=provider, repository=repository, store=store)
        with TestClient(create_app(engine=engine)):
            assert scheduler.started
        assert scheduler.stopped
        assert provider.closed


@pytest.mark.integration
class TestRespondEndpoint:

    def test_counter_turn(self, client, provider):
        response = client.post(
            "/api/v1/negotiations/neg-1/respond",
            json={"user_message": "Would you take $750?", "personality": "firm", "user_id": "buyer-7"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["scenario"] == "counter_offer"
        assert body["decision"]["action"] == "counter"
        assert body["decision"]["offer"] == {"amount": 850.0, "final": False, "source": "extracted"}
        assert body["decision"]["content"] == "How about $850?"
        assert body["message"]["sender"] == "automated-agent"
        assert body["message"]["type"] == "counter_offer"
        assert body["message"]["offer"]["source"] is None
        assert provider.calls[0]["user"] == "buyer-7"

    def test_context_after_turn(self, client):
        client.post("/api/v1/negotiations/neg-1/respond", json={"user_message": "Hi"})

        response = client.get("/api/v1/negotiations/neg-1/context")
        assert response.status_code == 200
        body = response.json()
        assert body["phase"] == "exploration"
        assert body["summary"]["entry_count"] == 1
        assert len(body["context"]["timeline"]) == 1
        assert client.get("/api/v1/contexts/stats").json()["active_contexts"] == 1

    def test_context_missing(self, client):
        response = client.get("/api/v1/negotiations/neg-1/context")
        assert response.status_code == 404
        assert response.json()["error"] == "CONTEXT_NOT_FOUND"

    def test_unknown_negotiation(self, client):
        response = client.post("/api/v1/negotiations/nope/respond", json={})
        assert response.status_code == 404
        assert response.json() == {
            "error": "NEGOTIATION_NOT_FOUND",
            "message": "Negotiation not found: nope",
            "detail": {"negotiation_id": "nope"},
        }

    def test_invalid_context(self, client):
        response = client.post("/api/v1/negotiations/neg-2/respond", json={})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_CONTEXT"

    def test_request_validation(self, client):
        response = client.post("/api/v1/negotiations/neg-1/respond", json={"personality": "rude"})
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_provider_failure_uses_fallback(self, repository, store):
        engine = build_engine(provider=MockLLMProvider(should_fail=True), repository=repository, store=store)
        with TestClient(create_app(engine=engine)) as client:
            body = client.post("/api/v1/negotiations/neg-1/respond", json={}).json()

            assert body["decision"]["metadata"]["is_fallback"] is True
            assert body["decision"]["metadata"]["model"] == "fallback"
            assert body["decision"]["action"] == "counter"
            assert client.get("/api/v1/negotiations/neg-1/context").status_code == 404


@pytest.mark.integration
class TestInsightEndpoints:

    def test_all_insights(self, client):
        body = client.get("/api/v1/negotiations/neg-1/insights").json()
        assert set(body["insights"]) == {"sentiment", "behavior", "performance", "prediction"}

    def test_insight_subset(self, client):
        body = client.get("/api/v1/negotiations/neg-1/insights", params={"types": ["sentiment"]}).json()
        assert list(body["insights"]) == ["sentiment"]
        assert body["insights"]["sentiment"]["overall"]["positive"] == 1

    def test_unknown_insight_type(self, client):
        response = client.get("/api/v1/negotiations/neg-1/insights/mood")
        assert response.status_code == 400
        assert response.json()["error"] == "UNKNOWN_TYPE"

    def test_single_insight(self, client):
        body = client.get("/api/v1/negotiations/neg-1/insights/prediction").json()
        assert body["price_convergence"]["converging"] is True

    @pytest.mark.parametrize("report_type", ["summary", "detailed"])
    def test_reports(self, client, report_type):
        body = client.get(f"/api/v1/negotiations/neg-1/reports/{report_type}").json()
        assert body["report_type"] == report_type
        assert body["negotiation_id"] == "neg-1"

    def test_comparison_needs_post(self, client):
        assert client.get("/api/v1/negotiations/neg-1/reports/comparison").status_code == 400

    def test_comparison(self, client):
        response = client.post("/api/v1/reports/comparison", json={"negotiation_ids": ["neg-1", "neg-2"]})
        assert response.status_code == 200
        assert response.json()["negotiation_ids"] == ["neg-1", "neg-2"]

    def test_comparison_unknown_negotiation(self, client):
        response = client.post("/api/v1/reports/comparison", json={"negotiation_ids": ["neg-1", "ghost"]})
        assert response.status_code == 404
