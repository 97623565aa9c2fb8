"""
Integration tests for the HTTP and MCP tool endpoints.

The store is an in-memory fake and generation is scripted, via app.dependency_overrides.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.api.handlers import get_generator, get_store
from app.core.errors import GenerationUnavailableError, QuotaExceededError, RateLimitedError
from app.core.store import AGENT_METADATA, InMemoryStore
from app.main import app
from app.schemas.records import ActivityState, AgentRecord, utcnow
from tests.fakes import HIGH_CONFIDENCE_ANSWER, HIGH_CONFIDENCE_SCORE, FakeGenerator

AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator(HIGH_CONFIDENCE_ANSWER)


@pytest.fixture
def client(store: InMemoryStore, generator: FakeGenerator):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_generator] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"ok": True}


# --- /query ---

def test_query_miss_then_hit(client: TestClient, generator: FakeGenerator) -> None:
    """POST /query twice: first generated, second served from cache with the same answer."""
    body = {"query": "What treats Type 2 Diabetes?", "domain": "healthcare"}
    first = client.post("/query", json=body, headers=AUTH)
    second = client.post("/query", json=body, headers=AUTH)
    assert first.status_code == 200
    assert first.json() == {
        "answerText": HIGH_CONFIDENCE_ANSWER,
        "confidenceScore": HIGH_CONFIDENCE_SCORE,
        "cached": False,
        "reprompted": False,
    }
    assert second.json()["cached"] is True
    assert second.json()["answerText"] == HIGH_CONFIDENCE_ANSWER
    assert len(generator.calls) == 1


def test_query_is_trimmed_before_hashing(client: TestClient, generator: FakeGenerator) -> None:
    client.post("/query", json={"query": "What treats Type 2 Diabetes?"}, headers=AUTH)
    response = client.post("/query", json={"query": "  What treats Type 2 Diabetes?  "}, headers=AUTH)
    assert response.json()["cached"] is True


def test_query_use_cache_false(client: TestClient, generator: FakeGenerator) -> None:
    body = {"query": "What treats Type 2 Diabetes?"}
    client.post("/query", json=body, headers=AUTH)
    response = client.post("/query", json={**body, "useCache": False}, headers=AUTH)
    assert response.json()["cached"] is False
    assert len(generator.calls) == 2


def test_query_requires_authorization(client: TestClient, generator: FakeGenerator) -> None:
    response = client.post("/query", json={"query": "hello"})
    assert response.status_code == 401
    assert generator.calls == []


@pytest.mark.parametrize("query", ["", "   ", "x" * 2001])
def test_query_invalid_input_returns_422(client: TestClient, query: str) -> None:
    response = client.post("/query", json={"query": query}, headers=AUTH)
    assert response.status_code == 422


@pytest.mark.parametrize(
    "error,status",
    [
        (RateLimitedError("Rate limit exceeded. Please try again later."), 429),
        (QuotaExceededError("Service quota exceeded. Please contact support."), 402),
        (GenerationUnavailableError("Service temporarily unavailable"), 500),
    ],
)
def test_query_generation_errors_map_to_status(store: InMemoryStore, error, status: int) -> None:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_generator] = lambda: FakeGenerator(error)
    try:
        response = TestClient(app).post("/query", json={"query": "hello"}, headers=AUTH)
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == status
    assert response.json() == {"detail": error.message}


# --- /cache/reload ---

def test_reload_defaults(client: TestClient) -> None:
    client.post("/query", json={"query": "What treats Type 2 Diabetes?"}, headers=AUTH)
    client.post("/query", json={"query": "What treats Type 2 Diabetes?"}, headers=AUTH)
    response = client.post("/cache/reload", json={}, headers=AUTH)
    assert response.status_code == 200
    assert response.json() == {
        "reloadedQueries": 1,
        "reloadedEmbeddings": 0,
        "cleanedCount": 0,
        "cacheType": "all",
    }


@pytest.mark.parametrize("body", [{"cacheType": "documents"}, {"minAccessCount": 1001}, {"minAccessCount": -1}])
def test_reload_validation(client: TestClient, body: dict) -> None:
    assert client.post("/cache/reload", json=body, headers=AUTH).status_code == 422


# --- /agents/optimize ---

def test_optimize_agents(client: TestClient, store: InMemoryStore) -> None:
    stale = utcnow() - timedelta(minutes=10)
    for agent_id, state in (("a", ActivityState.ACTIVE), ("b", ActivityState.IDLE)):
        record = AgentRecord(agent_id=agent_id, activity_state=state, memory_mb=100, cpu_usage=20.0, last_active_at=stale)
        store.upsert_by_key(AGENT_METADATA, agent_id, record.model_dump(mode="json"))

    response = client.post("/agents/optimize", json={"inactiveThresholdMinutes": 5}, headers=AUTH)

    assert response.status_code == 200
    data = response.json()
    assert data["terminatedCount"] == 1
    assert data["idledCount"] == 1
    assert data["memoryFreedMb"] == 100
    assert data["systemStats"]["idle_agents"] == 1
    assert data["systemStats"]["terminated_agents"] == 1


@pytest.mark.parametrize("minutes", [0, 1441])
def test_optimize_validation(client: TestClient, minutes: int) -> None:
    response = client.post("/agents/optimize", json={"inactiveThresholdMinutes": minutes}, headers=AUTH)
    assert response.status_code == 422


# --- /stats ---

def test_stats_reflect_activity(client: TestClient) -> None:
    client.post("/query", json={"query": "What treats Type 2 Diabetes?", "domain": "healthcare"}, headers=AUTH)
    client.post("/query", json={"query": "What treats Type 2 Diabetes?", "domain": "healthcare"}, headers=AUTH)
    stats = client.get("/stats", headers=AUTH).json()
    assert stats["agents"]["active"] == 1
    assert stats["cache"]["query_cache_size"] == 1
    assert stats["cache"]["verified_queries"] == 1
    assert stats["cache"]["total_cache_hits"] == 1
    assert stats["cache"]["cache_hit_rate"] == "50.00%"
    assert stats["hallucination_prevention"]["total_queries_verified"] == 1
    assert stats["hallucination_prevention"]["passed_validation"] == 1
    assert stats["logs"]["counts"]["cache_hits"] == 1


# --- MCP tools ---

def test_mcp_tool_discovery(client: TestClient) -> None:
    names = [t["name"] for t in client.get("/mcp/tools", headers=AUTH).json()["tools"]]
    assert names == ["resolve_query", "reload_cache", "optimize_agents", "system_stats"]


def test_mcp_resolve_query(client: TestClient) -> None:
    response = client.post("/mcp/tools/resolve_query", json={"query": "What treats Type 2 Diabetes?"}, headers=AUTH)
    assert response.status_code == 200
    assert response.json()["result"]["answerText"] == HIGH_CONFIDENCE_ANSWER


def test_mcp_reload_and_optimize(client: TestClient) -> None:
    reload = client.post("/mcp/tools/reload_cache", json={"cacheType": "queries"}, headers=AUTH).json()
    optimize = client.post("/mcp/tools/optimize_agents", json={}, headers=AUTH).json()
    assert reload["cacheType"] == "queries"
    assert optimize["terminatedCount"] == 0


def test_mcp_requires_authorization(client: TestClient) -> None:
    assert client.post("/mcp/tools/system_stats", json={}).status_code == 401
