"""
API handlers: build services, call them, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Dependency providers and
exception-to-HTTP mapping live here so services stay free of FastAPI/HTTP types.
Tests swap the store or generation client through app.dependency_overrides.
"""

import logging
from functools import lru_cache

from fastapi import Header, HTTPException

from app.agent.llm import GenerationClient, build_generation_client
from app.core.config import STORE_BACKEND, STORE_DB_PATH
from app.core.errors import QueryServiceError, UnauthenticatedError
from app.core.store import KeyedStore, create_store
from app.schemas.maintenance import (
    OptimizeAgentsRequest,
    OptimizeAgentsResponse,
    ReloadCacheRequest,
    ReloadCacheResponse,
)
from app.schemas.query import QueryRequest, QueryResponse
from app.services.agent_lifecycle import AgentLifecycleManager
from app.services.cache_maintenance import CacheMaintainer
from app.services.system_stats import collect_system_stats
from app.services.verification import VerificationPipeline

logger = logging.getLogger(__name__)


# --- providers ---

@lru_cache(maxsize=1)
def get_store() -> KeyedStore:
    logger.info("[handlers] store backend=%s", STORE_BACKEND)
    return create_store(STORE_BACKEND, STORE_DB_PATH)


@lru_cache(maxsize=1)
def get_generator() -> GenerationClient:
    return build_generation_client()


def require_caller(authorization: str | None = Header(None)) -> str:
    """Reject requests without an Authorization header. Identity verification is delegated upstream."""
    if not authorization or not authorization.strip():
        raise to_http(UnauthenticatedError("Authentication required"))
    return authorization


# --- error mapping ---

def to_http(error: QueryServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


# --- handlers ---

def handle_query(body: QueryRequest, store: KeyedStore, generator: GenerationClient) -> QueryResponse:
    """Run the verification pipeline; map typed service errors to HTTP (401/402/429/500)."""
    pipeline = VerificationPipeline(store, generator, lifecycle=AgentLifecycleManager(store))
    try:
        result = pipeline.resolve(body.query, domain_hint=body.domain, use_cache=body.use_cache)
    except QueryServiceError as e:
        logger.warning("[handlers:query] %s status=%d", type(e).__name__, e.status_code)
        raise to_http(e) from e
    return QueryResponse(
        answer_text=result.answer_text,
        confidence_score=result.confidence,
        cached=result.was_cached,
        reprompted=result.was_reprompted,
    )


def handle_reload(body: ReloadCacheRequest, store: KeyedStore) -> ReloadCacheResponse:
    try:
        result = CacheMaintainer(store).reload(body.cache_type, body.min_access_count)
    except QueryServiceError as e:
        raise to_http(e) from e
    return ReloadCacheResponse(
        reloaded_queries=result.reloaded_queries,
        reloaded_embeddings=result.reloaded_embeddings,
        cleaned_count=result.cleaned_count,
        cache_type=result.scope,
    )


def handle_optimize(body: OptimizeAgentsRequest, store: KeyedStore) -> OptimizeAgentsResponse:
    try:
        result = AgentLifecycleManager(store).optimize(body.inactive_threshold_minutes)
    except QueryServiceError as e:
        raise to_http(e) from e
    return OptimizeAgentsResponse(
        terminated_count=result.terminated_count,
        idled_count=result.idled_count,
        memory_freed_mb=result.memory_freed_mb,
        system_stats=result.system_stats,
    )


def handle_stats(store: KeyedStore) -> dict:
    try:
        return collect_system_stats(store)
    except QueryServiceError as e:
        raise to_http(e) from e
