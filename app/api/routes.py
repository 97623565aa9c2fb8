"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import logging

from fastapi import APIRouter, Depends

from app.agent.llm import GenerationClient
from app.api.handlers import (
    get_generator,
    get_store,
    handle_optimize,
    handle_query,
    handle_reload,
    handle_stats,
    require_caller,
)
from app.core.store import KeyedStore
from app.schemas.maintenance import (
    OptimizeAgentsRequest,
    OptimizeAgentsResponse,
    ReloadCacheRequest,
    ReloadCacheResponse,
)
from app.schemas.query import QueryRequest, QueryResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Query resolution service running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


@router.get(
    "/stats",
    tags=["system"],
    summary="System statistics",
    description="Agents, performance, cache, hallucination prevention and recent audit logs.",
    dependencies=[Depends(require_caller)],
)
def get_stats(store: KeyedStore = Depends(get_store)) -> dict:
    return handle_stats(store)


# --- Query ---

@router.post(
    "/query",
    response_model=QueryResponse,
    tags=["query"],
    summary="Resolve a query (cache, generate, verify)",
    description=(
        "Serve a verified cached answer when available; otherwise generate, score, re-verify once if "
        "confidence < 0.6, and cache. 401 without Authorization, 429 rate-limited, 402 quota exceeded, "
        "500 generation unavailable."
    ),
    dependencies=[Depends(require_caller)],
)
def post_query(
    body: QueryRequest,
    store: KeyedStore = Depends(get_store),
    generator: GenerationClient = Depends(get_generator),
) -> QueryResponse:
    logger.info("[api:post_query] IN  query_len=%d domain=%r use_cache=%s", len(body.query), body.domain, body.use_cache)
    response = handle_query(body, store, generator)
    logger.info("[api:post_query] OUT cached=%s reprompted=%s", response.cached, response.reprompted)
    return response


# --- Maintenance ---

@router.post(
    "/cache/reload",
    response_model=ReloadCacheResponse,
    tags=["maintenance"],
    summary="Reload cache statistics and evict stale entries",
    description="Counts entries with access_count >= minAccessCount; deletes never-accessed entries older than 30 days.",
    dependencies=[Depends(require_caller)],
)
def post_reload_cache(body: ReloadCacheRequest, store: KeyedStore = Depends(get_store)) -> ReloadCacheResponse:
    return handle_reload(body, store)


@router.post(
    "/agents/optimize",
    response_model=OptimizeAgentsResponse,
    tags=["maintenance"],
    summary="Idle stale active agents and terminate stale idle agents",
    dependencies=[Depends(require_caller)],
)
def post_optimize_agents(
    body: OptimizeAgentsRequest, store: KeyedStore = Depends(get_store)
) -> OptimizeAgentsResponse:
    return handle_optimize(body, store)
