"""
Minimal MCP-style tool server: exposes query resolution, cache maintenance, agent
optimization and system stats as a standardized tool interface for external agents.
"""

import logging
from typing import Any

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
from app.schemas.maintenance import OptimizeAgentsRequest, ReloadCacheRequest
from app.schemas.query import QueryRequest

logger = logging.getLogger(__name__)

# MCP tool schema for discovery / documentation
tools = [
    {
        "name": "resolve_query",
        "description": "Answer a question through the verified response cache (generates and verifies on miss)",
        "input_schema": {"query": "string", "domain": "string (optional)", "useCache": "boolean (default true)"},
    },
    {
        "name": "reload_cache",
        "description": "Count frequently used cache entries and evict never-used entries older than 30 days",
        "input_schema": {"cacheType": "all|queries|embeddings", "minAccessCount": "integer 0..1000"},
    },
    {
        "name": "optimize_agents",
        "description": "Idle inactive agents and terminate idle ones, reporting memory freed",
        "input_schema": {"inactiveThresholdMinutes": "integer 1..1440"},
    },
    {
        "name": "system_stats",
        "description": "Agents, cache, hallucination prevention and log statistics (system observability)",
        "input_schema": {},
    },
]

mcp_router = APIRouter(tags=["mcp"], dependencies=[Depends(require_caller)])


@mcp_router.get("/tools", summary="MCP tool discovery")
def mcp_list_tools() -> dict[str, list[dict[str, Any]]]:
    return {"tools": tools}


# --- resolve_query ---

@mcp_router.post(
    "/tools/resolve_query",
    summary="MCP tool: resolve_query",
    description="Resolve a question through the cache/verification pipeline.",
)
def mcp_resolve_query(
    body: QueryRequest,
    store: KeyedStore = Depends(get_store),
    generator: GenerationClient = Depends(get_generator),
) -> dict[str, Any]:
    """Same contract as POST /query, wrapped in a result envelope for tool callers."""
    logger.info("MCP tool called: resolve_query")
    result = handle_query(body, store, generator)
    return {"result": result.model_dump(by_alias=True)}


# --- reload_cache ---

@mcp_router.post("/tools/reload_cache", summary="MCP tool: reload_cache")
def mcp_reload_cache(body: ReloadCacheRequest, store: KeyedStore = Depends(get_store)) -> dict[str, Any]:
    logger.info("MCP tool called: reload_cache")
    return handle_reload(body, store).model_dump(by_alias=True)


# --- optimize_agents ---

@mcp_router.post("/tools/optimize_agents", summary="MCP tool: optimize_agents")
def mcp_optimize_agents(body: OptimizeAgentsRequest, store: KeyedStore = Depends(get_store)) -> dict[str, Any]:
    logger.info("MCP tool called: optimize_agents")
    return handle_optimize(body, store).model_dump(by_alias=True)


# --- system_stats ---

@mcp_router.post(
    "/tools/system_stats",
    summary="MCP tool: system_stats",
    description="Agents, cache and hallucination-prevention statistics (system observability).",
)
def mcp_system_stats(store: KeyedStore = Depends(get_store)) -> dict[str, Any]:
    """Return service status for system observability."""
    logger.info("MCP tool called: system_stats")
    return handle_stats(store)
