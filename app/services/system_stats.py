"""
System statistics: agents, performance, cache, hallucination prevention, recent logs.

Read-only snapshot over the shared store, used by GET /stats and the MCP system_stats tool.
"""

import logging
from typing import Any

from app.core.audit_log import recent_logs
from app.core.config import STATS_RECENT_CONFIDENCE, STATS_RECENT_LOGS
from app.core.store import CONFIDENCE_SCORES, EMBEDDINGS_CACHE, QUERY_CACHE, KeyedStore
from app.schemas.records import (
    ActivityState,
    AgentRecord,
    CacheEntry,
    ConfidenceRecord,
    EmbeddingCacheEntry,
    VerificationStatus,
    utcnow,
)
from app.services.agent_lifecycle import AgentLifecycleManager

logger = logging.getLogger(__name__)


def _agent_details(agents: list[AgentRecord]) -> list[dict[str, Any]]:
    ordered = sorted(agents, key=lambda a: a.last_active_at, reverse=True)
    return [
        {
            "agent_id": a.agent_id,
            "state": a.activity_state.value,
            "cpu_usage": a.cpu_usage,
            "memory_mb": a.memory_mb,
            "latency_ms": a.response_latency_ms,
            "last_active": a.last_active_at.isoformat(),
        }
        for a in ordered
    ]


def collect_system_stats(store: KeyedStore) -> dict[str, Any]:
    agents = AgentLifecycleManager(store).list_agents()
    queries = [CacheEntry.model_validate(r) for r in store.select_where(QUERY_CACHE)]
    embeddings = [EmbeddingCacheEntry.model_validate(r) for r in store.select_where(EMBEDDINGS_CACHE)]
    confidences = sorted(
        (ConfidenceRecord.model_validate(r) for r in store.select_where(CONFIDENCE_SCORES)),
        key=lambda c: c.created_at,
        reverse=True,
    )[:STATS_RECENT_CONFIDENCE]
    logs = recent_logs(store, STATS_RECENT_LOGS)

    active = [a for a in agents if a.activity_state == ActivityState.ACTIVE]
    avg_cpu = sum(a.cpu_usage for a in agents) / len(agents) if agents else 0.0
    avg_latency = sum(a.response_latency_ms or 0 for a in active) / len(active) if active else 0.0
    avg_confidence = sum(q.confidence_score for q in queries) / len(queries) if queries else 0.0

    log_counts = {
        "optimization": sum(1 for log in logs if log.log_type == "optimization"),
        "cache_hits": sum(1 for log in logs if log.log_type == "cache_hit"),
        "cache_misses": sum(1 for log in logs if log.log_type == "cache_miss"),
        "errors": sum(1 for log in logs if log.log_type == "error"),
    }
    lookups = log_counts["cache_hits"] + log_counts["cache_misses"]
    hit_rate = log_counts["cache_hits"] / lookups * 100 if lookups else 0.0

    stats = {
        "timestamp": utcnow().isoformat(),
        "agents": {
            "total": len(agents),
            "active": len(active),
            "idle": sum(1 for a in agents if a.activity_state == ActivityState.IDLE),
            "terminated": sum(1 for a in agents if a.activity_state == ActivityState.TERMINATED),
            "details": _agent_details(agents),
        },
        "performance": {
            "total_memory_mb": sum(a.memory_mb for a in agents),
            "avg_cpu_usage": round(avg_cpu, 2),
            "avg_response_latency_ms": round(avg_latency),
        },
        "cache": {
            "query_cache_size": len(queries),
            "embeddings_cache_size": len(embeddings),
            "verified_queries": sum(1 for q in queries if q.verification_status == VerificationStatus.VERIFIED),
            "avg_confidence": round(avg_confidence, 2),
            "total_cache_hits": sum(q.access_count for q in queries) + sum(e.access_count for e in embeddings),
            "cache_hit_rate": f"{hit_rate:.2f}%",
        },
        "hallucination_prevention": {
            "total_queries_verified": len(confidences),
            "passed_validation": sum(1 for c in confidences if c.passed_validation),
            "avg_improvement": (
                sum(c.final_score - c.initial_score for c in confidences) / len(confidences) if confidences else 0.0
            ),
            "total_reprompts": sum(c.reprompt_count for c in confidences),
        },
        "logs": {
            "recent_count": len(logs),
            "counts": log_counts,
            "recent_entries": [
                {"type": log.log_type, "message": log.message, "timestamp": log.created_at.isoformat()}
                for log in logs[:5]
            ],
        },
    }
    logger.info(
        "[system_stats] agents=%d queries=%d embeddings=%d logs=%d",
        len(agents),
        len(queries),
        len(embeddings),
        len(logs),
    )
    return stats
