"""
Agent lifecycle: move simulated worker agents between active, idle and terminated,
and reclaim their simulated resources.

Responsibility: record_activity() is the single transition into ACTIVE (creating the
record on first sight); optimize() is the periodic batch pass that idles stale active
agents and terminates stale idle ones. Called by the pipeline and the API; no HTTP here.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from app.core.audit_log import write_log
from app.core.config import (
    AGENT_DEFAULT_CPU_USAGE,
    AGENT_DEFAULT_MEMORY_MB,
    DEFAULT_INACTIVE_THRESHOLD_MINUTES,
)
from app.core.errors import InvalidInputError
from app.core.store import AGENT_METADATA, KeyedStore, Row
from app.schemas.records import ActivityState, AgentRecord, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

MIN_THRESHOLD_MINUTES = 1
MAX_THRESHOLD_MINUTES = 1440


@dataclass
class OptimizationResult:
    terminated_count: int
    idled_count: int
    memory_freed_mb: int
    system_stats: dict[str, Any] = field(default_factory=dict)


def agent_stats(agents: list[AgentRecord]) -> dict[str, Any]:
    """Counts per state, total memory and average CPU across all agent records."""
    total = len(agents)
    return {
        "total_agents": total,
        "active_agents": sum(1 for a in agents if a.activity_state == ActivityState.ACTIVE),
        "idle_agents": sum(1 for a in agents if a.activity_state == ActivityState.IDLE),
        "terminated_agents": sum(1 for a in agents if a.activity_state == ActivityState.TERMINATED),
        "total_memory_mb": sum(a.memory_mb for a in agents),
        "avg_cpu_usage": sum(a.cpu_usage for a in agents) / (total or 1),
    }


class AgentLifecycleManager:
    def __init__(self, store: KeyedStore, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self.clock = clock

    def list_agents(self) -> list[AgentRecord]:
        return [AgentRecord.model_validate(r) for r in self.store.select_where(AGENT_METADATA)]

    def get(self, agent_id: str) -> AgentRecord | None:
        rows = self.store.select_where(AGENT_METADATA, lambda r: r.get("agent_id") == agent_id)
        return AgentRecord.model_validate(rows[0]) if rows else None

    def record_activity(
        self,
        agent_id: str,
        response_latency_ms: int | None = None,
        cpu_usage: float = AGENT_DEFAULT_CPU_USAGE,
        memory_mb: int = AGENT_DEFAULT_MEMORY_MB,
    ) -> AgentRecord:
        """
        Mark the agent ACTIVE now. A missing or terminated record starts fresh;
        an idle or active one keeps its created_at and gets its footprint restored.
        """
        now = self.clock()

        def activate(existing: Row | None) -> Row:
            fresh = existing is None or existing.get("activity_state") == ActivityState.TERMINATED.value
            created_at = now if fresh else parse_timestamp(existing["created_at"])
            record = AgentRecord(
                agent_id=agent_id,
                activity_state=ActivityState.ACTIVE,
                cpu_usage=max(0.0, cpu_usage),
                memory_mb=max(0, memory_mb),
                response_latency_ms=response_latency_ms,
                uptime_seconds=max(0, int((now - created_at).total_seconds())),
                last_active_at=now,
                created_at=created_at,
            )
            return record.model_dump(mode="json")

        row = self.store.upsert_by_key(AGENT_METADATA, agent_id, activate)
        logger.info("[agent_lifecycle:record_activity] agent_id=%s latency_ms=%s", agent_id, response_latency_ms)
        return AgentRecord.model_validate(row)

    def optimize(self, inactive_threshold_minutes: int = DEFAULT_INACTIVE_THRESHOLD_MINUTES) -> OptimizationResult:
        """
        Terminate idle agents and idle active agents whose last activity is older than the threshold.

        The threshold is computed once; idle agents are selected before any active agent
        is idled, so no agent moves two states in one pass. An idle agent is only
        terminated once it has been idle for the full threshold, so re-running before
        any last_active_at changes is a no-op.
        """
        if not MIN_THRESHOLD_MINUTES <= inactive_threshold_minutes <= MAX_THRESHOLD_MINUTES:
            raise InvalidInputError(
                f"inactive_threshold_minutes must be between {MIN_THRESHOLD_MINUTES} and {MAX_THRESHOLD_MINUTES}"
            )
        logger.info("[agent_lifecycle:optimize] IN  inactive_threshold_minutes=%d", inactive_threshold_minutes)
        try:
            return self._optimize(inactive_threshold_minutes)
        except Exception as e:
            write_log(self.store, "error", f"Optimization error: {e}", {"error": repr(e)})
            raise

    def _optimize(self, inactive_threshold_minutes: int) -> OptimizationResult:
        now = self.clock()
        threshold = now - timedelta(minutes=inactive_threshold_minutes)

        # Idle agents age from the moment they were idled, active ones from their last activity.
        def stale(state: ActivityState, since: str) -> Callable[[Row], bool]:
            def match(row: Row) -> bool:
                if row.get("activity_state") != state.value:
                    return False
                return parse_timestamp(row.get(since) or row["last_active_at"]) < threshold

            return match

        terminated = self.store.update_where(
            AGENT_METADATA,
            stale(ActivityState.IDLE, "idled_at"),
            {"activity_state": ActivityState.TERMINATED.value},
        )
        memory_freed = sum(int(r.get("memory_mb") or 0) for r in terminated)
        if terminated:
            write_log(
                self.store,
                "agent_cleanup",
                f"Terminated {len(terminated)} idle agents, freed {memory_freed}MB memory",
                {"terminated_agents": [r["agent_id"] for r in terminated], "memory_freed_mb": memory_freed},
            )

        def idle(row: Row) -> Row:
            return {
                "activity_state": ActivityState.IDLE.value,
                "cpu_usage": 0.0,
                "memory_mb": int(row.get("memory_mb") or 0) // 2,
                "idled_at": now.isoformat(),
            }

        idled = self.store.update_where(AGENT_METADATA, stale(ActivityState.ACTIVE, "last_active_at"), idle)

        stats = agent_stats(self.list_agents())
        write_log(
            self.store,
            "optimization",
            f"Optimization complete: terminated {len(terminated)}, idled {len(idled)} agents",
            {**stats, "memory_freed_mb": memory_freed, "optimization_timestamp": now.isoformat()},
        )
        logger.info(
            "[agent_lifecycle:optimize] OUT terminated=%d idled=%d memory_freed_mb=%d",
            len(terminated),
            len(idled),
            memory_freed,
        )
        return OptimizationResult(
            terminated_count=len(terminated),
            idled_count=len(idled),
            memory_freed_mb=memory_freed,
            system_stats=stats,
        )
