"""Stored record shapes: cache entries, confidence records, agents, audit logs."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    PENDING = "pending"


class ActivityState(str, Enum):
    ACTIVE = "active"
    IDLE = "idle"
    TERMINATED = "terminated"


class CacheEntry(BaseModel):
    """One cached answer, keyed by the SHA-256 fingerprint of the exact query text."""

    query_hash: str = Field(..., min_length=64, max_length=64)
    query_text: str
    response_text: str
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    verification_status: VerificationStatus
    access_count: int = Field(0, ge=0)
    model_used: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    last_accessed_at: datetime = Field(default_factory=utcnow)


class ConfidenceRecord(BaseModel):
    """Scoring history for one CacheEntry (same key). Written once."""

    query_hash: str
    initial_score: float = Field(..., ge=0.0, le=1.0)
    final_score: float = Field(..., ge=0.0, le=1.0)
    reprompt_count: int = Field(0, ge=0, le=1)
    passed_validation: bool
    verification_method: str = "heuristic"
    created_at: datetime = Field(default_factory=utcnow)


class EmbeddingCacheEntry(BaseModel):
    """Cached embedding vector. Only counted and evicted here; never searched."""

    content_hash: str
    content_text: str
    domain: str | None = None
    embedding_vector: list[float] = Field(default_factory=list)
    access_count: int = Field(0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    last_accessed_at: datetime = Field(default_factory=utcnow)


class AgentRecord(BaseModel):
    """Simulated worker agent and its resource footprint."""

    agent_id: str
    activity_state: ActivityState = ActivityState.ACTIVE
    cpu_usage: float = Field(0.0, ge=0.0)
    memory_mb: int = Field(0, ge=0)
    response_latency_ms: int | None = None
    uptime_seconds: int = Field(0, ge=0)
    last_active_at: datetime = Field(default_factory=utcnow)
    idled_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)


class SystemLog(BaseModel):
    log_type: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp (ISO-8601 string or datetime); naive values are taken as UTC."""
    ts = value if isinstance(value, datetime) else datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts
