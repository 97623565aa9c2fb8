"""Schemas for the cache reload and agent optimization endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import DEFAULT_INACTIVE_THRESHOLD_MINUTES, DEFAULT_MIN_ACCESS_COUNT


class ReloadCacheRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cache_type: Literal["all", "queries", "embeddings"] = Field("all", alias="cacheType")
    min_access_count: int = Field(DEFAULT_MIN_ACCESS_COUNT, ge=0, le=1000, alias="minAccessCount")


class ReloadCacheResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reloaded_queries: int = Field(..., alias="reloadedQueries")
    reloaded_embeddings: int = Field(..., alias="reloadedEmbeddings")
    cleaned_count: int = Field(..., alias="cleanedCount")
    cache_type: str = Field("all", alias="cacheType")


class OptimizeAgentsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inactive_threshold_minutes: int = Field(
        DEFAULT_INACTIVE_THRESHOLD_MINUTES, ge=1, le=1440, alias="inactiveThresholdMinutes"
    )


class OptimizeAgentsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    terminated_count: int = Field(..., alias="terminatedCount")
    idled_count: int = Field(..., alias="idledCount")
    memory_freed_mb: int = Field(..., alias="memoryFreedMb")
    system_stats: dict[str, Any] = Field(default_factory=dict, alias="systemStats")
