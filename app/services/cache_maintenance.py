"""
Cache maintenance: reload access statistics and evict stale, never-used entries.

Reload is observational (counts only). Eviction runs on every call regardless of scope:
query and embedding entries with access_count == 0 older than the retention window are
hard-deleted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Literal

from app.core.audit_log import write_log
from app.core.config import CACHE_RETENTION_DAYS, DEFAULT_MIN_ACCESS_COUNT
from app.core.errors import InvalidInputError
from app.core.store import KeyedStore
from app.schemas.records import utcnow
from app.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)

ReloadScope = Literal["all", "queries", "embeddings"]
SCOPES: tuple[str, ...] = ("all", "queries", "embeddings")
MAX_MIN_ACCESS_COUNT = 1000


@dataclass
class ReloadResult:
    reloaded_queries: int
    reloaded_embeddings: int
    cleaned_count: int
    scope: str = "all"


class CacheMaintainer:
    def __init__(
        self,
        store: KeyedStore,
        retention_days: int = CACHE_RETENTION_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.cache = ResponseCache(store)
        self.retention = timedelta(days=retention_days)
        self.clock = clock

    def reload(self, scope: ReloadScope = "all", min_access_count: int = DEFAULT_MIN_ACCESS_COUNT) -> ReloadResult:
        """Count entries with access_count >= min_access_count in the scoped stores, then evict stale ones."""
        if scope not in SCOPES:
            raise InvalidInputError(f"scope must be one of {', '.join(SCOPES)}")
        if not 0 <= min_access_count <= MAX_MIN_ACCESS_COUNT:
            raise InvalidInputError(f"min_access_count must be between 0 and {MAX_MIN_ACCESS_COUNT}")
        logger.info("[cache_maintenance:reload] IN  scope=%s min_access_count=%d", scope, min_access_count)

        queries = 0
        embeddings = 0
        if scope in ("all", "queries"):
            queries = self.cache.count_queries(min_access_count)
            logger.info("Reloaded %d query cache entries", queries)
        if scope in ("all", "embeddings"):
            embeddings = self.cache.count_embeddings(min_access_count)
            logger.info("Reloaded %d embedding cache entries", embeddings)

        cleaned = self.evict_stale()

        write_log(
            self.store,
            "optimization",
            f"Cache reload complete: {queries} queries, {embeddings} embeddings reloaded. "
            f"{cleaned} old entries cleaned.",
            {
                "query_reloaded": queries,
                "embeddings_reloaded": embeddings,
                "deleted_count": cleaned,
                "cache_type": scope,
            },
        )
        logger.info("[cache_maintenance:reload] OUT queries=%d embeddings=%d cleaned=%d", queries, embeddings, cleaned)
        return ReloadResult(reloaded_queries=queries, reloaded_embeddings=embeddings, cleaned_count=cleaned, scope=scope)

    def evict_stale(self) -> int:
        """Delete zero-access entries created before now - retention. Returns total removed."""
        cutoff = self.clock() - self.retention
        removed_queries = self.cache.evict_stale_queries(cutoff)
        removed_embeddings = self.cache.evict_stale_embeddings(cutoff)
        if removed_queries or removed_embeddings:
            logger.info(
                "[cache_maintenance:evict] cutoff=%s queries=%d embeddings=%d",
                cutoff.isoformat(),
                len(removed_queries),
                len(removed_embeddings),
            )
        return len(removed_queries) + len(removed_embeddings)
