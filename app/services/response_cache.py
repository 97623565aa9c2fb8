"""
Response cache: query fingerprint -> answer, with access counters and verification status.

Responsibility: All reads/writes of query_cache, confidence_scores and embeddings_cache
rows go through here. Hit counting is a single atomic store update, so concurrent hits
on the same fingerprint never lose increments.
"""

import logging
from datetime import datetime

from app.core.store import CONFIDENCE_SCORES, EMBEDDINGS_CACHE, QUERY_CACHE, KeyedStore, Row
from app.schemas.records import (
    CacheEntry,
    ConfidenceRecord,
    EmbeddingCacheEntry,
    VerificationStatus,
    parse_timestamp,
    utcnow,
)

logger = logging.getLogger(__name__)


class ResponseCache:
    def __init__(self, store: KeyedStore) -> None:
        self.store = store

    # --- query cache ---

    def get(self, query_hash: str) -> CacheEntry | None:
        rows = self.store.select_where(QUERY_CACHE, lambda r: r.get("query_hash") == query_hash)
        return CacheEntry.model_validate(rows[0]) if rows else None

    def lookup_verified(self, query_hash: str, query_text: str) -> CacheEntry | None:
        """
        Return the verified entry for this fingerprint, or None.
        The stored query_text must match exactly; a colliding fingerprint is treated as a miss.
        """
        entry = self.get(query_hash)
        if entry is None or entry.verification_status != VerificationStatus.VERIFIED:
            return None
        if entry.query_text != query_text:
            logger.warning("[response_cache:lookup] fingerprint collision hash=%s", query_hash[:16])
            return None
        return entry

    def record_hit(self, query_hash: str) -> CacheEntry | None:
        """Atomically bump access_count and last_accessed_at. Returns the updated entry."""
        now = utcnow().isoformat()

        def bump(row: Row) -> Row:
            return {"access_count": int(row.get("access_count") or 0) + 1, "last_accessed_at": now}

        updated = self.store.update_where(QUERY_CACHE, lambda r: r.get("query_hash") == query_hash, bump)
        if not updated:
            return None
        return CacheEntry.model_validate(updated[0])

    def store_answer(self, entry: CacheEntry, confidence: ConfidenceRecord) -> bool:
        """
        Persist a new entry and its confidence record. A verified entry already under the
        same fingerprint is kept (answers are fixed at creation); a pending one is replaced.
        Returns True when the new entry was written.
        """
        new_row = entry.model_dump(mode="json")
        written = False

        def keep_verified(existing: Row | None) -> Row | None:
            nonlocal written
            if existing is not None and existing.get("verification_status") == VerificationStatus.VERIFIED.value:
                return None
            written = True
            return new_row

        self.store.upsert_by_key(QUERY_CACHE, entry.query_hash, keep_verified)
        if not written:
            logger.info("[response_cache:store] kept existing verified entry hash=%s", entry.query_hash[:16])
            return False
        self.store.upsert_by_key(CONFIDENCE_SCORES, entry.query_hash, confidence.model_dump(mode="json"))
        logger.info(
            "[response_cache:store] hash=%s status=%s confidence=%.4f",
            entry.query_hash[:16],
            entry.verification_status.value,
            entry.confidence_score,
        )
        return True

    def confidence_for(self, query_hash: str) -> ConfidenceRecord | None:
        rows = self.store.select_where(CONFIDENCE_SCORES, lambda r: r.get("query_hash") == query_hash)
        return ConfidenceRecord.model_validate(rows[0]) if rows else None

    def count_queries(self, min_access_count: int) -> int:
        return len(self.store.select_where(QUERY_CACHE, lambda r: int(r.get("access_count") or 0) >= min_access_count))

    def evict_stale_queries(self, cutoff: datetime) -> list[CacheEntry]:
        """Hard-delete never-accessed entries created before cutoff, with their confidence records."""
        removed = [
            CacheEntry.model_validate(r)
            for r in self.store.delete_where(QUERY_CACHE, lambda r: _is_stale(r, cutoff))
        ]
        if removed:
            hashes = {e.query_hash for e in removed}
            self.store.delete_where(CONFIDENCE_SCORES, lambda r: r.get("query_hash") in hashes)
        return removed

    # --- embeddings cache (sibling store; counted and evicted only) ---

    def put_embedding(self, entry: EmbeddingCacheEntry) -> None:
        self.store.upsert_by_key(EMBEDDINGS_CACHE, entry.content_hash, entry.model_dump(mode="json"))

    def count_embeddings(self, min_access_count: int) -> int:
        return len(
            self.store.select_where(EMBEDDINGS_CACHE, lambda r: int(r.get("access_count") or 0) >= min_access_count)
        )

    def evict_stale_embeddings(self, cutoff: datetime) -> list[EmbeddingCacheEntry]:
        return [
            EmbeddingCacheEntry.model_validate(r)
            for r in self.store.delete_where(EMBEDDINGS_CACHE, lambda r: _is_stale(r, cutoff))
        ]


def _is_stale(row: Row, cutoff: datetime) -> bool:
    if int(row.get("access_count") or 0) != 0:
        return False
    created = row.get("created_at")
    if not created:
        return False
    return parse_timestamp(created) < cutoff
