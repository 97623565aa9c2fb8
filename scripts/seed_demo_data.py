#!/usr/bin/env python3
"""
Seed the SQLite store with demo agents, cache entries and embeddings.

Writes to STORE_DB_PATH (default data/query_service.db). Includes entries old enough
to be evicted by the next cache reload and agents stale enough to be idled or
terminated by the next optimization. Use --reset to clear seeded collections first.

The server only sees this data when it runs with STORE_BACKEND=sqlite; the script
refuses to run under any other backend.

Run from project root:

    STORE_BACKEND=sqlite python scripts/seed_demo_data.py
    STORE_BACKEND=sqlite python scripts/seed_demo_data.py --reset
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Project root on path so "app" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.core.config import STORE_BACKEND, STORE_DB_PATH
from app.core.sqlite_store import SqliteStore
from app.core.store import (
    AGENT_METADATA,
    CONFIDENCE_SCORES,
    EMBEDDINGS_CACHE,
    QUERY_CACHE,
    SYSTEM_LOGS,
)
from app.schemas.records import (
    ActivityState,
    AgentRecord,
    CacheEntry,
    ConfidenceRecord,
    EmbeddingCacheEntry,
    VerificationStatus,
    utcnow,
)
from app.services.hashing import content_hash
from app.services.response_cache import ResponseCache

# (query, answer, confidence, access_count, age_days)
SEED_QUERIES = [
    (
        "What treats Type 2 Diabetes?",
        "According to the 2024 ADA guidelines, metformin is the first-line treatment, lowering HbA1c by about 1.5%.",
        0.9,
        4,
        2,
    ),
    ("What is drip irrigation?", "Drip irrigation delivers water directly to plant roots.", 0.6, 0, 1),
    ("Who founded the company?", "The founder is unclear from the records.", 0.3, 0, 45),
]

# (agent_id, state, cpu, memory_mb, minutes_since_active)
SEED_AGENTS = [
    ("query-agent-healthcare", ActivityState.ACTIVE, 35.0, 512, 1),
    ("query-agent-finance", ActivityState.ACTIVE, 20.0, 256, 30),
    ("query-agent-agriculture", ActivityState.IDLE, 0.0, 128, 60),
    ("query-agent-technology", ActivityState.TERMINATED, 0.0, 64, 600),
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo data into the SQLite store.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear all seeded collections before inserting demo rows.",
    )
    args = parser.parse_args()

    if STORE_BACKEND != "sqlite":
        parser.error(f"STORE_BACKEND is {STORE_BACKEND!r}; set STORE_BACKEND=sqlite so the server reads the seeded data")

    store = SqliteStore(STORE_DB_PATH)
    if args.reset:
        for collection in (QUERY_CACHE, CONFIDENCE_SCORES, EMBEDDINGS_CACHE, AGENT_METADATA, SYSTEM_LOGS):
            store.delete_where(collection, lambda row: True)
        print("Cleared existing demo data.")

    now = utcnow()
    cache = ResponseCache(store)
    for query, answer, score, hits, age_days in SEED_QUERIES:
        created = now - timedelta(days=age_days)
        passed = score >= 0.6
        query_hash = content_hash(query)
        cache.store_answer(
            CacheEntry(
                query_hash=query_hash,
                query_text=query,
                response_text=answer,
                confidence_score=score,
                verification_status=VerificationStatus.VERIFIED if passed else VerificationStatus.PENDING,
                access_count=hits,
                created_at=created,
                last_accessed_at=created,
            ),
            ConfidenceRecord(
                query_hash=query_hash,
                initial_score=score,
                final_score=score,
                passed_validation=passed,
                created_at=created,
            ),
        )
        print(f"  cached: {query}")

    cache.put_embedding(
        EmbeddingCacheEntry(
            content_hash=content_hash("Metformin"),
            content_text="Metformin",
            domain="healthcare",
            embedding_vector=[0.12, 0.48, 0.31],
            access_count=0,
            created_at=now - timedelta(days=40),
        )
    )

    for agent_id, state, cpu, memory, minutes in SEED_AGENTS:
        last_active = now - timedelta(minutes=minutes)
        record = AgentRecord(
            agent_id=agent_id,
            activity_state=state,
            cpu_usage=cpu,
            memory_mb=memory,
            response_latency_ms=850,
            last_active_at=last_active,
            created_at=last_active,
        )
        store.upsert_by_key(AGENT_METADATA, agent_id, record.model_dump(mode="json"))
        print(f"  agent: {agent_id} ({state.value})")

    print(f"Done. Seeded {len(SEED_QUERIES)} queries, 1 embedding, {len(SEED_AGENTS)} agents.")


if __name__ == "__main__":
    main()
