"""
Persistent audit log (system_logs collection).

Batch jobs and the query pipeline record what they did here; the stats endpoint
reads it back. Writes are best-effort: a failing store is logged, never raised.
"""

import logging
from typing import Any

from app.core.errors import StoreError
from app.core.store import SYSTEM_LOGS, KeyedStore
from app.schemas.records import SystemLog

logger = logging.getLogger(__name__)


def write_log(store: KeyedStore, log_type: str, message: str, metadata: dict[str, Any] | None = None) -> None:
    """Append one audit entry. Swallows StoreError after logging it."""
    entry = SystemLog(log_type=log_type, message=message, metadata=metadata or {})
    try:
        store.insert(SYSTEM_LOGS, entry.model_dump(mode="json"))
    except StoreError as e:
        logger.warning("[audit_log:write_log] failed log_type=%s error=%s", log_type, e)
        return
    logger.info("[audit_log:write_log] %s: %s", log_type, message)


def recent_logs(store: KeyedStore, limit: int) -> list[SystemLog]:
    """Newest first."""
    logs = [SystemLog.model_validate(r) for r in store.select_where(SYSTEM_LOGS)]
    logs.sort(key=lambda log: log.created_at, reverse=True)
    return logs[:limit]
