"""
In-process history of console queries, kept per connection id.

Each connection keeps its most recent QUERY_HISTORY_LIMIT entries, newest
first. History lives with the process; it is not persisted.
"""

import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from dbadmin.core.config import settings


class QueryHistoryEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    query: str
    params: list[Any] = []
    execution_time_ms: float
    executed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool
    row_count: int | None = None
    affected_row_count: int | None = None
    error: str | None = None


class QueryHistory:
    def __init__(self, limit: int | None = None) -> None:
        self._limit = limit or settings.QUERY_HISTORY_LIMIT
        self._entries: dict[str, deque[QueryHistoryEntry]] = {}
        self._lock = threading.Lock()

    def record(self, connection_id: str, entry: QueryHistoryEntry) -> None:
        with self._lock:
            entries = self._entries.get(connection_id)
            if entries is None:
                entries = deque(maxlen=self._limit)
                self._entries[connection_id] = entries
            entries.appendleft(entry)

    def get(self, connection_id: str, limit: int | None = None) -> list[QueryHistoryEntry]:
        with self._lock:
            entries = list(self._entries.get(connection_id, ()))
        return entries[:limit] if limit else entries

    def clear(self, connection_id: str) -> None:
        with self._lock:
            self._entries.pop(connection_id, None)


_query_history: QueryHistory | None = None
_history_lock = threading.Lock()


def get_query_history() -> QueryHistory:
    """Return the process-wide QueryHistory."""
    global _query_history
    if _query_history is None:
        with _history_lock:
            if _query_history is None:
                _query_history = QueryHistory()
    return _query_history
