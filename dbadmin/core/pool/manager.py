"""
Registry of connection pools, one per saved connection id.

Each id moves ``absent -> pooled -> closed(absent)``. Creating a pool for an id
that is already pooled is a caller error; updates go through ``replace_pool``.
Mutations for one id are serialized by a per-id ``asyncio.Lock``; lookups are
plain dict reads.
"""

import asyncio
import logging
import threading
import time
import weakref
from typing import Any, NamedTuple

from dbadmin.core.errors import translate_error
from dbadmin.models import ConnectionConfig, ConnectionTestResult

from .connect import (
    acquire,
    close_connection,
    close_pool,
    open_connection,
    open_pool,
)
from .health import health_check, inspect_server

_log = logging.getLogger(__name__)


class _PoolEntry(NamedTuple):
    pool: Any
    config: ConnectionConfig
    created_at: float  # time.monotonic() when the pool was created


class PoolRegistry:
    """Per-connection-id pools with liveness checks and bulk shutdown."""

    def __init__(self) -> None:
        self._entries: dict[str, _PoolEntry] = {}
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTestResult:
        """Open a throwaway session, read version and databases, never store it.

        Never raises for connection problems: failures come back as
        ``success=False`` with the normalized message and error kind.
        """
        engine_kind = config.engine_kind
        conn = None
        try:
            conn = await open_connection(config)
            engine_version, databases = await inspect_server(conn, engine_kind)
        except Exception as e:
            err = translate_error(e)
            _log.info(
                "Connection test failed for %s:%s (%s): %s",
                config.host,
                config.port,
                engine_kind.value,
                err.kind.value,
            )
            return ConnectionTestResult(
                success=False, message=err.message, error_kind=err.kind
            )
        finally:
            if conn is not None:
                await self._close_connection_quiet(conn, engine_kind)

        return ConnectionTestResult(
            success=True,
            message="Connection successful",
            engine_version=engine_version,
            available_databases=databases,
        )

    async def create_pool(self, config: ConnectionConfig) -> None:
        async with self._lock_for(config.id):
            if config.id in self._entries:
                raise ValueError(
                    f"Pool already exists for connection {config.id}; close it first"
                )
            await self._open(config)

    async def replace_pool(self, config: ConnectionConfig) -> None:
        """Close the current pool for ``config.id`` (if any) and create a new one."""
        async with self._lock_for(config.id):
            entry = self._entries.pop(config.id, None)
            if entry is not None:
                await self._close_quiet(entry)
            await self._open(config)

    def get_pool(self, connection_id: str) -> Any | None:
        entry = self._entries.get(connection_id)
        return entry.pool if entry is not None else None

    def get_config(self, connection_id: str) -> ConnectionConfig | None:
        entry = self._entries.get(connection_id)
        return entry.config if entry is not None else None

    def get_entry(self, connection_id: str) -> tuple[Any, ConnectionConfig] | None:
        """Pool and config together, read in one step."""
        entry = self._entries.get(connection_id)
        if entry is None:
            return None
        return entry.pool, entry.config

    async def close_pool(self, connection_id: str) -> None:
        """Unregister, then drain the pool for *connection_id*. Unknown ids are a no-op.

        Requests arriving during the drain see ``ConnectionNotFound``; sessions
        already checked out finish and are closed on release.
        """
        async with self._lock_for(connection_id):
            entry = self._entries.pop(connection_id, None)
            if entry is not None:
                await self._close_quiet(entry)

    async def close_all(self) -> None:
        ids = list(self._entries)
        results = await asyncio.gather(
            *(self.close_pool(cid) for cid in ids), return_exceptions=True
        )
        for cid, result in zip(ids, results):
            if isinstance(result, BaseException):
                _log.warning("Failed to close pool %s", cid, exc_info=result)
        _log.info("Closed %d connection pool(s)", len(ids))

    async def check_liveness(self, connection_id: str) -> bool:
        """``SELECT 1`` through the pool. False for unknown ids or any failure."""
        entry = self._entries.get(connection_id)
        if entry is None:
            return False
        engine_kind = entry.config.engine_kind
        try:
            async with acquire(entry.pool, engine_kind) as conn:
                return await health_check(conn, engine_kind)
        except Exception:
            _log.debug("Liveness check failed for %s", connection_id, exc_info=True)
            return False

    def stats(self) -> dict[str, Any]:
        """Return registry statistics for monitoring."""
        now = time.monotonic()
        return {
            "pools": len(self._entries),
            "connections": [
                {
                    "id": cid,
                    "engine": entry.config.engine_kind.value,
                    "age_sec": round(now - entry.created_at, 1),
                }
                for cid, entry in list(self._entries.items())
            ],
        }

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._entries

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, connection_id: str) -> asyncio.Lock:
        lock = self._locks.get(connection_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[connection_id] = lock
        return lock

    async def _open(self, config: ConnectionConfig) -> None:
        pool = await open_pool(config)
        self._entries[config.id] = _PoolEntry(
            pool=pool, config=config, created_at=time.monotonic()
        )
        _log.info(
            "Created pool for connection %s (%s %s:%s)",
            config.id,
            config.engine_kind.value,
            config.host,
            config.port,
        )

    @staticmethod
    async def _close_quiet(entry: _PoolEntry) -> None:
        try:
            await close_pool(entry.pool, entry.config.engine_kind)
        except Exception:
            _log.warning(
                "Error closing pool for connection %s", entry.config.id, exc_info=True
            )

    @staticmethod
    async def _close_connection_quiet(conn: Any, engine_kind: Any) -> None:
        try:
            await close_connection(conn, engine_kind)
        except Exception:
            _log.debug("Error closing test connection", exc_info=True)


_pool_registry: PoolRegistry | None = None
_registry_lock = threading.Lock()


def get_pool_registry() -> PoolRegistry:
    """Return the singleton PoolRegistry (thread-safe double-checked locking)."""
    global _pool_registry
    if _pool_registry is None:
        with _registry_lock:
            if _pool_registry is None:
                _pool_registry = PoolRegistry()
    return _pool_registry
