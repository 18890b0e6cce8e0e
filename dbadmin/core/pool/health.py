"""
Health checks for administered servers: liveness ping and connection-test lookups.
"""

import logging
from typing import Any

from dbadmin.core.dialect import EngineKind

from .connect import run_statement

_log = logging.getLogger(__name__)

VERSION_QUERY: dict[EngineKind, str] = {
    EngineKind.MYSQL_FAMILY: "SELECT VERSION() AS version",
    EngineKind.POSTGRES: "SELECT version() AS version",
}

DATABASE_NAMES_QUERY: dict[EngineKind, str] = {
    EngineKind.MYSQL_FAMILY: "SHOW DATABASES",
    EngineKind.POSTGRES: (
        "SELECT datname FROM pg_database WHERE datistemplate = false ORDER BY datname"
    ),
}


async def health_check(conn: Any, engine_kind: EngineKind) -> bool:
    """Run SELECT 1 on *conn*; True if no exception."""
    try:
        await run_statement(conn, engine_kind, "SELECT 1", is_read=True)
        return True
    except Exception:
        _log.debug("Liveness check failed", exc_info=True)
        return False


async def inspect_server(conn: Any, engine_kind: EngineKind) -> tuple[str | None, list[str]]:
    """Return ``(server version, database names)``. Driver errors propagate."""
    version = await run_statement(
        conn, engine_kind, VERSION_QUERY[engine_kind], is_read=True
    )
    names = await run_statement(
        conn, engine_kind, DATABASE_NAMES_QUERY[engine_kind], is_read=True
    )
    engine_version = None
    if version.rows:
        engine_version = str(next(iter(version.rows[0].values())))
    databases = [str(next(iter(row.values()))) for row in names.rows if row]
    return engine_version, databases
