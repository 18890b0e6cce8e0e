"""
Server status page: version, uptime, status variables, sessions and sizes.
"""

import logging
from typing import Any

from dbadmin.core.pool import PoolRegistry
from dbadmin.engines.sql import metadata

from .catalog import as_float, as_int, dialect_for, run

_log = logging.getLogger(__name__)

# SHOW FULL PROCESSLIST column -> normalized key
_MYSQL_PROCESS_KEYS = {
    "Id": "id",
    "User": "user",
    "Host": "host",
    "db": "database",
    "Command": "command",
    "Time": "time",
    "State": "state",
    "Info": "info",
}


def _process(row: dict[str, Any]) -> dict[str, Any]:
    if "Id" in row:
        row = {key: row.get(col) for col, key in _MYSQL_PROCESS_KEYS.items()}
    return {
        "id": as_int(row.get("id")),
        "user": row.get("user") or "",
        "host": row.get("host") or "",
        "database": row.get("database") or "",
        "command": row.get("command") or "",
        "time": as_int(row.get("time")),
        "state": row.get("state") or "",
        "info": row.get("info"),
    }


async def list_processes(registry: PoolRegistry, connection_id: str) -> list[dict[str, Any]]:
    _, dialect = dialect_for(registry, connection_id)
    result = await run(registry, connection_id, metadata.list_processes(dialect))
    return [_process(row) for row in result.rows]


async def server_info(registry: PoolRegistry, connection_id: str) -> dict[str, Any]:
    _, dialect = dialect_for(registry, connection_id)
    version = await run(registry, connection_id, metadata.server_version(dialect))
    status = await run(registry, connection_id, metadata.server_status(dialect))

    variables: dict[str, str] = {}
    for row in status.rows:
        # SHOW STATUS spells its columns Variable_name / Value
        name = row.get("name", row.get("Variable_name"))
        value = row.get("value", row.get("Value"))
        if name is not None:
            variables[str(name)] = "" if value is None else str(value)

    uptime_stmt = metadata.server_uptime(dialect)
    if uptime_stmt is None:
        uptime = as_int(variables.get("Uptime"))
    else:
        result = await run(registry, connection_id, uptime_stmt)
        uptime = as_int(result.rows[0].get("uptime")) if result.rows else 0

    return {
        "version": version.rows[0].get("version") if version.rows else None,
        "uptime": uptime,
        "status": "online",
        "variables": variables,
        "processes": await list_processes(registry, connection_id),
    }


async def server_stats(
    registry: PoolRegistry, connection_id: str, database: str | None = None
) -> dict[str, Any]:
    """Size and table count of *database* (default: the connection's) and its largest tables."""
    config, dialect = dialect_for(registry, connection_id)
    database = database or config.database
    size = await run(registry, connection_id, metadata.database_size(dialect, database))
    row = size.rows[0] if size.rows else {}
    largest = await run(registry, connection_id, metadata.largest_tables(dialect, database))
    return {
        "database": database,
        "total_size_mb": as_float(row.get("size_mb")),
        "table_count": as_int(row.get("table_count")),
        "largest_tables": [
            {
                "table_name": t.get("table_name"),
                "size_mb": as_float(t.get("size_mb")),
                "row_count": as_int(t.get("row_count")),
            }
            for t in largest.rows
        ],
    }


async def kill_process(registry: PoolRegistry, connection_id: str, process_id: int) -> bool:
    """
    Terminate server session *process_id*.

    PostgreSQL reports a missing backend as ``False``; MySQL raises
    "Unknown thread id", which propagates as a ``DatabaseError``.
    """
    _, dialect = dialect_for(registry, connection_id)
    result = await run(registry, connection_id, metadata.kill_process(dialect, process_id))
    if dialect.is_postgres:
        terminated = bool(result.rows and result.rows[0].get("terminated"))
    else:
        terminated = True
    _log.info("Kill process %s on %s: %s", process_id, connection_id, terminated)
    return terminated
