"""
Async driver helpers for administered database servers.

Uses psycopg (PostgreSQL) or aiomysql (MySQL / MariaDB) based on the
connection's engine kind. Everything engine-specific about opening sessions,
building pools, acquiring a pooled session and reading a cursor back into a
``NormalizedResult`` lives here; callers only see engine-neutral helpers.
"""

import ssl
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiomysql
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from dbadmin.core.config import settings
from dbadmin.core.dialect import EngineKind
from dbadmin.models import ConnectionConfig, NormalizedResult

from .placeholders import to_format_style


def _mysql_ssl(config: ConnectionConfig) -> ssl.SSLContext | None:
    if not config.use_ssl:
        return None
    ctx = ssl.create_default_context()
    # Self-signed server certificates are the common case for admin access
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _mysql_kwargs(config: ConnectionConfig, *, pooled: bool) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "host": config.host,
        "port": int(config.port),
        "user": config.username,
        "password": config.password.get_secret_value(),
        "db": config.database or None,
        "charset": "utf8mb4",
        "autocommit": True,
        "connect_timeout": settings.EXTERNAL_DB_CONNECT_TIMEOUT,
        "ssl": _mysql_ssl(config),
    }
    timeout_sec = settings.EXTERNAL_DB_STATEMENT_TIMEOUT
    if pooled and timeout_sec:
        kwargs["init_command"] = (
            f"SET SESSION max_execution_time = {int(timeout_sec * 1000)}"
        )
    return kwargs


def _pg_kwargs(config: ConnectionConfig, *, pooled: bool) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "host": config.host,
        "port": int(config.port),
        "user": config.username,
        "password": config.password.get_secret_value(),
        "connect_timeout": settings.EXTERNAL_DB_CONNECT_TIMEOUT,
        "sslmode": "require" if config.use_ssl else "prefer",
        "autocommit": True,
        "row_factory": dict_row,
        # Raw cursors take $1..$n placeholders as-is
        "cursor_factory": psycopg.AsyncRawCursor,
    }
    if config.database:
        kwargs["dbname"] = config.database
    timeout_sec = settings.EXTERNAL_DB_STATEMENT_TIMEOUT
    if pooled and timeout_sec:
        kwargs["options"] = f"-c statement_timeout={int(timeout_sec * 1000)}"
    return kwargs


# ---------------------------------------------------------------------------
# Single connections (connection tests)
# ---------------------------------------------------------------------------


async def open_connection(config: ConnectionConfig) -> Any:
    """Open one unpooled session with the configured connect timeout."""
    if config.engine_kind is EngineKind.POSTGRES:
        return await psycopg.AsyncConnection.connect(
            **_pg_kwargs(config, pooled=False)
        )
    return await aiomysql.connect(**_mysql_kwargs(config, pooled=False))


async def close_connection(conn: Any, engine_kind: EngineKind) -> None:
    if engine_kind is EngineKind.POSTGRES:
        await conn.close()
    else:
        await conn.ensure_closed()


# ---------------------------------------------------------------------------
# Pools
# ---------------------------------------------------------------------------


async def open_pool(config: ConnectionConfig) -> Any:
    """Create the driver-native bounded pool for *config*.

    The wait queue is unbounded; a caller waits up to EXTERNAL_DB_POOL_TIMEOUT
    (PostgreSQL) for a free session once EXTERNAL_DB_POOL_SIZE are checked out.
    """
    size = settings.EXTERNAL_DB_POOL_SIZE
    if config.engine_kind is EngineKind.POSTGRES:
        pool = AsyncConnectionPool(
            kwargs=_pg_kwargs(config, pooled=True),
            min_size=1,
            max_size=size,
            timeout=settings.EXTERNAL_DB_POOL_TIMEOUT,
            max_idle=settings.EXTERNAL_DB_POOL_MAX_IDLE_SEC,
            check=AsyncConnectionPool.check_connection,
            name=f"dbadmin-{config.id}",
            open=False,
        )
        # Sessions are established in the background; failures surface on first use
        await pool.open(wait=False)
        return pool
    return await aiomysql.create_pool(
        minsize=0,
        maxsize=size,
        pool_recycle=int(settings.EXTERNAL_DB_POOL_MAX_IDLE_SEC),
        **_mysql_kwargs(config, pooled=True),
    )


async def close_pool(pool: Any, engine_kind: EngineKind) -> None:
    """Drain and close a pool; checked-out sessions are closed on release."""
    if engine_kind is EngineKind.POSTGRES:
        await pool.close()
    else:
        pool.close()
        await pool.wait_closed()


@asynccontextmanager
async def acquire(pool: Any, engine_kind: EngineKind) -> AsyncIterator[Any]:
    """Check one session out of *pool* for the duration of the block."""
    if engine_kind is EngineKind.POSTGRES:
        async with pool.connection() as conn:
            yield conn
    else:
        async with pool.acquire() as conn:
            yield conn


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


async def run_statement(
    conn: Any,
    engine_kind: EngineKind,
    sql: str,
    params: list[Any] | tuple[Any, ...] | None = None,
    *,
    is_read: bool,
) -> NormalizedResult:
    """Run one statement on *conn* and shape the cursor into a ``NormalizedResult``."""
    if engine_kind is EngineKind.POSTGRES:
        return await _run_pg(conn, sql, params, is_read=is_read)
    return await _run_mysql(conn, sql, params, is_read=is_read)


async def _run_mysql(
    conn: Any, sql: str, params: list[Any] | tuple[Any, ...] | None, *, is_read: bool
) -> NormalizedResult:
    async with conn.cursor(aiomysql.DictCursor) as cur:
        if params:
            await cur.execute(to_format_style(sql), tuple(params))
        else:
            await cur.execute(sql)
        if is_read:
            columns = [d[0] for d in cur.description or ()]
            rows = list(await cur.fetchall()) if cur.description else []
            return NormalizedResult(rows=rows, columns=columns)
        return NormalizedResult(
            affected_row_count=max(cur.rowcount, 0),
            inserted_id=cur.lastrowid or None,
        )


async def _run_pg(
    conn: Any, sql: str, params: list[Any] | tuple[Any, ...] | None, *, is_read: bool
) -> NormalizedResult:
    async with conn.cursor() as cur:
        await cur.execute(sql, list(params) if params else None)
        if is_read:
            columns = [c.name for c in cur.description or ()]
            rows = await cur.fetchall() if cur.description else []
            return NormalizedResult(rows=rows, columns=columns)
        inserted_id = None
        # INSERT ... RETURNING: the first returned value identifies the new row
        if cur.description:
            first = await cur.fetchone()
            if first:
                inserted_id = next(iter(first.values()), None)
        return NormalizedResult(
            affected_row_count=max(cur.rowcount, 0),
            inserted_id=inserted_id,
        )
