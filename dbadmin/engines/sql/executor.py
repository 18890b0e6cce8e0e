"""
Query dispatcher: run one statement against a saved connection's pool.

- Classifies the statement as read (SELECT / SHOW / DESCRIBE / EXPLAIN) or
  write; the class only decides how the result is shaped.
- Checks one session out of the pool, runs the statement in autocommit mode,
  releases the session. No retries, no transaction wrapping, no locking.
- Driver failures leave as ``DatabaseError`` subclasses.

``split_statements`` splits a script for callers that want to run several
statements one after another.
"""

import logging
import re
from typing import Any

from dbadmin.core.errors import ConnectionNotFound, DatabaseError, translate_error
from dbadmin.core.pool import PoolRegistry, acquire, get_pool_registry, run_statement
from dbadmin.models import NormalizedResult

_log = logging.getLogger(__name__)

READ_KEYWORDS = frozenset({"SELECT", "SHOW", "DESCRIBE", "EXPLAIN"})

_LEADING_NOISE = re.compile(
    r"^(?:\s+|;|--[^\n]*(?:\n|$)|#[^\n]*(?:\n|$)|/\*.*?\*/)+", re.DOTALL
)
_FIRST_WORD = re.compile(r"[A-Za-z]+")
_DOLLAR_TAG = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)?\$")


def is_read_statement(sql: str) -> bool:
    """True if the first keyword (after whitespace and comments) is a read keyword."""
    s = _LEADING_NOISE.sub("", sql)
    m = _FIRST_WORD.match(s)
    return bool(m) and m.group(0).upper() in READ_KEYWORDS


def split_statements(sql: str) -> list[str]:
    """Split SQL into statements on ``;`` outside literals and comments.

    Handles ``'...'``, ``"..."`` and backtick-quoted text, PostgreSQL
    dollar-quoted bodies (``$$...$$``, ``$tag$...$tag$``), ``--`` / ``#`` line
    comments and ``/* */`` block comments.
    """
    stmts: list[str] = []
    start = 0
    i = 0
    length = len(sql)

    def _flush(end: int) -> None:
        stmt = sql[start:end].strip()
        if stmt:
            stmts.append(stmt)

    while i < length:
        ch = sql[i]

        if ch in ("'", '"', "`"):
            i += 1
            while i < length:
                c = sql[i]
                if c == "\\" and ch != "`":
                    i += 2
                    continue
                if c == ch:
                    if i + 1 < length and sql[i + 1] == ch:
                        i += 2
                        continue
                    break
                i += 1
            i += 1
            continue

        if ch == "$":
            m = _DOLLAR_TAG.match(sql, i)
            if m:
                close = sql.find(m.group(0), m.end())
                i = length if close == -1 else close + len(m.group(0))
                continue

        if ch == "#" or sql.startswith("--", i):
            end = sql.find("\n", i)
            i = length if end == -1 else end + 1
            continue

        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = length if end == -1 else end + 2
            continue

        if ch == ";":
            _flush(i)
            start = i + 1

        i += 1

    _flush(length)
    return stmts


async def execute_sql(
    connection_id: str,
    sql: str,
    params: list[Any] | tuple[Any, ...] | None = None,
    *,
    registry: PoolRegistry | None = None,
) -> NormalizedResult:
    """
    Run one statement through the pool of *connection_id*.

    Reads return ``rows``/``columns``; writes return ``affected_row_count`` and,
    when the engine reports one, ``inserted_id``.

    Raises ConnectionNotFound if no pool is registered for the id, or another
    ``DatabaseError`` subclass translated from the driver failure.
    """
    reg = registry or get_pool_registry()
    entry = reg.get_entry(connection_id)
    if entry is None:
        raise ConnectionNotFound()
    pool, config = entry
    engine_kind = config.engine_kind
    is_read = is_read_statement(sql)

    try:
        async with acquire(pool, engine_kind) as conn:
            return await run_statement(
                conn, engine_kind, sql, list(params or ()), is_read=is_read
            )
    except DatabaseError:
        raise
    except Exception as e:
        err = translate_error(e)
        _log.debug(
            "Statement failed on connection %s: %s (%s)",
            connection_id,
            err.kind.value,
            type(e).__name__,
        )
        raise err from None
