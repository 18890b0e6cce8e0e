"""
Row data for one table: paged reads and single / bulk writes keyed on a column.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from dbadmin.core.errors import InvalidStatementError
from dbadmin.core.pool import PoolRegistry
from dbadmin.engines.sql import dml
from dbadmin.engines.sql.pagination import PageRequest, build_table_page, total_pages
from dbadmin.models import NormalizedResult

from .catalog import column_names, dialect_for, primary_key, run


async def _key_column(
    registry: PoolRegistry, connection_id: str, database: str, table: str
) -> str:
    key = await primary_key(registry, connection_id, database, table)
    if key is None:
        raise InvalidStatementError(f"Table {table!r} has no primary key")
    return key


async def read_page(
    registry: PoolRegistry,
    connection_id: str,
    database: str,
    table: str,
    request: PageRequest,
) -> dict[str, Any]:
    _, dialect = dialect_for(registry, connection_id)
    columns = await column_names(registry, connection_id, database, table)
    if not columns:
        raise InvalidStatementError(f"Table {table!r} not found in {database!r}")
    page = build_table_page(dialect, database, table, columns, request)

    count = await run(registry, connection_id, page.count)
    total = int(count.rows[0]["total"]) if count.rows else 0
    data = await run(registry, connection_id, page.data)
    return {
        "columns": columns,
        "rows": data.rows,
        "total_rows": total,
        "page": request.page,
        "page_size": request.page_size,
        "total_pages": total_pages(total, request.page_size),
    }


async def get_row(
    registry: PoolRegistry, connection_id: str, database: str, table: str, key_value: Any
) -> dict[str, Any] | None:
    _, dialect = dialect_for(registry, connection_id)
    key = await _key_column(registry, connection_id, database, table)
    result = await run(
        registry, connection_id, dml.select_row(dialect, database, table, key, key_value)
    )
    return result.rows[0] if result.rows else None


async def insert_row(
    registry: PoolRegistry,
    connection_id: str,
    database: str,
    table: str,
    values: Mapping[str, Any],
) -> NormalizedResult:
    _, dialect = dialect_for(registry, connection_id)
    return await run(
        registry, connection_id, dml.insert_row(dialect, database, table, values)
    )


async def update_row(
    registry: PoolRegistry,
    connection_id: str,
    database: str,
    table: str,
    key_value: Any,
    values: Mapping[str, Any],
) -> NormalizedResult:
    _, dialect = dialect_for(registry, connection_id)
    key = await _key_column(registry, connection_id, database, table)
    return await run(
        registry,
        connection_id,
        dml.update_row(dialect, database, table, key, key_value, values),
    )


async def delete_row(
    registry: PoolRegistry, connection_id: str, database: str, table: str, key_value: Any
) -> NormalizedResult:
    _, dialect = dialect_for(registry, connection_id)
    key = await _key_column(registry, connection_id, database, table)
    return await run(
        registry, connection_id, dml.delete_row(dialect, database, table, key, key_value)
    )


async def bulk_insert(
    registry: PoolRegistry,
    connection_id: str,
    database: str,
    table: str,
    rows: Sequence[Mapping[str, Any]],
    columns: list[str] | None = None,
) -> NormalizedResult:
    _, dialect = dialect_for(registry, connection_id)
    return await run(
        registry,
        connection_id,
        dml.bulk_insert(dialect, database, table, rows, columns),
    )


async def bulk_update(
    registry: PoolRegistry,
    connection_id: str,
    database: str,
    table: str,
    key_column: str,
    rows: Sequence[Mapping[str, Any]],
) -> int:
    """Run one UPDATE per row; returns the total affected row count."""
    _, dialect = dialect_for(registry, connection_id)
    affected = 0
    for statement in dml.bulk_update(dialect, database, table, key_column, rows):
        result = await run(registry, connection_id, statement)
        affected += result.affected_row_count or 0
    return affected


async def bulk_delete(
    registry: PoolRegistry,
    connection_id: str,
    database: str,
    table: str,
    key_column: str,
    key_values: Sequence[Any],
) -> NormalizedResult:
    _, dialect = dialect_for(registry, connection_id)
    return await run(
        registry,
        connection_id,
        dml.bulk_delete(dialect, database, table, key_column, key_values),
    )
