"""
Row-level statements (select / insert / update / delete, single and bulk).

Column names come from the request body, so each one goes through
``quote_identifier``; every value is a placeholder.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from dbadmin.core.dialect import DialectProfile
from dbadmin.core.errors import InvalidStatementError

from .statement import SqlStatement, require_name, require_names


def _target(dialect: DialectProfile, database: str, table: str) -> str:
    return dialect.table_ref(
        require_name(database, "Database name"), require_name(table, "Table name")
    )


def _assignments(
    dialect: DialectProfile, columns: list[str], start: int = 1
) -> str:
    return ", ".join(
        f"{dialect.quote_identifier(col)} = {dialect.placeholder(start + i)}"
        for i, col in enumerate(columns)
    )


def _column_list(dialect: DialectProfile, columns: list[str]) -> str:
    return ", ".join(dialect.quote_identifier(col) for col in columns)


def select_row(
    dialect: DialectProfile, database: str, table: str, key_column: str, key_value: Any
) -> SqlStatement:
    key_column = require_name(key_column, "Key column")
    sql = (
        f"SELECT * FROM {_target(dialect, database, table)}"
        f" WHERE {dialect.quote_identifier(key_column)} = {dialect.placeholder(1)}"
        " LIMIT 1"
    )
    return SqlStatement(sql, [key_value])


def insert_row(
    dialect: DialectProfile, database: str, table: str, values: Mapping[str, Any]
) -> SqlStatement:
    columns = require_names(list(values), "column")
    placeholders = ", ".join(dialect.placeholders(1, len(columns)))
    sql = (
        f"INSERT INTO {_target(dialect, database, table)}"
        f" ({_column_list(dialect, columns)}) VALUES ({placeholders})"
    )
    if dialect.is_postgres:
        sql += " RETURNING *"
    return SqlStatement(sql, [values[c] for c in columns])


def update_row(
    dialect: DialectProfile,
    database: str,
    table: str,
    key_column: str,
    key_value: Any,
    values: Mapping[str, Any],
) -> SqlStatement:
    key_column = require_name(key_column, "Key column")
    columns = require_names([c for c in values if c != key_column], "column")
    where_ph = dialect.placeholder(len(columns) + 1)
    sql = (
        f"UPDATE {_target(dialect, database, table)}"
        f" SET {_assignments(dialect, columns)}"
        f" WHERE {dialect.quote_identifier(key_column)} = {where_ph}"
    )
    return SqlStatement(sql, [*(values[c] for c in columns), key_value])


def delete_row(
    dialect: DialectProfile, database: str, table: str, key_column: str, key_value: Any
) -> SqlStatement:
    key_column = require_name(key_column, "Key column")
    sql = (
        f"DELETE FROM {_target(dialect, database, table)}"
        f" WHERE {dialect.quote_identifier(key_column)} = {dialect.placeholder(1)}"
    )
    return SqlStatement(sql, [key_value])


def bulk_insert(
    dialect: DialectProfile,
    database: str,
    table: str,
    rows: Sequence[Mapping[str, Any]],
    columns: list[str] | None = None,
) -> SqlStatement:
    """One multi-row INSERT. Columns default to the keys of the first row."""
    if not rows:
        raise InvalidStatementError("No data provided for bulk insert")
    columns = require_names(columns or list(rows[0]), "column")
    groups = []
    params: list[Any] = []
    for row in rows:
        start = len(params) + 1
        groups.append(f"({', '.join(dialect.placeholders(start, len(columns)))})")
        params.extend(row.get(c) for c in columns)
    sql = (
        f"INSERT INTO {_target(dialect, database, table)}"
        f" ({_column_list(dialect, columns)}) VALUES {', '.join(groups)}"
    )
    return SqlStatement(sql, params)


def bulk_update(
    dialect: DialectProfile,
    database: str,
    table: str,
    key_column: str,
    rows: Sequence[Mapping[str, Any]],
) -> list[SqlStatement]:
    """One UPDATE per row, keyed on *key_column*; rows without a key value are skipped."""
    key_column = require_name(key_column, "Key column")
    statements = []
    for row in rows:
        key_value = row.get(key_column)
        if key_value is None or key_value == "":
            continue
        if not any(c != key_column for c in row):
            continue
        statements.append(
            update_row(dialect, database, table, key_column, key_value, row)
        )
    return statements


def bulk_delete(
    dialect: DialectProfile,
    database: str,
    table: str,
    key_column: str,
    key_values: Sequence[Any],
) -> SqlStatement:
    key_column = require_name(key_column, "Key column")
    if not key_values:
        raise InvalidStatementError("At least one value is required for bulk delete")
    placeholders = ", ".join(dialect.placeholders(1, len(key_values)))
    sql = (
        f"DELETE FROM {_target(dialect, database, table)}"
        f" WHERE {dialect.quote_identifier(key_column)} IN ({placeholders})"
    )
    return SqlStatement(sql, list(key_values))
