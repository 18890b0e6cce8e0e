"""
Schema-changing statements (databases, tables, columns, indexes).

DDL cannot take bind parameters, so names go through ``quote_identifier`` and
the few free-text fragments that must appear verbatim (column types, table
engine, charset, collation) are checked against strict patterns first.
"""

import re
from typing import Literal

from pydantic import BaseModel, Field

from dbadmin.core.dialect import DialectProfile
from dbadmin.core.errors import InvalidStatementError

from .statement import SqlStatement, require_name, require_names

_TYPE_RE = re.compile(
    r"^[A-Za-z][A-Za-z0-9_ ]*"
    r"(\(\s*\d+\s*(,\s*\d+\s*)?\))?"
    r"(\s+[A-Za-z]+)*"
    r"(\[\])?$"
)
_WORD_RE = re.compile(r"^\w+$")
# MySQL ENUM/SET with a list of plain single-quoted literals ('' escapes a quote)
_LITERAL_LIST_TYPE_RE = re.compile(
    r"^(ENUM|SET)\s*\(\s*'(?:[^'\\\x00]|'')*'(?:\s*,\s*'(?:[^'\\\x00]|'')*')*\s*\)$",
    re.IGNORECASE,
)

IndexType = Literal["PRIMARY", "UNIQUE", "INDEX", "FULLTEXT", "SPATIAL"]


class ColumnDefinition(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    type: str = Field(min_length=1, max_length=1024)
    length: int | None = Field(default=None, ge=1)
    precision: int | None = Field(default=None, ge=1)
    scale: int | None = Field(default=None, ge=0)
    nullable: bool = True
    primary_key: bool = False
    auto_increment: bool = False


class ColumnChange(BaseModel):
    """Changes to an existing column; unset fields are left as they are."""

    type: str | None = Field(default=None, min_length=1, max_length=1024)
    length: int | None = Field(default=None, ge=1)
    precision: int | None = Field(default=None, ge=1)
    scale: int | None = Field(default=None, ge=0)
    nullable: bool | None = None
    new_name: str | None = Field(default=None, min_length=1, max_length=64)


def _checked(value: str, pattern: re.Pattern[str], what: str) -> str:
    value = value.strip()
    if not pattern.match(value):
        raise InvalidStatementError(f"Invalid {what}: {value!r}")
    return value


def _column_type(
    dialect: DialectProfile,
    type_name: str,
    length: int | None = None,
    precision: int | None = None,
    scale: int | None = None,
) -> str:
    candidate = type_name.strip()
    if not dialect.is_postgres and _LITERAL_LIST_TYPE_RE.match(candidate):
        return candidate
    sql_type = _checked(candidate, _TYPE_RE, "column type")
    if "(" not in sql_type:
        if length:
            sql_type += f"({int(length)})"
        elif precision and scale is not None:
            sql_type += f"({int(precision)},{int(scale)})"
    return sql_type


def _column_sql(dialect: DialectProfile, column: ColumnDefinition) -> str:
    parts = [dialect.quote_identifier(require_name(column.name, "Column name"))]
    parts.append(
        _column_type(
            dialect, column.type, column.length, column.precision, column.scale
        )
    )
    if column.auto_increment:
        parts.append(
            "GENERATED BY DEFAULT AS IDENTITY" if dialect.is_postgres else "AUTO_INCREMENT"
        )
    if not column.nullable:
        parts.append("NOT NULL")
    return " ".join(parts)


def _target(dialect: DialectProfile, database: str, table: str) -> str:
    return dialect.table_ref(
        require_name(database, "Database name"), require_name(table, "Table name")
    )


# ---------------------------------------------------------------------------
# Databases
# ---------------------------------------------------------------------------


def create_database(
    dialect: DialectProfile,
    database: str,
    charset: str | None = None,
    collation: str | None = None,
) -> SqlStatement:
    sql = f"CREATE DATABASE {dialect.quote_identifier(require_name(database, 'Database name'))}"
    if dialect.is_postgres:
        if charset:
            sql += f" ENCODING '{_checked(charset, _WORD_RE, 'encoding')}'"
        return SqlStatement(sql, [])
    if charset:
        sql += f" CHARACTER SET {_checked(charset, _WORD_RE, 'charset')}"
    if collation:
        sql += f" COLLATE {_checked(collation, _WORD_RE, 'collation')}"
    return SqlStatement(sql, [])


def drop_database(dialect: DialectProfile, database: str) -> SqlStatement:
    name = dialect.quote_identifier(require_name(database, "Database name"))
    return SqlStatement(f"DROP DATABASE {name}", [])


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def create_table(
    dialect: DialectProfile,
    database: str,
    table: str,
    columns: list[ColumnDefinition],
    *,
    engine: str | None = None,
    charset: str | None = None,
    collation: str | None = None,
) -> SqlStatement:
    if not columns:
        raise InvalidStatementError("At least one column is required")
    require_names([c.name for c in columns], "column")
    definitions = [_column_sql(dialect, c) for c in columns]
    primary = [c.name for c in columns if c.primary_key]
    if primary:
        keys = ", ".join(dialect.quote_identifier(n) for n in primary)
        definitions.append(f"PRIMARY KEY ({keys})")
    sql = f"CREATE TABLE {_target(dialect, database, table)} ({', '.join(definitions)})"
    if not dialect.is_postgres:
        if engine:
            sql += f" ENGINE={_checked(engine, _WORD_RE, 'engine')}"
        if charset:
            sql += f" DEFAULT CHARSET={_checked(charset, _WORD_RE, 'charset')}"
        if collation:
            sql += f" COLLATE={_checked(collation, _WORD_RE, 'collation')}"
    return SqlStatement(sql, [])


def drop_table(dialect: DialectProfile, database: str, table: str) -> SqlStatement:
    return SqlStatement(f"DROP TABLE {_target(dialect, database, table)}", [])


def rename_table(
    dialect: DialectProfile, database: str, table: str, new_name: str
) -> SqlStatement:
    new_name = require_name(new_name, "New table name")
    if dialect.is_postgres:
        sql = (
            f"ALTER TABLE {_target(dialect, database, table)}"
            f" RENAME TO {dialect.quote_identifier(new_name)}"
        )
    else:
        sql = (
            f"RENAME TABLE {_target(dialect, database, table)}"
            f" TO {_target(dialect, database, new_name)}"
        )
    return SqlStatement(sql, [])


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def add_column(
    dialect: DialectProfile,
    database: str,
    table: str,
    column: ColumnDefinition,
    after: str | None = None,
) -> SqlStatement:
    sql = f"ALTER TABLE {_target(dialect, database, table)} ADD COLUMN {_column_sql(dialect, column)}"
    if after and not dialect.is_postgres:
        sql += f" AFTER {dialect.quote_identifier(require_name(after, 'After column'))}"
    return SqlStatement(sql, [])


def drop_column(
    dialect: DialectProfile, database: str, table: str, column: str
) -> SqlStatement:
    name = dialect.quote_identifier(require_name(column, "Column name"))
    return SqlStatement(
        f"ALTER TABLE {_target(dialect, database, table)} DROP COLUMN {name}", []
    )


def modify_column(
    dialect: DialectProfile,
    database: str,
    table: str,
    column: str,
    change: ColumnChange,
) -> list[SqlStatement]:
    """Statements that change type, nullability and/or name of *column*.

    MySQL restates the full definition (``MODIFY`` / ``CHANGE COLUMN``), so a
    type is required there. PostgreSQL alters each aspect separately and
    renames in a statement of its own.
    """
    target = _target(dialect, database, table)
    current = dialect.quote_identifier(require_name(column, "Column name"))
    new_name = require_name(change.new_name, "New column name") if change.new_name else None
    if new_name == column:
        new_name = None
    sql_type = None
    if change.type is not None:
        sql_type = _column_type(
            dialect, change.type, change.length, change.precision, change.scale
        )
    if sql_type is None and change.nullable is None and new_name is None:
        raise InvalidStatementError("No column changes requested")

    if not dialect.is_postgres:
        if sql_type is None:
            raise InvalidStatementError("Column type is required to modify a column")
        definition = sql_type
        if change.nullable is not None:
            definition += " NULL" if change.nullable else " NOT NULL"
        if new_name:
            sql = (
                f"ALTER TABLE {target} CHANGE COLUMN {current}"
                f" {dialect.quote_identifier(new_name)} {definition}"
            )
        else:
            sql = f"ALTER TABLE {target} MODIFY COLUMN {current} {definition}"
        return [SqlStatement(sql, [])]

    actions = []
    if sql_type is not None:
        actions.append(f"ALTER COLUMN {current} TYPE {sql_type}")
    if change.nullable is not None:
        actions.append(
            f"ALTER COLUMN {current} {'DROP' if change.nullable else 'SET'} NOT NULL"
        )
    statements = []
    if actions:
        statements.append(SqlStatement(f"ALTER TABLE {target} {', '.join(actions)}", []))
    if new_name:
        statements.append(
            SqlStatement(
                f"ALTER TABLE {target} RENAME COLUMN {current}"
                f" TO {dialect.quote_identifier(new_name)}",
                [],
            )
        )
    return statements


# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------


def create_index(
    dialect: DialectProfile,
    database: str,
    table: str,
    name: str,
    columns: list[str],
    index_type: IndexType = "INDEX",
) -> SqlStatement:
    columns = require_names(columns, "column")
    target = _target(dialect, database, table)
    keys = ", ".join(dialect.quote_identifier(c) for c in columns)
    if index_type == "PRIMARY":
        return SqlStatement(f"ALTER TABLE {target} ADD PRIMARY KEY ({keys})", [])

    index_name = dialect.quote_identifier(require_name(name, "Index name"))
    if dialect.is_postgres:
        if index_type in ("FULLTEXT", "SPATIAL"):
            raise InvalidStatementError(
                f"{index_type} indexes are not supported on PostgreSQL"
            )
        unique = "UNIQUE " if index_type == "UNIQUE" else ""
        return SqlStatement(f"CREATE {unique}INDEX {index_name} ON {target} ({keys})", [])
    return SqlStatement(f"ALTER TABLE {target} ADD {index_type} {index_name} ({keys})", [])


def drop_index(
    dialect: DialectProfile, database: str, table: str, name: str
) -> SqlStatement:
    name = require_name(name, "Index name")
    target = _target(dialect, database, table)
    if dialect.is_postgres:
        index_ref = dialect.table_ref(database, name)
        return SqlStatement(f"DROP INDEX {index_ref}", [])
    if name.upper() == "PRIMARY":
        return SqlStatement(f"ALTER TABLE {target} DROP PRIMARY KEY", [])
    return SqlStatement(
        f"ALTER TABLE {target} DROP INDEX {dialect.quote_identifier(name)}", []
    )
