"""
Schema introspection for one connection: databases, tables, table structure.

Runs the catalog templates through the query dispatcher and shapes the rows
into engine-independent dicts.
"""

import logging
from typing import Any

from dbadmin.core.dialect import DialectProfile, EngineKind, resolve
from dbadmin.core.errors import ConnectionNotFound, DatabaseError
from dbadmin.core.pool import PoolRegistry
from dbadmin.engines.sql import SqlStatement, execute_sql
from dbadmin.engines.sql import metadata
from dbadmin.models import ConnectionConfig, NormalizedResult

_log = logging.getLogger(__name__)


def dialect_for(registry: PoolRegistry, connection_id: str) -> tuple[ConnectionConfig, DialectProfile]:
    config = registry.get_config(connection_id)
    if config is None:
        raise ConnectionNotFound()
    return config, resolve(config.engine_kind)


async def run(
    registry: PoolRegistry, connection_id: str, statement: SqlStatement
) -> NormalizedResult:
    return await execute_sql(
        connection_id, statement.sql, statement.params, registry=registry
    )


def as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _split_list(value: Any) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in str(value).split(",") if v.strip()]


def _table_kind(table_type: Any) -> str:
    return "table" if str(table_type).upper() == "BASE TABLE" else "view"


# ---------------------------------------------------------------------------
# Databases
# ---------------------------------------------------------------------------


async def list_databases(registry: PoolRegistry, connection_id: str) -> list[dict[str, Any]]:
    config, dialect = dialect_for(registry, connection_id)
    result = await run(registry, connection_id, metadata.list_databases(dialect))
    databases = []
    for row in result.rows:
        databases.append(
            {
                "name": row.get("name"),
                "size": as_float(row.get("size")),
                "encoding": row.get("encoding"),
                "collation": row.get("collation"),
                "tables": as_int(row.get("tables")) if "tables" in row else None,
                "views": as_int(row.get("views")) if "views" in row else None,
            }
        )
    if dialect.is_postgres and config.database:
        # information_schema only covers the database we are connected to
        counts = await _table_counts(registry, connection_id, dialect, config.database)
        for db in databases:
            if db["name"] == config.database:
                db.update(counts)
    return databases


async def get_database(
    registry: PoolRegistry, connection_id: str, database: str
) -> dict[str, Any] | None:
    _, dialect = dialect_for(registry, connection_id)
    result = await run(registry, connection_id, metadata.database_info(dialect, database))
    if not result.rows:
        return None
    row = result.rows[0]
    info = {
        "name": row.get("name"),
        "size": as_float(row.get("size")),
        "encoding": row.get("encoding"),
        "collation": row.get("collation"),
    }
    info.update(await _table_counts(registry, connection_id, dialect, database))
    return info


async def _table_counts(
    registry: PoolRegistry, connection_id: str, dialect: DialectProfile, database: str
) -> dict[str, int]:
    result = await run(registry, connection_id, metadata.count_tables(dialect, database))
    row = result.rows[0] if result.rows else {}
    return {"tables": as_int(row.get("tables")), "views": as_int(row.get("views"))}


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


async def list_tables(
    registry: PoolRegistry, connection_id: str, database: str
) -> list[dict[str, Any]]:
    _, dialect = dialect_for(registry, connection_id)
    result = await run(registry, connection_id, metadata.list_tables(dialect, database))
    return [
        {
            "name": row.get("name"),
            "type": _table_kind(row.get("type")),
            "engine": row.get("engine"),
            "collation": row.get("collation"),
            "rows": max(as_int(row.get("rows")), 0),
            "size": as_float(row.get("size")),
            "comment": row.get("comment") or "",
        }
        for row in result.rows
    ]


async def column_names(
    registry: PoolRegistry, connection_id: str, database: str, table: str
) -> list[str]:
    _, dialect = dialect_for(registry, connection_id)
    result = await run(
        registry, connection_id, metadata.column_names(dialect, database, table)
    )
    return [str(row["name"]) for row in result.rows]


async def primary_key(
    registry: PoolRegistry, connection_id: str, database: str, table: str
) -> str | None:
    """First primary key column of *table*, or None if it has none."""
    _, dialect = dialect_for(registry, connection_id)
    result = await run(
        registry, connection_id, metadata.primary_key_columns(dialect, database, table)
    )
    return str(result.rows[0]["name"]) if result.rows else None


def _shape_column(row: dict[str, Any], dialect: DialectProfile) -> dict[str, Any]:
    extra = str(row.get("extra") or "")
    default = row.get("default_value")
    if dialect.is_postgres:
        auto_increment = extra == "identity" or "nextval(" in str(default or "")
    else:
        auto_increment = "auto_increment" in extra.lower()
    return {
        "name": row.get("name"),
        "type": row.get("type"),
        "column_type": row.get("column_type"),
        "nullable": str(row.get("nullable")).upper() == "YES",
        "default_value": default,
        "auto_increment": auto_increment,
        "primary_key": bool(row.get("is_primary_key")),
        "comment": row.get("comment") or "",
        "length": row.get("length"),
        "precision": row.get("precision"),
        "scale": row.get("scale"),
    }


def _shape_index(row: dict[str, Any], dialect: DialectProfile) -> dict[str, Any]:
    if dialect.is_postgres:
        unique = bool(row.get("is_unique"))
        if row.get("is_primary"):
            kind = "PRIMARY"
        else:
            kind = "UNIQUE" if unique else "INDEX"
        columns = metadata.parse_index_columns(row.get("definition"))
    else:
        unique = as_int(row.get("non_unique")) == 0
        index_type = str(row.get("index_type") or "").upper()
        if row.get("name") == "PRIMARY":
            kind = "PRIMARY"
        elif index_type in ("FULLTEXT", "SPATIAL"):
            kind = index_type
        else:
            kind = "UNIQUE" if unique else "INDEX"
        columns = _split_list(row.get("column_list"))
    return {
        "name": row.get("name"),
        "type": kind,
        "method": row.get("index_type"),
        "columns": columns,
        "unique": unique,
    }


async def table_structure(
    registry: PoolRegistry, connection_id: str, database: str, table: str
) -> dict[str, Any]:
    """Columns, indexes, foreign keys, triggers and constraints of *table*."""
    _, dialect = dialect_for(registry, connection_id)

    async def _rows(statement: SqlStatement) -> list[dict[str, Any]]:
        return (await run(registry, connection_id, statement)).rows

    columns = await _rows(metadata.describe_columns(dialect, database, table))
    indexes = await _rows(metadata.list_indexes(dialect, database, table))
    foreign_keys = await _rows(metadata.list_foreign_keys(dialect, database, table))
    constraints = await _rows(metadata.list_constraints(dialect, database, table))
    try:
        triggers = await _rows(metadata.list_triggers(dialect, database, table))
    except DatabaseError as e:
        # Reading triggers needs the TRIGGER privilege on MySQL
        _log.info("Could not read triggers for %s.%s: %s", database, table, e.kind.value)
        triggers = []

    return {
        "columns": [_shape_column(r, dialect) for r in columns],
        "indexes": [_shape_index(r, dialect) for r in indexes],
        "foreign_keys": [
            {
                "name": r.get("name"),
                "column": r.get("column_name"),
                "referenced_table": r.get("referenced_table"),
                "referenced_column": r.get("referenced_column"),
                "on_update": r.get("on_update"),
                "on_delete": r.get("on_delete"),
            }
            for r in foreign_keys
        ],
        "triggers": [
            {
                "name": r.get("name"),
                "event": r.get("event"),
                "timing": r.get("timing"),
                "statement": r.get("statement"),
                "definer": r.get("definer"),
            }
            for r in triggers
        ],
        "constraints": [
            {
                "name": r.get("name"),
                "type": r.get("type"),
                "columns": _split_list(r.get("column_list")),
            }
            for r in constraints
        ],
    }


# ---------------------------------------------------------------------------
# Query console suggestions
# ---------------------------------------------------------------------------

SQL_KEYWORDS = [
    "SELECT", "FROM", "WHERE", "ORDER BY", "GROUP BY", "HAVING", "LIMIT",
    "INSERT", "UPDATE", "DELETE", "CREATE", "ALTER", "DROP", "TRUNCATE",
    "JOIN", "LEFT JOIN", "RIGHT JOIN", "INNER JOIN", "OUTER JOIN",
    "UNION", "UNION ALL", "DISTINCT", "COUNT", "SUM", "AVG", "MIN", "MAX",
    "AND", "OR", "NOT", "IN", "BETWEEN", "LIKE", "IS NULL", "IS NOT NULL",
    "CASE", "WHEN", "THEN", "ELSE", "END", "AS", "ASC", "DESC",
]

SQL_FUNCTIONS: dict[EngineKind, list[str]] = {
    EngineKind.MYSQL_FAMILY: [
        "NOW()", "CURDATE()", "CURTIME()", "DATE()", "TIME()", "YEAR()", "MONTH()",
        "DAY()", "CONCAT()", "SUBSTRING()", "LENGTH()", "UPPER()", "LOWER()", "TRIM()",
        "ROUND()", "FLOOR()", "CEIL()", "ABS()", "RAND()", "IFNULL()", "COALESCE()",
        "CASE", "IF()",
    ],
    EngineKind.POSTGRES: [
        "NOW()", "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP", "CONCAT()",
        "SUBSTRING()", "LENGTH()", "UPPER()", "LOWER()", "TRIM()", "ROUND()", "FLOOR()",
        "CEIL()", "ABS()", "RANDOM()", "COALESCE()", "CASE", "NULLIF()",
    ],
}

# columns are only looked up for the first tables, alphabetically
SUGGESTION_COLUMN_TABLES = 5


async def query_suggestions(
    registry: PoolRegistry, connection_id: str, database: str | None = None
) -> dict[str, list[str]]:
    """
    Autocomplete words for the SQL console.

    Keywords are always returned. A *database* adds its tables with
    ``table.column`` names for the first few, plus engine functions. A
    catalog error leaves just the keywords.
    """
    _, dialect = dialect_for(registry, connection_id)
    suggestions: dict[str, list[str]] = {
        "keywords": list(SQL_KEYWORDS),
        "tables": [],
        "columns": [],
        "functions": [],
    }
    if not database:
        return suggestions
    try:
        result = await run(registry, connection_id, metadata.table_names(dialect, database))
        tables = [str(r.get("name")) for r in result.rows if r.get("name")]
        columns = []
        if tables:
            statement = metadata.columns_for_tables(
                dialect, database, tables[:SUGGESTION_COLUMN_TABLES]
            )
            result = await run(registry, connection_id, statement)
            columns = [f"{r.get('table_name')}.{r.get('column_name')}" for r in result.rows]
    except DatabaseError as e:
        _log.warning("Could not load query suggestions for %s: %s", database, e.kind.value)
        return suggestions
    suggestions["tables"] = tables
    suggestions["columns"] = columns
    suggestions["functions"] = list(SQL_FUNCTIONS[dialect.engine_kind])
    return suggestions
