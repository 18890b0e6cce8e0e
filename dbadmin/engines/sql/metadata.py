"""
Catalog (information_schema / pg_catalog) query templates.

Every template takes ``(dialect, database[, table])`` and returns a
``SqlStatement``. Database and table names travel as parameters; the engine
difference is only which schema column narrows the catalog (``table_schema``
for the MySQL family, ``table_catalog`` plus ``table_schema = 'public'`` for
PostgreSQL) and how the placeholders are spelled.
"""

import re

from dbadmin.core.dialect import DialectProfile
from dbadmin.core.pool.health import DATABASE_NAMES_QUERY, VERSION_QUERY

from .statement import SqlStatement, require_name, require_names

_SYSTEM_SCHEMAS = "('information_schema', 'performance_schema', 'mysql', 'sys')"

_INDEX_KEYS_START = re.compile(r"\sUSING\s+\w+\s*\(|\sON\s+\S+\s*\(")
_QUOTED_NAME = re.compile(r'^"((?:[^"]|"")*)"$')


def _scope(dialect: DialectProfile, alias: str = "") -> str:
    """WHERE fragment narrowing a catalog view to placeholder 1 (the database)."""
    prefix = f"{alias}." if alias else ""
    clause = f"{prefix}{dialect.schema_column} = {dialect.placeholder(1)}"
    if dialect.default_schema:
        clause += f" AND {prefix}table_schema = '{dialect.default_schema}'"
    return clause


def server_version(dialect: DialectProfile) -> SqlStatement:
    return SqlStatement(VERSION_QUERY[dialect.engine_kind], [])


def list_database_names(dialect: DialectProfile) -> SqlStatement:
    return SqlStatement(DATABASE_NAMES_QUERY[dialect.engine_kind], [])


def list_databases(dialect: DialectProfile) -> SqlStatement:
    """Databases with size in MB, plus collation/encoding and table counts."""
    if dialect.is_postgres:
        sql = """
            SELECT
                datname AS name,
                CASE WHEN has_database_privilege(datname, 'CONNECT')
                     THEN ROUND(pg_database_size(datname) / 1024.0 / 1024.0, 2)
                END AS size,
                pg_encoding_to_char(encoding) AS encoding,
                datcollate AS collation
            FROM pg_database
            WHERE datistemplate = false
            ORDER BY datname
        """
    else:
        sql = f"""
            SELECT
                s.schema_name AS name,
                ROUND(COALESCE(SUM(t.data_length + t.index_length), 0) / 1024 / 1024, 2) AS size,
                s.default_character_set_name AS encoding,
                s.default_collation_name AS collation,
                COUNT(CASE WHEN t.table_type = 'BASE TABLE' THEN 1 END) AS tables,
                COUNT(CASE WHEN t.table_type = 'VIEW' THEN 1 END) AS views
            FROM information_schema.schemata s
            LEFT JOIN information_schema.tables t ON t.table_schema = s.schema_name
            WHERE s.schema_name NOT IN {_SYSTEM_SCHEMAS}
            GROUP BY s.schema_name, s.default_character_set_name, s.default_collation_name
            ORDER BY s.schema_name
        """
    return SqlStatement(sql, [])


def database_info(dialect: DialectProfile, database: str) -> SqlStatement:
    database = require_name(database, "Database name")
    if dialect.is_postgres:
        sql = """
            SELECT
                datname AS name,
                ROUND(pg_database_size(datname) / 1024.0 / 1024.0, 2) AS size,
                pg_encoding_to_char(encoding) AS encoding,
                datcollate AS collation
            FROM pg_database
            WHERE datname = $1
        """
    else:
        sql = """
            SELECT
                s.schema_name AS name,
                ROUND(COALESCE(SUM(t.data_length + t.index_length), 0) / 1024 / 1024, 2) AS size,
                s.default_character_set_name AS encoding,
                s.default_collation_name AS collation
            FROM information_schema.schemata s
            LEFT JOIN information_schema.tables t ON t.table_schema = s.schema_name
            WHERE s.schema_name = ?
            GROUP BY s.schema_name, s.default_character_set_name, s.default_collation_name
        """
    return SqlStatement(sql, [database])


def count_tables(dialect: DialectProfile, database: str) -> SqlStatement:
    database = require_name(database, "Database name")
    sql = f"""
        SELECT
            COUNT(CASE WHEN table_type = 'BASE TABLE' THEN 1 END) AS tables,
            COUNT(CASE WHEN table_type = 'VIEW' THEN 1 END) AS views
        FROM information_schema.tables
        WHERE {_scope(dialect)}
    """
    return SqlStatement(sql, [database])


def list_tables(dialect: DialectProfile, database: str) -> SqlStatement:
    database = require_name(database, "Database name")
    if dialect.is_postgres:
        sql = f"""
            SELECT
                t.table_name AS name,
                t.table_type AS type,
                c.reltuples::bigint AS "rows",
                ROUND(pg_total_relation_size(c.oid) / 1024.0 / 1024.0, 2) AS size,
                obj_description(c.oid, 'pg_class') AS comment
            FROM information_schema.tables t
            JOIN pg_namespace n ON n.nspname = t.table_schema
            JOIN pg_class c ON c.relnamespace = n.oid AND c.relname = t.table_name
            WHERE {_scope(dialect, "t")}
            ORDER BY t.table_type, t.table_name
        """
    else:
        sql = """
            SELECT
                table_name AS name,
                table_type AS type,
                engine AS engine,
                table_collation AS collation,
                table_rows AS `rows`,
                ROUND((data_length + index_length) / 1024 / 1024, 2) AS size,
                table_comment AS comment
            FROM information_schema.tables
            WHERE table_schema = ?
            ORDER BY table_type, table_name
        """
    return SqlStatement(sql, [database])


def column_names(dialect: DialectProfile, database: str, table: str) -> SqlStatement:
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    sql = f"""
        SELECT column_name AS name
        FROM information_schema.columns
        WHERE {_scope(dialect)} AND table_name = {dialect.placeholder(2)}
        ORDER BY ordinal_position
    """
    return SqlStatement(sql, [database, table])


def primary_key_columns(
    dialect: DialectProfile, database: str, table: str
) -> SqlStatement:
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    if dialect.is_postgres:
        sql = f"""
            SELECT kcu.column_name AS name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_name = tc.constraint_name
             AND kcu.table_schema = tc.table_schema
             AND kcu.table_name = tc.table_name
            WHERE {_scope(dialect, "tc")}
              AND tc.table_name = $2
              AND tc.constraint_type = 'PRIMARY KEY'
            ORDER BY kcu.ordinal_position
        """
    else:
        sql = """
            SELECT column_name AS name
            FROM information_schema.columns
            WHERE table_schema = ? AND table_name = ? AND column_key = 'PRI'
            ORDER BY ordinal_position
        """
    return SqlStatement(sql, [database, table])


def describe_columns(
    dialect: DialectProfile, database: str, table: str
) -> SqlStatement:
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    if dialect.is_postgres:
        sql = f"""
            SELECT
                c.column_name AS name,
                c.data_type AS type,
                c.udt_name AS column_type,
                c.is_nullable AS nullable,
                c.column_default AS default_value,
                CASE WHEN c.is_identity = 'YES' THEN 'identity' ELSE '' END AS extra,
                col_description(
                    format('%I.%I', c.table_schema, c.table_name)::regclass,
                    c.ordinal_position
                ) AS comment,
                c.character_maximum_length AS length,
                c.numeric_precision AS "precision",
                c.numeric_scale AS scale,
                (pk.column_name IS NOT NULL) AS is_primary_key
            FROM information_schema.columns c
            LEFT JOIN (
                SELECT kcu.column_name
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage kcu
                  ON kcu.constraint_name = tc.constraint_name
                 AND kcu.table_schema = tc.table_schema
                 AND kcu.table_name = tc.table_name
                WHERE {_scope(dialect, "tc")}
                  AND tc.table_name = $2
                  AND tc.constraint_type = 'PRIMARY KEY'
            ) pk ON pk.column_name = c.column_name
            WHERE {_scope(dialect, "c")} AND c.table_name = $2
            ORDER BY c.ordinal_position
        """
    else:
        sql = """
            SELECT
                column_name AS name,
                data_type AS type,
                column_type AS column_type,
                is_nullable AS nullable,
                column_default AS default_value,
                extra AS extra,
                column_comment AS comment,
                character_maximum_length AS length,
                numeric_precision AS `precision`,
                numeric_scale AS scale,
                CASE WHEN column_key = 'PRI' THEN 1 ELSE 0 END AS is_primary_key
            FROM information_schema.columns
            WHERE table_schema = ? AND table_name = ?
            ORDER BY ordinal_position
        """
    return SqlStatement(sql, [database, table])


def list_indexes(dialect: DialectProfile, database: str, table: str) -> SqlStatement:
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    if dialect.is_postgres:
        sql = """
            SELECT
                pi.indexname AS name,
                pi.indexdef AS definition,
                am.amname AS index_type,
                pgi.indisunique AS is_unique,
                pgi.indisprimary AS is_primary
            FROM pg_indexes pi
            JOIN pg_namespace pn ON pn.nspname = pi.schemaname
            JOIN pg_class pc ON pc.relname = pi.indexname AND pc.relnamespace = pn.oid
            JOIN pg_index pgi ON pgi.indexrelid = pc.oid
            JOIN pg_am am ON am.oid = pc.relam
            WHERE current_database() = $1
              AND pi.schemaname = 'public'
              AND pi.tablename = $2
            ORDER BY pi.indexname
        """
    else:
        sql = """
            SELECT
                index_name AS name,
                index_type AS index_type,
                non_unique AS non_unique,
                GROUP_CONCAT(column_name ORDER BY seq_in_index) AS column_list
            FROM information_schema.statistics
            WHERE table_schema = ? AND table_name = ?
            GROUP BY index_name, non_unique, index_type
            ORDER BY index_name
        """
    return SqlStatement(sql, [database, table])


def parse_index_columns(definition: str | None) -> list[str]:
    """Key list of a ``pg_indexes.indexdef`` such as
    ``CREATE UNIQUE INDEX users_email_key ON public.users USING btree (email)``.

    Plain columns come back unquoted; expressions such as ``lower((email)::text)``
    come back as written. ``INCLUDE``/``WHERE`` clauses are ignored.
    """
    if not definition:
        return []
    m = _INDEX_KEYS_START.search(definition)
    if not m:
        return []
    keys: list[str] = []
    depth = 0
    quote = ""
    current = ""
    for ch in definition[m.end():]:
        if quote:
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                break
            depth -= 1
        elif ch == "," and depth == 0:
            keys.append(current)
            current = ""
            continue
        current += ch
    else:
        # Unbalanced definition
        return []
    keys.append(current)
    return [_unquote_key(k.strip()) for k in keys if k.strip()]


def _unquote_key(key: str) -> str:
    m = _QUOTED_NAME.match(key)
    return m.group(1).replace('""', '"') if m else key


def list_foreign_keys(
    dialect: DialectProfile, database: str, table: str
) -> SqlStatement:
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    if dialect.is_postgres:
        sql = f"""
            SELECT
                tc.constraint_name AS name,
                kcu.column_name AS column_name,
                ccu.table_name AS referenced_table,
                ccu.column_name AS referenced_column,
                rc.update_rule AS on_update,
                rc.delete_rule AS on_delete
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_name = tc.constraint_name
             AND kcu.table_schema = tc.table_schema
            JOIN information_schema.constraint_column_usage ccu
              ON ccu.constraint_name = tc.constraint_name
             AND ccu.constraint_schema = tc.table_schema
            JOIN information_schema.referential_constraints rc
              ON rc.constraint_name = tc.constraint_name
             AND rc.constraint_schema = tc.table_schema
            WHERE {_scope(dialect, "tc")}
              AND tc.table_name = $2
              AND tc.constraint_type = 'FOREIGN KEY'
            ORDER BY tc.constraint_name
        """
    else:
        sql = """
            SELECT
                kcu.constraint_name AS name,
                kcu.column_name AS column_name,
                kcu.referenced_table_name AS referenced_table,
                kcu.referenced_column_name AS referenced_column,
                rc.update_rule AS on_update,
                rc.delete_rule AS on_delete
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.referential_constraints rc
              ON rc.constraint_name = kcu.constraint_name
             AND rc.constraint_schema = kcu.table_schema
            WHERE kcu.table_schema = ? AND kcu.table_name = ?
              AND kcu.referenced_table_name IS NOT NULL
            ORDER BY kcu.constraint_name
        """
    return SqlStatement(sql, [database, table])


def list_triggers(dialect: DialectProfile, database: str, table: str) -> SqlStatement:
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    if dialect.is_postgres:
        sql = """
            SELECT
                trigger_name AS name,
                event_manipulation AS event,
                action_timing AS timing,
                action_statement AS statement,
                NULL AS definer
            FROM information_schema.triggers
            WHERE event_object_catalog = $1
              AND event_object_schema = 'public'
              AND event_object_table = $2
            ORDER BY trigger_name
        """
    else:
        sql = """
            SELECT
                trigger_name AS name,
                event_manipulation AS event,
                action_timing AS timing,
                action_statement AS statement,
                definer AS definer
            FROM information_schema.triggers
            WHERE event_object_schema = ? AND event_object_table = ?
            ORDER BY trigger_name
        """
    return SqlStatement(sql, [database, table])


def list_constraints(
    dialect: DialectProfile, database: str, table: str
) -> SqlStatement:
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    if dialect.is_postgres:
        sql = f"""
            SELECT
                tc.constraint_name AS name,
                tc.constraint_type AS type,
                string_agg(kcu.column_name, ',' ORDER BY kcu.ordinal_position) AS column_list
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_name = tc.constraint_name
             AND kcu.table_schema = tc.table_schema
             AND kcu.table_name = tc.table_name
            WHERE {_scope(dialect, "tc")} AND tc.table_name = $2
            GROUP BY tc.constraint_name, tc.constraint_type
            ORDER BY tc.constraint_name
        """
    else:
        sql = """
            SELECT
                tc.constraint_name AS name,
                tc.constraint_type AS type,
                GROUP_CONCAT(kcu.column_name ORDER BY kcu.ordinal_position) AS column_list
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_name = tc.constraint_name
             AND kcu.table_schema = tc.table_schema
             AND kcu.table_name = tc.table_name
            WHERE tc.table_schema = ? AND tc.table_name = ?
            GROUP BY tc.constraint_name, tc.constraint_type
            ORDER BY tc.constraint_name
        """
    return SqlStatement(sql, [database, table])


# ---------------------------------------------------------------------------
# Query console suggestions
# ---------------------------------------------------------------------------


def table_names(dialect: DialectProfile, database: str) -> SqlStatement:
    database = require_name(database, "Database name")
    sql = f"""
        SELECT table_name AS name
        FROM information_schema.tables
        WHERE {_scope(dialect)}
        ORDER BY table_name
    """
    return SqlStatement(sql, [database])


def columns_for_tables(
    dialect: DialectProfile, database: str, tables: list[str]
) -> SqlStatement:
    """``table_name, column_name`` pairs for *tables*, in ordinal order."""
    database = require_name(database, "Database name")
    tables = require_names(tables, "table name")
    marks = ", ".join(dialect.placeholders(2, len(tables)))
    sql = f"""
        SELECT table_name AS table_name, column_name AS column_name
        FROM information_schema.columns
        WHERE {_scope(dialect)} AND table_name IN ({marks})
        ORDER BY table_name, ordinal_position
    """
    return SqlStatement(sql, [database, *tables])


# ---------------------------------------------------------------------------
# Server status and processes
# ---------------------------------------------------------------------------

# pg_settings exposes hundreds of rows; the status page shows these
PG_STATUS_SETTINGS = ("max_connections", "shared_buffers", "effective_cache_size", "work_mem")


def server_status(dialect: DialectProfile) -> SqlStatement:
    """Name/value rows; MySQL ``SHOW GLOBAL STATUS``, PostgreSQL ``pg_settings``."""
    if dialect.is_postgres:
        names = ", ".join(f"'{n}'" for n in PG_STATUS_SETTINGS)
        sql = f"""
            SELECT name AS name, setting || COALESCE(unit, '') AS value
            FROM pg_settings
            WHERE name IN ({names})
            ORDER BY name
        """
    else:
        sql = "SHOW GLOBAL STATUS"
    return SqlStatement(sql, [])


def server_uptime(dialect: DialectProfile) -> SqlStatement | None:
    """Seconds since server start, or ``None`` where ``server_status`` carries it."""
    if not dialect.is_postgres:
        return None
    return SqlStatement(
        "SELECT FLOOR(EXTRACT(EPOCH FROM now() - pg_postmaster_start_time()))::bigint"
        " AS uptime",
        [],
    )


def list_processes(dialect: DialectProfile) -> SqlStatement:
    if dialect.is_postgres:
        sql = """
            SELECT
                pid AS id,
                usename AS "user",
                client_addr::text AS host,
                datname AS database,
                backend_type AS command,
                FLOOR(EXTRACT(EPOCH FROM now() - query_start))::bigint AS time,
                state AS state,
                query AS info
            FROM pg_stat_activity
            WHERE state IS DISTINCT FROM 'idle' AND pid <> pg_backend_pid()
            ORDER BY query_start
        """
    else:
        sql = "SHOW FULL PROCESSLIST"
    return SqlStatement(sql, [])


def kill_process(dialect: DialectProfile, process_id: int) -> SqlStatement:
    process_id = int(process_id)
    if dialect.is_postgres:
        return SqlStatement("SELECT pg_terminate_backend($1::int) AS terminated", [process_id])
    return SqlStatement("KILL ?", [process_id])


def database_size(dialect: DialectProfile, database: str) -> SqlStatement:
    """Total size in MB plus the number of tables of *database*."""
    database = require_name(database, "Database name")
    if dialect.is_postgres:
        sql = """
            SELECT
                ROUND(pg_database_size($1::name) / 1024.0 / 1024.0, 2) AS size_mb,
                (SELECT COUNT(*) FROM information_schema.tables
                  WHERE table_catalog = $1 AND table_schema = 'public'
                    AND table_type = 'BASE TABLE') AS table_count
        """
    else:
        sql = """
            SELECT
                ROUND(COALESCE(SUM(data_length + index_length), 0) / 1024 / 1024, 2) AS size_mb,
                COUNT(*) AS table_count
            FROM information_schema.tables
            WHERE table_schema = ? AND table_type = 'BASE TABLE'
        """
    return SqlStatement(sql, [database])


def largest_tables(
    dialect: DialectProfile, database: str, limit: int = 10
) -> SqlStatement:
    database = require_name(database, "Database name")
    if dialect.is_postgres:
        # pg_class only covers the database we are connected to
        sql = f"""
            SELECT
                c.relname AS table_name,
                ROUND(pg_total_relation_size(c.oid) / 1024.0 / 1024.0, 2) AS size_mb,
                c.reltuples::bigint AS row_count
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE current_database() = $1 AND n.nspname = 'public'
              AND c.relkind IN ('r', 'p')
            ORDER BY pg_total_relation_size(c.oid) DESC
            LIMIT {int(limit)}
        """
    else:
        sql = f"""
            SELECT
                table_name AS table_name,
                ROUND((data_length + index_length) / 1024 / 1024, 2) AS size_mb,
                table_rows AS row_count
            FROM information_schema.tables
            WHERE table_schema = ? AND table_type = 'BASE TABLE'
            ORDER BY (data_length + index_length) DESC
            LIMIT {int(limit)}
        """
    return SqlStatement(sql, [database])
