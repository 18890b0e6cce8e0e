"""
SQL engine: statement dispatch plus catalog, paging, row and DDL statement builders.

Exports: execute_sql, is_read_statement, split_statements, SqlStatement.
"""

from dbadmin.engines.sql.executor import (
    execute_sql,
    is_read_statement,
    split_statements,
)
from dbadmin.engines.sql.statement import SqlStatement

__all__ = [
    "SqlStatement",
    "execute_sql",
    "is_read_statement",
    "split_statements",
]
