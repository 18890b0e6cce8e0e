"""
Paged, searchable, sortable reads of one table.

Search turns into one predicate per column joined with ``OR``, each bound to
its own ``%search%`` parameter; ``LIMIT``/``OFFSET`` are placeholders too, so
the only text spliced into the SQL is quoted identifiers.
"""

import math
from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, Field

from dbadmin.core.dialect import DialectProfile
from dbadmin.core.errors import InvalidStatementError

from .statement import SqlStatement, require_name, require_names

MAX_PAGE_SIZE = 1000
DEFAULT_PAGE_SIZE = 50


class PageRequest(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    search: str | None = None
    sort_column: str | None = None
    sort_direction: Literal["asc", "desc"] = "asc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class TablePage(NamedTuple):
    data: SqlStatement
    count: SqlStatement
    limit: int
    offset: int


def total_pages(total_rows: int, page_size: int) -> int:
    return math.ceil(total_rows / page_size) if page_size > 0 else 0


def build_table_page(
    dialect: DialectProfile,
    database: str,
    table: str,
    columns: list[str],
    request: PageRequest,
) -> TablePage:
    """Data + count statements for one page of *table*.

    *columns* are the table's column names (from ``metadata.column_names``);
    they are the search targets and the only accepted sort columns.
    """
    database = require_name(database, "Database name")
    table = require_name(table, "Table name")
    columns = require_names(columns, "column")
    source = dialect.table_ref(database, table)

    where = ""
    params: list[Any] = []
    if request.search:
        pattern = f"%{request.search}%"
        predicates = []
        for col in columns:
            params.append(pattern)
            predicates.append(dialect.search_predicate(col, len(params)))
        where = f" WHERE {' OR '.join(predicates)}"

    order = ""
    if request.sort_column:
        if request.sort_column not in columns:
            raise InvalidStatementError(f"Unknown sort column: {request.sort_column}")
        order = (
            f" ORDER BY {dialect.quote_identifier(request.sort_column)}"
            f" {request.sort_direction.upper()}"
        )

    count = SqlStatement(f"SELECT COUNT(*) AS total FROM {source}{where}", list(params))

    limit, offset = request.page_size, request.offset
    limit_ph = dialect.placeholder(len(params) + 1)
    offset_ph = dialect.placeholder(len(params) + 2)
    data = SqlStatement(
        f"SELECT * FROM {source}{where}{order} LIMIT {limit_ph} OFFSET {offset_ph}",
        [*params, limit, offset],
    )
    return TablePage(data=data, count=count, limit=limit, offset=offset)
