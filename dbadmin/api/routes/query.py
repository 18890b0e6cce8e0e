"""
SQL console: run ad-hoc statements and browse the per-connection history.
"""

import time
from typing import Any

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from dbadmin.api.deps import (
    ActiveConnection,
    ActiveConnectionDep,
    ConnectionIdDep,
    HistoryDep,
)
from dbadmin.core.errors import DatabaseError
from dbadmin.core.query_history import QueryHistory, QueryHistoryEntry
from dbadmin.engines.sql import execute_sql, split_statements
from dbadmin.engines.sql.safety import find_dangerous_operations
from dbadmin.schemas import (
    ApiResponse,
    QueryExecuteIn,
    QueryResultOut,
    QuerySuggestionsOut,
)
from dbadmin.services import catalog

router = APIRouter(prefix="/query", tags=["query"])


async def _run_one(
    active: ActiveConnection,
    history: QueryHistory,
    sql: str,
    params: list[Any],
) -> QueryResultOut:
    start = time.perf_counter()
    try:
        result = await execute_sql(active.id, sql, params, registry=active.registry)
    except DatabaseError as e:
        history.record(
            active.id,
            QueryHistoryEntry(
                query=sql,
                params=params,
                execution_time_ms=round((time.perf_counter() - start) * 1000, 2),
                success=False,
                error=e.message,
            ),
        )
        raise
    elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
    history.record(
        active.id,
        QueryHistoryEntry(
            query=sql,
            params=params,
            execution_time_ms=elapsed_ms,
            success=True,
            row_count=len(result.rows) if result.affected_row_count is None else None,
            affected_row_count=result.affected_row_count,
        ),
    )
    return QueryResultOut(
        statement=sql,
        columns=result.columns,
        rows=result.rows,
        affected_row_count=result.affected_row_count,
        inserted_id=result.inserted_id,
        execution_time_ms=elapsed_ms,
    )


@router.post(
    "/execute",
    response_model=ApiResponse[QueryResultOut | list[QueryResultOut]],
)
async def execute_query(
    active: ActiveConnectionDep, history: HistoryDep, body: QueryExecuteIn
) -> Any:
    """
    Run the statement (or, with ``split_statements``, each statement in turn).

    Statements that drop, truncate or modify data/schema are refused with 400
    and ``requires_confirmation: true`` unless ``confirm_dangerous`` is set.
    """
    dangerous = find_dangerous_operations(body.query)
    if dangerous and not body.confirm_dangerous:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": (
                    "Query contains potentially dangerous operations: "
                    + ", ".join(dangerous)
                ),
                "requires_confirmation": True,
                "data": {"operations": dangerous},
            },
        )

    if not body.split_statements:
        result = await _run_one(active, history, body.query, body.params)
        return ApiResponse(data=result)

    results = []
    for sql in split_statements(body.query):
        results.append(await _run_one(active, history, sql, []))
    return ApiResponse(message=f"{len(results)} statement(s) executed", data=results)


@router.get("/suggestions", response_model=ApiResponse[QuerySuggestionsOut])
async def query_suggestions(
    active: ActiveConnectionDep, database: str | None = Query(default=None)
) -> Any:
    data = await catalog.query_suggestions(active.registry, active.id, database)
    return ApiResponse(data=data)


@router.get("/history", response_model=ApiResponse[list[QueryHistoryEntry]])
def get_history(
    connection_id: ConnectionIdDep,
    history: HistoryDep,
    limit: int | None = Query(default=None, ge=1),
) -> Any:
    return ApiResponse(data=history.get(connection_id, limit))


@router.delete("/history", response_model=ApiResponse[None])
def clear_history(connection_id: ConnectionIdDep, history: HistoryDep) -> Any:
    history.clear(connection_id)
    return ApiResponse(message="Query history cleared")
