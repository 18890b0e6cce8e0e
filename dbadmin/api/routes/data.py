"""
Row data: paged browse with search/sort, single-row CRUD by primary key, bulk writes.

Bulk routes are declared before ``/{row_id}`` so ``bulk`` is never taken for a key.
"""

from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Query

from dbadmin.api.deps import ActiveConnectionDep
from dbadmin.core.serialization import make_json_safe
from dbadmin.engines.sql.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PageRequest
from dbadmin.models import NormalizedResult
from dbadmin.schemas import (
    ApiResponse,
    BulkDeleteIn,
    BulkInsertIn,
    BulkUpdateIn,
    RowValuesIn,
    TableDataOut,
    WriteResultOut,
)
from dbadmin.services import rows

router = APIRouter(prefix="/data", tags=["data"])


def _write_result(result: NormalizedResult) -> WriteResultOut:
    return WriteResultOut(
        affected_row_count=result.affected_row_count or 0,
        inserted_id=result.inserted_id,
    )


@router.get("/{database}/{table}", response_model=ApiResponse[TableDataOut])
async def read_table(
    active: ActiveConnectionDep,
    database: str,
    table: str,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: str | None = None,
    sort_column: str | None = None,
    sort_direction: Literal["asc", "desc"] = "asc",
) -> Any:
    request = PageRequest(
        page=page,
        page_size=page_size,
        search=search or None,
        sort_column=sort_column or None,
        sort_direction=sort_direction,
    )
    data = await rows.read_page(active.registry, active.id, database, table, request)
    return ApiResponse(data=TableDataOut(**data))


@router.post("/{database}/{table}/bulk", response_model=ApiResponse[WriteResultOut])
async def bulk_insert(
    active: ActiveConnectionDep, database: str, table: str, body: BulkInsertIn
) -> Any:
    result = await rows.bulk_insert(
        active.registry, active.id, database, table, body.data, body.columns
    )
    out = _write_result(result)
    return ApiResponse(message=f"{out.affected_row_count} row(s) inserted", data=out)


@router.put("/{database}/{table}/bulk", response_model=ApiResponse[WriteResultOut])
async def bulk_update(
    active: ActiveConnectionDep, database: str, table: str, body: BulkUpdateIn
) -> Any:
    affected = await rows.bulk_update(
        active.registry, active.id, database, table, body.where_column, body.data
    )
    return ApiResponse(
        message=f"{affected} row(s) updated",
        data=WriteResultOut(affected_row_count=affected),
    )


@router.delete("/{database}/{table}/bulk", response_model=ApiResponse[WriteResultOut])
async def bulk_delete(
    active: ActiveConnectionDep, database: str, table: str, body: BulkDeleteIn
) -> Any:
    result = await rows.bulk_delete(
        active.registry, active.id, database, table, body.where_column, body.values
    )
    out = _write_result(result)
    return ApiResponse(message=f"{out.affected_row_count} row(s) deleted", data=out)


@router.post(
    "/{database}/{table}", response_model=ApiResponse[WriteResultOut], status_code=201
)
async def insert_row(
    active: ActiveConnectionDep, database: str, table: str, body: RowValuesIn
) -> Any:
    result = await rows.insert_row(active.registry, active.id, database, table, body.data)
    return ApiResponse(message="Row inserted", data=_write_result(result))


@router.get("/{database}/{table}/{row_id}", response_model=ApiResponse[dict[str, Any]])
async def get_row(
    active: ActiveConnectionDep, database: str, table: str, row_id: str
) -> Any:
    row = await rows.get_row(active.registry, active.id, database, table, row_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Row not found")
    return ApiResponse(data=make_json_safe(row))


@router.put("/{database}/{table}/{row_id}", response_model=ApiResponse[WriteResultOut])
async def update_row(
    active: ActiveConnectionDep,
    database: str,
    table: str,
    row_id: str,
    body: RowValuesIn,
) -> Any:
    result = await rows.update_row(
        active.registry, active.id, database, table, row_id, body.data
    )
    return ApiResponse(message="Row updated", data=_write_result(result))


@router.delete("/{database}/{table}/{row_id}", response_model=ApiResponse[WriteResultOut])
async def delete_row(
    active: ActiveConnectionDep, database: str, table: str, row_id: str
) -> Any:
    result = await rows.delete_row(active.registry, active.id, database, table, row_id)
    out = _write_result(result)
    if out.affected_row_count == 0:
        raise HTTPException(status_code=404, detail="Row not found")
    return ApiResponse(message="Row deleted", data=out)
