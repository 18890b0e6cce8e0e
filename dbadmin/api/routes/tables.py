"""
Tables of one database: list, structure, create, drop, rename, columns, indexes.
"""

from typing import Any

from fastapi import APIRouter

from dbadmin.api.deps import ActiveConnectionDep
from dbadmin.engines.sql import ddl
from dbadmin.schemas import (
    ApiResponse,
    ColumnAddIn,
    ColumnModifyIn,
    IndexCreateIn,
    TableCreateIn,
    TableRenameIn,
)
from dbadmin.services import catalog

router = APIRouter(prefix="/tables", tags=["tables"])


@router.get("/{database}", response_model=ApiResponse[list[dict[str, Any]]])
async def list_tables(active: ActiveConnectionDep, database: str) -> Any:
    data = await catalog.list_tables(active.registry, active.id, database)
    return ApiResponse(data=data)


@router.get("/{database}/{table}/structure", response_model=ApiResponse[dict[str, Any]])
async def table_structure(active: ActiveConnectionDep, database: str, table: str) -> Any:
    data = await catalog.table_structure(active.registry, active.id, database, table)
    return ApiResponse(data=data)


@router.post("/{database}", response_model=ApiResponse[None], status_code=201)
async def create_table(
    active: ActiveConnectionDep, database: str, body: TableCreateIn
) -> Any:
    statement = ddl.create_table(
        active.dialect,
        database,
        body.name,
        body.columns,
        engine=body.engine,
        charset=body.charset,
        collation=body.collation,
    )
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Table {body.name} created")


@router.delete("/{database}/{table}", response_model=ApiResponse[None])
async def drop_table(active: ActiveConnectionDep, database: str, table: str) -> Any:
    statement = ddl.drop_table(active.dialect, database, table)
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Table {table} dropped")


@router.put("/{database}/{table}/rename", response_model=ApiResponse[None])
async def rename_table(
    active: ActiveConnectionDep, database: str, table: str, body: TableRenameIn
) -> Any:
    statement = ddl.rename_table(active.dialect, database, table, body.new_name)
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Table {table} renamed to {body.new_name}")


@router.post(
    "/{database}/{table}/columns", response_model=ApiResponse[None], status_code=201
)
async def add_column(
    active: ActiveConnectionDep, database: str, table: str, body: ColumnAddIn
) -> Any:
    statement = ddl.add_column(active.dialect, database, table, body, after=body.after)
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Column {body.name} added")


@router.put("/{database}/{table}/columns/{column}", response_model=ApiResponse[None])
async def modify_column(
    active: ActiveConnectionDep,
    database: str,
    table: str,
    column: str,
    body: ColumnModifyIn,
) -> Any:
    for statement in ddl.modify_column(active.dialect, database, table, column, body):
        await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Column {column} modified")


@router.delete("/{database}/{table}/columns/{column}", response_model=ApiResponse[None])
async def drop_column(
    active: ActiveConnectionDep, database: str, table: str, column: str
) -> Any:
    statement = ddl.drop_column(active.dialect, database, table, column)
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Column {column} dropped")


@router.post(
    "/{database}/{table}/indexes", response_model=ApiResponse[None], status_code=201
)
async def create_index(
    active: ActiveConnectionDep, database: str, table: str, body: IndexCreateIn
) -> Any:
    statement = ddl.create_index(
        active.dialect, database, table, body.name, body.columns, body.type
    )
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Index {body.name} created")


@router.delete("/{database}/{table}/indexes/{index}", response_model=ApiResponse[None])
async def drop_index(
    active: ActiveConnectionDep, database: str, table: str, index: str
) -> Any:
    statement = ddl.drop_index(active.dialect, database, table, index)
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Index {index} dropped")
