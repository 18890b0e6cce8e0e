from typing import Any

from fastapi import APIRouter, HTTPException

from dbadmin.api.deps import ActiveConnectionDep
from dbadmin.engines.sql import ddl
from dbadmin.schemas import ApiResponse, DatabaseCreateIn
from dbadmin.services import catalog

router = APIRouter(prefix="/databases", tags=["databases"])


@router.get("", response_model=ApiResponse[list[dict[str, Any]]])
async def list_databases(active: ActiveConnectionDep) -> Any:
    """Databases on the server with size, encoding and table/view counts."""
    data = await catalog.list_databases(active.registry, active.id)
    return ApiResponse(data=data)


@router.get("/{name}", response_model=ApiResponse[dict[str, Any]])
async def get_database(active: ActiveConnectionDep, name: str) -> Any:
    info = await catalog.get_database(active.registry, active.id, name)
    if info is None:
        raise HTTPException(status_code=404, detail="Database not found")
    return ApiResponse(data=info)


@router.post("/{name}", response_model=ApiResponse[None], status_code=201)
async def create_database(
    active: ActiveConnectionDep, name: str, body: DatabaseCreateIn | None = None
) -> Any:
    body = body or DatabaseCreateIn()
    statement = ddl.create_database(
        active.dialect, name, charset=body.charset, collation=body.collation
    )
    await catalog.run(active.registry, active.id, statement)
    return ApiResponse(message=f"Database {name} created")


@router.delete("/{name}", response_model=ApiResponse[None])
async def drop_database(active: ActiveConnectionDep, name: str) -> Any:
    await catalog.run(active.registry, active.id, ddl.drop_database(active.dialect, name))
    return ApiResponse(message=f"Database {name} dropped")
