"""
Server status: version, uptime, variables, sessions, sizes; kill a session.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Query

from dbadmin.api.deps import ActiveConnectionDep
from dbadmin.schemas import ApiResponse, ProcessOut, ServerInfoOut, ServerStatsOut
from dbadmin.services import server

router = APIRouter(prefix="/server", tags=["server"])


@router.get("/info", response_model=ApiResponse[ServerInfoOut])
async def server_info(active: ActiveConnectionDep) -> Any:
    data = await server.server_info(active.registry, active.id)
    return ApiResponse(data=data)


@router.get("/stats", response_model=ApiResponse[ServerStatsOut])
async def server_stats(
    active: ActiveConnectionDep, database: str | None = Query(default=None)
) -> Any:
    data = await server.server_stats(active.registry, active.id, database)
    return ApiResponse(data=data)


@router.get("/processes", response_model=ApiResponse[list[ProcessOut]])
async def list_processes(active: ActiveConnectionDep) -> Any:
    data = await server.list_processes(active.registry, active.id)
    return ApiResponse(data=data)


@router.delete("/processes/{process_id}", response_model=ApiResponse[None])
async def kill_process(active: ActiveConnectionDep, process_id: int) -> Any:
    if not await server.kill_process(active.registry, active.id, process_id):
        raise HTTPException(status_code=404, detail="Process not found")
    return ApiResponse(message=f"Process {process_id} terminated")
