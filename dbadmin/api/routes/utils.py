from typing import Any

from fastapi import APIRouter

from dbadmin.api.deps import RegistryDep
from dbadmin.schemas import ApiResponse

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/", response_model=ApiResponse[dict[str, Any]])
async def health_check(registry: RegistryDep) -> Any:
    """
    Process health plus connection pool statistics.

    Does no I/O against the administered servers; use
    ``GET /connections/{id}/status`` for a per-connection liveness check.
    """
    return ApiResponse(data=registry.stats())
