from fastapi import APIRouter

from dbadmin.api.routes import (
    connections,
    data,
    databases,
    query,
    server,
    tables,
    utils,
)

api_router = APIRouter()
api_router.include_router(utils.router)
api_router.include_router(connections.router)
api_router.include_router(databases.router)
api_router.include_router(tables.router)
api_router.include_router(data.router)
api_router.include_router(query.router)
api_router.include_router(server.router)
