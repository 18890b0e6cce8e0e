import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from dbadmin import crud
from dbadmin.api.main import api_router
from dbadmin.core.config import settings
from dbadmin.core.db import engine, init_db
from dbadmin.core.errors import DatabaseError, InvalidStatementError
from dbadmin.core.pool import get_pool_registry

_logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


async def restore_pools() -> None:
    """Reopen a pool for every saved profile; failures are logged and skipped."""
    registry = get_pool_registry()
    with Session(engine) as session:
        profiles = crud.list_profiles(session=session)
    restored = 0
    for profile in profiles:
        if str(profile.id) in registry:
            continue
        try:
            await registry.create_pool(crud.profile_to_config(profile))
            restored += 1
        except Exception:
            _logger.warning(
                "Could not restore pool for connection %s", profile.id, exc_info=True
            )
    _logger.info("Restored %d of %d saved connection(s)", restored, len(profiles))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: ARG001
    init_db()
    if settings.RESTORE_POOLS_ON_STARTUP:
        await restore_pools()
    yield
    await get_pool_registry().close_all()


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers: every error body is {success: false, message, ...}
# ---------------------------------------------------------------------------


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    """Normalized database failures keep their own status code and message."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "kind": exc.kind.value},
    )


@app.exception_handler(InvalidStatementError)
async def invalid_statement_handler(
    request: Request, exc: InvalidStatementError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with a readable message plus field-level errors."""
    errors = []
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(l) for l in err.get("loc", []) if l != "body")
        msg = err.get("msg", "Invalid value")
        errors.append({"field": loc, "message": msg})
        messages.append(f"{loc}: {msg}" if loc else msg)
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "; ".join(messages), "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Catch-all for unhandled exceptions: log and return 500 with safe message."""
    _logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    message = "Internal server error"
    if settings.ENVIRONMENT == "local":
        message = f"Internal server error: {exc}"
    return JSONResponse(status_code=500, content={"success": False, "message": message})


# Set all CORS enabled origins
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
