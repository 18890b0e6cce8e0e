"""
Saved connections: test, create, list, get, update, delete, status, token.

Creating a connection tests it, stores the profile (password encrypted),
opens a pool and hands back a token scoped to that connection. Every other
data/schema/query route requires that token.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import SecretStr

from dbadmin import crud
from dbadmin.api.deps import HistoryDep, RegistryDep, SessionDep
from dbadmin.core.errors import translate_error
from dbadmin.core.pool import PoolRegistry
from dbadmin.core.security import create_access_token
from dbadmin.models import ConnectionConfig, ConnectionProfile, ConnectionTestResult
from dbadmin.schemas import (
    ApiResponse,
    ConnectionCreate,
    ConnectionCreated,
    ConnectionPublic,
    ConnectionStatus,
    ConnectionTestIn,
    ConnectionToken,
    ConnectionUpdate,
)

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/connections", tags=["connections"])


def _config_from(body: ConnectionTestIn, connection_id: str) -> ConnectionConfig:
    return ConnectionConfig(
        id=connection_id,
        product_type=body.product_type,
        host=body.host,
        port=body.port,
        username=body.username,
        password=SecretStr(body.password or ""),
        database=body.database or None,
        use_ssl=body.use_ssl,
    )


def _to_public(profile: ConnectionProfile, registry: PoolRegistry) -> ConnectionPublic:
    """Build ConnectionPublic from a profile (password redacted)."""
    return ConnectionPublic(
        id=profile.id,
        name=profile.name,
        product_type=profile.product_type,
        host=profile.host,
        port=profile.port,
        username=profile.username,
        database=profile.database,
        use_ssl=profile.use_ssl,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
        connected=str(profile.id) in registry,
    )


def _connection_changes(body: ConnectionUpdate) -> dict[str, Any]:
    """Connection fields that were sent; only `database` may be cleared with null."""
    data = body.model_dump(exclude_unset=True, exclude={"name", "password"})
    return {k: v for k, v in data.items() if v is not None or k == "database"}


def _test_failed(result: ConnectionTestResult) -> JSONResponse:
    body = ApiResponse[ConnectionTestResult](
        success=False, message=result.message, data=result
    )
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


def _get_or_404(session: SessionDep, id: uuid.UUID) -> ConnectionProfile:
    profile = crud.get_profile(session=session, profile_id=id)
    if not profile:
        raise HTTPException(status_code=404, detail="Connection not found")
    return profile


@router.post("/test", response_model=ApiResponse[ConnectionTestResult])
async def test_connection(registry: RegistryDep, body: ConnectionTestIn) -> Any:
    """Test connection parameters without saving anything."""
    result = await registry.test_connection(_config_from(body, "test"))
    return ApiResponse(success=result.success, message=result.message, data=result)


@router.post("", response_model=ApiResponse[ConnectionCreated], status_code=201)
async def create_connection(
    session: SessionDep, registry: RegistryDep, body: ConnectionCreate
) -> Any:
    """Test, persist, open a pool and return a connection token."""
    result = await registry.test_connection(_config_from(body, "test"))
    if not result.success:
        return _test_failed(result)

    profile = crud.create_profile(session=session, profile_in=body)
    connection_id = str(profile.id)
    try:
        await registry.create_pool(_config_from(body, connection_id))
    except Exception as e:
        crud.delete_profile(session=session, db_profile=profile)
        raise translate_error(e) from None
    return ApiResponse(
        message="Connection created",
        data=ConnectionCreated(
            connection=_to_public(profile, registry),
            token=create_access_token(connection_id),
            test=result,
        ),
    )


@router.get("", response_model=ApiResponse[list[ConnectionPublic]])
def list_connections(session: SessionDep, registry: RegistryDep) -> Any:
    profiles = crud.list_profiles(session=session)
    return ApiResponse(data=[_to_public(p, registry) for p in profiles])


@router.get("/{id}", response_model=ApiResponse[ConnectionPublic])
def get_connection(session: SessionDep, registry: RegistryDep, id: uuid.UUID) -> Any:
    return ApiResponse(data=_to_public(_get_or_404(session, id), registry))


@router.put("/{id}", response_model=ApiResponse[ConnectionPublic])
async def update_connection(
    session: SessionDep, registry: RegistryDep, id: uuid.UUID, body: ConnectionUpdate
) -> Any:
    """Update a saved connection.

    When any field that affects connecting changes, the merged settings are
    tested first and the pool is replaced; a failing test leaves the profile
    untouched.
    """
    profile = _get_or_404(session, id)
    new_config = None
    if body.changes_connection():
        current = crud.profile_to_config(profile)
        changes = _connection_changes(body)
        if body.password is not None:
            changes["password"] = SecretStr(body.password)
        new_config = current.model_copy(update=changes)
        result = await registry.test_connection(new_config)
        if not result.success:
            return _test_failed(result)

    profile = crud.update_profile(session=session, db_profile=profile, profile_in=body)
    if new_config is not None:
        await registry.replace_pool(new_config)
    return ApiResponse(
        message="Connection updated", data=_to_public(profile, registry)
    )


@router.delete("/{id}", response_model=ApiResponse[None])
async def delete_connection(
    session: SessionDep, registry: RegistryDep, history: HistoryDep, id: uuid.UUID
) -> Any:
    profile = _get_or_404(session, id)
    await registry.close_pool(str(profile.id))
    history.clear(str(profile.id))
    crud.delete_profile(session=session, db_profile=profile)
    return ApiResponse(message="Connection deleted")


@router.get("/{id}/status", response_model=ApiResponse[ConnectionStatus])
async def connection_status(
    session: SessionDep, registry: RegistryDep, id: uuid.UUID
) -> Any:
    """Run a liveness check through the connection's pool."""
    profile = _get_or_404(session, id)
    connection_id = str(profile.id)
    connected = await registry.check_liveness(connection_id)
    return ApiResponse(
        data=ConnectionStatus(
            connection_id=connection_id,
            connected=connected,
            checked_at=datetime.now(timezone.utc),
        )
    )


@router.post("/{id}/token", response_model=ApiResponse[ConnectionToken])
async def connection_token(
    session: SessionDep, registry: RegistryDep, id: uuid.UUID
) -> Any:
    """Issue a fresh token, reopening the pool from the saved profile if needed."""
    profile = _get_or_404(session, id)
    connection_id = str(profile.id)
    if connection_id not in registry:
        try:
            await registry.create_pool(crud.profile_to_config(profile))
        except ValueError:
            # Another request opened it in the meantime
            _log.debug("Pool for %s already open", connection_id)
    return ApiResponse(
        data=ConnectionToken(
            connection_id=connection_id, token=create_access_token(connection_id)
        )
    )
