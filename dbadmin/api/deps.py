from collections.abc import Generator
from typing import Annotated, NamedTuple

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from dbadmin.core import security
from dbadmin.core.db import engine
from dbadmin.core.dialect import DialectProfile, resolve
from dbadmin.core.errors import ConnectionNotFound
from dbadmin.core.pool import PoolRegistry, get_pool_registry
from dbadmin.core.query_history import QueryHistory, get_query_history
from dbadmin.models import ConnectionConfig

reusable_bearer = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_registry() -> PoolRegistry:
    return get_pool_registry()


def get_history() -> QueryHistory:
    return get_query_history()


SessionDep = Annotated[Session, Depends(get_db)]
RegistryDep = Annotated[PoolRegistry, Depends(get_registry)]
HistoryDep = Annotated[QueryHistory, Depends(get_history)]
CredentialsDep = Annotated[
    HTTPAuthorizationCredentials | None, Depends(reusable_bearer)
]


def get_current_connection_id(credentials: CredentialsDep) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return security.decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


ConnectionIdDep = Annotated[str, Depends(get_current_connection_id)]


class ActiveConnection(NamedTuple):
    """The pooled connection a token points at."""

    id: str
    config: ConnectionConfig
    dialect: DialectProfile
    registry: PoolRegistry


def get_active_connection(
    connection_id: ConnectionIdDep, registry: RegistryDep
) -> ActiveConnection:
    config = registry.get_config(connection_id)
    if config is None:
        # Token is valid but the pool is gone (deleted or server restarted)
        raise ConnectionNotFound()
    return ActiveConnection(
        id=connection_id,
        config=config,
        dialect=resolve(config.engine_kind),
        registry=registry,
    )


ActiveConnectionDep = Annotated[ActiveConnection, Depends(get_active_connection)]
