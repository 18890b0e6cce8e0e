"""
Domain types shared by the pool registry, the query layer and the API.

``ConnectionProfile`` is the persisted (SQLModel) form of a saved connection;
``ConnectionConfig`` is the immutable, decrypted form the registry works with.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, SecretStr
from sqlmodel import Field, SQLModel

from dbadmin.core.dialect import EngineKind, ProductTypeEnum, engine_kind_for
from dbadmin.core.errors import ErrorKind

REDACTED = "***"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionConfig(BaseModel):
    """Everything needed to open a session against one server. Never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str
    product_type: ProductTypeEnum
    host: str
    port: int
    username: str
    password: SecretStr = SecretStr("")
    database: str | None = None
    use_ssl: bool = False

    @property
    def engine_kind(self) -> EngineKind:
        return engine_kind_for(self.product_type)

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["password"] = REDACTED
        return data


class NormalizedResult(BaseModel):
    """Engine-independent result of one statement."""

    rows: list[dict[str, Any]] = []
    columns: list[str] = []
    affected_row_count: int | None = None
    inserted_id: Any = None


class ConnectionTestResult(BaseModel):
    success: bool
    message: str | None = None
    engine_version: str | None = None
    available_databases: list[str] | None = None
    error_kind: ErrorKind | None = None


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class ConnectionProfileBase(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    product_type: ProductTypeEnum
    host: str = Field(min_length=1, max_length=255)
    port: int = Field(gt=0, le=65535)
    username: str = Field(min_length=1, max_length=255)
    database: str | None = Field(default=None, max_length=255)
    use_ssl: bool = False


class ConnectionProfile(ConnectionProfileBase, table=True):
    __tablename__ = "connection_profile"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    # Fernet ciphertext, see core.security.encrypt_value
    password: str = Field(default="", max_length=1024)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def to_config(self, password: str) -> ConnectionConfig:
        """Build the registry config; *password* is the already-decrypted secret."""
        return ConnectionConfig(
            id=str(self.id),
            product_type=self.product_type,
            host=self.host,
            port=self.port,
            username=self.username,
            password=SecretStr(password),
            database=self.database or None,
            use_ssl=self.use_ssl,
        )
