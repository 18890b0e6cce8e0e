"""
Request / response schemas for the HTTP API.

Connections, databases, tables, row data and the query console.
"""

import uuid
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator
from sqlmodel import SQLModel

from dbadmin.core.dialect import ProductTypeEnum
from dbadmin.core.serialization import make_json_safe
from dbadmin.engines.sql.ddl import ColumnChange, ColumnDefinition, IndexType
from dbadmin.models import REDACTED, ConnectionTestResult

T = TypeVar("T")

DEFAULT_PORTS: dict[ProductTypeEnum, int] = {
    ProductTypeEnum.MYSQL: 3306,
    ProductTypeEnum.MARIADB: 3306,
    ProductTypeEnum.POSTGRES: 5432,
}


class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every endpoint."""

    success: bool = True
    message: str | None = None
    data: T | None = None


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


class ConnectionTestIn(SQLModel):
    """Body for POST /connections/test; nothing is stored."""

    product_type: ProductTypeEnum
    host: str = Field(..., min_length=1, max_length=255)
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(
        default="", max_length=512, description="Optional; leave empty for no password."
    )
    database: str | None = Field(default=None, max_length=255)
    use_ssl: bool = False

    @model_validator(mode="after")
    def default_port(self) -> "ConnectionTestIn":
        if self.port is None:
            self.port = DEFAULT_PORTS[self.product_type]
        return self


class ConnectionCreate(ConnectionTestIn):
    """Body for POST /connections."""

    name: str = Field(..., min_length=1, max_length=255)


class ConnectionUpdate(SQLModel):
    """Body for PUT /connections/{id}; omitted fields keep their value."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    product_type: ProductTypeEnum | None = None
    host: str | None = Field(default=None, min_length=1, max_length=255)
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(
        default=None, max_length=512
    )  # None = keep current; "" = set to empty
    database: str | None = Field(default=None, max_length=255)
    use_ssl: bool | None = None

    def changes_connection(self) -> bool:
        """True if any field that affects how we connect was sent."""
        return bool(self.model_fields_set - {"name"})


class ConnectionPublic(SQLModel):
    """Response schema; the password is always redacted."""

    id: uuid.UUID
    name: str
    product_type: ProductTypeEnum
    host: str
    port: int
    username: str
    password: str = REDACTED
    database: str | None
    use_ssl: bool
    created_at: datetime
    updated_at: datetime
    connected: bool = False


class ConnectionCreated(BaseModel):
    connection: ConnectionPublic
    token: str
    test: ConnectionTestResult


class ConnectionToken(BaseModel):
    connection_id: str
    token: str


class ConnectionStatus(BaseModel):
    connection_id: str
    connected: bool
    checked_at: datetime


# ---------------------------------------------------------------------------
# Databases / tables
# ---------------------------------------------------------------------------


class DatabaseCreateIn(BaseModel):
    charset: str | None = Field(default=None, max_length=64)
    collation: str | None = Field(default=None, max_length=64)


class TableCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    columns: list[ColumnDefinition] = Field(..., min_length=1)
    engine: str | None = Field(default=None, max_length=64)
    charset: str | None = Field(default=None, max_length=64)
    collation: str | None = Field(default=None, max_length=64)


class TableRenameIn(BaseModel):
    new_name: str = Field(..., min_length=1, max_length=64)


class ColumnAddIn(ColumnDefinition):
    after: str | None = Field(default=None, max_length=64)


class ColumnModifyIn(ColumnChange):
    """Only the fields that are set are changed."""


class IndexCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    columns: list[str] = Field(..., min_length=1)
    type: IndexType = "INDEX"


# ---------------------------------------------------------------------------
# Row data
# ---------------------------------------------------------------------------


class RowsOut(BaseModel):
    """Rows are converted to JSON-safe primitives on the way out."""

    columns: list[str] = []
    rows: list[dict[str, Any]] = []

    @field_validator("rows", mode="before")
    @classmethod
    def _json_safe_rows(cls, v: Any) -> Any:
        return make_json_safe(v)


class TableDataOut(RowsOut):
    total_rows: int
    page: int
    page_size: int
    total_pages: int


class RowValuesIn(BaseModel):
    data: dict[str, Any] = Field(..., min_length=1)


class BulkInsertIn(BaseModel):
    data: list[dict[str, Any]] = Field(..., min_length=1)
    columns: list[str] | None = None


class BulkUpdateIn(BaseModel):
    data: list[dict[str, Any]] = Field(..., min_length=1)
    where_column: str = Field(..., min_length=1)


class BulkDeleteIn(BaseModel):
    where_column: str = Field(..., min_length=1)
    values: list[Any] = Field(..., min_length=1)


class WriteResultOut(BaseModel):
    affected_row_count: int = 0
    inserted_id: Any = None

    @field_validator("inserted_id", mode="before")
    @classmethod
    def _json_safe_id(cls, v: Any) -> Any:
        return make_json_safe(v)


# ---------------------------------------------------------------------------
# Query console
# ---------------------------------------------------------------------------


class QueryExecuteIn(BaseModel):
    query: str = Field(..., min_length=1)
    params: list[Any] = []
    confirm_dangerous: bool = False
    split_statements: bool = Field(
        default=False,
        description="Run each ';'-separated statement in turn (params are not allowed).",
    )

    @model_validator(mode="after")
    def params_need_single_statement(self) -> "QueryExecuteIn":
        if self.split_statements and self.params:
            raise ValueError("params cannot be combined with split_statements")
        return self


class QueryResultOut(RowsOut):
    statement: str | None = None
    affected_row_count: int | None = None
    inserted_id: Any = None
    execution_time_ms: float

    @field_validator("inserted_id", mode="before")
    @classmethod
    def _json_safe_id(cls, v: Any) -> Any:
        return make_json_safe(v)


class QuerySuggestionsOut(BaseModel):
    keywords: list[str]
    tables: list[str] = []
    columns: list[str] = []
    functions: list[str] = []


# ---------------------------------------------------------------------------
# Server status
# ---------------------------------------------------------------------------


class ProcessOut(BaseModel):
    id: int
    user: str = ""
    host: str = ""
    database: str = ""
    command: str = ""
    time: int = 0
    state: str = ""
    info: str | None = None

    @field_validator("info", mode="before")
    @classmethod
    def _text_info(cls, v: Any) -> Any:
        return None if v is None else str(make_json_safe(v))


class ServerInfoOut(BaseModel):
    version: str | None = None
    uptime: int = Field(description="Seconds since the server started")
    status: str = "online"
    variables: dict[str, str] = {}
    processes: list[ProcessOut] = []


class TableSizeOut(BaseModel):
    table_name: str
    size_mb: float
    row_count: int


class ServerStatsOut(BaseModel):
    database: str
    total_size_mb: float
    table_count: int
    largest_tables: list[TableSizeOut] = []
