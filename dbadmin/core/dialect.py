"""
SQL dialect profiles for the supported engine families.

A profile is a pure value object: how identifiers are quoted, how positional
placeholders look, and which ``information_schema`` column narrows catalog
queries to one database. Everything that builds SQL text goes through here.
"""

from dataclasses import dataclass
from enum import Enum

from dbadmin.core.errors import UnsupportedEngine


class ProductTypeEnum(str, Enum):
    """Server product chosen by the user for a connection profile."""

    MYSQL = "mysql"
    MARIADB = "mariadb"
    POSTGRES = "postgresql"


class EngineKind(str, Enum):
    MYSQL_FAMILY = "mysql-family"
    POSTGRES = "postgresql"


class ParamStyle(str, Enum):
    QMARK = "positional-question"
    NUMERIC_DOLLAR = "positional-dollar"


@dataclass(frozen=True)
class DialectProfile:
    engine_kind: EngineKind
    param_style: ParamStyle
    quote_char: str
    schema_column: str
    # Table-level objects live in this schema (None: the database is the schema)
    default_schema: str | None = None

    def quote_identifier(self, name: str) -> str:
        """Wrap *name* in the engine's quote char, doubling embedded quote chars."""
        q = self.quote_char
        return f"{q}{str(name).replace(q, q + q)}{q}"

    def placeholder(self, index: int) -> str:
        """Placeholder for the 1-based parameter at *index* in the final SQL."""
        if index < 1:
            raise ValueError("placeholder index is 1-based")
        if self.param_style is ParamStyle.QMARK:
            return "?"
        return f"${index}"

    def placeholders(self, start: int, count: int) -> list[str]:
        return [self.placeholder(start + i) for i in range(count)]

    def table_ref(self, database: str, table: str) -> str:
        """Fully qualified, quoted reference to *table*."""
        container = self.default_schema or database
        return f"{self.quote_identifier(container)}.{self.quote_identifier(table)}"

    def search_predicate(self, column: str, index: int) -> str:
        """Case-insensitive substring match of *column* against placeholder *index*."""
        col = self.quote_identifier(column)
        if self.engine_kind is EngineKind.POSTGRES:
            return f"CAST({col} AS TEXT) ILIKE {self.placeholder(index)}"
        return f"{col} LIKE {self.placeholder(index)}"

    @property
    def is_postgres(self) -> bool:
        return self.engine_kind is EngineKind.POSTGRES


MYSQL_DIALECT = DialectProfile(
    engine_kind=EngineKind.MYSQL_FAMILY,
    param_style=ParamStyle.QMARK,
    quote_char="`",
    schema_column="table_schema",
)

POSTGRES_DIALECT = DialectProfile(
    engine_kind=EngineKind.POSTGRES,
    param_style=ParamStyle.NUMERIC_DOLLAR,
    quote_char='"',
    schema_column="table_catalog",
    default_schema="public",
)

_DIALECTS: dict[EngineKind, DialectProfile] = {
    EngineKind.MYSQL_FAMILY: MYSQL_DIALECT,
    EngineKind.POSTGRES: POSTGRES_DIALECT,
}

_PRODUCT_ENGINES: dict[ProductTypeEnum, EngineKind] = {
    ProductTypeEnum.MYSQL: EngineKind.MYSQL_FAMILY,
    ProductTypeEnum.MARIADB: EngineKind.MYSQL_FAMILY,
    ProductTypeEnum.POSTGRES: EngineKind.POSTGRES,
}


def engine_kind_for(product_type: ProductTypeEnum | str) -> EngineKind:
    try:
        return _PRODUCT_ENGINES[ProductTypeEnum(product_type)]
    except (KeyError, ValueError):
        raise UnsupportedEngine(f"Unsupported database type: {product_type}") from None


def resolve(engine_kind: EngineKind | str) -> DialectProfile:
    """Return the dialect profile for *engine_kind*; unknown engines fail fast."""
    try:
        return _DIALECTS[EngineKind(engine_kind)]
    except (KeyError, ValueError):
        raise UnsupportedEngine(f"Unsupported database engine: {engine_kind}") from None
