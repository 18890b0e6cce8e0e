from typing import Any, NamedTuple

from dbadmin.core.errors import InvalidStatementError


class SqlStatement(NamedTuple):
    """SQL text plus the values for its placeholders, in placeholder order."""

    sql: str
    params: list[Any]


def require_name(value: str | None, what: str) -> str:
    """Reject empty identifiers before they reach ``quote_identifier``."""
    if value is None or not str(value).strip():
        raise InvalidStatementError(f"{what} is required")
    if "\x00" in str(value):
        raise InvalidStatementError(f"{what} contains a NUL character")
    return str(value)


def require_names(values: list[str] | None, what: str) -> list[str]:
    if not values:
        raise InvalidStatementError(f"At least one {what} is required")
    names = [require_name(v, what) for v in values]
    if len(set(names)) != len(names):
        raise InvalidStatementError(f"Duplicate {what} in request")
    return names
