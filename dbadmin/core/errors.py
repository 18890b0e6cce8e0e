"""
Error taxonomy for everything that talks to an administered database server.

Driver exceptions (pymysql / psycopg / psycopg_pool / OS socket errors) never
leave the query layer as-is: ``translate_error`` maps them onto one of the
``DatabaseError`` subclasses below, keeping only the driver's message text.
"""

import asyncio
import logging
import re
import socket
from enum import Enum

import psycopg
import pymysql
from psycopg_pool import PoolTimeout

_log = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    CONNECTION_REFUSED = "ConnectionRefused"
    HOST_UNREACHABLE = "HostUnreachable"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    UNKNOWN_DATABASE = "UnknownDatabase"
    SYNTAX_ERROR = "SyntaxError"
    DUPLICATE_KEY = "DuplicateKey"
    FOREIGN_KEY_VIOLATION = "ForeignKeyViolation"
    CONNECTION_TIMEOUT = "ConnectionTimeout"
    CONNECTION_NOT_FOUND = "ConnectionNotFound"
    UNSUPPORTED_ENGINE = "UnsupportedEngine"
    UNKNOWN = "Unknown"


class DatabaseError(Exception):
    """Base class: a normalized failure with a kind, a message and an HTTP status."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    status_code: int = 500
    default_message: str = "Unknown database error occurred."
    # Statement-level failures keep the server's wording
    passthrough: bool = False

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class ConnectionRefused(DatabaseError):
    kind = ErrorKind.CONNECTION_REFUSED
    status_code = 503
    default_message = "Connection refused. Please check if the database server is running."


class HostUnreachable(DatabaseError):
    kind = ErrorKind.HOST_UNREACHABLE
    status_code = 503
    default_message = "Host not found. Please check the hostname."


class AuthenticationFailed(DatabaseError):
    kind = ErrorKind.AUTHENTICATION_FAILED
    status_code = 403
    default_message = "Access denied. Please check your username and password."


class UnknownDatabase(DatabaseError):
    kind = ErrorKind.UNKNOWN_DATABASE
    status_code = 400
    default_message = "Database does not exist."


class QuerySyntaxError(DatabaseError):
    kind = ErrorKind.SYNTAX_ERROR
    status_code = 400
    default_message = "SQL syntax error."
    passthrough = True


class DuplicateKey(DatabaseError):
    kind = ErrorKind.DUPLICATE_KEY
    status_code = 409
    default_message = "Duplicate entry. This record already exists."
    passthrough = True


class ForeignKeyViolation(DatabaseError):
    kind = ErrorKind.FOREIGN_KEY_VIOLATION
    status_code = 409
    default_message = "Foreign key constraint violation."
    passthrough = True


class ConnectionTimeout(DatabaseError):
    kind = ErrorKind.CONNECTION_TIMEOUT
    status_code = 504
    default_message = "Connection timeout. Please check your network connection."


class ConnectionNotFound(DatabaseError):
    kind = ErrorKind.CONNECTION_NOT_FOUND
    status_code = 404
    default_message = "Connection not found."


class UnsupportedEngine(DatabaseError):
    kind = ErrorKind.UNSUPPORTED_ENGINE
    status_code = 400
    default_message = "Unsupported database engine."


class UnclassifiedError(DatabaseError):
    kind = ErrorKind.UNKNOWN
    status_code = 500
    passthrough = True


class InvalidStatementError(ValueError):
    """A statement builder rejected its input (bad identifier list, type, page size...)."""


# ---------------------------------------------------------------------------
# Driver error translation
# ---------------------------------------------------------------------------

_MYSQL_CODES: dict[int, type[DatabaseError]] = {
    1044: AuthenticationFailed,
    1045: AuthenticationFailed,
    1698: AuthenticationFailed,
    1049: UnknownDatabase,
    1064: QuerySyntaxError,
    1149: QuerySyntaxError,
    1062: DuplicateKey,
    1586: DuplicateKey,
    1216: ForeignKeyViolation,
    1217: ForeignKeyViolation,
    1451: ForeignKeyViolation,
    1452: ForeignKeyViolation,
    2005: HostUnreachable,
    3024: ConnectionTimeout,
}

_PG_SQLSTATES: dict[str, type[DatabaseError]] = {
    "28000": AuthenticationFailed,
    "28P01": AuthenticationFailed,
    "3D000": UnknownDatabase,
    "42601": QuerySyntaxError,
    "23505": DuplicateKey,
    "23503": ForeignKeyViolation,
    "57014": ConnectionTimeout,
}

# Ordered: first match wins.
_MESSAGE_PATTERNS: list[tuple[re.Pattern[str], type[DatabaseError]]] = [
    (re.compile(r"connection refused|econnrefused", re.I), ConnectionRefused),
    (
        re.compile(
            r"could not translate host name|failed to resolve host|"
            r"name or service not known|nodename nor servname|"
            r"temporary failure in name resolution|getaddrinfo|unknown mysql server host",
            re.I,
        ),
        HostUnreachable,
    ),
    (
        re.compile(r"password authentication failed|access denied", re.I),
        AuthenticationFailed,
    ),
    (
        re.compile(r'database "[^"]*" does not exist|unknown database', re.I),
        UnknownDatabase,
    ),
    (re.compile(r"timeout expired|timed out|etimedout", re.I), ConnectionTimeout),
    (re.compile(r"syntax error", re.I), QuerySyntaxError),
    (re.compile(r"duplicate (entry|key)", re.I), DuplicateKey),
    (re.compile(r"foreign key constraint", re.I), ForeignKeyViolation),
]


def _driver_message(exc: BaseException) -> str:
    if isinstance(exc, pymysql.err.MySQLError) and len(exc.args) >= 2:
        return str(exc.args[1])
    if isinstance(exc, psycopg.Error):
        diag = getattr(exc, "diag", None)
        primary = getattr(diag, "message_primary", None) if diag is not None else None
        if primary:
            return str(primary)
    return str(exc).strip()


def _chain(exc: BaseException) -> list[BaseException]:
    """The exception followed by its causes/contexts, without cycles."""
    seen: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in seen:
        seen.append(current)
        current = current.__cause__ or current.__context__
    return seen


def _from_os_error(exc: BaseException) -> type[DatabaseError] | None:
    if isinstance(exc, ConnectionRefusedError):
        return ConnectionRefused
    if isinstance(exc, socket.gaierror):
        return HostUnreachable
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ConnectionTimeout
    return None


def _classify(exc: BaseException) -> type[DatabaseError] | None:
    if isinstance(exc, pymysql.err.MySQLError) and exc.args:
        code = exc.args[0]
        if code in _MYSQL_CODES:
            return _MYSQL_CODES[code]
    if isinstance(exc, psycopg.Error):
        sqlstate = getattr(exc, "sqlstate", None)
        if sqlstate in _PG_SQLSTATES:
            return _PG_SQLSTATES[sqlstate]
    if isinstance(exc, PoolTimeout):
        return ConnectionTimeout
    return _from_os_error(exc)


def _build(error_cls: type[DatabaseError], message: str) -> DatabaseError:
    if error_cls.passthrough and message:
        return error_cls(message)
    return error_cls()


def translate_error(exc: BaseException) -> DatabaseError:
    """Map any driver/network exception onto the ``DatabaseError`` taxonomy."""
    if isinstance(exc, DatabaseError):
        return exc

    message = _driver_message(exc)
    chain = _chain(exc)

    for link in chain:
        error_cls = _classify(link)
        if error_cls is not None:
            return _build(error_cls, message)

    text = " ".join(str(link) for link in chain)
    for pattern, error_cls in _MESSAGE_PATTERNS:
        if pattern.search(text):
            return _build(error_cls, message)

    # 2003 "Can't connect to MySQL server" without a recognizable cause
    if any(
        isinstance(link, pymysql.err.MySQLError) and link.args and link.args[0] == 2003
        for link in chain
    ):
        return ConnectionRefused()

    _log.debug("Unclassified database error: %s", type(exc).__name__)
    return UnclassifiedError(message or None)
