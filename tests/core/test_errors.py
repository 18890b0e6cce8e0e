"""Unit tests for core.errors.translate_error."""

import socket

import psycopg
import pymysql
import pytest
from psycopg_pool import PoolTimeout

from dbadmin.core.errors import (
    AuthenticationFailed,
    ConnectionNotFound,
    ConnectionRefused,
    ConnectionTimeout,
    DatabaseError,
    DuplicateKey,
    ErrorKind,
    ForeignKeyViolation,
    HostUnreachable,
    QuerySyntaxError,
    UnclassifiedError,
    UnknownDatabase,
    translate_error,
)


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        (1045, AuthenticationFailed),
        (1044, AuthenticationFailed),
        (1049, UnknownDatabase),
        (1064, QuerySyntaxError),
        (1062, DuplicateKey),
        (1452, ForeignKeyViolation),
        (2005, HostUnreachable),
        (3024, ConnectionTimeout),
    ],
)
def test_mysql_error_codes(code: int, expected: type[DatabaseError]) -> None:
    err = translate_error(pymysql.err.OperationalError(code, "server said no"))
    assert type(err) is expected


@pytest.mark.parametrize(
    ("exc_cls", "expected"),
    [
        (psycopg.errors.InvalidPassword, AuthenticationFailed),
        (psycopg.errors.InvalidCatalogName, UnknownDatabase),
        (psycopg.errors.SyntaxError, QuerySyntaxError),
        (psycopg.errors.UniqueViolation, DuplicateKey),
        (psycopg.errors.ForeignKeyViolation, ForeignKeyViolation),
        (psycopg.errors.QueryCanceled, ConnectionTimeout),
    ],
)
def test_postgres_sqlstates(
    exc_cls: type[psycopg.Error], expected: type[DatabaseError]
) -> None:
    assert type(translate_error(exc_cls("boom"))) is expected


def test_auth_failure_hides_driver_message() -> None:
    err = translate_error(
        pymysql.err.OperationalError(1045, "Access denied for user 'root'@'10.0.0.5'")
    )
    assert err.status_code == 403
    assert "10.0.0.5" not in err.message
    assert err.message == AuthenticationFailed.default_message


def test_statement_errors_keep_driver_message() -> None:
    err = translate_error(
        pymysql.err.IntegrityError(1062, "Duplicate entry '5' for key 'PRIMARY'")
    )
    assert isinstance(err, DuplicateKey)
    assert err.status_code == 409
    assert err.message == "Duplicate entry '5' for key 'PRIMARY'"


def test_os_errors() -> None:
    assert isinstance(translate_error(ConnectionRefusedError(111, "refused")), ConnectionRefused)
    assert isinstance(
        translate_error(socket.gaierror(-2, "Name or service not known")), HostUnreachable
    )
    assert isinstance(translate_error(TimeoutError()), ConnectionTimeout)


def test_pool_timeout() -> None:
    err = translate_error(PoolTimeout("couldn't get a connection after 30.00 sec"))
    assert isinstance(err, ConnectionTimeout)
    assert err.status_code == 504


def test_cause_chain_is_searched() -> None:
    try:
        try:
            raise ConnectionRefusedError(111, "Connection refused")
        except ConnectionRefusedError as inner:
            raise pymysql.err.OperationalError(
                2003, "Can't connect to MySQL server on 'db'"
            ) from inner
    except pymysql.err.OperationalError as outer:
        err = translate_error(outer)
    assert isinstance(err, ConnectionRefused)


def test_mysql_2003_without_cause_is_connection_refused() -> None:
    err = translate_error(
        pymysql.err.OperationalError(2003, "Can't connect to MySQL server on 'db'")
    )
    assert isinstance(err, ConnectionRefused)


def test_message_patterns() -> None:
    err = translate_error(
        psycopg.OperationalError(
            'connection failed: could not translate host name "nope" to address'
        )
    )
    assert isinstance(err, HostUnreachable)
    err = translate_error(
        psycopg.OperationalError('FATAL:  database "missing" does not exist')
    )
    assert isinstance(err, UnknownDatabase)


def test_unclassified_keeps_message() -> None:
    err = translate_error(RuntimeError("something odd"))
    assert isinstance(err, UnclassifiedError)
    assert err.kind is ErrorKind.UNKNOWN
    assert err.status_code == 500
    assert err.message == "something odd"


def test_database_error_passes_through() -> None:
    original = ConnectionNotFound()
    assert translate_error(original) is original
    assert original.status_code == 404
    assert original.to_dict() == {
        "kind": "ConnectionNotFound",
        "message": "Connection not found.",
    }
