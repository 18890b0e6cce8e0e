"""Unit tests for engines.sql.pagination."""

import pytest
from pydantic import ValidationError

from dbadmin.core.dialect import MYSQL_DIALECT, POSTGRES_DIALECT
from dbadmin.core.errors import InvalidStatementError
from dbadmin.engines.sql.pagination import PageRequest, build_table_page, total_pages

COLUMNS = ["id", "name", "email"]


def test_page_two_of_ten() -> None:
    request = PageRequest(page=2, page_size=10)
    page = build_table_page(MYSQL_DIALECT, "shop", "users", COLUMNS, request)
    assert page.limit == 10
    assert page.offset == 10
    assert page.data.sql == "SELECT * FROM `shop`.`users` LIMIT ? OFFSET ?"
    assert page.data.params == [10, 10]
    assert page.count.sql == "SELECT COUNT(*) AS total FROM `shop`.`users`"
    assert page.count.params == []


def test_first_page_offset_zero() -> None:
    assert PageRequest(page=1, page_size=25).offset == 0


def test_postgres_search_and_sort() -> None:
    request = PageRequest(
        page=3, page_size=20, search="ann", sort_column="name", sort_direction="desc"
    )
    page = build_table_page(POSTGRES_DIALECT, "shop", "users", COLUMNS, request)
    where = (
        ' WHERE CAST("id" AS TEXT) ILIKE $1'
        ' OR CAST("name" AS TEXT) ILIKE $2'
        ' OR CAST("email" AS TEXT) ILIKE $3'
    )
    assert page.data.sql == (
        f'SELECT * FROM "public"."users"{where} ORDER BY "name" DESC LIMIT $4 OFFSET $5'
    )
    assert page.data.params == ["%ann%", "%ann%", "%ann%", 20, 40]
    assert page.count.sql == f'SELECT COUNT(*) AS total FROM "public"."users"{where}'
    assert page.count.params == ["%ann%", "%ann%", "%ann%"]


def test_mysql_search_uses_like() -> None:
    request = PageRequest(search="x")
    page = build_table_page(MYSQL_DIALECT, "shop", "users", ["a", "b"], request)
    assert "WHERE `a` LIKE ? OR `b` LIKE ?" in page.data.sql
    assert page.data.params[:2] == ["%x%", "%x%"]


def test_search_text_never_in_sql() -> None:
    sentinel = "'; DROP TABLE x; --"
    page = build_table_page(
        POSTGRES_DIALECT, "shop", "users", COLUMNS, PageRequest(search=sentinel)
    )
    assert sentinel not in page.data.sql
    assert sentinel not in page.count.sql


def test_unknown_sort_column_rejected() -> None:
    request = PageRequest(sort_column="password; DROP TABLE x")
    with pytest.raises(InvalidStatementError):
        build_table_page(MYSQL_DIALECT, "shop", "users", COLUMNS, request)


@pytest.mark.parametrize(
    "kwargs",
    [{"page": 0}, {"page_size": 0}, {"page_size": 1001}, {"sort_direction": "up"}],
)
def test_page_request_validation(kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        PageRequest(**kwargs)


def test_total_pages() -> None:
    assert total_pages(0, 10) == 0
    assert total_pages(10, 10) == 1
    assert total_pages(11, 10) == 2
