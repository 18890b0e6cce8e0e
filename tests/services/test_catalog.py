"""Unit tests for services.catalog (dispatcher mocked)."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from dbadmin.core.dialect import ProductTypeEnum
from dbadmin.core.errors import AuthenticationFailed, ConnectionNotFound
from dbadmin.models import NormalizedResult
from dbadmin.services import catalog
from tests.utils.connection import make_config
from tests.utils.registry import FakeRegistry

EXECUTE = "dbadmin.services.catalog.execute_sql"


def _setup(product_type: ProductTypeEnum = ProductTypeEnum.MYSQL) -> tuple[FakeRegistry, str]:
    registry = FakeRegistry()
    config = make_config(product_type=product_type, database="shop")
    registry.add(config)
    return registry, config.id


def _rows(*rows: dict) -> NormalizedResult:
    return NormalizedResult(rows=list(rows), columns=list(rows[0]) if rows else [])


def test_unknown_connection() -> None:
    with pytest.raises(ConnectionNotFound):
        asyncio.run(catalog.list_tables(FakeRegistry(), "missing", "shop"))


@patch(EXECUTE, new_callable=AsyncMock)
def test_list_databases_mysql(mock_exec: AsyncMock) -> None:
    registry, cid = _setup()
    mock_exec.return_value = _rows(
        {"name": "shop", "size": "1.50", "encoding": "utf8mb4",
         "collation": "utf8mb4_general_ci", "tables": 3, "views": 1}
    )
    dbs = asyncio.run(catalog.list_databases(registry, cid))
    assert dbs == [
        {"name": "shop", "size": 1.5, "encoding": "utf8mb4",
         "collation": "utf8mb4_general_ci", "tables": 3, "views": 1}
    ]
    mock_exec.assert_awaited_once()


@patch(EXECUTE, new_callable=AsyncMock)
def test_list_databases_postgres_counts_current_database(mock_exec: AsyncMock) -> None:
    registry, cid = _setup(ProductTypeEnum.POSTGRES)
    mock_exec.side_effect = [
        _rows(
            {"name": "other", "size": None, "encoding": "UTF8", "collation": "C"},
            {"name": "shop", "size": 2, "encoding": "UTF8", "collation": "C"},
        ),
        _rows({"tables": 4, "views": 2}),
    ]
    dbs = asyncio.run(catalog.list_databases(registry, cid))
    by_name = {d["name"]: d for d in dbs}
    assert by_name["shop"]["tables"] == 4
    assert by_name["shop"]["views"] == 2
    assert by_name["other"]["tables"] is None
    count_call = mock_exec.await_args_list[1]
    assert count_call.args[2] == ["shop"]


@patch(EXECUTE, new_callable=AsyncMock)
def test_get_database_missing(mock_exec: AsyncMock) -> None:
    registry, cid = _setup()
    mock_exec.return_value = NormalizedResult()
    assert asyncio.run(catalog.get_database(registry, cid, "nope")) is None


@patch(EXECUTE, new_callable=AsyncMock)
def test_list_tables_shapes_types(mock_exec: AsyncMock) -> None:
    registry, cid = _setup()
    mock_exec.return_value = _rows(
        {"name": "orders", "type": "BASE TABLE", "engine": "InnoDB", "collation": None,
         "rows": 10, "size": 0.02, "comment": ""},
        {"name": "v_orders", "type": "VIEW", "engine": None, "collation": None,
         "rows": None, "size": None, "comment": None},
    )
    tables = asyncio.run(catalog.list_tables(registry, cid, "shop"))
    assert [t["type"] for t in tables] == ["table", "view"]
    assert tables[1]["rows"] == 0
    assert tables[1]["comment"] == ""


@patch(EXECUTE, new_callable=AsyncMock)
def test_primary_key(mock_exec: AsyncMock) -> None:
    registry, cid = _setup()
    mock_exec.return_value = _rows({"name": "id"})
    assert asyncio.run(catalog.primary_key(registry, cid, "shop", "t")) == "id"
    mock_exec.return_value = NormalizedResult()
    assert asyncio.run(catalog.primary_key(registry, cid, "shop", "t")) is None


@patch(EXECUTE, new_callable=AsyncMock)
def test_table_structure_mysql(mock_exec: AsyncMock) -> None:
    registry, cid = _setup()
    mock_exec.side_effect = [
        _rows(
            {"name": "id", "type": "int", "column_type": "int unsigned", "nullable": "NO",
             "default_value": None, "extra": "auto_increment", "comment": "",
             "length": None, "precision": 10, "scale": 0, "is_primary_key": 1},
        ),
        _rows(
            {"name": "PRIMARY", "index_type": "BTREE", "non_unique": 0, "column_list": "id"},
            {"name": "ft_body", "index_type": "FULLTEXT", "non_unique": 1, "column_list": "title,body"},
        ),
        _rows(
            {"name": "fk_user", "column_name": "user_id", "referenced_table": "users",
             "referenced_column": "id", "on_update": "CASCADE", "on_delete": "RESTRICT"},
        ),
        _rows({"name": "PRIMARY", "type": "PRIMARY KEY", "column_list": "id"}),
        NormalizedResult(),
    ]
    s = asyncio.run(catalog.table_structure(registry, cid, "shop", "posts"))
    assert s["columns"][0]["auto_increment"] is True
    assert s["columns"][0]["primary_key"] is True
    assert s["columns"][0]["nullable"] is False
    assert s["indexes"][0]["type"] == "PRIMARY"
    assert s["indexes"][1] == {
        "name": "ft_body", "type": "FULLTEXT", "method": "FULLTEXT",
        "columns": ["title", "body"], "unique": False,
    }
    assert s["foreign_keys"][0]["column"] == "user_id"
    assert s["constraints"][0]["columns"] == ["id"]
    assert s["triggers"] == []


@patch(EXECUTE, new_callable=AsyncMock)
def test_table_structure_postgres_indexes_and_trigger_denied(mock_exec: AsyncMock) -> None:
    registry, cid = _setup(ProductTypeEnum.POSTGRES)
    mock_exec.side_effect = [
        _rows(
            {"name": "id", "type": "integer", "column_type": "int4", "nullable": "NO",
             "default_value": "nextval('t_id_seq'::regclass)", "extra": "",
             "comment": None, "length": None, "precision": 32, "scale": 0,
             "is_primary_key": True},
        ),
        _rows(
            {"name": "t_pkey", "definition": "CREATE UNIQUE INDEX t_pkey ON public.t USING btree (id)",
             "index_type": "btree", "is_unique": True, "is_primary": True},
            {"name": "t_a_b", "definition": "CREATE INDEX t_a_b ON public.t USING btree (a, b)",
             "index_type": "btree", "is_unique": False, "is_primary": False},
        ),
        NormalizedResult(),
        NormalizedResult(),
        AuthenticationFailed(),
    ]
    s = asyncio.run(catalog.table_structure(registry, cid, "shop", "t"))
    assert s["columns"][0]["auto_increment"] is True
    assert s["indexes"][0]["type"] == "PRIMARY"
    assert s["indexes"][1]["type"] == "INDEX"
    assert s["indexes"][1]["columns"] == ["a", "b"]
    assert s["triggers"] == []


def test_query_suggestions_without_database() -> None:
    registry, cid = _setup()
    with patch(EXECUTE, new_callable=AsyncMock) as mock_exec:
        data = asyncio.run(catalog.query_suggestions(registry, cid))
    mock_exec.assert_not_awaited()
    assert "SELECT" in data["keywords"]
    assert data["tables"] == data["columns"] == data["functions"] == []


@patch(EXECUTE, new_callable=AsyncMock)
def test_query_suggestions_columns_for_first_tables(mock_exec: AsyncMock) -> None:
    registry, cid = _setup(ProductTypeEnum.POSTGRES)
    names = [f"t{i}" for i in range(7)]
    mock_exec.side_effect = [
        _rows(*({"name": n} for n in names)),
        _rows({"table_name": "t0", "column_name": "id"},
              {"table_name": "t1", "column_name": "label"}),
    ]
    data = asyncio.run(catalog.query_suggestions(registry, cid, "shop"))
    assert data["tables"] == names
    assert data["columns"] == ["t0.id", "t1.label"]
    assert "RANDOM()" in data["functions"]
    assert "RAND()" not in data["functions"]
    column_call = mock_exec.await_args_list[1]
    assert column_call.args[2] == ["shop", "t0", "t1", "t2", "t3", "t4"]


@patch(EXECUTE, new_callable=AsyncMock)
def test_query_suggestions_empty_database(mock_exec: AsyncMock) -> None:
    registry, cid = _setup()
    mock_exec.return_value = _rows()
    data = asyncio.run(catalog.query_suggestions(registry, cid, "empty"))
    mock_exec.assert_awaited_once()
    assert data["tables"] == []
    assert "IFNULL()" in data["functions"]


@patch(EXECUTE, new_callable=AsyncMock)
def test_query_suggestions_fall_back_to_keywords(mock_exec: AsyncMock) -> None:
    registry, cid = _setup()
    mock_exec.side_effect = AuthenticationFailed()
    data = asyncio.run(catalog.query_suggestions(registry, cid, "shop"))
    assert data["keywords"] == catalog.SQL_KEYWORDS
    assert data["tables"] == data["columns"] == data["functions"] == []
