from collections.abc import Iterator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from dbadmin.core.config import settings
from dbadmin.core.dialect import ProductTypeEnum
from dbadmin.models import NormalizedResult
from tests.utils.connection import auth_headers, make_config
from tests.utils.registry import FakeRegistry

BASE = f"{settings.API_V1_STR}/server"


@pytest.fixture
def headers(registry: FakeRegistry) -> dict[str, str]:
    config = make_config(database="shop")
    registry.add(config)
    return auth_headers(config.id)


@pytest.fixture
def pg_headers(registry: FakeRegistry) -> dict[str, str]:
    config = make_config(product_type=ProductTypeEnum.POSTGRES, database="shop")
    registry.add(config)
    return auth_headers(config.id)


@pytest.fixture
def mock_exec() -> Iterator[AsyncMock]:
    with patch("dbadmin.services.catalog.execute_sql", new_callable=AsyncMock) as m:
        yield m


def test_info_mysql(
    client: TestClient, headers: dict[str, str], mock_exec: AsyncMock
) -> None:
    mock_exec.side_effect = [
        NormalizedResult(rows=[{"version": "10.11.6-MariaDB"}], columns=["version"]),
        NormalizedResult(
            rows=[{"Variable_name": "Uptime", "Value": "90"}],
            columns=["Variable_name", "Value"],
        ),
        NormalizedResult(
            rows=[{"Id": 3, "User": "root", "Host": "localhost", "db": "shop",
                   "Command": "Sleep", "Time": 12, "State": "", "Info": None}],
            columns=["Id", "User", "Host", "db", "Command", "Time", "State", "Info"],
        ),
    ]
    r = client.get(f"{BASE}/info", headers=headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["version"] == "10.11.6-MariaDB"
    assert data["uptime"] == 90
    assert data["variables"] == {"Uptime": "90"}
    assert data["processes"][0]["id"] == 3
    assert data["processes"][0]["info"] is None


def test_stats_for_named_database(
    client: TestClient, pg_headers: dict[str, str], mock_exec: AsyncMock
) -> None:
    mock_exec.side_effect = [
        NormalizedResult(rows=[{"size_mb": 8.25, "table_count": 2}]),
        NormalizedResult(rows=[{"table_name": "orders", "size_mb": 8, "row_count": 10}]),
    ]
    r = client.get(f"{BASE}/stats", headers=pg_headers, params={"database": "archive"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["database"] == "archive"
    assert data["total_size_mb"] == 8.25
    assert data["largest_tables"] == [
        {"table_name": "orders", "size_mb": 8.0, "row_count": 10}
    ]
    assert mock_exec.await_args_list[0].args[2] == ["archive"]


def test_processes_postgres(
    client: TestClient, pg_headers: dict[str, str], mock_exec: AsyncMock
) -> None:
    mock_exec.return_value = NormalizedResult(
        rows=[{"id": 99, "user": "app", "host": "10.1.1.1", "database": "shop",
               "command": "client backend", "time": 2, "state": "active",
               "info": "SELECT 1"}]
    )
    r = client.get(f"{BASE}/processes", headers=pg_headers)
    assert r.status_code == 200
    assert r.json()["data"] == [
        {"id": 99, "user": "app", "host": "10.1.1.1", "database": "shop",
         "command": "client backend", "time": 2, "state": "active", "info": "SELECT 1"}
    ]
    assert "pg_stat_activity" in mock_exec.await_args.args[1]


def test_kill_process_mysql(
    client: TestClient, headers: dict[str, str], mock_exec: AsyncMock
) -> None:
    mock_exec.return_value = NormalizedResult(affected_row_count=0)
    r = client.delete(f"{BASE}/processes/12", headers=headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Process 12 terminated"
    assert mock_exec.await_args.args[1:3] == ("KILL ?", [12])


def test_kill_missing_process_postgres(
    client: TestClient, pg_headers: dict[str, str], mock_exec: AsyncMock
) -> None:
    mock_exec.return_value = NormalizedResult(
        rows=[{"terminated": False}], columns=["terminated"]
    )
    r = client.delete(f"{BASE}/processes/4242", headers=pg_headers)
    assert r.status_code == 404
    assert r.json()["message"] == "Process not found"


def test_kill_process_rejects_non_numeric_id(
    client: TestClient, headers: dict[str, str], mock_exec: AsyncMock
) -> None:
    r = client.delete(f"{BASE}/processes/1;DROP", headers=headers)
    assert r.status_code == 400
    mock_exec.assert_not_awaited()
