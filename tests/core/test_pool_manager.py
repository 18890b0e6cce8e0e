"""Unit tests for core.pool.manager.PoolRegistry (drivers mocked)."""

import asyncio
import socket
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dbadmin.core.dialect import EngineKind, ProductTypeEnum
from dbadmin.core.errors import ConnectionNotFound, ErrorKind
from dbadmin.core.pool import PoolRegistry, get_pool_registry
from dbadmin.engines.sql import execute_sql
from tests.utils.connection import make_config

M = "dbadmin.core.pool.manager"


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


# --- test_connection ---


@patch(f"{M}.close_connection", new_callable=AsyncMock)
@patch(f"{M}.inspect_server", new_callable=AsyncMock)
@patch(f"{M}.open_connection", new_callable=AsyncMock)
def test_test_connection_success(
    mock_open: AsyncMock, mock_inspect: AsyncMock, mock_close: AsyncMock
) -> None:
    conn = MagicMock()
    mock_open.return_value = conn
    mock_inspect.return_value = ("8.0.36", ["app", "shop"])
    registry = PoolRegistry()
    config = make_config()

    result = _run(registry.test_connection(config))

    assert result.success is True
    assert result.engine_version == "8.0.36"
    assert result.available_databases == ["app", "shop"]
    mock_inspect.assert_awaited_once_with(conn, EngineKind.MYSQL_FAMILY)
    mock_close.assert_awaited_once_with(conn, EngineKind.MYSQL_FAMILY)
    # Nothing is stored
    assert config.id not in registry


@patch(f"{M}.open_connection", new_callable=AsyncMock)
def test_test_connection_unreachable_host(mock_open: AsyncMock) -> None:
    mock_open.side_effect = socket.gaierror(-2, "Name or service not known")
    registry = PoolRegistry()

    result = _run(registry.test_connection(make_config(host="no-such-host.invalid")))

    assert result.success is False
    assert result.error_kind is ErrorKind.HOST_UNREACHABLE
    assert result.message


@patch(f"{M}.open_connection", new_callable=AsyncMock)
def test_test_connection_refused(mock_open: AsyncMock) -> None:
    mock_open.side_effect = ConnectionRefusedError(111, "Connection refused")
    result = _run(PoolRegistry().test_connection(make_config()))
    assert result.success is False
    assert result.error_kind is ErrorKind.CONNECTION_REFUSED


@patch(f"{M}.close_connection", new_callable=AsyncMock)
@patch(f"{M}.inspect_server", new_callable=AsyncMock)
@patch(f"{M}.open_connection", new_callable=AsyncMock)
def test_test_connection_closes_on_lookup_failure(
    mock_open: AsyncMock, mock_inspect: AsyncMock, mock_close: AsyncMock
) -> None:
    conn = MagicMock()
    mock_open.return_value = conn
    mock_inspect.side_effect = RuntimeError("lost connection")

    result = _run(PoolRegistry().test_connection(make_config()))

    assert result.success is False
    mock_close.assert_awaited_once()


# --- create / replace / lookups ---


@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_create_pool_and_lookup(mock_open_pool: AsyncMock) -> None:
    pool = MagicMock()
    mock_open_pool.return_value = pool
    registry = PoolRegistry()
    config = make_config(product_type=ProductTypeEnum.POSTGRES)

    _run(registry.create_pool(config))

    assert registry.get_pool(config.id) is pool
    assert registry.get_config(config.id) is config
    assert registry.get_entry(config.id) == (pool, config)
    assert config.id in registry


def test_lookups_for_unknown_id() -> None:
    registry = PoolRegistry()
    assert registry.get_pool("missing") is None
    assert registry.get_config("missing") is None
    assert registry.get_entry("missing") is None


@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_create_pool_twice_raises(mock_open_pool: AsyncMock) -> None:
    registry = PoolRegistry()
    config = make_config()
    _run(registry.create_pool(config))
    with pytest.raises(ValueError):
        _run(registry.create_pool(config))
    mock_open_pool.assert_awaited_once()


@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_concurrent_create_for_same_id_opens_once(mock_open_pool: AsyncMock) -> None:
    async def slow_open(config: Any) -> MagicMock:
        await asyncio.sleep(0.01)
        return MagicMock()

    mock_open_pool.side_effect = slow_open
    registry = PoolRegistry()
    config = make_config()

    async def both() -> list[Any]:
        return await asyncio.gather(
            registry.create_pool(config),
            registry.create_pool(config),
            return_exceptions=True,
        )

    results = _run(both())
    assert sum(isinstance(r, ValueError) for r in results) == 1
    assert mock_open_pool.await_count == 1


@patch(f"{M}.close_pool", new_callable=AsyncMock)
@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_replace_pool_closes_old_first(
    mock_open_pool: AsyncMock, mock_close_pool: AsyncMock
) -> None:
    old_pool, new_pool = MagicMock(name="old"), MagicMock(name="new")
    mock_open_pool.side_effect = [old_pool, new_pool]
    registry = PoolRegistry()
    config = make_config()
    updated = config.model_copy(update={"host": "db2.internal"})

    async def scenario() -> None:
        await registry.create_pool(config)
        await registry.replace_pool(updated)

    _run(scenario())

    mock_close_pool.assert_awaited_once_with(old_pool, EngineKind.MYSQL_FAMILY)
    assert registry.get_pool(config.id) is new_pool
    assert registry.get_config(config.id).host == "db2.internal"


# --- close ---


@patch(f"{M}.close_pool", new_callable=AsyncMock)
def test_close_pool_unknown_id_is_noop(mock_close_pool: AsyncMock) -> None:
    _run(PoolRegistry().close_pool("missing"))
    mock_close_pool.assert_not_awaited()


@patch(f"{M}.close_pool", new_callable=AsyncMock)
@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_close_pool_swallows_close_error(
    mock_open_pool: AsyncMock, mock_close_pool: AsyncMock
) -> None:
    mock_open_pool.return_value = MagicMock()
    mock_close_pool.side_effect = RuntimeError("socket already gone")
    registry = PoolRegistry()
    config = make_config()

    async def scenario() -> None:
        await registry.create_pool(config)
        await registry.close_pool(config.id)

    _run(scenario())
    assert config.id not in registry


@patch(f"{M}.close_pool", new_callable=AsyncMock)
@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_close_all_continues_after_failure(
    mock_open_pool: AsyncMock, mock_close_pool: AsyncMock
) -> None:
    pools = [MagicMock(name=f"pool{i}") for i in range(3)]
    mock_open_pool.side_effect = pools

    async def close(pool: Any, engine_kind: EngineKind) -> None:
        if pool is pools[1]:
            raise RuntimeError("close failed")

    mock_close_pool.side_effect = close
    registry = PoolRegistry()
    configs = [make_config() for _ in range(3)]

    async def scenario() -> None:
        for c in configs:
            await registry.create_pool(c)
        await registry.close_all()

    _run(scenario())

    assert mock_close_pool.await_count == 3
    closed = {call.args[0] for call in mock_close_pool.await_args_list}
    assert closed == set(pools)
    assert registry.stats()["pools"] == 0
    assert all(c.id not in registry for c in configs)


@patch(f"{M}.close_pool", new_callable=AsyncMock)
@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_execute_after_close_raises_not_found(
    mock_open_pool: AsyncMock, mock_close_pool: AsyncMock
) -> None:
    mock_open_pool.return_value = MagicMock()
    registry = PoolRegistry()
    config = make_config()

    async def scenario() -> None:
        await registry.create_pool(config)
        await registry.close_pool(config.id)
        await execute_sql(config.id, "SELECT 1", registry=registry)

    with pytest.raises(ConnectionNotFound):
        _run(scenario())
    mock_close_pool.assert_awaited_once()


@patch(f"{M}.close_pool", new_callable=AsyncMock)
@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_close_pool_unregisters_before_drain(
    mock_open_pool: AsyncMock, mock_close_pool: AsyncMock
) -> None:
    mock_open_pool.return_value = MagicMock()
    registry = PoolRegistry()
    config = make_config()
    seen_during_drain: list[bool] = []

    async def close(pool: Any, engine_kind: EngineKind) -> None:
        seen_during_drain.append(config.id in registry)

    mock_close_pool.side_effect = close

    async def scenario() -> None:
        await registry.create_pool(config)
        await registry.close_pool(config.id)

    _run(scenario())
    assert seen_during_drain == [False]


# --- liveness / stats ---


@asynccontextmanager
async def _fake_acquire(pool: Any, engine_kind: EngineKind) -> AsyncIterator[Any]:
    yield MagicMock(name="conn")


@patch(f"{M}.health_check", new_callable=AsyncMock)
@patch(f"{M}.acquire", new=_fake_acquire)
@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_check_liveness(mock_open_pool: AsyncMock, mock_health: AsyncMock) -> None:
    mock_health.return_value = True
    registry = PoolRegistry()
    config = make_config()

    async def scenario() -> tuple[bool, bool]:
        await registry.create_pool(config)
        return await registry.check_liveness(config.id), await registry.check_liveness("x")

    alive, unknown = _run(scenario())
    assert alive is True
    assert unknown is False


@patch(f"{M}.health_check", new_callable=AsyncMock)
@patch(f"{M}.acquire", new=_fake_acquire)
@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_check_liveness_failure_returns_false(
    mock_open_pool: AsyncMock, mock_health: AsyncMock
) -> None:
    mock_health.side_effect = ConnectionResetError("server went away")
    registry = PoolRegistry()
    config = make_config()

    async def scenario() -> bool:
        await registry.create_pool(config)
        return await registry.check_liveness(config.id)

    assert _run(scenario()) is False


@patch(f"{M}.open_pool", new_callable=AsyncMock)
def test_stats(mock_open_pool: AsyncMock) -> None:
    registry = PoolRegistry()
    config = make_config(product_type=ProductTypeEnum.MARIADB)
    _run(registry.create_pool(config))
    stats = registry.stats()
    assert stats["pools"] == 1
    assert stats["connections"][0]["id"] == config.id
    assert stats["connections"][0]["engine"] == "mysql-family"


def test_get_pool_registry_is_singleton() -> None:
    assert get_pool_registry() is get_pool_registry()
