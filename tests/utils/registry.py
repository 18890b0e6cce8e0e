"""In-memory stand-in for PoolRegistry used by the route tests."""

from typing import Any
from unittest.mock import MagicMock

from dbadmin.models import ConnectionConfig, ConnectionTestResult


class FakeRegistry:
    def __init__(self, test_result: ConnectionTestResult | None = None) -> None:
        self.configs: dict[str, ConnectionConfig] = {}
        self.pools: dict[str, Any] = {}
        self.tested: list[ConnectionConfig] = []
        self.replaced: list[ConnectionConfig] = []
        self.closed: list[str] = []
        self.live = True
        self.test_result = test_result or ConnectionTestResult(
            success=True,
            message="Connection successful",
            engine_version="8.0.36",
            available_databases=["app", "shop"],
        )

    def add(self, config: ConnectionConfig) -> None:
        self.configs[config.id] = config
        self.pools[config.id] = MagicMock(name=f"pool-{config.id}")

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTestResult:
        self.tested.append(config)
        return self.test_result

    async def create_pool(self, config: ConnectionConfig) -> None:
        if config.id in self.configs:
            raise ValueError(f"Pool already exists for connection {config.id}")
        self.add(config)

    async def replace_pool(self, config: ConnectionConfig) -> None:
        self.replaced.append(config)
        self.add(config)

    def get_pool(self, connection_id: str) -> Any | None:
        return self.pools.get(connection_id)

    def get_config(self, connection_id: str) -> ConnectionConfig | None:
        return self.configs.get(connection_id)

    def get_entry(self, connection_id: str) -> tuple[Any, ConnectionConfig] | None:
        if connection_id not in self.configs:
            return None
        return self.pools[connection_id], self.configs[connection_id]

    async def close_pool(self, connection_id: str) -> None:
        self.closed.append(connection_id)
        self.configs.pop(connection_id, None)
        self.pools.pop(connection_id, None)

    async def close_all(self) -> None:
        for cid in list(self.configs):
            await self.close_pool(cid)

    async def check_liveness(self, connection_id: str) -> bool:
        return self.live and connection_id in self.configs

    def stats(self) -> dict[str, Any]:
        return {
            "pools": len(self.configs),
            "connections": [
                {"id": cid, "engine": c.engine_kind.value, "age_sec": 0.0}
                for cid, c in self.configs.items()
            ],
        }

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self.configs
