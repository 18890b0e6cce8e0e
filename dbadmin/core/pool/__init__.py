"""
Connection pools for administered MySQL / MariaDB / PostgreSQL servers.

psycopg + psycopg_pool for PostgreSQL, aiomysql (async PyMySQL) for the MySQL family.
"""

from .connect import acquire, open_connection, open_pool, run_statement
from .health import health_check, inspect_server
from .manager import PoolRegistry, get_pool_registry

__all__ = [
    "acquire",
    "open_connection",
    "open_pool",
    "run_statement",
    "health_check",
    "inspect_server",
    "PoolRegistry",
    "get_pool_registry",
]
