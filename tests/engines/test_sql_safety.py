"""Unit tests for engines.sql.safety."""

import pytest

from dbadmin.engines.sql.safety import find_dangerous_operations


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("DROP DATABASE shop", ["DROP DATABASE"]),
        ("truncate table logs", ["TRUNCATE"]),
        ("delete   from users where id = 1", ["DELETE FROM"]),
        ("UPDATE users SET a = 1", ["UPDATE"]),
        ("insert into t values (1)", ["INSERT INTO"]),
        ("ALTER TABLE t ADD COLUMN a int", ["ALTER TABLE"]),
        ("CREATE TABLE t (a int); DROP TABLE u", ["CREATE TABLE", "DROP TABLE"]),
    ],
)
def test_dangerous_statements(sql: str, expected: list[str]) -> None:
    assert find_dangerous_operations(sql) == expected


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT * FROM users",
        "SELECT last_updated FROM t",
        "SHOW TABLES",
        "EXPLAIN SELECT 1",
    ],
)
def test_safe_statements(sql: str) -> None:
    assert find_dangerous_operations(sql) == []
