"""
Static check for ad-hoc SQL that changes data or schema.

The query console asks for explicit confirmation before running anything that
matches one of the patterns below.

Usage::

    find_dangerous_operations("DELETE FROM users")
    # ["DELETE FROM"]
"""

import re

DANGEROUS_OPERATIONS: tuple[str, ...] = (
    "DROP DATABASE",
    "DROP SCHEMA",
    "TRUNCATE",
    "DELETE FROM",
    "UPDATE",
    "INSERT INTO",
    "CREATE TABLE",
    "ALTER TABLE",
    "DROP TABLE",
)

_PATTERNS = [
    (op, re.compile(r"\b" + r"\s+".join(op.split()) + r"\b", re.IGNORECASE))
    for op in DANGEROUS_OPERATIONS
]


def find_dangerous_operations(sql: str) -> list[str]:
    """Return the dangerous operations mentioned in *sql*, in declaration order."""
    return [op for op, pattern in _PATTERNS if pattern.search(sql)]
