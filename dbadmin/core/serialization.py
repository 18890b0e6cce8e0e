import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any


def make_json_safe(obj: Any) -> Any:
    """Recursively convert driver values to JSON-safe primitives.

    Handles: datetime, date, time, timedelta, Decimal, UUID, bytes, sets.
    Rows come back from the drivers with native types (``Decimal`` for
    MySQL ``DECIMAL``/``SUM``, ``bytes`` for BLOB/bytea, ...).
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Decimal):
        if not obj.is_finite():
            return str(obj)
        # Preserve integer-valued decimals as int, otherwise float
        if obj == obj.to_integral_value():
            return int(obj)
        return float(obj)
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")
    if isinstance(obj, dict):
        return {str(k): make_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [make_json_safe(item) for item in obj]
    if isinstance(obj, (set, frozenset)):
        return [make_json_safe(item) for item in sorted(obj, key=str)]
    # Fallback: use str() for unknown types (ranges, geometry, ...)
    return str(obj)
