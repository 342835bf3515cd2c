"""Shared serialization helpers for the infrastructure layer.

These utilities handle type conversions between the database driver
(pyodbc / sqlite3) and Python-native types that the domain normalizers
and the JSON document expect.
"""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime, time
from decimal import Decimal


def convert_db_types(obj: object) -> object:
    """Recursively convert driver types to native Python types.

    Handles: Decimal → int/float, NaN/Inf → None, bytes → str,
    UUID → str, time → ISO string.  datetime/date are kept as-is so the
    normalizers can compare deadlines and scan times.
    """
    if isinstance(obj, dict):
        return {key: convert_db_types(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_db_types(item) for item in obj]
    elif isinstance(obj, (datetime, date)):
        return obj
    elif isinstance(obj, Decimal):
        if not obj.is_finite():
            return None
        if obj == obj.to_integral_value():
            return int(obj)
        return float(obj)
    elif isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    elif isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")
    elif isinstance(obj, uuid.UUID):
        return str(obj)
    elif isinstance(obj, time):
        return obj.isoformat()
    else:
        return obj


def to_json_compatible(obj: object) -> object:
    """Like :func:`convert_db_types` but also renders datetimes as ISO strings."""
    if isinstance(obj, dict):
        return {key: to_json_compatible(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [to_json_compatible(item) for item in obj]
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return convert_db_types(obj)
