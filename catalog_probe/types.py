"""Engine-independent classification of column types."""

import re
from enum import Enum, IntFlag
from typing import Any, Optional, Tuple


class DataKind(Enum):
    """Coarse classification of a column's type."""

    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    STRING = "string"
    DATETIME = "datetime"
    BINARY = "binary"
    CONTENT = "content"
    STRUCT = "struct"
    ARRAY = "array"
    OBJECT = "object"
    ROWID = "rowid"
    UNKNOWN = "unknown"


class TypeModifier(IntFlag):
    """Bitmask of column type modifiers."""

    NONE = 0
    NOT_NULL = 1
    PRIMARY_KEY = 2
    AUTO_INCREMENT = 4
    HIDDEN = 8


_TYPE_PARAMS = re.compile(r"^\s*([^(]*?)\s*\(\s*([^)]*)\)\s*(.*)$")


def split_type_name(full_type_name: Optional[str]) -> Tuple[str, Optional[int], Optional[int]]:
    """Split a declared type into its base name and numeric parameters.

    Args:
        full_type_name: Declared type, e.g. ``VARCHAR(20)`` or ``DECIMAL(10, 2)``

    Returns:
        Tuple of (base type name, first parameter, second parameter)
    """
    if not full_type_name:
        return "", None, None

    match = _TYPE_PARAMS.match(full_type_name)
    if not match:
        return full_type_name.strip(), None, None

    base, params, suffix = match.groups()
    if suffix:
        base = f"{base} {suffix}".strip()
    values = []
    for part in params.split(","):
        part = part.strip()
        if part.lstrip("-").isdigit():
            values.append(int(part))
        else:
            values.append(None)
    first = values[0] if values else None
    second = values[1] if len(values) > 1 else None
    return base, first, second


def classify_type(type_name: Optional[str]) -> DataKind:
    """Map a database type name to a DataKind.

    Args:
        type_name: Database type name (any engine)

    Returns:
        Mapped DataKind, UNKNOWN when nothing matches
    """
    if not type_name:
        return DataKind.UNKNOWN
    type_str = type_name.upper().strip()

    # Arrays and nested types
    if type_str.endswith("[]") or type_str.startswith("_") or type_str.startswith("LIST"):
        return DataKind.ARRAY
    if type_str.startswith(("STRUCT", "MAP", "RECORD", "UNION")):
        return DataKind.STRUCT

    # Document content
    if "JSON" in type_str or "XML" in type_str:
        return DataKind.CONTENT

    # Row identifiers
    if type_str in ("TID", "ROWID"):
        return DataKind.ROWID

    # Binary
    if "BLOB" in type_str or "BYTEA" in type_str or "BINARY" in type_str or type_str == "BIT":
        return DataKind.BINARY

    # Date/Time (before integers: INTERVAL contains INT)
    if "DATE" in type_str or "TIME" in type_str or "INTERVAL" in type_str:
        return DataKind.DATETIME

    # Boolean
    if "BOOL" in type_str:
        return DataKind.BOOLEAN

    # Geometric types would otherwise match INT
    if "POINT" in type_str or "GEOMETRY" in type_str or type_str.startswith("REG"):
        return DataKind.OBJECT

    # String types
    if (
        "CHAR" in type_str
        or "TEXT" in type_str
        or "CLOB" in type_str
        or "STRING" in type_str
        or type_str in ("NAME", "UUID", "ENUM", "INET", "CIDR")
    ):
        return DataKind.STRING

    # Numeric types
    if (
        "INT" in type_str
        or "SERIAL" in type_str
        or "NUM" in type_str
        or "DEC" in type_str
        or "REAL" in type_str
        or "FLOA" in type_str
        or "DOUB" in type_str
        or type_str in ("OID", "XID", "MONEY")
    ):
        return DataKind.NUMERIC

    return DataKind.UNKNOWN


def classify_value(value: Any) -> Tuple[str, DataKind]:
    """Infer a type name and DataKind from a Python value.

    Used when an engine reports no declared type for a result column.
    """
    if value is None:
        return "", DataKind.UNKNOWN
    if isinstance(value, bool):
        return "BOOLEAN", DataKind.BOOLEAN
    if isinstance(value, int):
        return "INTEGER", DataKind.NUMERIC
    if isinstance(value, float):
        return "REAL", DataKind.NUMERIC
    if isinstance(value, str):
        return "TEXT", DataKind.STRING
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "BLOB", DataKind.BINARY
    return type(value).__name__.upper(), DataKind.OBJECT
