"""Column value conversion and the PEP 249 type objects.

The gateway sends every value as text (or raw bytes for binary columns)
together with a type name such as ``INT64`` or ``VARCHAR``.  Only a small
mapping onto Python types is done here; anything unrecognised stays ``str``.
"""

from __future__ import annotations

import datetime
import decimal
import time
from typing import Any, Callable, Optional

from psdb.codec import ColumnDescriptor
from psdb.exceptions import DataError

Converter = Callable[[bytes], Any]

INTEGER_TYPES = frozenset(
    {
        "INT8", "UINT8", "INT16", "UINT16", "INT24", "UINT24",
        "INT32", "UINT32", "INT64", "UINT64", "YEAR",
    }
)
FLOAT_TYPES = frozenset({"FLOAT32", "FLOAT64"})
DECIMAL_TYPES = frozenset({"DECIMAL"})
DATE_TYPES = frozenset({"DATE"})
DATETIME_TYPES = frozenset({"DATETIME", "TIMESTAMP"})
BINARY_TYPES = frozenset({"BLOB", "VARBINARY", "BINARY", "BIT", "GEOMETRY"})
TEXT_TYPES = frozenset(
    {"TEXT", "VARCHAR", "CHAR", "ENUM", "SET", "JSON", "TIME", "HEXNUM", "HEXVAL", "BITNUM"}
)

# MySQL NOT_NULL_FLAG
NOT_NULL_FLAG = 1


def _text(raw: bytes) -> str:
    return raw.decode("utf-8")


def _date(raw: bytes) -> datetime.date:
    return datetime.date.fromisoformat(raw.decode("ascii"))


def _datetime(raw: bytes) -> datetime.datetime:
    return datetime.datetime.fromisoformat(raw.decode("ascii"))


def _decimal(raw: bytes) -> decimal.Decimal:
    try:
        return decimal.Decimal(raw.decode("ascii"))
    except decimal.InvalidOperation as exc:
        raise ValueError(f"invalid decimal literal {raw!r}") from exc


def converter_for(type_name: str) -> Converter:
    """Return the function that turns a raw value of *type_name* into Python."""
    if type_name in INTEGER_TYPES:
        return int
    if type_name in FLOAT_TYPES:
        return float
    if type_name in DECIMAL_TYPES:
        return _decimal
    if type_name in DATE_TYPES:
        return _date
    if type_name in DATETIME_TYPES:
        return _datetime
    if type_name in BINARY_TYPES:
        return bytes
    return _text


def convert(column: ColumnDescriptor, raw: Optional[bytes]) -> Any:
    """Convert one raw column value; ``None`` stays ``None``."""
    if raw is None or column.type == "NULL_TYPE":
        return None
    try:
        return converter_for(column.type)(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise DataError(
            f"cannot convert value of column {column.name!r} ({column.type}): {exc}"
        ) from exc


# ---------------------------------------------------------------------------
# PEP 249 type objects and constructors
# ---------------------------------------------------------------------------


class DBAPITypeObject:
    """Compares equal to every gateway type name in its group."""

    def __init__(self, *type_names: str) -> None:
        self.values = frozenset(type_names)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return other in self.values
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        return hash(self.values)


STRING = DBAPITypeObject(*TEXT_TYPES)
BINARY = DBAPITypeObject(*BINARY_TYPES)
NUMBER = DBAPITypeObject(*INTEGER_TYPES, *FLOAT_TYPES, *DECIMAL_TYPES)
DATETIME = DBAPITypeObject(*DATE_TYPES, *DATETIME_TYPES, "TIME")
ROWID = DBAPITypeObject()

Date = datetime.date
Time = datetime.time
Timestamp = datetime.datetime
Binary = bytes


def DateFromTicks(ticks: float) -> datetime.date:  # noqa: N802
    return Date(*time.localtime(ticks)[:3])


def TimeFromTicks(ticks: float) -> datetime.time:  # noqa: N802
    return Time(*time.localtime(ticks)[3:6])


def TimestampFromTicks(ticks: float) -> datetime.datetime:  # noqa: N802
    return Timestamp(*time.localtime(ticks)[:6])
