from __future__ import annotations

import enum
import struct
from typing import Any, Sequence

from psycopg.types.numeric import Float4, Int4

from tablesync.services.errors import UnsupportedColumnTypeError
from tablesync.services.sync_log import SyncLog

DEBUG_VALUE_LIMIT = 100


class ColumnType(enum.Enum):
    GEOMETRY = "geometry"
    INT4 = "int4"
    FLOAT8 = "float8"
    BOOL = "bool"
    VARCHAR = "varchar"
    UNSUPPORTED = "unsupported"


_BY_NAME = {t.value: t for t in ColumnType if t is not ColumnType.UNSUPPORTED}


def resolve_column_type(type_name: str) -> ColumnType:
    return _BY_NAME.get((type_name or "").strip().lower(), ColumnType.UNSUPPORTED)


def to_float32(value: float) -> float:
    # float8 columns are written as single precision
    return struct.unpack("f", struct.pack("f", value))[0]


def _read_int4(value: Any) -> Int4:
    return Int4(0 if value is None else int(value))


def _read_float8(value: Any) -> Float4:
    return Float4(to_float32(0.0 if value is None else float(value)))


def _read_bool(value: Any) -> bool:
    return False if value is None else bool(value)


def _read_varchar(value: Any) -> str | None:
    return None if value is None else str(value)


def _read_geometry(value: Any) -> Any:
    return value


_READERS = {
    ColumnType.GEOMETRY: _read_geometry,
    ColumnType.INT4: _read_int4,
    ColumnType.FLOAT8: _read_float8,
    ColumnType.BOOL: _read_bool,
    ColumnType.VARCHAR: _read_varchar,
}


def _truncate(value: str | None) -> str | None:
    if value is None or len(value) <= DEBUG_VALUE_LIMIT:
        return value
    return value[:DEBUG_VALUE_LIMIT] + "..."


def copy_column(
    row: Sequence[Any],
    params: list[Any],
    index: int,
    column: str,
    column_type: ColumnType,
    type_name: str,
    label: str,
    log: SyncLog,
) -> None:
    """
    Copy row[index] into the next destination parameter slot.

    Scalar NULLs (int4, float8, bool) become 0, 0.0 and False; varchar and
    geometry NULLs stay NULL.
    """
    reader = _READERS.get(column_type)
    if reader is None:
        raise UnsupportedColumnTypeError(column, type_name, label)

    value = reader(row[index])
    if column_type is ColumnType.VARCHAR and log.debug:
        log.verbose("[%s] column %s = %r (%s)", label, column, _truncate(value), type_name)
    params.append(value)
