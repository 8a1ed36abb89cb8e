from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence

import psycopg

from tablesync.models.sync_job import ConnectionTarget
from tablesync.services.errors import ProbeParseError, SyncConfigError, SyncConnectionError
from tablesync.services.sync_log import SyncLog

logger = logging.getLogger(__name__)

NOT_FOUND = -1

_INTEGER = re.compile(r"[+-]?[0-9]+")


def connect(
    target: ConnectionTarget,
    *,
    autocommit: bool = False,
    read_only: bool = False,
    cursor_factory: Optional[type] = None,
) -> psycopg.Connection:
    kwargs: dict[str, Any] = {"autocommit": autocommit}
    if target.username:
        kwargs["user"] = target.username
    if target.password:
        kwargs["password"] = target.password
    if cursor_factory is not None:
        kwargs["cursor_factory"] = cursor_factory
    try:
        conn = psycopg.connect(target.url, **kwargs)
    except Exception as exc:
        raise SyncConnectionError(f"Unable to connect to {target.url}: {exc}") from exc
    if read_only:
        conn.read_only = True
    return conn


def test_connection(target: ConnectionTarget) -> None:
    conn = connect(target)
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
    finally:
        conn.close()


def probe_max(target: ConnectionTarget, query: str, label: str, log: SyncLog) -> int:
    """
    Run a single-column max-id query and return its value as an int.
    Returns NOT_FOUND (-1) only when the query produced no rows; the last row wins
    when there are several.
    """
    conn = connect(target)
    try:
        with conn.cursor() as cur:
            cur.execute(query)
            columns = cur.description or []
            if len(columns) != 1:
                raise SyncConfigError(
                    f"Max id query for '{label}' did not return a single column "
                    f"(got {len(columns)}): {query}"
                )

            result = NOT_FOUND
            for row in cur:
                if log.debug:
                    for col, value in zip(columns, row):
                        log.verbose("[%s] probe column %s = %r", label, col.name, value)
                result = _parse_max_id(row[0], label)
    finally:
        conn.close()

    log.line("[%s] max id = %s", label, result)
    return result


def _parse_max_id(value: Any, label: str) -> int:
    if value is None:
        raise ProbeParseError(f"Max id query for '{label}' returned NULL")
    text = str(value).strip()
    if not _INTEGER.fullmatch(text):
        raise ProbeParseError(f"Max id for '{label}' is not an integer: {value!r}")
    return int(text)


def resolve_type_names(conn: psycopg.Connection, columns: Sequence[Any]) -> list[str]:
    """
    Map result columns to their postgres type names (pg_type.typname), e.g. int4, varchar.
    Extension types such as PostGIS geometry have no fixed OID, so the catalog is asked.
    """
    oids = sorted({int(c.type_code) for c in columns})
    with conn.cursor() as cur:
        cur.execute(
            "SELECT oid, typname FROM pg_catalog.pg_type WHERE oid = ANY(%s::oid[])",
            (oids,),
        )
        names = {int(oid): str(typname) for (oid, typname) in cur.fetchall()}
    return [names.get(int(c.type_code), f"oid:{c.type_code}") for c in columns]


def column_names(columns: Iterable[Any]) -> list[str]:
    return [c.name for c in columns]
