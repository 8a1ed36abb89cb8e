from __future__ import annotations

import re
from typing import Any

import psycopg

from tablesync.services import postgres_service
from tablesync.services.errors import InsertError, SyncConfigError
from tablesync.services.progress import RunProgress
from tablesync.services.sync_log import SyncLog
from tablesync.services.type_dispatch import copy_column, resolve_column_type

CURSOR_NAME = "tablesync_pump"

# %s, %b, %t and their %(name)x forms; %% is a literal percent sign
_PLACEHOLDER = re.compile(r"%%|%(?:\((?P<name>[^)]+)\))?[sbt]")


def _placeholders(query: str) -> list[re.Match[str]]:
    return [m for m in _PLACEHOLDER.finditer(query) if m.group(0) != "%%"]


def count_placeholders(query: str) -> int:
    return len(_placeholders(query))


def _select_params(select_query: str, dest_max_id: int) -> tuple[int, ...] | dict[str, int] | None:
    # More than one placeholder is not supported; the driver reports the mismatch.
    found = _placeholders(select_query)
    if not found:
        return None
    name = found[0].group("name")
    if name is not None:
        return {name: dest_max_id}
    return (dest_max_id,)


def _statement_text(cur: Any, insert_query: str, params: list[Any]) -> str:
    try:
        return cur.mogrify(insert_query, params)
    except (psycopg.Error, TypeError, ValueError):
        return f"{insert_query} -- params: {params!r}"


def pump(
    source_conn: psycopg.Connection,
    dest_conn: psycopg.Connection,
    select_query: str,
    paging_size: int,
    dest_max_id: int,
    insert_query: str,
    label: str,
    log: SyncLog,
) -> int:
    """
    Stream every row of select_query from the source into insert_query on the destination.

    The select runs on one forward-only server-side cursor; paging_size only sets how many
    rows travel per round trip. Rows are inserted one at a time and the first failed insert
    aborts the pump. Returns the number of rows read from the source.
    """
    progress = RunProgress(label=label)
    params: list[Any] = []

    with source_conn.cursor(name=CURSOR_NAME, scrollable=False) as src, dest_conn.cursor() as dst:
        if paging_size > 0:
            src.itersize = paging_size
        src.execute(select_query, _select_params(select_query, dest_max_id))

        columns = src.description or []
        if not columns:
            raise SyncConfigError(f"Select query for '{label}' did not return any columns")

        names = postgres_service.column_names(columns)
        type_names = postgres_service.resolve_type_names(source_conn, columns)
        column_types = [resolve_column_type(t) for t in type_names]
        log.verbose("[%s] select columns: %s", label, list(zip(names, type_names)))

        for row in src:
            progress.record_row()
            progress.maybe_report_throughput(log)
            try:
                for index, name in enumerate(names):
                    copy_column(row, params, index, name, column_types[index], type_names[index], label, log)
                try:
                    dst.execute(insert_query, params)
                except psycopg.Error as exc:
                    statement = _statement_text(dst, insert_query, params)
                    log.error(
                        "[%s] insert failed at row %d: %s\n  statement: %s",
                        label,
                        progress.rows_processed,
                        exc,
                        statement,
                    )
                    raise InsertError(label, progress.rows_processed, statement) from exc
            finally:
                params.clear()

    progress.final_report(log)
    return progress.rows_processed
