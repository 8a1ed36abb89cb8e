from __future__ import annotations

import sqlite3
from datetime import datetime

from tablesync.db.session import get_connection, init_db
from tablesync.models.sync_run import SyncRunRecord, SyncRunResult


def _to_record(row: sqlite3.Row) -> SyncRunRecord:
    update_needed = row["update_needed"]
    return SyncRunRecord(
        id=row["id"],
        label=row["label"],
        status=row["status"],
        rows_processed=row["rows_processed"] or 0,
        source_max=row["source_max"],
        dest_max=row["dest_max"],
        update_needed=None if update_needed is None else bool(update_needed),
        started_at=datetime.fromisoformat(row["started_at"]),
        completed_at=datetime.fromisoformat(row["completed_at"]),
        last_error=row["last_error"],
    )


def record_run(result: SyncRunResult) -> SyncRunRecord:
    init_db()
    update_needed = None if result.update_needed is None else int(result.update_needed)
    with get_connection() as connection:
        cursor = connection.execute(
            """
            INSERT INTO sync_runs (label, status, rows_processed, source_max, dest_max,
                                   update_needed, started_at, completed_at, last_error)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                result.label,
                result.status,
                result.rows_processed,
                result.source_max,
                result.dest_max,
                update_needed,
                result.started_at.isoformat(),
                result.completed_at.isoformat(),
                result.error,
            ),
        )
        connection.commit()
        run_id = cursor.lastrowid
        row = connection.execute("SELECT * FROM sync_runs WHERE id = ?", (run_id,)).fetchone()

    return _to_record(row)


def list_runs(label: str | None = None, limit: int = 50) -> list[SyncRunRecord]:
    init_db()
    with get_connection() as connection:
        if label:
            rows = connection.execute(
                "SELECT * FROM sync_runs WHERE label = ? ORDER BY id DESC LIMIT ?",
                (label, limit),
            ).fetchall()
        else:
            rows = connection.execute(
                "SELECT * FROM sync_runs ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()

    return [_to_record(r) for r in rows]


def get_last_run(label: str) -> SyncRunRecord | None:
    runs = list_runs(label=label, limit=1)
    return runs[0] if runs else None
