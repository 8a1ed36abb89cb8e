from __future__ import annotations

import os
import sqlite3
from pathlib import Path

DB_PATH = Path(os.environ.get("TABLESYNC_DB_PATH") or Path(__file__).resolve().parent / "history.db")


def get_connection() -> sqlite3.Connection:
    connection = sqlite3.connect(DB_PATH)
    connection.row_factory = sqlite3.Row
    return connection


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return any(r["name"] == column for r in rows)


def init_db() -> None:
    Path(DB_PATH).parent.mkdir(parents=True, exist_ok=True)
    with get_connection() as connection:
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS sync_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                label TEXT NOT NULL,
                status TEXT NOT NULL,
                rows_processed INTEGER DEFAULT 0,
                source_max INTEGER,
                dest_max INTEGER,
                started_at TEXT NOT NULL,
                completed_at TEXT NOT NULL,
                last_error TEXT
            )
            """
        )

        # Add update_needed column if missing (migration)
        if not _column_exists(connection, "sync_runs", "update_needed"):
            connection.execute("ALTER TABLE sync_runs ADD COLUMN update_needed INTEGER")

        connection.execute("CREATE INDEX IF NOT EXISTS ix_sync_runs_label ON sync_runs (label, id)")
        connection.commit()
