from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class SyncRunResult:
    label: str
    status: str  # skipped | completed | failed
    started_at: datetime
    completed_at: datetime
    rows_processed: int = 0
    source_max: int | None = None
    dest_max: int | None = None
    update_needed: bool | None = None
    error: str | None = None


@dataclass
class SyncRunRecord:
    id: int
    label: str
    status: str
    rows_processed: int
    source_max: int | None
    dest_max: int | None
    update_needed: bool | None
    started_at: datetime
    completed_at: datetime
    last_error: str | None
