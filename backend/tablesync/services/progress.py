from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import NamedTuple

from tablesync.services.sync_log import SyncLog

REPORT_EVERY = 100


def _now_ms() -> int:
    return int(time.time() * 1000)


class ThroughputSnapshot(NamedTuple):
    rows: int
    elapsed_seconds: float
    rows_per_second: float


@dataclass
class RunProgress:
    label: str
    rows_processed: int = 0
    start_ms: int = field(default_factory=_now_ms)

    def record_row(self) -> None:
        self.rows_processed += 1

    def snapshot(self) -> ThroughputSnapshot:
        elapsed = (_now_ms() - self.start_ms) / 1000.0
        if elapsed > 0:
            rate = self.rows_processed / elapsed
        else:
            rate = math.inf if self.rows_processed else math.nan
        return ThroughputSnapshot(self.rows_processed, elapsed, rate)

    def maybe_report_throughput(self, log: SyncLog) -> bool:
        if self.rows_processed % REPORT_EVERY != 0:
            return False
        self._report(log)
        return True

    def final_report(self, log: SyncLog) -> ThroughputSnapshot:
        return self._report(log)

    def _report(self, log: SyncLog) -> ThroughputSnapshot:
        snap = self.snapshot()
        log.line(
            "[%s] %d rows in %.3f s (%.2f rows/s)",
            self.label,
            snap.rows,
            snap.elapsed_seconds,
            snap.rows_per_second,
        )
        return snap
