from __future__ import annotations

import enum
from datetime import datetime, timezone

import psycopg

from tablesync.models.sync_job import SyncJob
from tablesync.models.sync_run import SyncRunResult
from tablesync.services import page_pump, postgres_service
from tablesync.services.errors import InsertError, SyncConfigError
from tablesync.services.sync_log import SyncLog


class JobState(enum.Enum):
    IDLE = "idle"
    PROBING_SOURCE_MAX = "probing_source_max"
    PROBING_DEST_MAX = "probing_dest_max"
    DECIDED = "decided"
    PUMPING = "pumping"
    REPORTED = "reported"
    DONE = "done"
    FAILED = "failed"


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class SyncJobRunner:
    """Runs one SyncJob: probe both max ids, then pump source rows into the destination."""

    def __init__(self, log: SyncLog) -> None:
        self.log = log
        self.state = JobState.IDLE
        self.result: SyncRunResult | None = None

    def _enter(self, job: SyncJob, state: JobState) -> None:
        self.log.verbose("[%s] %s -> %s", job.label, self.state.value, state.value)
        self.state = state

    def run(self, job: SyncJob) -> SyncRunResult:
        started_at = _utc_now()
        self.state = JobState.IDLE
        self.result = SyncRunResult(
            label=job.label,
            status="failed",
            started_at=started_at,
            completed_at=started_at,
        )

        if job.disabled:
            self.log.line("[%s] job is disabled, skipping", job.label)
            self._enter(job, JobState.DONE)
            self.result.status = "skipped"
            self.result.completed_at = _utc_now()
            return self.result

        try:
            self._run(job, self.result)
        except Exception as exc:
            self._enter(job, JobState.FAILED)
            self.result.error = str(exc)
            if isinstance(exc, InsertError):
                self.result.rows_processed = exc.row_number
            self.result.completed_at = _utc_now()
            # the pump already logged the insert failure with its traceback
            self.log.error(
                "[%s] sync failed: %s", job.label, exc, exc_info=not isinstance(exc, InsertError)
            )
            raise

        self._enter(job, JobState.DONE)
        self.result.status = "completed"
        self.result.completed_at = _utc_now()
        return self.result

    def _run(self, job: SyncJob, result: SyncRunResult) -> None:
        self._enter(job, JobState.PROBING_SOURCE_MAX)
        source_max = postgres_service.probe_max(job.source, job.source_max_query, job.label, self.log)
        if source_max == postgres_service.NOT_FOUND:
            raise SyncConfigError(f"Failed to find source max id for '{job.label}'")
        result.source_max = source_max

        self._enter(job, JobState.PROBING_DEST_MAX)
        dest_max = postgres_service.probe_max(job.destination, job.dest_max_query, job.label, self.log)
        if dest_max == postgres_service.NOT_FOUND:
            raise SyncConfigError(f"Failed to find destination max id for '{job.label}'")
        result.dest_max = dest_max

        self._enter(job, JobState.DECIDED)
        result.update_needed = dest_max < source_max
        if result.update_needed:
            self.log.line(
                "[%s] update needed: source max %d, destination max %d", job.label, source_max, dest_max
            )
        else:
            # advisory only: the select query's own predicate decides what gets copied
            self.log.line(
                "[%s] no update needed: source max %d, destination max %d", job.label, source_max, dest_max
            )

        self._enter(job, JobState.PUMPING)
        with postgres_service.connect(job.source, read_only=True) as source_conn, postgres_service.connect(
            job.destination, autocommit=True, cursor_factory=psycopg.ClientCursor
        ) as dest_conn:
            result.rows_processed = page_pump.pump(
                source_conn,
                dest_conn,
                job.source_select_query,
                job.source_paging_size,
                dest_max,
                job.dest_insert_query,
                job.label,
                self.log,
            )

        self._enter(job, JobState.REPORTED)
        self.log.line("[%s] sync complete, %d rows processed", job.label, result.rows_processed)
