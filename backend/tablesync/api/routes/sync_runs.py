from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from tablesync.config.config_loader import SyncJobModel
from tablesync.models.sync_run import SyncRunResult
from tablesync.services import run_history, sync_engine

router = APIRouter(prefix="/api/sync-runs", tags=["sync-runs"])


# -------------------------
# API models
# -------------------------

class JobResult(BaseModel):
    label: str
    status: Literal["skipped", "completed", "failed"]
    rowsProcessed: int = 0
    sourceMax: Optional[int] = None
    destMax: Optional[int] = None
    updateNeeded: Optional[bool] = None
    error: Optional[str] = None


class SyncRunProgress(BaseModel):
    runId: int
    status: Literal["pending", "running", "completed", "failed"]
    jobsTotal: int = 0
    jobsCompleted: int = 0
    rowsProcessed: int = 0
    results: list[JobResult] = Field(default_factory=list)
    error: Optional[str] = None
    startedAt: Optional[str] = None
    completedAt: Optional[str] = None


class SyncRunRequest(BaseModel):
    debug: bool = False
    recordHistory: bool = True
    jobs: list[SyncJobModel] = Field(..., min_length=1)


class HistoryEntry(BaseModel):
    id: int
    label: str
    status: str
    rowsProcessed: int
    sourceMax: Optional[int] = None
    destMax: Optional[int] = None
    updateNeeded: Optional[bool] = None
    startedAt: str
    completedAt: str
    lastError: Optional[str] = None


# -------------------------
# In-memory progress store
# -------------------------

_PROGRESS: Dict[int, SyncRunProgress] = {}
_TASKS: Dict[int, asyncio.Task] = {}
_RUN_IDS = itertools.count(1)


def _utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _to_job_result(result: SyncRunResult) -> JobResult:
    return JobResult(
        label=result.label,
        status=result.status,
        rowsProcessed=result.rows_processed,
        sourceMax=result.source_max,
        destMax=result.dest_max,
        updateNeeded=result.update_needed,
        error=result.error,
    )


async def _run_jobs(run_id: int, payload: SyncRunRequest) -> None:
    progress = _PROGRESS[run_id]
    progress.status = "running"
    progress.startedAt = _utc_now_iso()

    def _on_result(result: SyncRunResult) -> None:
        progress.results.append(_to_job_result(result))
        progress.jobsCompleted += 1
        progress.rowsProcessed += result.rows_processed
        if payload.recordHistory:
            run_history.record_run(result)

    jobs = [j.to_job() for j in payload.jobs]
    try:
        await asyncio.to_thread(sync_engine.run_all, jobs, payload.debug, _on_result)
    except Exception as exc:
        progress.status = "failed"
        progress.error = str(exc)
        progress.completedAt = _utc_now_iso()
        return

    progress.status = "completed"
    progress.completedAt = _utc_now_iso()


# -------------------------
# Routes
# -------------------------

@router.post("", response_model=SyncRunProgress)
async def start_sync_run(payload: SyncRunRequest) -> SyncRunProgress:
    labels = [j.label for j in payload.jobs]
    if len(set(labels)) != len(labels):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Job labels must be unique within a run.",
        )

    run_id = next(_RUN_IDS)
    progress = SyncRunProgress(runId=run_id, status="pending", jobsTotal=len(payload.jobs))

    _PROGRESS[run_id] = progress
    _TASKS[run_id] = asyncio.create_task(_run_jobs(run_id, payload))

    return progress


@router.get("", response_model=list[SyncRunProgress])
def list_sync_runs() -> list[SyncRunProgress]:
    return list(_PROGRESS.values())


@router.get("/history", response_model=list[HistoryEntry])
def list_history(
    label: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=1000),
) -> list[HistoryEntry]:
    return [
        HistoryEntry(
            id=r.id,
            label=r.label,
            status=r.status,
            rowsProcessed=r.rows_processed,
            sourceMax=r.source_max,
            destMax=r.dest_max,
            updateNeeded=r.update_needed,
            startedAt=r.started_at.isoformat(),
            completedAt=r.completed_at.isoformat(),
            lastError=r.last_error,
        )
        for r in run_history.list_runs(label=label, limit=limit)
    ]


@router.get("/{run_id}", response_model=SyncRunProgress)
def get_sync_run(run_id: int) -> SyncRunProgress:
    progress = _PROGRESS.get(run_id)
    if not progress:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sync run not found")
    return progress


@router.delete("/completed", response_model=dict)
def clear_completed() -> dict:
    finished_ids = [rid for rid, p in _PROGRESS.items() if p.status in {"completed", "failed"}]
    for rid in finished_ids:
        _PROGRESS.pop(rid, None)
        _TASKS.pop(rid, None)
    return {"success": True, "cleared": finished_ids}
