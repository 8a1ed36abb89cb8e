from __future__ import annotations

from typing import Optional

import psycopg
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from tablesync.config.config_loader import ConnectionTargetModel
from tablesync.services import postgres_service
from tablesync.services.errors import SyncConnectionError, SyncError
from tablesync.services.sync_log import SyncLog

router = APIRouter(prefix="/api/targets", tags=["targets"])


class TargetTestResponse(BaseModel):
    success: bool
    error: Optional[str] = None


class ProbeRequest(BaseModel):
    target: ConnectionTargetModel
    query: str = Field(..., min_length=1)
    label: str = "probe"


class ProbeResponse(BaseModel):
    label: str
    maxId: int
    found: bool


@router.post("/test", response_model=TargetTestResponse)
def test_target(target: ConnectionTargetModel) -> TargetTestResponse:
    try:
        postgres_service.test_connection(target.to_target())
    except (SyncConnectionError, psycopg.Error) as exc:
        return TargetTestResponse(success=False, error=str(exc))
    return TargetTestResponse(success=True)


@router.post("/probe", response_model=ProbeResponse)
def probe_target(request: ProbeRequest) -> ProbeResponse:
    try:
        max_id = postgres_service.probe_max(
            request.target.to_target(), request.query, request.label, SyncLog()
        )
    except SyncConnectionError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except (SyncError, psycopg.Error) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return ProbeResponse(label=request.label, maxId=max_id, found=max_id != postgres_service.NOT_FOUND)
