"""Execution log and statistics endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user
from backend.app.db import get_db
from backend.app.models.execution_log import ExecutionLog
from backend.app.models.user import User
from backend.app.schemas.log import ExecutionLogResponse, StatsResponse
from backend.app.services.dashboard import dashboard_stats, recent_logs

router = APIRouter(tags=["logs"])


@router.get("/logs", response_model=list[ExecutionLogResponse])
async def get_logs(
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ExecutionLog]:
    return await recent_logs(db, user.id, limit=limit)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> StatsResponse:
    return await dashboard_stats(db, user.id)
