"""Read-side queries behind the dashboard: snapshot rows and statistics."""

from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.agent import Agent
from backend.app.models.api_usage import ApiUsage
from backend.app.models.execution_log import ExecutionLog
from backend.app.models.task import Task
from backend.app.schemas.agent import AgentResponse
from backend.app.schemas.log import ApiUsageResponse, ExecutionLogResponse, StatsResponse
from backend.app.schemas.task import TaskResponse
from backend.app.services.realtime import MAX_LOGS, compute_stats


async def list_tasks(db: AsyncSession, user_id: str) -> list[Task]:
    result = await db.execute(
        select(Task).where(Task.user_id == user_id).order_by(desc(Task.created_at))
    )
    return list(result.scalars().all())


async def list_agents(db: AsyncSession, user_id: str) -> list[Agent]:
    result = await db.execute(
        select(Agent).where(Agent.user_id == user_id).order_by(Agent.created_at)
    )
    return list(result.scalars().all())


async def recent_logs(db: AsyncSession, user_id: str, limit: int = MAX_LOGS) -> list[ExecutionLog]:
    result = await db.execute(
        select(ExecutionLog)
        .join(Task, ExecutionLog.task_id == Task.id)
        .where(Task.user_id == user_id)
        .order_by(desc(ExecutionLog.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_usage(db: AsyncSession, user_id: str) -> list[ApiUsage]:
    result = await db.execute(select(ApiUsage).where(ApiUsage.user_id == user_id))
    return list(result.scalars().all())


async def dashboard_stats(db: AsyncSession, user_id: str) -> StatsResponse:
    tasks = await list_tasks(db, user_id)
    usage = await list_usage(db, user_id)
    return compute_stats(
        ({"status": t.status} for t in tasks), (u.estimated_cost for u in usage)
    )


async def load_snapshot(db: AsyncSession, user_id: str) -> dict[str, list[dict[str, Any]]]:
    """Everything a freshly connected dashboard needs, serialized."""
    return {
        "tasks": [
            TaskResponse.model_validate(t).model_dump() for t in await list_tasks(db, user_id)
        ],
        "agents": [
            AgentResponse.model_validate(a).model_dump() for a in await list_agents(db, user_id)
        ],
        "logs": [
            ExecutionLogResponse.model_validate(e).model_dump()
            for e in await recent_logs(db, user_id)
        ],
        "usage": [
            ApiUsageResponse.model_validate(u).model_dump() for u in await list_usage(db, user_id)
        ],
    }
