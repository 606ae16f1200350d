"""Execution log writer. The log is append-only."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import utcnow
from backend.app.models.execution_log import ExecutionLog, LogType


async def append_log(
    db: AsyncSession,
    task_id: str,
    log_type: LogType,
    message: str,
    agent_id: str | None = None,
) -> ExecutionLog:
    entry = ExecutionLog(
        id=str(uuid.uuid4()),
        task_id=task_id,
        agent_id=agent_id,
        log_type=log_type,
        message=message,
        created_at=utcnow(),
    )
    db.add(entry)
    await db.flush()
    return entry
