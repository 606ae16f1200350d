"""Task records and their lifecycle.

Status only ever moves pending -> processing -> completed | failed. The
pending -> processing step is a conditional update so two callers can never
both claim the same task.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import utcnow
from backend.app.errors import NotFoundError, TaskStateError
from backend.app.models.task import Task, TaskPriority, TaskStatus, can_transition

logger = logging.getLogger(__name__)


async def create_task(
    db: AsyncSession,
    user_id: str,
    title: str,
    description: str,
    priority: TaskPriority = TaskPriority.MEDIUM,
) -> Task:
    now = utcnow()
    task = Task(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        description=description,
        status=TaskStatus.PENDING,
        priority=priority,
        generated_files_count=0,
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    await db.flush()
    return task


async def get_task(db: AsyncSession, task_id: str, user_id: str) -> Task:
    result = await db.execute(
        select(Task)
        .where(Task.id == task_id, Task.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def claim_task(db: AsyncSession, task_id: str, user_id: str) -> Task:
    """Atomically move a pending task to processing.

    Raises ``NotFoundError`` for an unknown task and ``TaskStateError`` if the
    task already left pending (another caller claimed it first).
    """
    result = await db.execute(
        update(Task)
        .where(
            Task.id == task_id,
            Task.user_id == user_id,
            Task.status == TaskStatus.PENDING,
        )
        .values(status=TaskStatus.PROCESSING, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    task = await get_task(db, task_id, user_id)
    if result.rowcount != 1:
        logger.info("[PROCESS] Task %s not claimable (status=%s)", task_id, task.status)
        raise TaskStateError(f"Task is already {task.status}")
    return task


def set_status(task: Task, status: TaskStatus, result: str | None = None) -> None:
    """Apply a lifecycle transition in memory. The caller commits."""
    if not can_transition(task.status, status):
        raise TaskStateError(f"Cannot move task from {task.status} to {status}")
    task.status = status
    if result is not None:
        task.result = result
    task.updated_at = utcnow()
