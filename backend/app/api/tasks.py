"""Task endpoints — submit, inspect, and drive tasks through the pipeline."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user, get_pipeline
from backend.app.db import get_db
from backend.app.models.execution_log import ExecutionLog
from backend.app.models.generated_file import GeneratedFile
from backend.app.models.task import Task
from backend.app.models.user import User
from backend.app.schemas.generated_file import GeneratedFileResponse, GenerateResponse
from backend.app.schemas.log import ExecutionLogResponse
from backend.app.schemas.task import (
    CommitRequest,
    CommitResponse,
    ProcessResponse,
    TaskCreate,
    TaskResponse,
)
from backend.app.services.background import spawn_background_task
from backend.app.services.broadcaster import INSERT, broadcast_event, task_change_event
from backend.app.services.dashboard import list_tasks
from backend.app.services.pipeline import Pipeline
from backend.app.services.task_store import create_task, get_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


async def _process_in_background(pipeline: Pipeline, task_id: str, user_id: str) -> None:
    try:
        await pipeline.processor.process(task_id, user_id)
    except Exception:
        logger.exception("[PROCESS] Unhandled error in background processing of %s", task_id)


@router.get("", response_model=list[TaskResponse])
async def get_tasks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[Task]:
    return await list_tasks(db, user.id)


@router.post("", response_model=TaskResponse, status_code=201)
async def submit_task(
    data: TaskCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Task:
    task = await create_task(db, user.id, data.title, data.description, data.priority)
    # Commit now: the background processor reads the task through its own session
    await db.commit()
    await broadcast_event(task_change_event(task, INSERT))

    if data.auto_process:
        spawn_background_task(_process_in_background(pipeline, task.id, user.id))
    return task


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task_detail(
    task_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Task:
    return await get_task(db, task_id, user.id)


@router.post("/{task_id}/process", response_model=ProcessResponse)
async def process_task(
    task_id: str,
    user: User = Depends(get_current_user),
    pipeline: Pipeline = Depends(get_pipeline),
) -> dict:
    agent_id = await pipeline.processor.process(task_id, user.id)
    return {"success": True, "agent_id": agent_id}


@router.post("/{task_id}/generate", response_model=GenerateResponse)
async def generate_code(
    task_id: str,
    user: User = Depends(get_current_user),
    pipeline: Pipeline = Depends(get_pipeline),
) -> dict:
    result = await pipeline.generator.generate(task_id, user.id)
    return {
        "success": True,
        "files_generated": len(result.files),
        "files": result.files,
        "explanation": result.explanation,
        "parsed": result.parsed,
    }


@router.get("/{task_id}/files", response_model=list[GeneratedFileResponse])
async def get_task_files(
    task_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[GeneratedFile]:
    await get_task(db, task_id, user.id)
    result = await db.execute(
        select(GeneratedFile)
        .where(GeneratedFile.task_id == task_id)
        .order_by(GeneratedFile.created_at)
    )
    return list(result.scalars().all())


@router.get("/{task_id}/logs", response_model=list[ExecutionLogResponse])
async def get_task_logs(
    task_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ExecutionLog]:
    await get_task(db, task_id, user.id)
    result = await db.execute(
        select(ExecutionLog)
        .where(ExecutionLog.task_id == task_id)
        .order_by(ExecutionLog.created_at)
    )
    return list(result.scalars().all())


@router.post("/{task_id}/commit", response_model=CommitResponse)
async def commit_task(
    task_id: str,
    data: CommitRequest | None = None,
    user: User = Depends(get_current_user),
    pipeline: Pipeline = Depends(get_pipeline),
) -> dict:
    result = await pipeline.publisher.publish(
        task_id, user.id, data.commit_message if data else None
    )
    return {
        "success": True,
        "commit_sha": result.commit_sha,
        "commit_url": result.commit_url,
        "files_committed": result.files_committed,
    }
