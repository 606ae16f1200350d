"""Task processor — drives one task from pending to a terminal state.

    claim task (pending -> processing) + claim agent + "started" log   [one commit]
    call the model with the analysis prompt
    success: completed + result + usage row | failure: failed + error log
    release the agent (always)

A single attempt is made; failures are recorded on the task, never retried.
"""

import logging
import math
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import utcnow
from backend.app.models.api_usage import ApiUsage
from backend.app.models.execution_log import LogType
from backend.app.models.task import TaskStatus
from backend.app.services.agent_pool import claim_agent, release_agent
from backend.app.services.audit import append_log
from backend.app.services.broadcaster import (
    INSERT,
    UPDATE,
    agent_change_event,
    broadcast_all,
    broadcast_event,
    log_created_event,
    task_change_event,
    usage_created_event,
)
from backend.app.services.llm_client import GeminiClient
from backend.app.services.prompt_engine import PromptEngine
from backend.app.services.task_store import claim_task, get_task, set_status

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

ANALYSIS_TEMPERATURE = 0.7
ANALYSIS_MAX_TOKENS = 2048
LOG_PREVIEW_CHARS = 500
EMPTY_RESULT = "No response generated"


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text) / 4)


class TaskProcessor:
    def __init__(
        self,
        session_factory: SessionFactory,
        llm: GeminiClient,
        prompts: PromptEngine,
        *,
        estimated_cost_per_call: float = 0.001,
        agent_claim_attempts: int = 3,
    ) -> None:
        self._session_factory = session_factory
        self._llm = llm
        self._prompts = prompts
        self._estimated_cost = estimated_cost_per_call
        self._agent_claim_attempts = agent_claim_attempts

    async def process(self, task_id: str, user_id: str) -> str:
        """Run the task once and return the id of the agent that handled it."""
        async with self._session_factory() as db:
            try:
                task = await claim_task(db, task_id, user_id)
                agent, created = await claim_agent(
                    db, user_id, task_id, max_attempts=self._agent_claim_attempts
                )
                started = await append_log(
                    db,
                    task_id,
                    LogType.INFO,
                    f"Started processing task: {task.title}",
                    agent_id=agent.id,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            agent_id = agent.id
            description = task.description
            events = [
                task_change_event(task),
                agent_change_event(agent, INSERT if created else UPDATE),
                log_created_event(started, user_id),
            ]
        await broadcast_all(events)
        logger.info("[PROCESS] Task %s claimed by agent %s", task_id, agent_id)

        try:
            response = await self._llm.generate(
                self._prompts.render_task_analysis(description),
                temperature=ANALYSIS_TEMPERATURE,
                max_output_tokens=ANALYSIS_MAX_TOKENS,
            )
            await self._record_success(
                task_id, user_id, agent_id, response.text or EMPTY_RESULT, response.model
            )
        except Exception as exc:
            logger.warning("[PROCESS] Task %s failed: %s", task_id, exc)
            await self._record_failure(task_id, user_id, agent_id, str(exc) or "Unknown error")
        finally:
            await self._release(agent_id)

        return agent_id

    async def _record_success(
        self, task_id: str, user_id: str, agent_id: str, result: str, model: str
    ) -> None:
        async with self._session_factory() as db:
            entry = await append_log(
                db,
                task_id,
                LogType.INFO,
                f"AI Response: {result[:LOG_PREVIEW_CHARS]}...",
                agent_id=agent_id,
            )
            task = await get_task(db, task_id, user_id)
            set_status(task, TaskStatus.COMPLETED, result=result)
            usage = ApiUsage(
                id=str(uuid.uuid4()),
                user_id=user_id,
                task_id=task_id,
                model=model,
                tokens_used=estimate_tokens(result),
                estimated_cost=self._estimated_cost,
                created_at=utcnow(),
            )
            db.add(usage)
            await db.commit()
            events = [
                log_created_event(entry, user_id),
                task_change_event(task),
                usage_created_event(usage),
            ]
        await broadcast_all(events)
        logger.info("[PROCESS] Task %s completed (%d chars)", task_id, len(result))

    async def _record_failure(self, task_id: str, user_id: str, agent_id: str, message: str) -> None:
        async with self._session_factory() as db:
            task = await get_task(db, task_id, user_id)
            set_status(task, TaskStatus.FAILED)
            entry = await append_log(
                db, task_id, LogType.ERROR, f"Task failed: {message}", agent_id=agent_id
            )
            await db.commit()
            events = [task_change_event(task), log_created_event(entry, user_id)]
        await broadcast_all(events)

    async def _release(self, agent_id: str) -> None:
        async with self._session_factory() as db:
            agent = await release_agent(db, agent_id)
            await db.commit()
        if agent is not None:
            await broadcast_event(agent_change_event(agent))
