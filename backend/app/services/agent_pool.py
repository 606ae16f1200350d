"""Agent pool — lazily created workers, each bound to at most one task.

Claiming is a conditional update (idle -> active) per candidate, so two
concurrent dispatches can never bind the same agent. Losing a race just
moves on to the next idle candidate; when none is left a fresh agent is
created already bound to the task.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import utcnow
from backend.app.models.agent import DEFAULT_AGENT_TYPE, Agent, AgentStatus
from backend.app.services.name_generator import generate_unique_name

logger = logging.getLogger(__name__)


async def _try_claim(db: AsyncSession, agent_id: str, task_id: str) -> bool:
    result = await db.execute(
        update(Agent)
        .where(Agent.id == agent_id, Agent.status == AgentStatus.IDLE)
        .values(status=AgentStatus.ACTIVE, current_task_id=task_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def claim_agent(
    db: AsyncSession, user_id: str, task_id: str, max_attempts: int = 3
) -> tuple[Agent, bool]:
    """Bind an idle agent of ``user_id`` to ``task_id``, creating one if needed.

    Returns the agent and whether it was newly created.
    """
    for attempt in range(max_attempts):
        result = await db.execute(
            select(Agent.id)
            .where(Agent.user_id == user_id, Agent.status == AgentStatus.IDLE)
            .order_by(Agent.created_at)
            .limit(max_attempts)
        )
        candidates = list(result.scalars().all())
        if not candidates:
            break
        for agent_id in candidates:
            if await _try_claim(db, agent_id, task_id):
                agent = await db.get(Agent, agent_id, populate_existing=True)
                logger.info("[POOL] Agent %s claimed for task %s", agent.name, task_id)
                return agent, False
        logger.info("[POOL] Lost the race for idle agents (round %d), retrying", attempt + 1)

    agent = Agent(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name=generate_unique_name(user_id, DEFAULT_AGENT_TYPE),
        type=DEFAULT_AGENT_TYPE,
        status=AgentStatus.ACTIVE,
        current_task_id=task_id,
        created_at=utcnow(),
    )
    db.add(agent)
    await db.flush()
    logger.info("[POOL] Created agent %s for task %s", agent.name, task_id)
    return agent, True


async def release_agent(db: AsyncSession, agent_id: str) -> Agent | None:
    """Return an agent to the idle pool and clear its task binding."""
    await db.execute(
        update(Agent)
        .where(Agent.id == agent_id)
        .values(status=AgentStatus.IDLE, current_task_id=None)
        .execution_options(synchronize_session=False)
    )
    return await db.get(Agent, agent_id, populate_existing=True)
