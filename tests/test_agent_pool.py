"""Tests for agent claiming and release."""

from unittest.mock import AsyncMock, patch

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.agent import Agent, AgentStatus
from backend.app.services.agent_pool import claim_agent, release_agent
from tests.conftest import create_agent, create_task, create_user


async def test_claim_creates_agent_when_pool_empty(db: AsyncSession, user):
    task = await create_task(db, user.id)

    agent, created = await claim_agent(db, user.id, task.id)

    assert created is True
    assert agent.status == AgentStatus.ACTIVE
    assert agent.current_task_id == task.id
    assert agent.type == "code-generator"
    assert len(agent.name.split("-")) == 2


async def test_claim_prefers_oldest_idle_agent(db: AsyncSession, user):
    task = await create_task(db, user.id)
    oldest = await create_agent(db, user.id, name="calm-heron", created_at="2025-01-01T00:00:00")
    await create_agent(db, user.id, name="bold-yak", created_at="2025-02-01T00:00:00")

    agent, created = await claim_agent(db, user.id, task.id)

    assert created is False
    assert agent.id == oldest.id
    assert agent.status == AgentStatus.ACTIVE
    assert agent.current_task_id == task.id


async def test_active_agent_is_never_double_bound(db: AsyncSession, user):
    """Two claims without a release must yield two different agents."""
    first_task = await create_task(db, user.id, title="one")
    second_task = await create_task(db, user.id, title="two")
    await create_agent(db, user.id, name="calm-heron")

    first, _ = await claim_agent(db, user.id, first_task.id)
    second, created = await claim_agent(db, user.id, second_task.id)

    assert first.id != second.id
    assert created is True
    assert first.current_task_id == first_task.id
    assert second.current_task_id == second_task.id


async def test_claim_ignores_other_users_agents(db: AsyncSession, user):
    other = await create_user(db, name="other")
    await create_agent(db, other.id, name="calm-heron")
    task = await create_task(db, user.id)

    agent, created = await claim_agent(db, user.id, task.id)

    assert created is True
    assert agent.user_id == user.id


async def test_claim_falls_back_to_new_agent_after_lost_races(db: AsyncSession, user):
    """If every conditional update loses, a fresh agent is created instead."""
    idle = await create_agent(db, user.id, name="calm-heron")
    task = await create_task(db, user.id)

    with patch(
        "backend.app.services.agent_pool._try_claim",
        new_callable=AsyncMock,
        return_value=False,
    ) as mock_claim:
        agent, created = await claim_agent(db, user.id, task.id, max_attempts=3)

    assert mock_claim.await_count == 3
    assert created is True
    assert agent.id != idle.id


async def test_release_returns_agent_to_pool(db: AsyncSession, user):
    task = await create_task(db, user.id)
    agent, _ = await claim_agent(db, user.id, task.id)

    released = await release_agent(db, agent.id)

    assert released.status == AgentStatus.IDLE
    assert released.current_task_id is None

    next_task = await create_task(db, user.id, title="next")
    again, created = await claim_agent(db, user.id, next_task.id)
    assert created is False
    assert again.id == agent.id


async def test_release_unknown_agent(db: AsyncSession):
    assert await release_agent(db, "missing") is None


async def test_active_status_matches_task_binding(db: AsyncSession, user):
    """current_task_id is set exactly for active agents."""
    tasks = [await create_task(db, user.id, title=f"t{i}") for i in range(3)]
    claimed = [(await claim_agent(db, user.id, t.id))[0] for t in tasks]
    await release_agent(db, claimed[1].id)

    agents = (
        (await db.execute(select(Agent).execution_options(populate_existing=True)))
        .scalars()
        .all()
    )
    for agent in agents:
        assert (agent.status == AgentStatus.ACTIVE) == (agent.current_task_id is not None)
