"""Tests for the execution log and statistics endpoints."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.api_usage import ApiUsage
from backend.app.services.audit import append_log
from backend.app.services.dashboard import load_snapshot
from tests.conftest import create_task, create_user


async def test_recent_logs_newest_first(client: AsyncClient, db: AsyncSession, user):
    task = await create_task(db, user.id)
    for n in range(3):
        entry = await append_log(db, task.id, "info", f"entry {n}")
        entry.created_at = f"2025-01-01T00:00:0{n}"
    await db.commit()

    resp = await client.get("/api/logs")
    assert resp.status_code == 200
    assert [e["message"] for e in resp.json()] == ["entry 2", "entry 1", "entry 0"]


async def test_recent_logs_limit_and_owner(client: AsyncClient, db: AsyncSession, user):
    mine = await create_task(db, user.id)
    other = await create_user(db, name="other")
    theirs = await create_task(db, other.id)
    for n in range(5):
        await append_log(db, mine.id, "info", f"mine {n}")
    await append_log(db, theirs.id, "info", "theirs")
    await db.commit()

    resp = await client.get("/api/logs", params={"limit": 2})
    messages = [e["message"] for e in resp.json()]
    assert len(messages) == 2
    assert all(m.startswith("mine") for m in messages)

    resp = await client.get("/api/logs", params={"limit": 0})
    assert resp.status_code == 422


async def test_stats(client: AsyncClient, db: AsyncSession, user):
    for status in ("completed", "completed", "failed", "processing", "pending"):
        task = await create_task(db, user.id, status=status)
    for n in range(2):
        db.add(
            ApiUsage(
                id=f"usage-{n}",
                user_id=user.id,
                task_id=task.id,
                model="gemini-1.5-flash",
                tokens_used=10,
                estimated_cost=0.001,
                created_at="2025-01-01T00:00:00",
            )
        )
    await db.commit()

    resp = await client.get("/api/stats")
    assert resp.status_code == 200
    assert resp.json() == {"completed": 2, "failed": 1, "running": 1, "estimated_cost": 0.002}


async def test_stats_empty(client: AsyncClient):
    resp = await client.get("/api/stats")
    assert resp.json() == {"completed": 0, "failed": 0, "running": 0, "estimated_cost": 0.0}


async def test_snapshot_contents(db: AsyncSession, user):
    task = await create_task(db, user.id, title="Login form")
    await append_log(db, task.id, "info", "hello")
    await db.commit()

    snapshot = await load_snapshot(db, user.id)

    assert [t["title"] for t in snapshot["tasks"]] == ["Login form"]
    assert [e["message"] for e in snapshot["logs"]] == ["hello"]
    assert snapshot["agents"] == []
    assert snapshot["usage"] == []
