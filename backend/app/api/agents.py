"""Agent pool endpoints (read-only; agents are managed by the processor)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user
from backend.app.db import get_db
from backend.app.models.agent import Agent
from backend.app.models.user import User
from backend.app.schemas.agent import AgentResponse
from backend.app.services.dashboard import list_agents

router = APIRouter(prefix="/agents", tags=["agents"])


@router.get("", response_model=list[AgentResponse])
async def get_agents(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[Agent]:
    return await list_agents(db, user.id)
