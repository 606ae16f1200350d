"""Shared FastAPI dependencies: caller identity and the task pipeline."""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.config import settings
from backend.app.db import async_session, get_db
from backend.app.errors import UnauthenticatedError
from backend.app.models.user import User
from backend.app.services.pipeline import Pipeline, PipelineConfig

USER_HEADER = "X-User-Id"


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias=USER_HEADER),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not x_user_id:
        raise UnauthenticatedError()
    user = await db.get(User, x_user_id)
    if user is None:
        raise UnauthenticatedError("Unknown user")
    return user


@lru_cache
def _default_pipeline() -> Pipeline:
    return Pipeline.build(PipelineConfig.from_settings(settings, async_session))


def get_pipeline() -> Pipeline:
    return _default_pipeline()
