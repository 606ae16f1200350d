"""User onboarding & profile endpoints."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user
from backend.app.db import get_db, utcnow
from backend.app.models.user import User
from backend.app.schemas.user import UserOnboard, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/onboard", response_model=UserResponse, status_code=201)
async def onboard_user(data: UserOnboard, db: AsyncSession = Depends(get_db)) -> User:
    """Create a user. The returned id is what clients send as ``X-User-Id``."""
    user = User(
        id=str(uuid.uuid4()),
        name=data.name,
        display_name=data.display_name,
        created_at=utcnow(),
    )
    db.add(user)
    await db.flush()
    return user


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> User:
    return user


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    data: UserOnboard,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    user.name = data.name
    user.display_name = data.display_name
    await db.flush()
    return user
