"""GitHub repository link endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user
from backend.app.db import get_db, utcnow
from backend.app.errors import NotLinkedError
from backend.app.models.github_repo import GitHubRepoLink
from backend.app.models.user import User
from backend.app.schemas.github import RepoLinkResponse, RepoLinkUpsert

router = APIRouter(prefix="/github", tags=["github"])


@router.get("/repo", response_model=RepoLinkResponse)
async def get_repo_link(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GitHubRepoLink:
    link = await db.get(GitHubRepoLink, user.id)
    if link is None:
        raise NotLinkedError()
    return link


@router.put("/repo", response_model=RepoLinkResponse)
async def upsert_repo_link(
    data: RepoLinkUpsert,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GitHubRepoLink:
    now = utcnow()
    repo_url = f"https://github.com/{data.repo_name}"

    link = await db.get(GitHubRepoLink, user.id)
    if link is None:
        link = GitHubRepoLink(user_id=user.id, created_at=now)
        db.add(link)
    link.repo_name = data.repo_name
    link.repo_url = repo_url
    link.access_token = data.access_token
    link.default_branch = data.default_branch
    link.updated_at = now
    await db.flush()
    return link
