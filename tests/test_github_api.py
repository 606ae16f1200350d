"""Tests for the GitHub repository link endpoints."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.github_repo import GitHubRepoLink


async def test_get_repo_not_linked(client: AsyncClient):
    resp = await client.get("/api/github/repo")
    assert resp.status_code == 400
    assert resp.json()["detail"] == (
        "GitHub repository not connected. Please connect your repository first."
    )


async def test_link_repo(client: AsyncClient, db: AsyncSession, user):
    resp = await client.put(
        "/api/github/repo", json={"repo_name": "octo/app", "access_token": "ghp_secret"}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["repo_name"] == "octo/app"
    assert data["repo_url"] == "https://github.com/octo/app"
    assert data["default_branch"] == "main"
    assert "access_token" not in data

    link = await db.get(GitHubRepoLink, user.id)
    assert link.access_token == "ghp_secret"


async def test_relink_overwrites(client: AsyncClient, db: AsyncSession, user):
    await client.put(
        "/api/github/repo", json={"repo_name": "octo/app", "access_token": "ghp_one"}
    )
    resp = await client.put(
        "/api/github/repo",
        json={"repo_name": "octo/other", "access_token": "ghp_two", "default_branch": "dev"},
    )
    assert resp.status_code == 200

    resp = await client.get("/api/github/repo")
    data = resp.json()
    assert data["repo_name"] == "octo/other"
    assert data["default_branch"] == "dev"

    link = await db.get(GitHubRepoLink, user.id, populate_existing=True)
    assert link.access_token == "ghp_two"


async def test_link_repo_validation(client: AsyncClient):
    resp = await client.put(
        "/api/github/repo", json={"repo_name": "not-a-repo", "access_token": "ghp_x"}
    )
    assert resp.status_code == 422

    resp = await client.put(
        "/api/github/repo", json={"repo_name": "octo/app", "access_token": ""}
    )
    assert resp.status_code == 422
