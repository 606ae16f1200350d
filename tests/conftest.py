"""Shared fixtures: in-memory database, API client, and fake upstream services."""

import json
import uuid
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import backend.app.models  # noqa: F401  register tables on Base.metadata
from backend.app.api.deps import get_pipeline
from backend.app.db import Base, get_db, utcnow
from backend.app.main import app
from backend.app.models.agent import DEFAULT_AGENT_TYPE, Agent, AgentStatus
from backend.app.models.generated_file import FileStatus, GeneratedFile
from backend.app.models.github_repo import GitHubRepoLink
from backend.app.models.task import Task, TaskPriority, TaskStatus
from backend.app.models.user import User
from backend.app.services.pipeline import Pipeline, PipelineConfig, github_credentials

TEST_DB_URL = "sqlite+aiosqlite://"
GEMINI_URL = "https://gemini.test/v1beta"
GITHUB_URL = "https://api.github.test"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


class _FakeSessionCtx:
    """Hands the test session to services that open their own sessions."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def __aenter__(self):
        return self._session

    async def __aexit__(self, *args):
        pass


@pytest.fixture
def session_factory(db: AsyncSession):
    def _factory():
        return _FakeSessionCtx(db)

    return _factory


# ---------------------------------------------------------------------------
# Fake Gemini
# ---------------------------------------------------------------------------


def gemini_payload(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


class FakeGemini:
    """Answers ``generateContent`` calls from a queue of canned responses."""

    def __init__(self):
        self.replies: list[httpx.Response] = []
        self.requests: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []
        self.transport = httpx.MockTransport(self.handler)

    def reply_text(self, text: str) -> None:
        self.replies.append(httpx.Response(200, json=gemini_payload(text)))

    def reply_error(self, status: int, body: str) -> None:
        self.replies.append(httpx.Response(status, text=body))

    def prompt(self, index: int = -1) -> str:
        return self.requests[index]["contents"][0]["parts"][0]["text"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        if not self.replies:
            return httpx.Response(500, text="no reply queued")
        return self.replies.pop(0)


@pytest.fixture
def fake_gemini() -> FakeGemini:
    return FakeGemini()


# ---------------------------------------------------------------------------
# Fake GitHub git-data API
# ---------------------------------------------------------------------------


class FakeGitHub:
    """A tiny in-memory git-data API for one repository.

    ``failures`` maps ``(method, path)`` to a canned ``(status, body)``.
    ``concurrent_pushes`` makes the next N ref updates find the branch moved
    by someone else first.
    """

    def __init__(self, head: str = "abc123", branch: str = "main"):
        self.refs: dict[str, str] = {branch: head}
        self.commits: dict[str, dict[str, Any]] = {
            head: {"tree": f"tree-{head}", "parents": [], "message": "initial"}
        }
        self.blobs: dict[str, str] = {}
        self.trees: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[str, str]] = []
        self.auth_headers: list[str | None] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.concurrent_pushes = 0
        self.transport = httpx.MockTransport(self.handler)

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r == (method, path))

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/git", 1)[1]
        key = (request.method, path)
        self.requests.append(key)
        self.auth_headers.append(request.headers.get("authorization"))
        if key in self.failures:
            status, body = self.failures[key]
            return httpx.Response(status, text=body)
        body = json.loads(request.content) if request.content else {}

        if path.startswith("/refs/heads/"):
            branch = path.removeprefix("/refs/heads/")
            if branch not in self.refs:
                return httpx.Response(404, json={"message": "Not Found"})
            if request.method == "GET":
                return httpx.Response(
                    200,
                    json={"ref": f"refs/heads/{branch}", "object": {"sha": self.refs[branch]}},
                )
            return self._update_ref(branch, body)

        if request.method == "GET" and path.startswith("/commits/"):
            sha = path.removeprefix("/commits/")
            if sha not in self.commits:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"sha": sha, "tree": {"sha": self.commits[sha]["tree"]}})

        if key == ("POST", "/blobs"):
            sha = f"blob{len(self.blobs) + 1}"
            self.blobs[sha] = body["content"]
            return httpx.Response(201, json={"sha": sha})

        if key == ("POST", "/trees"):
            sha = f"tree{len(self.trees) + 1}"
            self.trees[sha] = body
            return httpx.Response(201, json={"sha": sha})

        if key == ("POST", "/commits"):
            sha = f"commit{len(self.commits)}"
            self.commits[sha] = {
                "tree": body["tree"],
                "parents": body["parents"],
                "message": body["message"],
            }
            return httpx.Response(
                201, json={"sha": sha, "html_url": f"https://github.com/owner/repo/commit/{sha}"}
            )

        return httpx.Response(404, json={"message": "Not Found"})

    def _update_ref(self, branch: str, body: dict[str, Any]) -> httpx.Response:
        if self.concurrent_pushes:
            self.concurrent_pushes -= 1
            other = f"other{len(self.commits)}"
            self.commits[other] = {
                "tree": f"tree-{other}",
                "parents": [self.refs[branch]],
                "message": "someone else",
            }
            self.refs[branch] = other

        new = self.commits.get(body["sha"])
        if new is None or self.refs[branch] not in new["parents"]:
            return httpx.Response(422, json={"message": "Update is not a fast forward"})
        self.refs[branch] = body["sha"]
        return httpx.Response(200, json={"object": {"sha": body["sha"]}})


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


# ---------------------------------------------------------------------------
# Pipeline and API client
# ---------------------------------------------------------------------------


def make_config(session_factory, fake_gemini, fake_github, **overrides) -> PipelineConfig:
    options: dict[str, Any] = {
        "model_api_key": "test-key",
        "session_factory": session_factory,
        "credential_provider": github_credentials(GITHUB_URL, transport=fake_github.transport),
        "model_base_url": GEMINI_URL,
        "llm_transport": fake_gemini.transport,
    }
    options.update(overrides)
    return PipelineConfig(**options)


@pytest.fixture
def pipeline(session_factory, fake_gemini, fake_github) -> Pipeline:
    return Pipeline.build(make_config(session_factory, fake_gemini, fake_github))


@pytest.fixture
async def user(db: AsyncSession) -> User:
    user = await create_user(db, name="yash")
    await db.commit()
    return user


@pytest.fixture
async def client(db: AsyncSession, pipeline: Pipeline, user: User) -> AsyncGenerator[AsyncClient, None]:
    async def _override_get_db():
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_pipeline] = lambda: pipeline

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers={"X-User-Id": user.id}
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


async def create_user(db: AsyncSession, name: str = "test-user", **kwargs) -> User:
    user = User(
        id=kwargs.get("id", str(uuid.uuid4())),
        name=name,
        display_name=kwargs.get("display_name"),
        created_at=kwargs.get("created_at", utcnow()),
    )
    db.add(user)
    await db.flush()
    return user


async def create_task(
    db: AsyncSession,
    user_id: str,
    title: str = "Login form",
    description: str = "Create a login form",
    **kwargs,
) -> Task:
    now = kwargs.get("created_at", utcnow())
    task = Task(
        id=kwargs.get("id", str(uuid.uuid4())),
        user_id=user_id,
        title=title,
        description=description,
        status=kwargs.get("status", TaskStatus.PENDING),
        priority=kwargs.get("priority", TaskPriority.MEDIUM),
        result=kwargs.get("result"),
        generated_files_count=kwargs.get("generated_files_count", 0),
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    await db.flush()
    return task


async def create_agent(
    db: AsyncSession, user_id: str, name: str = "cosmic-penguin", **kwargs
) -> Agent:
    agent = Agent(
        id=kwargs.get("id", str(uuid.uuid4())),
        user_id=user_id,
        name=name,
        type=kwargs.get("type", DEFAULT_AGENT_TYPE),
        status=kwargs.get("status", AgentStatus.IDLE),
        current_task_id=kwargs.get("current_task_id"),
        created_at=kwargs.get("created_at", utcnow()),
    )
    db.add(agent)
    await db.flush()
    return agent


async def create_file(
    db: AsyncSession,
    task: Task,
    file_path: str = "src/App.tsx",
    file_content: str = "export {}\n",
    **kwargs,
) -> GeneratedFile:
    f = GeneratedFile(
        id=kwargs.get("id", str(uuid.uuid4())),
        task_id=task.id,
        user_id=task.user_id,
        file_path=file_path,
        file_content=file_content,
        language=kwargs.get("language", "typescript"),
        status=kwargs.get("status", FileStatus.DRAFT),
        created_at=kwargs.get("created_at", utcnow()),
    )
    db.add(f)
    await db.flush()
    return f


async def create_repo_link(
    db: AsyncSession, user_id: str, repo_name: str = "owner/repo", **kwargs
) -> GitHubRepoLink:
    now = utcnow()
    link = GitHubRepoLink(
        user_id=user_id,
        repo_name=repo_name,
        repo_url=f"https://github.com/{repo_name}",
        access_token=kwargs.get("access_token", "ghp_test"),
        default_branch=kwargs.get("default_branch", "main"),
        created_at=now,
        updated_at=now,
    )
    db.add(link)
    await db.flush()
    return link
