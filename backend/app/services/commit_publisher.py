"""Commit publisher — pushes a task's draft files to GitHub as one commit.

Commit composition through the git-data API::

    GET   refs/heads/{branch}       -> head sha
    GET   commits/{head}            -> base tree sha
    POST  blobs            (x N, concurrently)
    POST  trees            {base_tree, tree: [...]}
    POST  commits          {tree, parents: [head]}
    PATCH refs/heads/{branch}  {sha, force: false}

The ref update is fast-forward only. If the branch moved after we read it,
the tree and commit are rebuilt on the new head and the update retried, up
to ``max_attempts`` times. Files flip to ``committed`` only after the ref
moved; on any failure they stay ``draft`` and the call can be repeated.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import utcnow
from backend.app.errors import (
    NotLinkedError,
    NothingToCommitError,
    RefConflictError,
    UnauthenticatedError,
)
from backend.app.models.execution_log import LogType
from backend.app.models.generated_file import FileStatus, GeneratedFile
from backend.app.models.github_repo import GitHubRepoLink
from backend.app.services.audit import append_log
from backend.app.services.broadcaster import (
    broadcast_all,
    file_change_event,
    log_created_event,
    task_change_event,
)
from backend.app.services.github_client import CreatedCommit, GitHubClient, TreeEntry
from backend.app.services.task_store import get_task

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
CredentialProvider = Callable[[GitHubRepoLink], GitHubClient]

DEFAULT_COMMIT_MESSAGE = "AI Agent: Generated code for task"


@dataclass(slots=True)
class CommitResult:
    commit_sha: str
    commit_url: str | None
    files_committed: int


@dataclass(slots=True)
class _DraftFile:
    id: str
    path: str
    content: str


def _tree_files(files: list[_DraftFile]) -> list[_DraftFile]:
    """One entry per path; a later draft of the same path wins."""
    by_path: dict[str, _DraftFile] = {}
    for f in files:
        by_path[f.path] = f
    return list(by_path.values())


class CommitPublisher:
    def __init__(
        self,
        session_factory: SessionFactory,
        credential_provider: CredentialProvider,
        *,
        max_attempts: int = 3,
    ) -> None:
        self._session_factory = session_factory
        self._credential_provider = credential_provider
        self._max_attempts = max(1, max_attempts)

    async def publish(
        self, task_id: str, user_id: str | None, commit_message: str | None = None
    ) -> CommitResult:
        if not user_id:
            raise UnauthenticatedError()

        async with self._session_factory() as db:
            link = await db.get(GitHubRepoLink, user_id)
            if link is None:
                raise NotLinkedError()
            await get_task(db, task_id, user_id)

            result = await db.execute(
                select(GeneratedFile)
                .where(GeneratedFile.task_id == task_id, GeneratedFile.status == FileStatus.DRAFT)
                .order_by(GeneratedFile.created_at)
            )
            drafts = [
                _DraftFile(id=f.id, path=f.file_path, content=f.file_content)
                for f in result.scalars().all()
            ]
            if not drafts:
                raise NothingToCommitError()
            branch = link.default_branch

        logger.info(
            "[COMMIT] Committing %d files for task %s to %s@%s",
            len(drafts),
            task_id,
            link.repo_name,
            branch,
        )
        async with self._credential_provider(link) as client:
            commit = await self._compose(
                client, branch, _tree_files(drafts), commit_message or DEFAULT_COMMIT_MESSAGE
            )

        ids = [d.id for d in drafts]
        async with self._session_factory() as db:
            await db.execute(
                update(GeneratedFile)
                .where(GeneratedFile.id.in_(ids))
                .values(status=FileStatus.COMMITTED)
                .execution_options(synchronize_session=False)
            )
            task = await get_task(db, task_id, user_id)
            task.github_commit_sha = commit.sha
            task.updated_at = utcnow()
            entry = await append_log(
                db,
                task_id,
                LogType.SUCCESS,
                f"Committed {len(drafts)} files to GitHub. Commit: {commit.sha[:7]}",
            )
            await db.commit()

            files = await db.execute(
                select(GeneratedFile)
                .where(GeneratedFile.id.in_(ids))
                .execution_options(populate_existing=True)
            )
            events = [file_change_event(f) for f in files.scalars().all()]
            events += [task_change_event(task), log_created_event(entry, user_id)]

        await broadcast_all(events)
        logger.info("[COMMIT] Task %s committed as %s", task_id, commit.sha)
        return CommitResult(
            commit_sha=commit.sha, commit_url=commit.html_url, files_committed=len(drafts)
        )

    async def _compose(
        self, client: GitHubClient, branch: str, files: list[_DraftFile], message: str
    ) -> CreatedCommit:
        head_sha = await client.get_branch_head(branch)
        base_tree = await client.get_commit_tree(head_sha)

        blob_shas = await asyncio.gather(*(client.create_blob(f.content) for f in files))
        entries = [TreeEntry(path=f.path, sha=sha) for f, sha in zip(files, blob_shas, strict=True)]

        attempt = 1
        while True:
            tree_sha = await client.create_tree(base_tree, entries)
            commit = await client.create_commit(message, tree_sha, [head_sha])
            try:
                await client.update_ref(branch, commit.sha)
                return commit
            except RefConflictError:
                if attempt == self._max_attempts:
                    raise
                logger.warning(
                    "[COMMIT] %s moved during commit (attempt %d/%d), rebasing",
                    branch,
                    attempt,
                    self._max_attempts,
                )
                head_sha = await client.get_branch_head(branch)
                base_tree = await client.get_commit_tree(head_sha)
                attempt += 1
