"""GitHub git-data REST client.

Covers the calls needed to build one commit from loose files: read a branch
ref, read a commit, create blobs, create a tree, create a commit, and move
the ref. Failures raise ``UpstreamError`` carrying GitHub's response body
verbatim; a rejected non-fast-forward ref update raises ``RefConflictError``.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from backend.app.errors import RefConflictError, UpstreamError

logger = logging.getLogger(__name__)

FILE_MODE = "100644"


@dataclass(slots=True)
class TreeEntry:
    path: str
    sha: str
    mode: str = FILE_MODE
    type: str = "blob"

    def to_payload(self) -> dict[str, str]:
        return {"path": self.path, "mode": self.mode, "type": self.type, "sha": self.sha}


@dataclass(slots=True)
class CreatedCommit:
    sha: str
    html_url: str | None
    tree_sha: str


def _field(data: dict[str, Any], action: str, *keys: str) -> Any:
    """Walk ``keys`` into a response body; a missing or mistyped step is an upstream error."""
    value: Any = data
    try:
        for key in keys:
            value = value[key]
    except (KeyError, TypeError) as exc:
        raise UpstreamError(f"Failed to {action}: malformed response body") from exc
    return value


class GitHubClient:
    def __init__(
        self,
        access_token: str,
        repo_name: str,
        *,
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.repo_name = repo_name
        self._client = httpx.AsyncClient(
            base_url=f"{api_url.rstrip('/')}/repos/{repo_name}/git",
            headers={
                "Authorization": f"token {access_token}",
                "Accept": "application/vnd.github.v3+json",
            },
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, action: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Failed to {action}: {exc}") from exc
        if not response.is_success:
            logger.warning(
                "[GITHUB] %s %s on %s -> HTTP %d", method, path, self.repo_name, response.status_code
            )
            raise UpstreamError(f"Failed to {action}: {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(f"Failed to {action}: malformed response body") from exc
        if not isinstance(data, dict):
            raise UpstreamError(f"Failed to {action}: malformed response body")
        return data

    async def get_branch_head(self, branch: str) -> str:
        data = await self._request("GET", f"/refs/heads/{branch}", "get branch ref")
        return _field(data, "get branch ref", "object", "sha")

    async def get_commit_tree(self, commit_sha: str) -> str:
        data = await self._request("GET", f"/commits/{commit_sha}", "get commit")
        return _field(data, "get commit", "tree", "sha")

    async def create_blob(self, content: str) -> str:
        data = await self._request(
            "POST", "/blobs", "create blob", json={"content": content, "encoding": "utf-8"}
        )
        return _field(data, "create blob", "sha")

    async def create_tree(self, base_tree: str, entries: list[TreeEntry]) -> str:
        data = await self._request(
            "POST",
            "/trees",
            "create tree",
            json={"base_tree": base_tree, "tree": [e.to_payload() for e in entries]},
        )
        return _field(data, "create tree", "sha")

    async def create_commit(self, message: str, tree_sha: str, parents: list[str]) -> CreatedCommit:
        data = await self._request(
            "POST",
            "/commits",
            "create commit",
            json={"message": message, "tree": tree_sha, "parents": parents},
        )
        return CreatedCommit(
            sha=_field(data, "create commit", "sha"),
            html_url=data.get("html_url"),
            tree_sha=tree_sha,
        )

    async def update_ref(self, branch: str, commit_sha: str) -> None:
        """Move ``heads/{branch}`` to ``commit_sha``, fast-forward only.

        GitHub answers 422 "Update is not a fast forward" when the new commit
        does not descend from the current head, i.e. someone pushed since we
        read the ref.
        """
        path = f"/refs/heads/{branch}"
        try:
            response = await self._client.patch(path, json={"sha": commit_sha, "force": False})
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Failed to update ref: {exc}") from exc
        if response.status_code == 422 and "fast forward" in response.text.lower():
            raise RefConflictError(f"Failed to update ref: {response.text}")
        if not response.is_success:
            raise UpstreamError(f"Failed to update ref: {response.text}")
