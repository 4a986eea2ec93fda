"""Async client for pushing files through the GitHub contents API.

Each push is a read (``GET /repos/{repo}/contents/{path}`` to learn the
current blob sha) followed by a create-or-update ``PUT`` carrying that sha.
The pair is not atomic: if someone else updates the file in between, GitHub
rejects the write and a ``RemoteConflictError`` is raised.  Conflicts are
reported, never retried.

Typical usage::

    publisher = GitHubPublisher("acme/embeds", token=os.environ["GITHUB_TOKEN"])
    result = await publisher.push_file("src/lib/embed-registry.js", text)
"""

from __future__ import annotations

import base64
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from .errors import RemoteConflictError, RemoteError


class PushResult(BaseModel):
    """Outcome of pushing one file."""

    path: str = Field(..., description="Repository-relative path")
    success: bool = Field(default=True)
    created: bool = Field(default=False, description="True when the file was new on the remote")
    sha: str | None = Field(default=None, description="Blob sha after the write")
    error: str | None = Field(default=None)
    conflict: bool = Field(default=False, description="True when the remote file changed underneath")


class GitHubPublisher:
    """Pushes local file contents to one branch of a GitHub repository."""

    def __init__(
        self,
        repo: str,
        token: str = "",
        branch: str = "main",
        api_url: str = "https://api.github.com",
        timeout: int = 30,
    ) -> None:
        if repo.count("/") != 1:
            raise ValueError(f"Repository must look like 'owner/name', got '{repo}'")
        self.repo = repo
        self.token = token
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.repo}/contents/{quote(path.lstrip('/'))}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_sha(self, path: str) -> str | None:
        """Return the blob sha of *path* on the branch, or ``None`` if absent.

        Raises:
            RemoteError: On any failure other than 404.
        """
        try:
            async with self._client() as client:
                response = await client.get(self._contents_url(path), params={"ref": self.branch})
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise RemoteError(
                f"GitHub returned HTTP {exc.response.status_code} reading {path}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.TimeoutException as exc:
            raise RemoteError(f"Request to GitHub timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise RemoteError(f"Cannot reach GitHub at {self.api_url}: {exc}") from exc

        if isinstance(data, list):
            raise RemoteError(f"{path} is a directory on {self.repo}")
        return data.get("sha")

    async def put_file(
        self,
        path: str,
        content: str,
        sha: str | None = None,
        message: str | None = None,
    ) -> str | None:
        """Create or update *path* with *content*; return the new blob sha.

        Raises:
            RemoteConflictError: If *sha* no longer matches the remote file.
            RemoteError: On any other failure.
        """
        payload: dict = {
            "message": message or f"Update {path} via embedify",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            payload["sha"] = sha

        try:
            async with self._client() as client:
                response = await client.put(self._contents_url(path), json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 409 or (status == 422 and "sha" in exc.response.text):
                raise RemoteConflictError(
                    f"{path} changed on {self.repo}@{self.branch} since it was read",
                    status_code=status,
                ) from exc
            raise RemoteError(
                f"GitHub returned HTTP {status} writing {path}: {exc.response.text[:200]}",
                status_code=status,
            ) from exc
        except httpx.TimeoutException as exc:
            raise RemoteError(f"Request to GitHub timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise RemoteError(f"Cannot reach GitHub at {self.api_url}: {exc}") from exc

        return (data.get("content") or {}).get("sha")

    async def push_file(self, path: str, content: str) -> PushResult:
        """Read the current sha of *path*, then write *content* over it."""
        try:
            sha = await self.get_sha(path)
            new_sha = await self.put_file(path, content, sha=sha)
        except RemoteError as exc:
            return PushResult(
                path=path,
                success=False,
                error=str(exc),
                conflict=isinstance(exc, RemoteConflictError),
            )
        return PushResult(path=path, created=sha is None, sha=new_sha)
