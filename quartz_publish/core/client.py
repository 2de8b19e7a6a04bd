"""HTTP client for the GitHub contents and git trees APIs."""

import asyncio
import base64
from typing import Any
from urllib.parse import quote

import requests

from ..models.records import RemoteFileInfo, RemoteObject
from .auth import GitHubAuth
from .errors import (
    ConflictError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    RemoteRepositoryError,
)


def encode_path(path: str) -> str:
    """URL-encode each segment of a repository path."""
    return "/".join(quote(part, safe="") for part in path.strip("/").split("/"))


class GitHubClient:
    """Blocking GitHub REST client bound to one repository and branch."""

    TIMEOUT = 30

    def __init__(self, auth: GitHubAuth | None = None, session: requests.Session | None = None) -> None:
        """Initialize client with authentication.

        Args:
            auth: GitHubAuth instance (creates one from env if not provided)
            session: Optional requests session (for tests)
        """
        self.auth = auth or GitHubAuth()
        self.session = session or requests.Session()

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.auth.owner}/{self.auth.repo}"

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to the GitHub API.

        Args:
            method: HTTP method
            path: API path (without base URL)
            params: Optional query parameters
            json_data: Optional JSON body data

        Returns:
            Parsed JSON response

        Raises:
            RemoteRepositoryError: On API errors (see subclasses)
        """
        try:
            response = self.session.request(
                method=method,
                url=self.auth.get_full_url(path),
                headers=self.auth.get_headers(),
                params=params,
                json=json_data,
                timeout=self.TIMEOUT,
            )
        except requests.RequestException as e:
            raise NetworkError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_for(response)

        # DELETE and friends may answer without a body
        if response.status_code == 204 or not response.content:
            return {}

        return response.json()  # type: ignore[no-any-return]

    def _error_for(self, response: requests.Response) -> RemoteRepositoryError:
        """Map an error response to the error taxonomy."""
        status = response.status_code
        body = response.text[:500]
        message = f"GitHub API error {status}: {body}"

        remaining = response.headers.get("X-RateLimit-Remaining")
        if status == 429 or (status == 403 and (remaining == "0" or "rate limit" in body.lower())):
            reset = response.headers.get("X-RateLimit-Reset")
            return RateLimitedError(
                message,
                status,
                response,
                reset_at=float(reset) if reset else None,
            )
        if status == 404:
            return NotFoundError(message, status, response)
        if status == 409 or (status == 422 and "sha" in body.lower()):
            return ConflictError(message, status, response)
        return RemoteRepositoryError(message, status, response)

    # -------------------------------------------------------------------------
    # Repository Operations
    # -------------------------------------------------------------------------

    def get_tree(self) -> list[dict[str, Any]]:
        """Get the recursive git tree of the branch.

        Returns:
            Tree entries with path, mode, type, sha and (for blobs) size
        """
        response = self._request(
            "GET",
            f"{self.repo_path}/git/trees/{quote(self.auth.branch, safe='')}",
            params={"recursive": "1"},
        )
        return response.get("tree", [])

    def get_file(self, path: str) -> dict[str, Any] | None:
        """Get a file's contents and blob sha.

        Returns:
            Dictionary with path, sha, size and decoded ``content`` bytes, or
            None if the file does not exist or is a directory
        """
        try:
            response = self._request(
                "GET",
                f"{self.repo_path}/contents/{encode_path(path)}",
                params={"ref": self.auth.branch},
            )
        except NotFoundError:
            return None

        if not isinstance(response, dict) or response.get("type") != "file":
            return None

        encoded = response.get("content") or ""
        return {
            "path": response.get("path", path),
            "sha": response.get("sha", ""),
            "size": response.get("size", 0),
            "content": base64.b64decode(encoded.replace("\n", "")),
        }

    def put_file(
        self,
        path: str,
        content: bytes,
        message: str,
        sha: str | None = None,
    ) -> dict[str, Any]:
        """Create or update a file.

        Args:
            path: Repository path
            content: Raw file bytes
            message: Commit message
            sha: Current blob sha when updating

        Returns:
            Dictionary with the new blob ``sha`` and ``commit_sha``
        """
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.auth.branch,
        }
        if sha:
            body["sha"] = sha

        response = self._request("PUT", f"{self.repo_path}/contents/{encode_path(path)}", json_data=body)
        return {
            "sha": response.get("content", {}).get("sha", ""),
            "commit_sha": response.get("commit", {}).get("sha", ""),
        }

    def delete_file(self, path: str, sha: str, message: str) -> None:
        """Delete a file whose current blob sha is ``sha``."""
        self._request(
            "DELETE",
            f"{self.repo_path}/contents/{encode_path(path)}",
            json_data={"message": message, "sha": sha, "branch": self.auth.branch},
        )

    def get_rate_limit(self) -> dict[str, Any]:
        """Get the core rate limit: limit, remaining, reset and used."""
        response = self._request("GET", "/rate_limit")
        return response.get("resources", {}).get("core", {})

    # -------------------------------------------------------------------------
    # Health Check
    # -------------------------------------------------------------------------

    def verify_connection(self) -> bool:
        """Verify API connectivity, authentication and repository access.

        Raises:
            RemoteRepositoryError: On connection or auth failure
        """
        response = self._request("GET", self.repo_path)
        return "full_name" in response


class GitHubRepository:
    """``RemoteRepository`` backed by a GitHub branch.

    Blob shas serve as object versions. The blocking client runs in a worker
    thread so calls do not stall the event loop.
    """

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    async def list_tree(self) -> list[RemoteFileInfo]:
        tree = await asyncio.to_thread(self.client.get_tree)
        return [
            RemoteFileInfo(
                path=entry["path"],
                sha=entry.get("sha", ""),
                size=entry.get("size", 0),
                kind=entry.get("type", "blob"),
            )
            for entry in tree
            if entry.get("type") in ("blob", "tree")
        ]

    async def get_object(self, path: str) -> RemoteObject | None:
        data = await asyncio.to_thread(self.client.get_file, path)
        if data is None:
            return None
        return RemoteObject(path=data["path"], content=data["content"], version=data["sha"])

    async def put_object(
        self,
        path: str,
        content: bytes,
        message: str,
        precondition: str | None = None,
    ) -> str:
        result = await asyncio.to_thread(self.client.put_file, path, content, message, precondition)
        if not result["sha"]:
            raise RemoteRepositoryError(f"No sha returned for {path}")
        return result["sha"]

    async def delete_object(self, path: str, version: str, message: str) -> None:
        await asyncio.to_thread(self.client.delete_file, path, version, message)
