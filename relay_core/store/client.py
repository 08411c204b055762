"""
Transport adapter for the remote content store (GitHub contents API)
"""

import asyncio
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from .. import errors
from ..misc.logger import enforce_logger
from ..schemas import config
from ..schemas.store import AccessReport, Commit, RemoteFile, WriteRequest, WriteResult


GITHUB_ACCEPT_HEADER = "application/vnd.github.v3+json"


def _upstream_message(data: Any) -> str:
    if isinstance(data, dict):
        return str(data.get("message") or "")
    return ""


def _is_missing_marker(status: int, data: Any) -> bool:
    """
    Determine whether a 422 response complains about the missing version marker

    GitHub answers writes without ``sha`` over an existing file with
    422 instead of 409, which is a version conflict nonetheless.
    """

    return status == 422 and "sha" in _upstream_message(data).lower()


class RemoteFileStore:
    """
    Stateless transport adapter over the contents API of one repository

    The client holds the immutable GitHub configuration and an ``aiohttp``
    session. It never caches version markers, every write uses the marker
    supplied in its ``WriteRequest``. If no session is given, the client
    creates its own one on first use, which must be closed with ``close``
    (or by using the client as asynchronous context manager).
    """

    def __init__(
            self,
            github: config.GitHubConfig,
            session: Optional[aiohttp.ClientSession] = None,
            logger: Optional[logging.Logger] = None
    ):
        if not github.token:
            raise errors.ConfigurationError("GitHub token not configured")
        if not github.owner or not github.repo:
            raise errors.ConfigurationError("GitHub repository owner and name must be configured")
        self.config = github
        self.logger = enforce_logger(logger, __name__)
        self._session = session
        self._own_session = session is None

    async def __aenter__(self) -> "RemoteFileStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self._own_session and self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    @property
    def repository_url(self) -> str:
        owner = urllib.parse.quote(self.config.owner, safe="")
        repo = urllib.parse.quote(self.config.repo, safe="")
        return f"{self.config.base_url}/repos/{owner}/{repo}"

    def contents_url(self, path: str) -> str:
        return f"{self.repository_url}/contents/{urllib.parse.quote(path.lstrip('/'))}"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self.config.token}",
            "Accept": GITHUB_ACCEPT_HEADER,
            "User-Agent": self.config.user_agent
        }

    async def _call(
            self,
            method: str,
            url: str,
            params: Optional[Dict[str, str]] = None,
            payload: Optional[Dict[str, Any]] = None
    ) -> Tuple[int, Any]:
        self.logger.debug(f"Sending '{method} {url}' to the content store...")
        try:
            async with self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            ) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
                self.logger.debug(f"Content store answered '{method} {url}' with status {response.status}")
                return response.status, data
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise errors.TransportError(
                f"{type(exc).__name__} during '{method} {url}': {exc or 'no details'}"
            ) from exc

    @staticmethod
    def _failure(status: int, data: Any, action: str, path: Optional[str] = None) -> errors.RelayError:
        message = f"GitHub API error during {action}: {status}"
        upstream = _upstream_message(data)
        if upstream:
            message += f". {upstream}"
        if status == 404:
            return errors.NotFound(message, status, path)
        return errors.TransportError(message, status, path)

    async def lookup(self, path: str, branch: Optional[str] = None) -> Optional[RemoteFile]:
        """
        Return the current descriptor of the file at the given path (or None)

        :param path: slash-separated path relative to the repository root
        :param branch: optional named ref to look into (default branch of the repository otherwise)
        :return: remote file including its current version marker or None if it doesn't exist
        :raises TransportError: for network failures or unexpected upstream responses
        """

        status, data = await self._call("GET", self.contents_url(path), params={"ref": branch} if branch else None)
        if status == 404:
            self.logger.debug(f"File {path!r} does not exist in the content store")
            return None
        if status != 200:
            raise self._failure(status, data, "file lookup", path)
        if isinstance(data, list):
            self.logger.debug(f"Path {path!r} is a directory, not a file")
            return None
        try:
            return RemoteFile.from_upstream(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise errors.TransportError(f"Malformed lookup response for {path!r}: {exc}", status, path) from exc

    async def write(self, request: WriteRequest) -> WriteResult:
        """
        Create or update a file with the content and version marker of the request

        :param request: write request, carrying ``sha`` only when updating an existing file
        :return: descriptor of the written file and its change record
        :raises VersionConflict: when the store rejected the request's version marker
        :raises TransportError: for network failures or any other unexpected upstream response
        """

        status, data = await self._call("PUT", self.contents_url(request.path), payload=request.payload())
        if status in (200, 201):
            try:
                return WriteResult(
                    file=RemoteFile.from_upstream(data["content"]),
                    commit=Commit.from_upstream(data["commit"])
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise errors.TransportError(
                    f"Malformed write response for {request.path!r}: {exc}", status, request.path
                ) from exc

        if status == 409 or _is_missing_marker(status, data):
            raise errors.VersionConflict(
                f"Version conflict while writing {request.path!r} "
                f"(marker {'supplied' if request.sha else 'missing'}): {_upstream_message(data) or status}",
                status,
                request.path
            )
        raise self._failure(status, data, "upload", request.path)

    async def remove(self, path: str, message: Optional[str] = None, branch: str = "main") -> Commit:
        """
        Delete the file at the given path, keyed by its current version marker

        :raises NotFound: when no file exists at the given path
        :raises VersionConflict: when the file changed between lookup and deletion
        :raises TransportError: for network failures or unexpected upstream responses
        """

        current = await self.lookup(path, branch)
        if current is None:
            raise errors.NotFound(f"File {path!r} not found", 404, path)

        status, data = await self._call(
            "DELETE",
            self.contents_url(path),
            payload={"message": message or f"Delete {path}", "sha": current.sha, "branch": branch}
        )
        if status == 200:
            try:
                return Commit.from_upstream(data["commit"])
            except (KeyError, TypeError, ValueError) as exc:
                raise errors.TransportError(f"Malformed delete response for {path!r}: {exc}", status, path) from exc
        if status == 409:
            raise errors.VersionConflict(
                f"Version conflict while deleting {path!r}: {_upstream_message(data) or status}",
                status,
                path
            )
        raise self._failure(status, data, "deletion", path)

    async def listing(self, path: str = "", branch: Optional[str] = None) -> List[RemoteFile]:
        """
        List the entries of a directory (or the single file) at the given path
        """

        path = (path or "").strip("/")
        status, data = await self._call("GET", self.contents_url(path), params={"ref": branch} if branch else None)
        if status != 200:
            raise self._failure(status, data, "listing", path or "/")
        entries = data if isinstance(data, list) else [data]
        try:
            return [RemoteFile.from_upstream(entry) for entry in entries]
        except (KeyError, TypeError, ValueError) as exc:
            raise errors.TransportError(f"Malformed listing response for {path!r}: {exc}", status, path) from exc

    async def verify_access(self) -> AccessReport:
        """
        Verify the token and the repository access without raising for upstream refusals
        """

        try:
            status, user = await self._call("GET", f"{self.config.base_url}/user")
            if status != 200:
                return AccessReport(
                    authenticated=False,
                    repo_access=False,
                    error=f"Authentication failed: {status}. {_upstream_message(user)}".strip()
                )
            login = user.get("login") if isinstance(user, dict) else None

            status, repo = await self._call("GET", self.repository_url)
            if status != 200:
                return AccessReport(
                    authenticated=True,
                    user=login,
                    repo_access=False,
                    error=f"Repository access failed: {status}. {_upstream_message(repo)}".strip()
                )
        except errors.TransportError as exc:
            return AccessReport(authenticated=False, repo_access=False, error=exc.message)

        permissions = repo.get("permissions") if isinstance(repo, dict) else None
        return AccessReport(
            authenticated=True,
            user=login,
            repo_access=True,
            permissions=[k for k, v in (permissions or {}).items() if v]
        )
