"""
Relay core schemas for the remote content store

The remote store is the contents API of a GitHub repository. Every stored
file carries a version marker (the blob ``sha``) which changes on every
write. Updating a file requires the current marker, so the marker works
as the optimistic lock of the store.
"""

import base64
import posixpath
from typing import Any, Dict, List, Optional

import pydantic


__all__ = ["AccessReport", "Commit", "RemoteFile", "WriteRequest", "WriteResult"]


class RemoteFile(pydantic.BaseModel):
    name: str
    path: str
    sha: str
    size: pydantic.NonNegativeInt = 0
    type: str = "file"
    url: Optional[str] = None
    download_url: Optional[str] = None

    @classmethod
    def from_upstream(cls, data: Dict[str, Any]) -> "RemoteFile":
        """
        Create a new instance from a content object of the GitHub API
        """

        path = data["path"]
        return cls(
            name=data.get("name") or posixpath.basename(path),
            path=path,
            sha=data["sha"],
            size=data.get("size") or 0,
            type=data.get("type") or "file",
            url=data.get("html_url"),
            download_url=data.get("download_url")
        )


class Commit(pydantic.BaseModel):
    sha: str
    message: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_upstream(cls, data: Dict[str, Any]) -> "Commit":
        return cls(sha=data["sha"], message=data.get("message"), url=data.get("html_url") or data.get("url"))


class WriteRequest(pydantic.BaseModel):
    """
    Transient value object describing one create-or-update call

    A missing ``sha`` signals the creation of a new file, while a present
    ``sha`` has to match the current version marker of the existing file.
    """

    path: pydantic.constr(min_length=1)
    content: bytes
    message: str
    branch: str = "main"
    sha: Optional[str] = None

    def payload(self) -> Dict[str, Any]:
        data = {
            "message": self.message,
            "content": base64.b64encode(self.content).decode("ascii"),
            "branch": self.branch
        }
        if self.sha is not None:
            data["sha"] = self.sha
        return data


class WriteResult(pydantic.BaseModel):
    file: RemoteFile
    commit: Commit
    attempts: pydantic.PositiveInt = 1


class AccessReport(pydantic.BaseModel):
    authenticated: bool
    user: Optional[str] = None
    repo_access: bool
    permissions: List[str] = []
    error: Optional[str] = None
