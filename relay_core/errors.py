"""
Relay core error taxonomy for all upstream interactions

Every failure of the store client, the conflict-aware writer, the batch
orchestrator and the pass-through services is one of the classes below.
The HTTP layer maps them to ``APIError`` responses, see ``api.base``.
"""

from typing import List, Optional

from .schemas import store


class RelayError(Exception):
    """
    Base class of all errors raised while talking to the upstream APIs

    The ``status`` is the HTTP status code of the upstream response (if there
    was one), the ``path`` is the targeted path in the remote content store
    (if any) and ``attempts`` is filled in by the writer when the error
    terminated an upload sequence.
    """

    def __init__(self, message: str, status: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.path = path
        self.attempts: Optional[int] = None

    def __str__(self) -> str:
        return self.message

    @property
    def details(self) -> str:
        parts = [f"{type(self).__name__}: {self.message}"]
        if self.status is not None:
            parts.append(f"upstream status {self.status}")
        if self.path is not None:
            parts.append(f"path {self.path!r}")
        if self.attempts is not None:
            parts.append(f"{self.attempts} attempt(s)")
        return "; ".join(parts)


class NotFound(RelayError):
    """
    Exception when the lookup or delete target does not exist in the store
    """


class VersionConflict(RelayError):
    """
    Exception when a write was rejected because its version marker is stale or missing
    """


class RetryExhausted(RelayError):
    """
    Exception when every allowed write attempt ended in a version conflict
    """

    def __init__(self, path: str, attempts: int, last_error: VersionConflict):
        super().__init__(
            f"Upload of {path!r} still conflicted after {attempts} attempt(s): {last_error.message}",
            last_error.status,
            path
        )
        self.attempts = attempts
        self.last_error = last_error


class TransportError(RelayError):
    """
    Exception for network failures and unexpected upstream responses
    """


class ConfigurationError(RelayError):
    """
    Exception for missing credentials or identities of an upstream API
    """


class ValidationError(RelayError):
    """
    Exception for malformed input, raised before any upstream call
    """


class BatchAborted(RelayError):
    """
    Exception when one file of a batch upload failed terminally

    Files before the failing one have already been committed to the store
    and are available via ``completed``. Files after it were never attempted.
    """

    def __init__(
            self,
            index: int,
            name: str,
            total: int,
            cause: RelayError,
            completed: List[store.WriteResult]
    ):
        super().__init__(
            f"Upload of file {index + 1}/{total} ({name!r}) failed "
            f"after {cause.attempts or 0} attempt(s): {cause.message}",
            cause.status,
            cause.path
        )
        self.index = index
        self.name = name
        self.total = total
        self.cause = cause
        self.completed = list(completed)
        self.attempts = cause.attempts
