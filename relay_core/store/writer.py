"""
Optimistic-concurrency create-or-update of single files with bounded retry

The remote store uses the version marker of a file as optimistic lock:
an update must name the marker it was based on. After a conflict the
marker is therefore looked up again before the next attempt, reusing the
old one would fail deterministically. Every upload runs through the
following states::

    CHECKING --> WRITING --> SUCCEEDED
       ^            |
       |            +------> FAILED
       |            v
       +------- BACKING_OFF

``WRITING`` moves to ``BACKING_OFF`` on a version conflict while attempts
remain and to ``FAILED`` on an exhausted conflict or any other error.
"""

import enum
import asyncio
import logging
import posixpath
from typing import Any, Awaitable, Callable, Optional

from . import paths
from .. import errors
from ..misc.logger import enforce_logger
from ..schemas.store import RemoteFile, WriteRequest, WriteResult


DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_BASE_DELAY: float = 0.1


@enum.unique
class WriteState(enum.Enum):
    CHECKING = "checking"
    WRITING = "writing"
    BACKING_OFF = "backing off"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = (WriteState.SUCCEEDED, WriteState.FAILED)

TransitionCallback = Callable[[WriteState, WriteState, int], Any]


class ConflictAwareWriter:
    """
    Create-or-update files in the remote store, retrying version conflicts

    The writer only holds its configuration, so one instance may serve many
    uploads; all state of a single upload lives in the ``upload`` call.

    :param store: client of the remote store (anything with async ``lookup`` and ``write``)
    :param max_attempts: maximum number of write attempts per file
    :param base_delay: backoff unit in seconds, the n-th retry waits ``n * base_delay``
    :param default_branch: branch used when an upload doesn't specify one
    :param strict_lookup: abort on lookup failures instead of assuming an absent file
    :param sleep: coroutine function used for the backoff (``asyncio.sleep`` by default)
    :param on_transition: optional callback receiving each (previous, next, attempt) transition
    :param logger: optional logger used for progress and warnings
    """

    def __init__(
            self,
            store,
            max_attempts: int = DEFAULT_MAX_ATTEMPTS,
            base_delay: float = DEFAULT_BASE_DELAY,
            default_branch: str = "main",
            strict_lookup: bool = False,
            sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
            on_transition: Optional[TransitionCallback] = None,
            logger: Optional[logging.Logger] = None
    ):
        if max_attempts < 1:
            raise ValueError(f"At least one attempt is required, got {max_attempts}")
        if base_delay < 0:
            raise ValueError(f"Negative backoff delay {base_delay} is not allowed")
        self.store = store
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.default_branch = default_branch
        self.strict_lookup = strict_lookup
        self._sleep = sleep
        self._on_transition = on_transition
        self.logger = enforce_logger(logger, __name__)

    def delay_for(self, attempt: int) -> float:
        """
        Return the backoff delay in seconds after the given (1-based) failed attempt
        """

        return self.base_delay * attempt

    async def _check(self, path: str, branch: str) -> Optional[RemoteFile]:
        try:
            return await self.store.lookup(path, branch)
        except errors.RelayError as exc:
            if self.strict_lookup:
                raise
            self.logger.warning(f"Checking {path!r} failed, assuming it does not exist: {exc}")
            return None

    def _transition(self, previous: WriteState, following: WriteState, path: str, attempt: int) -> WriteState:
        self.logger.debug(f"Upload of {path!r}, attempt {attempt}: {previous.value} -> {following.value}")
        if self._on_transition is not None:
            self._on_transition(previous, following, attempt)
        return following

    async def upload(
            self,
            content: bytes,
            path: str,
            name: Optional[str] = None,
            message: Optional[str] = None,
            branch: Optional[str] = None
    ) -> WriteResult:
        """
        Create or update one file, retrying version conflicts up to the attempt bound

        :param content: binary content of the file
        :param path: target path, a trailing slash makes it a directory marker
            which gets a unique file name derived from ``name`` appended
        :param name: original file name (used for directory markers and the default message)
        :param message: optional commit message (defaults to ``Upload <name>``)
        :param branch: optional target branch (the writer's default branch otherwise)
        :return: result of the successful write including the number of attempts
        :raises ValidationError: when the path or the content are missing
        :raises RetryExhausted: when every attempt ended in a version conflict
        :raises RelayError: for any other terminal failure, carrying the attempt count
        """

        if content is None:
            raise errors.ValidationError("No file provided")
        target = paths.resolve_target_path(path, name)
        branch = branch or self.default_branch
        message = message or f"Upload {name or posixpath.basename(target)}"

        state = WriteState.CHECKING
        attempt = 1
        existing: Optional[RemoteFile] = None
        result: Optional[WriteResult] = None
        failure: Optional[errors.RelayError] = None

        while state not in TERMINAL_STATES:
            if state == WriteState.CHECKING:
                try:
                    existing = await self._check(target, branch)
                except errors.RelayError as exc:
                    failure = exc
                    state = self._transition(state, WriteState.FAILED, target, attempt)
                else:
                    state = self._transition(state, WriteState.WRITING, target, attempt)

            elif state == WriteState.WRITING:
                request = WriteRequest(
                    path=target,
                    content=content,
                    message=message,
                    branch=branch,
                    sha=existing.sha if existing is not None else None
                )
                try:
                    result = await self.store.write(request)
                except errors.VersionConflict as exc:
                    failure = exc
                    if attempt < self.max_attempts:
                        self.logger.info(f"Version conflict on attempt {attempt}/{self.max_attempts} for {target!r}")
                        state = self._transition(state, WriteState.BACKING_OFF, target, attempt)
                    else:
                        state = self._transition(state, WriteState.FAILED, target, attempt)
                except errors.RelayError as exc:
                    failure = exc
                    state = self._transition(state, WriteState.FAILED, target, attempt)
                else:
                    state = self._transition(state, WriteState.SUCCEEDED, target, attempt)

            elif state == WriteState.BACKING_OFF:
                await self._sleep(self.delay_for(attempt))
                attempt += 1
                state = self._transition(state, WriteState.CHECKING, target, attempt)

        if state == WriteState.SUCCEEDED:
            result.attempts = attempt
            self.logger.debug(f"Uploaded {target!r} as {result.file.sha} after {attempt} attempt(s)")
            return result

        if isinstance(failure, errors.VersionConflict):
            self.logger.error(f"Giving up on {target!r} after {attempt} conflicting attempt(s)")
            raise errors.RetryExhausted(target, attempt, failure) from failure
        failure.attempts = attempt
        if failure.path is None:
            failure.path = target
        self.logger.error(f"Upload of {target!r} failed on attempt {attempt}: {failure}")
        raise failure
