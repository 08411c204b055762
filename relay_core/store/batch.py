"""
Sequential upload of multiple files into the same remote store
"""

import logging
from typing import Iterable, List, NamedTuple, Optional

from . import paths
from .writer import ConflictAwareWriter
from .. import errors
from ..misc.logger import enforce_logger
from ..schemas.store import WriteResult


class PendingFile(NamedTuple):
    name: str
    content: bytes


class BatchUploader:
    """
    Apply the conflict-aware writer to a list of files, strictly one after another

    Concurrent writes below the same base path would multiply the conflict
    probability, therefore the files are processed in input order, each
    one under a freshly generated unique name below the base path. The
    first terminal failure aborts the batch; files committed before it stay
    in the store (there's no rollback) and are reported by ``BatchAborted``.
    """

    def __init__(self, writer: ConflictAwareWriter, logger: Optional[logging.Logger] = None):
        self.writer = writer
        self.logger = enforce_logger(logger, __name__)

    async def upload_all(
            self,
            files: Iterable[PendingFile],
            base_path: str,
            message: Optional[str] = None,
            branch: Optional[str] = None
    ) -> List[WriteResult]:
        files = list(files)
        if not files:
            raise errors.ValidationError("No files provided")
        if base_path is None:
            raise errors.ValidationError("Path is required")

        results = []
        for index, pending in enumerate(files):
            try:
                target = paths.join_unique(base_path, pending.name)
                results.append(await self.writer.upload(pending.content, target, pending.name, message, branch))
            except errors.RelayError as exc:
                self.logger.error(
                    f"Aborting batch at file {index + 1}/{len(files)} ({pending.name!r}); "
                    f"{len(results)} file(s) were already committed"
                )
                raise errors.BatchAborted(index, pending.name, len(files), exc, results) from exc
        self.logger.info(f"Uploaded {len(results)} file(s) below {base_path!r}")
        return results
