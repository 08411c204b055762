"""
Relay core remote content store package

This package contains the transport client of the remote store, the
conflict-aware writer implementing the optimistic-concurrency upload and
the batch orchestrator applying it to multiple files in sequence.
"""

from .batch import BatchUploader, PendingFile
from .client import RemoteFileStore
from .writer import ConflictAwareWriter, WriteState
