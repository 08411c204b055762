"""
Target path resolution for uploads into the remote content store
"""

import time
import posixpath
import threading
from typing import Optional

from .. import errors


_last_stamp: int = 0
_stamp_lock = threading.Lock()


def unique_timestamp() -> int:
    """
    Return a strictly increasing timestamp in microseconds since the epoch
    """

    global _last_stamp
    with _stamp_lock:
        stamp = max(time.time_ns() // 1000, _last_stamp + 1)
        _last_stamp = stamp
    return stamp


def generate_file_name(original_name: str, timestamp: Optional[int] = None) -> str:
    """
    Derive a unique file name by adding a timestamp between base name and extension

    :param original_name: original name of the uploaded file (directories are ignored)
    :param timestamp: optional fixed timestamp (a fresh unique one is used by default)
    :return: file name like ``photo-1700000000000000.png``
    :raises ValidationError: when the original name has no usable base name
    """

    base = posixpath.basename((original_name or "").replace("\\", "/"))
    if not base:
        raise errors.ValidationError("A file name is required to generate a unique target path")
    stem, extension = posixpath.splitext(base)
    if timestamp is None:
        timestamp = unique_timestamp()
    return f"{stem}-{timestamp}{extension}"


def is_directory_marker(path: str) -> bool:
    return path.endswith("/")


def resolve_target_path(path: str, original_name: Optional[str] = None) -> str:
    """
    Resolve the final path of an upload in the remote store

    A path ending with a slash is a directory marker, in which case a unique
    file name derived from the original name is appended. Any other path is
    used verbatim. Leading slashes are dropped, the store uses relative paths.
    """

    if not path:
        raise errors.ValidationError("Path is required")
    if is_directory_marker(path):
        return path.lstrip("/") + generate_file_name(original_name)
    return path.lstrip("/")


def join_unique(base_path: str, original_name: str) -> str:
    """
    Return a fresh unique path for the original file name below the base path
    """

    base = (base_path or "").strip("/")
    name = generate_file_name(original_name)
    if not base:
        return name
    return f"{base}/{name}"
