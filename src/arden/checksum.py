"""Checksums used to decide whether a local source needs re-syncing."""

import hashlib
import os
from pathlib import Path
from typing import Union

from .time import iso_from_timestamp

PathLike = Union[str, Path]

_READ_BLOCK = 64 * 1024


class ChecksumError(OSError):
    """Raised when a file or directory cannot be fingerprinted."""
    pass


def _update_with_file(hash_obj, path: PathLike) -> None:
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(_READ_BLOCK), b""):
            hash_obj.update(block)


def file_checksum(path: PathLike) -> str:
    """SHA-256 hex digest of a file's bytes.

    Raises:
        ChecksumError: If the file cannot be read
    """
    hash_obj = hashlib.sha256()
    try:
        _update_with_file(hash_obj, path)
    except OSError as e:
        raise ChecksumError(f"Failed to calculate checksum for {path}: {e}") from e
    return hash_obj.hexdigest()


def directory_checksum(path: PathLike, content: bool = False) -> str:
    """SHA-256 fingerprint of a directory tree.

    Entries are walked in lexicographic order. Each entry contributes its
    path relative to the root; files additionally contribute their mtime and
    size, or their bytes when ``content`` is True. With the default metadata
    mode a content change that keeps both size and mtime goes unnoticed.

    Raises:
        ChecksumError: If the tree cannot be walked
    """
    root = os.fspath(path)
    hash_obj = hashlib.sha256()

    def _walk(current: str) -> None:
        with os.scandir(current) as it:
            entries = sorted(it, key=lambda entry: entry.name)

        for entry in entries:
            full_path = os.path.join(current, entry.name)
            hash_obj.update(full_path[len(root):].encode("utf-8"))

            if entry.is_file(follow_symlinks=False):
                if content:
                    _update_with_file(hash_obj, full_path)
                else:
                    stats = entry.stat(follow_symlinks=False)
                    hash_obj.update(iso_from_timestamp(stats.st_mtime).encode("utf-8"))
                    hash_obj.update(str(stats.st_size).encode("utf-8"))
            elif entry.is_dir(follow_symlinks=False):
                _walk(full_path)

    try:
        _walk(root)
    except OSError as e:
        raise ChecksumError(f"Failed to calculate directory checksum for {root}: {e}") from e
    return hash_obj.hexdigest()


def compute_checksum(source: PathLike, content: bool = False) -> str:
    """Checksum a file by content or a directory by fingerprint."""
    if Path(source).is_dir():
        return directory_checksum(source, content=content)
    return file_checksum(source)
