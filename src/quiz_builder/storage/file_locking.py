"""
Module: storage.file_locking

Purpose:
    Cross-platform file locking and atomic write helpers for the persistent
    stores. Uses portalocker for Mac, Windows, and Linux compatibility.

Key Functions:
    - locked_file: Context manager for locked file access
    - lock_path_for: Sidecar lock file guarding a JSON record
    - locked_read_json: Read JSON under a shared lock
    - locked_read_modify_write_json: Read-modify-write JSON with lock
    - atomic_write_text: Write a file via temp file + rename

The JSON helpers lock a sidecar ``<name>.lock`` file; the record itself is
swapped in with ``os.replace`` on every write, so it is never seen truncated.

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - storage.manifest_store: Manifest merges
    - storage.page_cache: Page entry writes

Low-level OS and lock failures are re-raised as PersistenceFault so the
stores have a single exception type to catch at their boundary.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator

import portalocker

from quiz_builder.core.errors import PersistenceFault

logger = logging.getLogger(__name__)


@contextmanager
def locked_file(
    path: Path,
    mode: str = 'r',
    lock_type: int = portalocker.LOCK_EX,
) -> Generator:
    """
    Context manager for cross-platform locked file access.

    Args:
        path: Path to file.
        mode: File open mode ('r', 'w', 'r+', etc.).
        lock_type: Lock type (LOCK_EX for exclusive, LOCK_SH for shared).

    Yields:
        Open file handle with lock held.

    Raises:
        PersistenceFault: If the file cannot be opened or locked.

    Example:
        >>> with locked_file(path, 'r', portalocker.LOCK_SH) as f:
        ...     data = f.read()
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        f = open(path, mode, encoding='utf-8')
    except OSError as e:
        raise PersistenceFault(f"Cannot open {path}: {e}") from e

    with f:
        try:
            portalocker.lock(f, lock_type)
        except portalocker.LockException as e:
            raise PersistenceFault(f"Cannot lock {path}: {e}") from e
        try:
            yield f
        finally:
            portalocker.unlock(f)


def lock_path_for(path: Path) -> Path:
    """Sidecar lock file for ``path`` (``manifest.json`` -> ``manifest.json.lock``)."""
    return path.with_name(path.name + ".lock")


def locked_read_json(path: Path) -> Any:
    """
    Read a JSON file while holding a shared lock.

    Raises:
        PersistenceFault: If the file cannot be read or locked.
        json.JSONDecodeError: If the content is not valid JSON.
    """
    with locked_file(lock_path_for(path), 'a', portalocker.LOCK_SH):
        try:
            content = path.read_text(encoding='utf-8')
        except OSError as e:
            raise PersistenceFault(f"Cannot read {path}: {e}") from e
    return json.loads(content)


def locked_read_modify_write_json(
    path: Path,
    modifier: Callable[[Dict[str, Any]], Dict[str, Any]],
    default: Callable[[], Dict[str, Any]] = dict,
) -> Dict[str, Any]:
    """
    Read JSON, apply modifier, write back - all with exclusive lock.

    Missing, corrupt or empty content is replaced by ``default()`` before
    the modifier runs. The result is written atomically, so a failed write
    leaves the previous record in place.

    Args:
        path: Path to JSON file.
        modifier: Function that takes existing data, returns modified data.
        default: Factory for default data if file doesn't exist.

    Returns:
        The modified data that was written.

    Raises:
        PersistenceFault: If the file cannot be read, locked or written.

    Example:
        >>> def rename(existing):
        ...     existing['name'] = 'Chemistry'
        ...     return existing
        >>> locked_read_modify_write_json(manifest_path, rename)
    """
    with locked_file(lock_path_for(path), 'a', portalocker.LOCK_EX):
        existing = default()
        try:
            content = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            content = ""
        except OSError as e:
            raise PersistenceFault(f"Cannot read {path}: {e}") from e
        if content.strip():
            try:
                existing = json.loads(content)
            except json.JSONDecodeError as e:
                logger.warning(f"Discarding corrupt JSON in {path.name}: {e}")

        modified = modifier(existing)
        atomic_write_text(path, json.dumps(modified, indent=2, ensure_ascii=False))

    return modified


def atomic_write_text(path: Path, text: str) -> None:
    """
    Write ``text`` to ``path`` atomically (temp file + replace).

    Readers see either the old or the new content, never a partial write.

    Raises:
        PersistenceFault: If the write or rename fails.
    """
    temp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            suffix=".tmp",
            dir=path.parent,
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)
    except OSError as e:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise PersistenceFault(f"Cannot write {path}: {e}") from e
