"""
Module: storage.page_cache

Purpose:
    Keyed persistent store of per-page content, so a large document can be
    edited without holding every page in memory. Entries are opaque JSON
    blobs: the cache never interprets question or option structure.

Key Classes:
    - PageCache: put / get / delete / clear by page id

Dependencies:
    - storage.file_locking.atomic_write_text: atomic entry writes

Used By:
    - editor.buffer.ActivePageBuffer: page-switch flush and fetch
    - archive.importer: distributes imported pages
    - editor.assembler: reads non-resident pages for export

Failure policy:
    Any I/O fault is logged and treated as "absent" (get) or a no-op
    (put/delete/clear). The editing session degrades to losing that page
    rather than crashing.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import quote, unquote

from quiz_builder.config import StoreConfig
from quiz_builder.core.errors import PersistenceFault
from quiz_builder.storage.file_locking import atomic_write_text

logger = logging.getLogger(__name__)

_ENTRY_SUFFIX = ".json"


class PageCache:
    """
    Directory-backed page cache, one JSON file per page.

    File names are the URL-quoted page id, so any id string maps to a
    single file inside ``pages_dir``.

    Example:
        >>> cache = PageCache(Path("/tmp/quiz/pages"))
        >>> cache.put("page-1", {"questions": [], "answers": {}})
        >>> cache.get("page-1")
        {'questions': [], 'answers': {}}
        >>> cache.get("missing") is None
        True
    """

    def __init__(self, pages_dir: Path):
        self.pages_dir = Path(pages_dir)

    @classmethod
    def from_config(cls, config: StoreConfig) -> PageCache:
        return cls(config.pages_dir)

    def _entry_path(self, page_id: str) -> Path:
        return self.pages_dir / f"{quote(page_id, safe='')}{_ENTRY_SUFFIX}"

    def put(self, page_id: str, blob: Mapping[str, Any]) -> None:
        """
        Store ``blob`` for ``page_id``, overwriting any existing entry.

        Raises:
            TypeError: If ``blob`` is not JSON serializable
        """
        text = json.dumps(blob, ensure_ascii=False)
        try:
            atomic_write_text(self._entry_path(page_id), text)
        except PersistenceFault as e:
            logger.error(f"Failed to cache page {page_id!r}: {e}")
            return
        logger.debug(f"Cached page {page_id!r} ({len(text)} chars)")

    def get(self, page_id: str) -> Optional[dict]:
        """
        Fetch the blob stored for ``page_id``.

        Returns:
            The decoded blob, or None if absent or unreadable
        """
        path = self._entry_path(page_id)
        try:
            with open(path, "r", encoding="utf-8") as f:
                blob = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read cached page {page_id!r}: {e}")
            return None
        if not isinstance(blob, dict):
            logger.error(f"Cached page {page_id!r} is not an object, ignoring it")
            return None
        return blob

    def delete(self, page_id: str) -> None:
        """Remove the entry for ``page_id``. Deleting a missing id is a no-op."""
        try:
            self._entry_path(page_id).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete cached page {page_id!r}: {e}")

    def clear(self) -> None:
        """Drop all entries."""
        try:
            shutil.rmtree(self.pages_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to clear page cache: {e}")
        else:
            logger.debug("Page cache cleared")

    def page_ids(self) -> list[str]:
        """Ids of all stored pages (unordered)."""
        try:
            entries = list(self.pages_dir.glob(f"*{_ENTRY_SUFFIX}"))
        except OSError as e:
            logger.error(f"Failed to list page cache: {e}")
            return []
        return [unquote(p.name[: -len(_ENTRY_SUFFIX)]) for p in entries]

    def __contains__(self, page_id: object) -> bool:
        return isinstance(page_id, str) and self._entry_path(page_id).exists()

    def __len__(self) -> int:
        return len(self.page_ids())
