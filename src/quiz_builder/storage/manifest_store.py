"""
Module: storage.manifest_store

Purpose:
    Durable, always-resident record of document metadata and page order.
    Every update is a full read-modify-write against the manifest file,
    done under an exclusive lock so a concurrent reader (holding a shared
    lock) never observes a partially merged manifest.

Key Classes:
    - ManifestStore: load / update / save / clear

Dependencies:
    - storage.file_locking: portalocker-backed JSON access
    - core.models.manifest: Manifest, merge_manifest

Used By:
    - editor.buffer.ActivePageBuffer: active page pointer
    - editor.session.QuizSession: metadata and page order edits

Failure policy:
    Persistence faults are logged, never raised. After a failed write the
    merged manifest stays the in-memory copy: ``load`` returns it and the
    next ``update`` merges on top of it, until a write succeeds again.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from quiz_builder.config import StoreConfig
from quiz_builder.core.errors import PersistenceFault, ValidationError
from quiz_builder.core.models.manifest import Manifest, merge_manifest
from quiz_builder.core.utils.serialization import deserialize_manifest, serialize_manifest
from quiz_builder.storage.file_locking import locked_read_json, locked_read_modify_write_json

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    JSON-file backed manifest store.

    Attributes:
        path: Location of the persisted manifest record

    Example:
        >>> store = ManifestStore(Path("/tmp/quiz/manifest.json"))
        >>> store.update(name="Chemistry")
        >>> store.load().name
        'Chemistry'
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        # Base for optimistic merges when the file cannot be read
        self._last_known: Optional[Manifest] = None
        # True while _last_known holds edits the file does not
        self._unsaved = False

    @classmethod
    def from_config(cls, config: StoreConfig) -> ManifestStore:
        return cls(config.manifest_path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Manifest:
        """
        Return the last persisted manifest.

        Returns:
            The stored Manifest. An unsaved in-memory manifest wins over the
            file; a missing record gives ``Manifest.default()`` and an
            unreadable one the last manifest seen
        """
        if self._unsaved and self._last_known is not None:
            return self._last_known
        if not self.path.exists():
            return Manifest.default()
        try:
            manifest = deserialize_manifest(locked_read_json(self.path))
        except PersistenceFault as e:
            logger.error(f"Failed to read manifest: {e}")
            return self._last_known or Manifest.default()
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Stored manifest is corrupt: {e}")
            return self._last_known or Manifest.default()
        self._last_known = manifest
        return manifest

    def update(self, **changes: Any) -> Manifest:
        """
        Merge ``changes`` into the stored manifest and persist the result.

        Creates a default manifest first if none exists. Setting one time
        limit to a non-null value clears the other.

        Args:
            **changes: Manifest field names and new values

        Returns:
            The merged Manifest (returned even when persisting failed)

        Raises:
            TypeError: On an unknown field name
            ValueError: If the merge would break a manifest invariant
        """
        merged: dict[str, Manifest] = {}

        def _merge(existing: dict) -> dict:
            if self._unsaved and self._last_known is not None:
                current = self._last_known
            elif not existing:
                current = self._last_known or Manifest.default()
            else:
                try:
                    current = deserialize_manifest(existing)
                except ValidationError as e:
                    logger.warning(f"Replacing invalid stored manifest: {e}")
                    current = self._last_known or Manifest.default()
            merged["manifest"] = merge_manifest(current, **changes)
            return serialize_manifest(merged["manifest"])

        try:
            locked_read_modify_write_json(self.path, _merge)
        except PersistenceFault as e:
            logger.error(f"Failed to update manifest: {e}")
            if "manifest" not in merged:
                merged["manifest"] = merge_manifest(self._last_known or Manifest.default(), **changes)
            self._unsaved = True
        else:
            self._unsaved = False

        self._last_known = merged["manifest"]
        return merged["manifest"]

    def save(self, manifest: Manifest) -> Manifest:
        """
        Replace the stored manifest wholesale (used by import).

        Returns:
            ``manifest``, whether or not it was persisted
        """
        try:
            locked_read_modify_write_json(self.path, lambda _existing: serialize_manifest(manifest))
        except PersistenceFault as e:
            logger.error(f"Failed to save manifest: {e}")
            self._unsaved = True
        else:
            self._unsaved = False
        self._last_known = manifest
        return manifest

    def clear(self) -> None:
        """Delete the stored manifest. Idempotent."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to clear manifest: {e}")
        self._last_known = None
        self._unsaved = False
