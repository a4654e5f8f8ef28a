"""
Module: config

Purpose:
    Configuration dataclasses for the storage layer and the archive codec.
    Immutable configuration with validation on construction.

Key Classes:
    - StoreConfig: Where the manifest and page cache live
    - ArchiveConfig: Archive layout and encoding options

Dependencies:
    - dataclasses (std)
    - zipfile (std)
    - utils.paths: default data directory

Used By:
    - editor.session.QuizSession
    - storage.manifest_store / storage.page_cache
    - archive.exporter / archive.importer
"""

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from quiz_builder.utils.paths import get_app_data_dir

_COMPRESSIONS = (zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED)


@dataclass(frozen=True)
class StoreConfig:
    """
    Configuration for the persistent stores (immutable).

    Attributes:
        data_dir: Root directory for all persisted state
        cache_name: Sub-directory holding the manifest and page entries
        manifest_filename: File name of the persisted manifest

    Example:
        >>> config = StoreConfig(data_dir=Path("/tmp/quiz"))
        >>> config.cache_dir
        PosixPath('/tmp/quiz/quiz-builder-cache')
    """

    data_dir: Path
    cache_name: str = "quiz-builder-cache"
    manifest_filename: str = "manifest.json"

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if not isinstance(self.data_dir, Path):
            object.__setattr__(self, "data_dir", Path(self.data_dir))
        for label, value in (("cache_name", self.cache_name), ("manifest_filename", self.manifest_filename)):
            if not value or "/" in value or "\\" in value:
                raise ValueError(f"{label} must be a plain file name: {value!r}")

    @classmethod
    def default(cls) -> StoreConfig:
        return cls(data_dir=get_app_data_dir())

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / self.cache_name

    @property
    def manifest_path(self) -> Path:
        return self.cache_dir / self.manifest_filename

    @property
    def pages_dir(self) -> Path:
        return self.cache_dir / "pages"


@dataclass(frozen=True)
class ArchiveConfig:
    """
    Configuration for archive export/import (immutable).

    Attributes:
        root_folder: Folder inside the zip holding the manifest and pages
        compression: zipfile compression constant
        json_indent: Indentation of JSON records (None = compact)
        default_image_extension: Extension for images whose format cannot
            be detected
    """

    root_folder: str = "quiz"
    compression: int = zipfile.ZIP_DEFLATED
    json_indent: Optional[int] = 2
    default_image_extension: str = "png"

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if not self.root_folder or "/" in self.root_folder.strip("/"):
            raise ValueError(f"root_folder must be a single folder name: {self.root_folder!r}")
        if self.compression not in _COMPRESSIONS:
            raise ValueError(f"unsupported compression: {self.compression}")
        if self.json_indent is not None and self.json_indent < 0:
            raise ValueError(f"json_indent must be non-negative: {self.json_indent}")
        if not self.default_image_extension.isalnum():
            raise ValueError(f"invalid image extension: {self.default_image_extension!r}")
