"""
Module: core.errors

Purpose:
    Error taxonomy for the persistence and archive core.

    - PersistenceFault: storage unreachable / quota exceeded. Caught at the
      ManifestStore and PageCache boundary, logged, best effort.
    - ArchiveFormatError: archive root manifest missing or unreadable.
      Fatal to an import, raised before any state is touched.
    - PageParseError: one page record missing or malformed inside an
      otherwise valid archive. The importer skips that page.
    - AssetResolutionError: an image handle or path cannot be loaded.
      The question's image is nulled.
    - CrossPageMoveError: a question move targeting a page that is not
      resident in the active buffer.
"""

from __future__ import annotations

from typing import Optional


class QuizBuilderError(Exception):
    """Base class for all quiz builder errors."""


class PersistenceFault(QuizBuilderError):
    """Raised when the persistent layer cannot be read or written."""


class ArchiveFormatError(QuizBuilderError):
    """Raised when an archive has no usable root manifest."""


class PageParseError(QuizBuilderError):
    """Raised when a single page's records cannot be parsed."""

    def __init__(self, message: str, page_id: Optional[str] = None):
        super().__init__(message)
        self.page_id = page_id


class AssetResolutionError(QuizBuilderError):
    """Raised when image bytes cannot be resolved for an asset reference."""

    def __init__(self, message: str, ref: Optional[str] = None):
        super().__init__(message)
        self.ref = ref


class CrossPageMoveError(QuizBuilderError):
    """Raised for question moves onto a page that is not currently open."""


class ValidationError(QuizBuilderError):
    """Raised when data fails schema or model validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []
