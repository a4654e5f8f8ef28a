"""
Quiz Builder Core Package

Shared data models, schemas, errors and serialization helpers. The models
are frozen dataclasses: every edit produces a new instance, so a snapshot
handed to the page cache or the exporter can never change underneath it.
"""

from .errors import (
    QuizBuilderError,
    PersistenceFault,
    ArchiveFormatError,
    PageParseError,
    AssetResolutionError,
    CrossPageMoveError,
    ValidationError,
)
from .models import (
    Option,
    Question,
    QuestionType,
    PageContent,
    Manifest,
    PageRef,
    QuizDocument,
)

__all__ = [
    "QuizBuilderError",
    "PersistenceFault",
    "ArchiveFormatError",
    "PageParseError",
    "AssetResolutionError",
    "CrossPageMoveError",
    "ValidationError",
    "Option",
    "Question",
    "QuestionType",
    "PageContent",
    "Manifest",
    "PageRef",
    "QuizDocument",
]
