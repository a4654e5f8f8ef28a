"""Data models for the quiz document."""

from .questions import Option, Question, QuestionType, MIN_SELECT_OPTIONS
from .pages import PageContent, Answers, validate_answers, prune_answers
from .manifest import Manifest, PageRef, merge_manifest
from .document import QuizDocument

__all__ = [
    "Option",
    "Question",
    "QuestionType",
    "MIN_SELECT_OPTIONS",
    "PageContent",
    "Answers",
    "validate_answers",
    "prune_answers",
    "Manifest",
    "PageRef",
    "merge_manifest",
    "QuizDocument",
]
