"""
Module: pages

Purpose:
    Provides PageContent - one page's ordered questions plus the answers
    scoped to those questions - and the answer validation rules.

Key Functions:
    - PageContent.empty(): Fresh page with no questions
    - PageContent.get_question(): Find a question by id
    - validate_answers(): Raise on any answer that breaks referential integrity
    - prune_answers(): Drop invalid answer entries (used by the importer)

Dependencies:
    - dataclasses (std)
    - .questions

Used By:
    - editor.buffer.ActivePageBuffer
    - editor.assembler
    - core.utils.serialization
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .questions import Question, QuestionType

logger = logging.getLogger(__name__)

Answers = Dict[str, List[str]]


@dataclass(frozen=True)
class PageContent:
    """
    Content of a single page (immutable).

    Construction fails with ValueError if an answer references a question
    or option that is not on the page, or breaks its type's cardinality.

    Attributes:
        id: Page id (same as the PageRef id)
        title: Page title
        time_limit: Per-page time limit in minutes, or None
        questions: Ordered questions
        answers: question id -> ordered list of option ids, or a single
            literal string for fill-in-the-blank
    """

    id: str
    title: str = ""
    time_limit: Optional[int] = None
    questions: tuple[Question, ...] = ()
    answers: Answers = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.questions, tuple):
            object.__setattr__(self, "questions", tuple(self.questions))
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate question ids on page {self.id!r}: {ids}")
        validate_answers(self.questions, self.answers)
        # Each instance owns its answers
        object.__setattr__(self, "answers", {qid: list(a) for qid, a in self.answers.items()})

    @classmethod
    def empty(cls, page_id: str, title: str = "") -> PageContent:
        return cls(id=page_id, title=title)

    @property
    def question_ids(self) -> tuple[str, ...]:
        return tuple(q.id for q in self.questions)

    def get_question(self, question_id: str) -> Optional[Question]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    def with_changes(self, **changes: Any) -> PageContent:
        return replace(self, **changes)

    def __repr__(self) -> str:
        return f"PageContent({self.id!r}, questions={len(self.questions)})"


def answer_problem(question: Question, answer: Sequence[str]) -> Optional[str]:
    """
    Describe why ``answer`` is not valid for ``question``.

    Returns:
        Human readable reason, or None when the answer is valid
    """
    if not isinstance(answer, (list, tuple)) or not all(isinstance(a, str) for a in answer):
        return "answer must be a list of strings"

    if question.type is QuestionType.FILL_IN_BLANK:
        if len(answer) != 1:
            return f"fill-in-the-blank needs exactly one literal answer, got {len(answer)}"
        return None

    known = set(question.option_ids)
    unknown = [a for a in answer if a not in known]
    if unknown:
        return f"unknown option ids {unknown}"
    if len(set(answer)) != len(answer):
        return "duplicate option ids"
    if question.type is QuestionType.SINGLE_SELECT and len(answer) != 1:
        return f"single-select needs exactly one option, got {len(answer)}"
    if question.type is QuestionType.MULTI_SELECT and not answer:
        return "multi-select needs at least one option"
    return None


def validate_answers(questions: Sequence[Question], answers: Mapping[str, Sequence[str]]) -> None:
    """
    Check every answer against the questions it refers to.

    Raises:
        ValueError: On the first answer that references a missing question
            or option, or breaks the per-type cardinality rule
    """
    by_id = {q.id: q for q in questions}
    for qid, answer in answers.items():
        question = by_id.get(qid)
        if question is None:
            raise ValueError(f"answer references unknown question {qid!r}")
        problem = answer_problem(question, answer)
        if problem:
            raise ValueError(f"invalid answer for {qid!r}: {problem}")


def prune_answers(
    questions: Sequence[Question],
    answers: Mapping[str, Sequence[str]],
    *,
    page_id: str = "",
) -> Answers:
    """
    Return only the valid answer entries, logging a warning per dropped one.

    Args:
        questions: Questions on the page
        answers: Raw answers mapping
        page_id: Used in log messages only

    Returns:
        New answers dict ordered like the questions
    """
    by_id = {q.id: q for q in questions}
    for qid in answers:
        if qid not in by_id:
            logger.warning(f"Page {page_id!r}: dropping answer for unknown question {qid!r}")

    kept: Answers = {}
    for question in questions:
        if question.id not in answers:
            continue
        answer = answers[question.id]
        problem = answer_problem(question, answer)
        if problem:
            logger.warning(f"Page {page_id!r}: dropping answer for {question.id!r}: {problem}")
            continue
        kept[question.id] = list(answer)
    return kept
