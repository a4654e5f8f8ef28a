"""
Serialization Utilities

Converts between the frozen models and the JSON records defined in the
schemas package.

- Page Cache blobs: ``{title, timeLimit, questions, answers}``
- Archive page config: ``{id, title, timeLimit, questions}``
- Archive answers: ``{questionId: [...]}``
- Manifest: ``Manifest.to_dict()``

All models have ``to_dict()`` / ``from_dict()``; the functions here add
validation and the page-level wrapping.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Sequence

from ..errors import ValidationError
from ..models.manifest import Manifest
from ..models.pages import PageContent, prune_answers
from ..models.questions import Question
from ..schemas.validator import (
    validate_manifest_record,
    validate_page_blob,
    validate_page_config,
)


# ─────────────────────────────────────────────────────────────────────────────
# Page Cache blobs
# ─────────────────────────────────────────────────────────────────────────────

def serialize_page_content(page: PageContent) -> dict[str, Any]:
    """
    Serialize a page into the blob stored in the Page Cache.

    Args:
        page: PageContent to store

    Returns:
        JSON-compatible dict
    """
    return {
        "title": page.title,
        "timeLimit": page.time_limit,
        "questions": [q.to_dict() for q in page.questions],
        "answers": {qid: list(ans) for qid, ans in page.answers.items()},
    }


def deserialize_page_content(
    page_id: str,
    blob: Mapping[str, Any],
    *,
    title: Optional[str] = None,
) -> PageContent:
    """
    Rebuild a PageContent from a Page Cache blob.

    Args:
        page_id: Id of the page the blob was stored under
        blob: Decoded blob
        title: Overrides the stored title (the manifest title wins)

    Returns:
        PageContent with invalid answer entries pruned

    Raises:
        ValidationError: If the blob is not a valid page blob
    """
    validate_page_blob(blob)
    questions = _questions_from_records(blob["questions"])
    answers = prune_answers(questions, blob.get("answers") or {}, page_id=page_id)
    try:
        return PageContent(
            id=page_id,
            title=title if title is not None else blob.get("title", ""),
            time_limit=blob.get("timeLimit"),
            questions=questions,
            answers=answers,
        )
    except ValueError as e:
        raise ValidationError(f"Invalid page {page_id!r}: {e}", errors=[str(e)]) from e


# ─────────────────────────────────────────────────────────────────────────────
# Archive page records
# ─────────────────────────────────────────────────────────────────────────────

def serialize_page_config(page: PageContent, questions: Sequence[Question] | None = None) -> dict[str, Any]:
    """
    Build the archived page config record.

    Args:
        page: Page being exported
        questions: Questions to write instead of ``page.questions`` (the
            exporter passes copies whose image fields hold archive paths)

    Note:
        Answers are never written here; they travel in the answers record.
    """
    record: dict[str, Any] = {
        "id": page.id,
        "title": page.title,
        "questions": [q.to_dict() for q in (page.questions if questions is None else questions)],
    }
    if page.time_limit is not None:
        record["timeLimit"] = page.time_limit
    return record


def serialize_answers(page: PageContent) -> dict[str, list[str]]:
    """Answers record, ordered like the page's questions."""
    return {q.id: list(page.answers[q.id]) for q in page.questions if q.id in page.answers}


def deserialize_page_config(data: Mapping[str, Any]) -> tuple[str, str, Optional[int], tuple[Question, ...]]:
    """
    Parse an archived page config record.

    Returns:
        (page id, title, time limit, questions)

    Raises:
        ValidationError: If the record or any question in it is invalid
    """
    validate_page_config(data)
    questions = _questions_from_records(data["questions"])
    return data["id"], data.get("title", ""), data.get("timeLimit"), questions


def _questions_from_records(records: Sequence[Mapping[str, Any]]) -> tuple[Question, ...]:
    questions = []
    for i, record in enumerate(records):
        try:
            questions.append(Question.from_dict(dict(record)))
        except (KeyError, ValueError) as e:
            raise ValidationError(
                f"Invalid question at index {i}: {e}",
                path=f"questions.{i}",
                errors=[str(e)],
            ) from e
    return tuple(questions)


# ─────────────────────────────────────────────────────────────────────────────
# Manifest
# ─────────────────────────────────────────────────────────────────────────────

def serialize_manifest(manifest: Manifest) -> dict[str, Any]:
    return manifest.to_dict()


def deserialize_manifest(data: Any) -> Manifest:
    """
    Parse a manifest record.

    Raises:
        ValidationError: If the record is malformed or breaks an invariant
    """
    validate_manifest_record(data)
    try:
        return Manifest.from_dict(data)
    except (KeyError, ValueError) as e:
        raise ValidationError(f"Invalid manifest: {e}", errors=[str(e)]) from e


# ─────────────────────────────────────────────────────────────────────────────
# JSON helpers
# ─────────────────────────────────────────────────────────────────────────────

def dumps_record(data: Any, indent: Optional[int] = 2) -> str:
    """Encode a record the way every file written by this package is encoded."""
    return json.dumps(data, indent=indent, ensure_ascii=False)

