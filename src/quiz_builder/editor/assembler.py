"""
Module: editor.assembler

Purpose:
    Composes the Manifest, the Page Cache and the Active Page Buffer into
    the full document view, and renders the JSON previews the editor shows
    (whole quiz, single page).

Key Functions:
    - iter_pages(): PageContent for each page in manifest order, lazily
    - assemble(): Materialise a QuizDocument
    - count_questions(): Total question count without keeping pages around
    - full_quiz_json() / page_json(): JSON previews

Pages are yielded one at a time so the exporter only ever holds one
non-resident page in memory.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterator, Optional

from quiz_builder.core.errors import ValidationError
from quiz_builder.core.models.document import QuizDocument
from quiz_builder.core.models.manifest import Manifest
from quiz_builder.core.models.pages import PageContent
from quiz_builder.core.models.questions import Question
from quiz_builder.core.utils.serialization import deserialize_page_content, dumps_record
from quiz_builder.storage.assets import is_ephemeral
from quiz_builder.storage.page_cache import PageCache

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "[Image data not included in JSON]"


def load_page(page_cache: PageCache, page_id: str, title: str = "") -> PageContent:
    """
    Read one page from the cache.

    Returns:
        The cached page, or an empty page when absent or invalid
    """
    blob = page_cache.get(page_id)
    if blob is None:
        return PageContent.empty(page_id, title)
    try:
        return deserialize_page_content(page_id, blob, title=title or None)
    except ValidationError as e:
        logger.error(f"Cached page {page_id!r} is invalid, treating it as empty: {e}")
        return PageContent.empty(page_id, title)


def iter_pages(
    manifest: Manifest,
    page_cache: PageCache,
    active: Optional[PageContent] = None,
) -> Iterator[PageContent]:
    """
    Yield every page in manifest order.

    Args:
        manifest: Supplies the order and titles
        page_cache: Source of non-resident pages
        active: The resident page, used instead of its (stale) cache entry
    """
    for ref in manifest.page_order:
        if active is not None and active.id == ref.id:
            yield active.with_changes(title=ref.title)
        else:
            yield load_page(page_cache, ref.id, ref.title)


def assemble(
    manifest: Manifest,
    page_cache: PageCache,
    active: Optional[PageContent] = None,
) -> QuizDocument:
    """Materialise the whole document, with totals recomputed."""
    pages = {page.id: page for page in iter_pages(manifest, page_cache, active)}
    total_questions = sum(len(page.questions) for page in pages.values())
    manifest = replace(manifest, total_pages=len(manifest.page_order), total_questions=total_questions)
    return QuizDocument(manifest=manifest, pages=pages)


def count_questions(
    manifest: Manifest,
    page_cache: PageCache,
    active: Optional[PageContent] = None,
) -> int:
    return sum(len(page.questions) for page in iter_pages(manifest, page_cache, active))


# ─────────────────────────────────────────────────────────────────────────────
# JSON previews
# ─────────────────────────────────────────────────────────────────────────────

def _preview_question(question: Question) -> dict:
    record = question.to_dict()
    if is_ephemeral(record.get("image")):
        record["image"] = IMAGE_PLACEHOLDER
    return record


def page_preview(page: PageContent) -> dict:
    """Single page preview: questions with answers, session images replaced."""
    return {
        "id": page.id,
        "title": page.title,
        "timeLimit": page.time_limit,
        "questions": [_preview_question(q) for q in page.questions],
        "answers": {qid: list(a) for qid, a in page.answers.items()},
    }


def page_json(page: PageContent, indent: Optional[int] = 2) -> str:
    return dumps_record(page_preview(page), indent)


def full_quiz_json(document: QuizDocument, indent: Optional[int] = 2) -> str:
    """Whole-quiz preview in one JSON object."""
    manifest = document.manifest
    data = {
        "name": manifest.name,
        "description": manifest.description,
        "pages": [page_preview(page) for page in document.ordered_pages()],
        "globalTimeLimit": manifest.global_time_limit,
        "pageTimeLimit": manifest.page_time_limit,
    }
    return dumps_record(data, indent)
