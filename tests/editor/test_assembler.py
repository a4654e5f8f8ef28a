"""
Unit tests for the document assembler and JSON previews.
"""

import json
import pytest
from pathlib import Path

from quiz_builder.core.models.manifest import Manifest, PageRef
from quiz_builder.core.models.pages import PageContent
from quiz_builder.core.models.questions import Option, Question, QuestionType
from quiz_builder.core.utils.serialization import serialize_page_content
from quiz_builder.editor.assembler import (
    IMAGE_PLACEHOLDER,
    assemble,
    count_questions,
    full_quiz_json,
    iter_pages,
    load_page,
    page_json,
)
from quiz_builder.storage.page_cache import PageCache


def blank(qid: str, image=None) -> Question:
    return Question(qid, QuestionType.FILL_IN_BLANK, f"text {qid}", image=image)


@pytest.fixture
def cache(tmp_path: Path) -> PageCache:
    return PageCache(tmp_path / "pages")


@pytest.fixture
def manifest() -> Manifest:
    return Manifest(
        name="Quiz",
        page_order=(PageRef("p1", "One"), PageRef("p2", "Two"), PageRef("p3", "Three")),
    )


class TestAssembler:
    """Composition of manifest, cache and active page."""

    def test_iter_pages_prefers_active_page(self, cache, manifest):
        cache.put("p1", serialize_page_content(PageContent("p1", questions=[blank("stale")])))
        cache.put("p2", serialize_page_content(PageContent("p2", questions=[blank("q2")])))
        active = PageContent("p1", "old title", questions=[blank("fresh")])

        pages = list(iter_pages(manifest, cache, active))

        assert [p.id for p in pages] == ["p1", "p2", "p3"]
        assert pages[0].question_ids == ("fresh",)
        assert pages[0].title == "One"
        assert pages[1].question_ids == ("q2",)
        assert pages[2].questions == ()
        assert pages[2].title == "Three"

    def test_iter_pages_is_lazy(self, cache, manifest):
        iterator = iter_pages(manifest, cache)
        cache.put("p1", serialize_page_content(PageContent("p1", questions=[blank("late")])))
        assert next(iterator).question_ids == ("late",)

    def test_assemble_recomputes_totals(self, cache, manifest):
        cache.put("p2", serialize_page_content(PageContent("p2", questions=[blank("a"), blank("b")])))
        active = PageContent("p1", questions=[blank("c")])

        doc = assemble(manifest, cache, active)

        assert doc.manifest.total_pages == 3
        assert doc.manifest.total_questions == 3
        assert count_questions(manifest, cache, active) == 3

    def test_load_page_when_invalid_then_empty(self, cache):
        cache.put("p1", {"questions": [{"id": "q"}]})
        page = load_page(cache, "p1", "Title")
        assert page.questions == ()
        assert page.title == "Title"


class TestPreviews:
    """JSON previews replace session images with a placeholder."""

    def test_page_json_replaces_session_images(self):
        page = PageContent("p1", "One", questions=[blank("q1", image="blob:123"), blank("q2")])

        data = json.loads(page_json(page))

        assert data["questions"][0]["image"] == IMAGE_PLACEHOLDER
        assert data["questions"][1]["image"] is None
        assert data["title"] == "One"

    def test_full_quiz_json(self, cache, manifest):
        active = PageContent(
            "p1",
            questions=[Question("q1", "multiple-choice", options=[Option("o1"), Option("o2")])],
            answers={"q1": ["o1"]},
        )
        doc = assemble(manifest.__class__(name="Quiz", page_time_limit=5, page_order=manifest.page_order), cache, active)

        data = json.loads(full_quiz_json(doc))

        assert data["name"] == "Quiz"
        assert data["pageTimeLimit"] == 5
        assert data["globalTimeLimit"] is None
        assert [p["id"] for p in data["pages"]] == ["p1", "p2", "p3"]
        assert data["pages"][0]["answers"] == {"q1": ["o1"]}
