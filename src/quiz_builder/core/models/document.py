"""
Module: document

Purpose:
    QuizDocument - the full, virtual document. It is only materialised for
    export, import and inspection; during editing the manifest store, page
    cache and active buffer hold the pieces.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator

from .manifest import Manifest
from .pages import PageContent
from .questions import Question


@dataclass(frozen=True)
class QuizDocument:
    """
    Manifest plus every page's content.

    Attributes:
        manifest: Document metadata and page order
        pages: page id -> PageContent
    """

    manifest: Manifest
    pages: Dict[str, PageContent] = field(default_factory=dict)

    def ordered_pages(self) -> list[PageContent]:
        """Pages in manifest order. Pages missing from ``pages`` come back empty."""
        return [
            self.pages.get(ref.id) or PageContent.empty(ref.id, ref.title)
            for ref in self.manifest.page_order
        ]

    def iter_questions(self) -> Iterator[Question]:
        for page in self.ordered_pages():
            yield from page.questions

    @property
    def total_questions(self) -> int:
        return sum(len(page.questions) for page in self.ordered_pages())
