"""
Module: editor.buffer

Purpose:
    The Active Page Buffer: the single PageContent resident in memory and
    the mutation operations the editor UI calls on it. Every other page
    lives only in the Page Cache.

Key Classes:
    - ActivePageBuffer

Page-switch protocol (runs on the SerialQueue, in request order):
    1. flush the resident page to the Page Cache
    2. fetch the target page (or start an empty one)
    3. replace the buffer contents
    4. point the manifest's ``active_page`` at the target

Because switches share one ordered queue, a late flush from an earlier
switch can never overwrite a newer cache entry.

Dependencies:
    - storage.page_cache.PageCache
    - storage.manifest_store.ManifestStore
    - storage.assets.AssetStore
    - editor.serial_queue.SerialQueue
    - editor.reorder
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future
from typing import Any, Callable, Optional

from quiz_builder.core.models.pages import Answers, PageContent, answer_problem
from quiz_builder.core.models.questions import (
    MIN_SELECT_OPTIONS,
    Option,
    Question,
    QuestionType,
)
from quiz_builder.core.utils.serialization import serialize_page_content
from quiz_builder.editor import reorder
from quiz_builder.editor.assembler import load_page
from quiz_builder.editor.serial_queue import SerialQueue
from quiz_builder.storage.assets import AssetStore, is_ephemeral
from quiz_builder.storage.manifest_store import ManifestStore
from quiz_builder.storage.page_cache import PageCache

logger = logging.getLogger(__name__)

_EDITABLE_QUESTION_FIELDS = frozenset({"text", "type", "image"})


def new_id(prefix: str) -> str:
    """Generate a document-unique id like ``question-3f2a...``."""
    return f"{prefix}-{uuid.uuid4().hex}"


class ActivePageBuffer:
    """
    Holds the page under edit and applies UI mutations to it.

    Mutations are synchronous and guarded by a re-entrant lock; a switch
    running on the queue holds the same lock for its flush/fetch/replace,
    so a mutation lands either entirely before or entirely after it.

    Attributes:
        page_cache: Store for non-resident pages
        manifest_store: Receives the active page pointer
        assets: Session image handles
    """

    def __init__(
        self,
        page_cache: PageCache,
        manifest_store: ManifestStore,
        assets: AssetStore,
        queue: SerialQueue,
        *,
        id_factory: Callable[[str], str] = new_id,
    ):
        self.page_cache = page_cache
        self.manifest_store = manifest_store
        self.assets = assets
        self._queue = queue
        self._new_id = id_factory
        self._page: Optional[PageContent] = None
        self._lock = threading.RLock()

    # ─────────────────────────────────────────────────────────────────────────
    # Resident page
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def page(self) -> Optional[PageContent]:
        """Snapshot of the resident page (None before the first switch)."""
        with self._lock:
            page = self._page
        # with_changes copies the answers dict
        return page.with_changes() if page is not None else None

    @property
    def page_id(self) -> Optional[str]:
        with self._lock:
            return self._page.id if self._page else None

    def load(self, content: PageContent) -> None:
        """Install ``content`` as the resident page without flushing."""
        with self._lock:
            self._page = content

    def discard(self) -> Optional[PageContent]:
        """Drop the resident page without flushing it. Returns what was dropped."""
        with self._lock:
            dropped, self._page = self._page, None
        return dropped

    # ─────────────────────────────────────────────────────────────────────────
    # Page-switch protocol
    # ─────────────────────────────────────────────────────────────────────────

    def switch_to(self, page_id: str, title: str = "") -> "Future[PageContent]":
        """
        Queue a switch to ``page_id``.

        Args:
            page_id: Target page
            title: Manifest title of the target page

        Returns:
            Future resolving to the new resident PageContent
        """
        return self._queue.submit(self._switch, page_id, title)

    def _switch(self, page_id: str, title: str) -> PageContent:
        with self._lock:
            current = self._page
            if current is not None and current.id == page_id:
                content = current
            else:
                if current is not None:
                    self.page_cache.put(current.id, serialize_page_content(current))
                content = load_page(self.page_cache, page_id, title)
                self._page = content
        self.manifest_store.update(active_page=page_id)
        logger.debug(f"Active page is now {page_id!r} ({len(content.questions)} questions)")
        return content

    def flush(self) -> "Future[None]":
        """Queue a write of the resident page to the Page Cache."""
        return self._queue.submit(self.flush_now)

    def flush_now(self) -> None:
        """Write the resident page to the Page Cache immediately."""
        with self._lock:
            if self._page is not None:
                self.page_cache.put(self._page.id, serialize_page_content(self._page))

    # ─────────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────────

    def _require_page(self) -> PageContent:
        if self._page is None:
            raise RuntimeError("No page is open")
        return self._page

    def _require_question(self, question_id: str) -> Question:
        question = self._require_page().get_question(question_id)
        if question is None:
            raise KeyError(f"No question {question_id!r} on the active page")
        return question

    def _replace_question(self, question: Question, answers: Optional[Answers] = None) -> None:
        page = self._require_page()
        questions = tuple(question if q.id == question.id else q for q in page.questions)
        changes: dict[str, Any] = {"questions": questions}
        if answers is not None:
            changes["answers"] = answers
        self._page = page.with_changes(**changes)

    def _answers_without(self, question_id: str) -> Answers:
        return {qid: list(a) for qid, a in self._require_page().answers.items() if qid != question_id}

    def _default_options(self) -> tuple[Option, ...]:
        return tuple(Option(self._new_id("option")) for _ in range(MIN_SELECT_OPTIONS))

    # ─────────────────────────────────────────────────────────────────────────
    # Page-level edits
    # ─────────────────────────────────────────────────────────────────────────

    def rename(self, title: str) -> None:
        with self._lock:
            self._page = self._require_page().with_changes(title=title)

    def set_time_limit(self, minutes: Optional[int]) -> None:
        if minutes is not None and minutes <= 0:
            raise ValueError(f"time limit must be positive: {minutes}")
        with self._lock:
            self._page = self._require_page().with_changes(time_limit=minutes)

    # ─────────────────────────────────────────────────────────────────────────
    # Questions
    # ─────────────────────────────────────────────────────────────────────────

    def add_question(
        self,
        question_type: QuestionType | str = QuestionType.SINGLE_SELECT,
        text: Optional[str] = None,
    ) -> Question:
        """
        Append a new question to the resident page.

        Select questions start with two empty options; fill-in-the-blank
        questions start with none.
        """
        question_type = QuestionType(question_type)
        with self._lock:
            page = self._require_page()
            question = Question(
                id=self._new_id("question"),
                type=question_type,
                text=text if text is not None else f"Question {len(page.questions) + 1}",
                options=self._default_options() if question_type.has_options else (),
            )
            self._page = page.with_changes(questions=page.questions + (question,))
        return question

    def update_question(self, question_id: str, **changes: Any) -> Question:
        """
        Update ``text``, ``type`` or ``image`` of a question.

        Changing the type to or from fill-in-the-blank replaces the options
        and clears the answer. Switching between select types keeps the
        options and keeps the answer only if it is still valid.

        Raises:
            KeyError: If the question is not on the active page
            TypeError: On any other field name
        """
        unknown = set(changes) - _EDITABLE_QUESTION_FIELDS
        if unknown:
            raise TypeError(f"cannot update question fields: {sorted(unknown)}")

        with self._lock:
            question = self._require_question(question_id)
            answers = None

            if "type" in changes:
                new_type = QuestionType(changes["type"])
                changes["type"] = new_type
                if new_type is not question.type:
                    if not new_type.has_options:
                        changes["options"] = ()
                    elif not question.type.has_options:
                        changes["options"] = self._default_options()
                    answers = self._answers_without(question_id)
                    current = self._require_page().answers.get(question_id)
                    if current is not None and new_type.has_options and question.type.has_options:
                        probe = question.with_changes(type=new_type)
                        if answer_problem(probe, current) is None:
                            answers[question_id] = list(current)

            if "image" in changes and changes["image"] != question.image:
                self.assets.release(question.image)

            updated = question.with_changes(**changes)
            self._replace_question(updated, answers)
        return updated

    def delete_question(self, question_id: str) -> None:
        """Remove a question, its answer entry and its session image."""
        with self._lock:
            question = self._require_question(question_id)
            page = self._require_page()
            self._page = page.with_changes(
                questions=tuple(q for q in page.questions if q.id != question_id),
                answers=self._answers_without(question_id),
            )
        self.assets.release(question.image)

    def reorder_questions(self, source_id: str, target_id: str) -> None:
        with self._lock:
            page = self._require_page()
            self._page = page.with_changes(questions=tuple(reorder.move(page.questions, source_id, target_id)))

    def set_image(self, question_id: str, data: bytes) -> str:
        """Attach image bytes to a question. Returns the new session handle."""
        handle = self.assets.register(data)
        try:
            self.update_question(question_id, image=handle)
        except KeyError:
            self.assets.release(handle)
            raise
        return handle

    def remove_image(self, question_id: str) -> None:
        self.update_question(question_id, image=None)

    # ─────────────────────────────────────────────────────────────────────────
    # Options
    # ─────────────────────────────────────────────────────────────────────────

    def add_option(self, question_id: str, text: str = "") -> Option:
        """
        Append an option.

        Raises:
            ValueError: For fill-in-the-blank questions
        """
        with self._lock:
            question = self._require_question(question_id)
            if not question.type.has_options:
                raise ValueError(f"fill-in-the-blank question {question_id!r} has no options")
            option = Option(self._new_id("option"), text)
            self._replace_question(question.with_changes(options=question.options + (option,)))
        return option

    def update_option(self, question_id: str, option_id: str, text: str) -> None:
        with self._lock:
            question = self._require_question(question_id)
            if question.get_option(option_id) is None:
                raise KeyError(f"No option {option_id!r} on question {question_id!r}")
            options = tuple(Option(o.id, text) if o.id == option_id else o for o in question.options)
            self._replace_question(question.with_changes(options=options))

    def delete_option(self, question_id: str, option_id: str) -> None:
        """
        Remove an option and purge it from the question's answer.

        Raises:
            KeyError: If the option does not exist
            ValueError: If the question would drop below two options
        """
        with self._lock:
            question = self._require_question(question_id)
            if question.get_option(option_id) is None:
                raise KeyError(f"No option {option_id!r} on question {question_id!r}")
            if len(question.options) <= MIN_SELECT_OPTIONS:
                raise ValueError(
                    f"question {question_id!r} must keep at least {MIN_SELECT_OPTIONS} options"
                )
            answers = self._answers_without(question_id)
            remaining = [a for a in self._require_page().answers.get(question_id, []) if a != option_id]
            if remaining:
                answers[question_id] = remaining
            options = tuple(o for o in question.options if o.id != option_id)
            self._replace_question(question.with_changes(options=options), answers)

    def reorder_options(self, question_id: str, source_id: str, target_id: str) -> None:
        self.move_option(question_id, source_id, question_id, target_id)

    def move_option(
        self,
        question_id: str,
        option_id: str,
        target_question_id: str,
        target_option_id: str,
    ) -> None:
        """Reorder an option. Drops onto a different question are ignored."""
        with self._lock:
            question = self._require_question(question_id)
            moved = reorder.move_option(question, option_id, target_question_id, target_option_id)
            if moved is not question:
                self._replace_question(moved)

    # ─────────────────────────────────────────────────────────────────────────
    # Answers
    # ─────────────────────────────────────────────────────────────────────────

    def set_answer(self, question_id: str, value: str) -> list[str]:
        """
        Set or toggle the answer for a question.

        Single-select: ``value`` is the option id, replacing any answer.
        Fill-in-the-blank: ``value`` is the literal answer, replacing any answer.
        Multi-select: ``value`` is toggled in the answer list (insertion order).

        Returns:
            The question's answer list after the change

        Raises:
            KeyError: If the question or option does not exist
        """
        with self._lock:
            question = self._require_question(question_id)
            current = list(self._require_page().answers.get(question_id, []))

            if question.type is QuestionType.FILL_IN_BLANK:
                updated = [value]
            else:
                if question.get_option(value) is None:
                    raise KeyError(f"No option {value!r} on question {question_id!r}")
                if question.type is QuestionType.SINGLE_SELECT:
                    updated = [value]
                elif value in current:
                    updated = [a for a in current if a != value]
                else:
                    updated = current + [value]

            answers = self._answers_without(question_id)
            if updated:
                answers[question_id] = updated
            self._page = self._require_page().with_changes(answers=answers)
        return updated

    def clear_answer(self, question_id: str) -> None:
        with self._lock:
            self._require_question(question_id)
            self._page = self._require_page().with_changes(answers=self._answers_without(question_id))

    def release_images(self) -> None:
        """Release the session handles of every image on the resident page."""
        with self._lock:
            page = self._page
        if page is None:
            return
        for question in page.questions:
            if is_ephemeral(question.image):
                self.assets.release(question.image)
