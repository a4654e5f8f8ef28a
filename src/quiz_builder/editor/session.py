"""
Module: editor.session

Purpose:
    The collaborator-facing API an editor UI calls: page management,
    question/option/answer edits on the active page, quiz metadata, and
    archive import/export. Composes the stores, the asset registry, the
    serial queue and the Active Page Buffer.

Key Classes:
    - QuizSession

Ordering:
    Every operation runs on the session's SerialQueue, in the order it was
    requested. Edits and reads block until they have run; page switches
    and deletions return a Future. An edit requested after a switch always
    lands on the page switched to.

Usage:
    with QuizSession(StoreConfig(data_dir=tmp)) as session:
        q = session.add_question("multiple-choice", "2 + 2 = ?")
        session.set_answer(q.id, q.options[0].id)
        archive = session.export_document()
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Optional

from quiz_builder.archive.exporter import export_archive, write_archive
from quiz_builder.archive.importer import ArchiveSource, ImportResult, import_archive
from quiz_builder.archive.naming import suggested_filename
from quiz_builder.config import ArchiveConfig, StoreConfig
from quiz_builder.core.errors import CrossPageMoveError
from quiz_builder.core.models.document import QuizDocument
from quiz_builder.core.models.manifest import Manifest, PageRef
from quiz_builder.core.models.pages import PageContent
from quiz_builder.core.models.questions import Option, Question, QuestionType
from quiz_builder.editor import assembler, reorder
from quiz_builder.editor.buffer import ActivePageBuffer, new_id
from quiz_builder.editor.serial_queue import SerialQueue
from quiz_builder.storage.assets import AssetStore, is_ephemeral
from quiz_builder.storage.manifest_store import ManifestStore
from quiz_builder.storage.page_cache import PageCache

logger = logging.getLogger(__name__)

FIRST_PAGE_ID = "page-1"


def default_page_title(number: int) -> str:
    return f"Page {number}"


class QuizSession:
    """
    One editing session over the persisted quiz.

    On construction the stored manifest is loaded (or created with a
    single ``page-1``) and its active page is made resident.

    Attributes:
        store_config: Location of the manifest and page cache
        archive_config: Archive layout options
        manifest_store, page_cache, assets, buffer: Composed components
    """

    def __init__(
        self,
        store_config: Optional[StoreConfig] = None,
        archive_config: Optional[ArchiveConfig] = None,
        *,
        id_factory: Callable[[str], str] = new_id,
    ):
        self.store_config = store_config or StoreConfig.default()
        self.archive_config = archive_config or ArchiveConfig()
        self.manifest_store = ManifestStore.from_config(self.store_config)
        self.page_cache = PageCache.from_config(self.store_config)
        self.assets = AssetStore()
        self._queue = SerialQueue("quiz-session")
        self._new_id = id_factory
        self.buffer = ActivePageBuffer(
            self.page_cache,
            self.manifest_store,
            self.assets,
            self._queue,
            id_factory=id_factory,
        )
        self._closed = False
        self._queue.call(self._open)

    def _open(self) -> None:
        manifest = self.manifest_store.load()
        if not manifest.page_order:
            manifest = self.manifest_store.update(
                page_order=(PageRef(FIRST_PAGE_ID, default_page_title(1)),),
                total_pages=1,
            )
            logger.info("Started a new quiz")
        ref = manifest.get_page(manifest.active_page) or manifest.page_order[0]
        self.buffer.switch_to(ref.id, ref.title).result()

    # ─────────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def manifest(self) -> Manifest:
        return self._queue.call(self.manifest_store.load)

    @property
    def active_page(self) -> Optional[PageContent]:
        return self._queue.call(lambda: self.buffer.page)

    def _require_ref(self, manifest: Manifest, page_id: str) -> PageRef:
        ref = manifest.get_page(page_id)
        if ref is None:
            raise KeyError(f"No page {page_id!r}")
        return ref

    def _find_ref(self, page_id: str) -> PageRef:
        return self._require_ref(self.manifest_store.load(), page_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Pages
    # ─────────────────────────────────────────────────────────────────────────

    def add_page(self, title: Optional[str] = None, *, switch: bool = True) -> PageRef:
        """
        Append a page to the page order.

        Args:
            title: Page title (default "Page N")
            switch: Make the new page the active page before returning

        Returns:
            PageRef of the new page
        """
        return self._queue.call(self._add_page, title, switch)

    def _add_page(self, title: Optional[str], switch: bool) -> PageRef:
        manifest = self.manifest_store.load()
        ref = PageRef(
            id=self._new_id("page"),
            title=title if title is not None else default_page_title(len(manifest.page_order) + 1),
        )
        order = manifest.page_order + (ref,)
        self.manifest_store.update(page_order=order, total_pages=len(order))
        logger.debug(f"Added page {ref.id!r}")
        if switch:
            self.buffer.switch_to(ref.id, ref.title).result()
        return ref

    def delete_page(self, page_id: str) -> "Future[None]":
        """
        Queue deletion of a page.

        The page's cache entry and session images are dropped. Deleting
        the active page switches to the first remaining page without
        flushing the deleted content; deleting the only page leaves a
        fresh empty page.

        Returns:
            Future that raises KeyError if the page does not exist
        """
        return self._queue.submit(self._delete_page, page_id)

    def _delete_page(self, page_id: str) -> None:
        manifest = self.manifest_store.load()
        self._require_ref(manifest, page_id)

        was_active = self.buffer.page_id == page_id
        if was_active:
            doomed = self.buffer.discard()
        else:
            doomed = assembler.load_page(self.page_cache, page_id)
        if doomed is not None:
            self._release_page_images(doomed)
        self.page_cache.delete(page_id)

        remaining = tuple(ref for ref in manifest.page_order if ref.id != page_id)
        if not remaining:
            remaining = (PageRef(self._new_id("page"), default_page_title(1)),)
        self.manifest_store.update(page_order=remaining, total_pages=len(remaining))
        logger.info(f"Deleted page {page_id!r}")

        if was_active or self.buffer.page is None:
            self.buffer.switch_to(remaining[0].id, remaining[0].title).result()

    def rename_page(self, page_id: str, title: str) -> None:
        self._queue.call(self._rename_page, page_id, title)

    def _rename_page(self, page_id: str, title: str) -> None:
        manifest = self.manifest_store.load()
        self._require_ref(manifest, page_id)
        order = tuple(
            PageRef(ref.id, title, ref.config_file, ref.answers_file) if ref.id == page_id else ref
            for ref in manifest.page_order
        )
        self.manifest_store.update(page_order=order)
        if self.buffer.page_id == page_id:
            self.buffer.rename(title)

    def switch_page(self, page_id: str) -> "Future[PageContent]":
        """
        Queue a switch of the active page.

        Edits requested after this call apply to the new page.

        Raises:
            KeyError: If the page is not in the page order
        """
        ref = self._queue.call(self._find_ref, page_id)
        return self.buffer.switch_to(ref.id, ref.title)

    def reorder_pages(self, source_id: str, target_id: str) -> None:
        self._queue.call(self._reorder_pages, source_id, target_id)

    def _reorder_pages(self, source_id: str, target_id: str) -> None:
        manifest = self.manifest_store.load()
        order = tuple(reorder.move(manifest.page_order, source_id, target_id))
        if order != manifest.page_order:
            self.manifest_store.update(page_order=order)

    def set_active_page_time_limit(self, minutes: Optional[int]) -> None:
        """Per-page time limit of the active page."""
        self._queue.call(self.buffer.set_time_limit, minutes)

    # ─────────────────────────────────────────────────────────────────────────
    # Questions, options, answers (active page)
    # ─────────────────────────────────────────────────────────────────────────

    def add_question(self, question_type: QuestionType | str = QuestionType.SINGLE_SELECT, text: Optional[str] = None) -> Question:
        return self._queue.call(self.buffer.add_question, question_type, text)

    def update_question(self, question_id: str, **changes: Any) -> Question:
        return self._queue.call(self.buffer.update_question, question_id, **changes)

    def delete_question(self, question_id: str) -> None:
        self._queue.call(self.buffer.delete_question, question_id)

    def reorder_questions(self, source_id: str, target_id: str) -> None:
        self._queue.call(self.buffer.reorder_questions, source_id, target_id)

    def move_question_to_page(self, question_id: str, page_id: str, target_id: Optional[str] = None) -> None:
        """
        Move a question onto a page, before ``target_id`` if given.

        Only moves within the active page are possible.

        Raises:
            CrossPageMoveError: If ``page_id`` is not the active page
        """
        self._queue.call(self._move_question_to_page, question_id, page_id, target_id)

    def _move_question_to_page(self, question_id: str, page_id: str, target_id: Optional[str]) -> None:
        if page_id != self.buffer.page_id:
            raise CrossPageMoveError(
                f"Cannot move question {question_id!r} to page {page_id!r}: only the active page is editable"
            )
        if target_id is not None:
            self.buffer.reorder_questions(question_id, target_id)

    def add_option(self, question_id: str, text: str = "") -> Option:
        return self._queue.call(self.buffer.add_option, question_id, text)

    def update_option(self, question_id: str, option_id: str, text: str) -> None:
        self._queue.call(self.buffer.update_option, question_id, option_id, text)

    def delete_option(self, question_id: str, option_id: str) -> None:
        self._queue.call(self.buffer.delete_option, question_id, option_id)

    def reorder_options(self, question_id: str, source_id: str, target_id: str) -> None:
        self._queue.call(self.buffer.reorder_options, question_id, source_id, target_id)

    def move_option(self, question_id: str, option_id: str, target_question_id: str, target_option_id: str) -> None:
        self._queue.call(self.buffer.move_option, question_id, option_id, target_question_id, target_option_id)

    def set_answer(self, question_id: str, value: str) -> list[str]:
        return self._queue.call(self.buffer.set_answer, question_id, value)

    def clear_answer(self, question_id: str) -> None:
        self._queue.call(self.buffer.clear_answer, question_id)

    def set_image(self, question_id: str, data: bytes) -> str:
        return self._queue.call(self.buffer.set_image, question_id, data)

    def set_image_file(self, question_id: str, path: Path) -> str:
        """
        Attach an image file to a question.

        Raises:
            AssetResolutionError: If the file cannot be read
        """
        handle = self.assets.register_file(path)
        try:
            self._queue.call(self.buffer.update_question, question_id, image=handle)
        except KeyError:
            self.assets.release(handle)
            raise
        return handle

    def remove_image(self, question_id: str) -> None:
        self._queue.call(self.buffer.remove_image, question_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Quiz metadata
    # ─────────────────────────────────────────────────────────────────────────

    def set_name(self, name: str) -> Manifest:
        return self._queue.call(self.manifest_store.update, name=name)

    def set_description(self, description: str) -> Manifest:
        return self._queue.call(self.manifest_store.update, description=description)

    def set_global_time_limit(self, minutes: Optional[int]) -> Manifest:
        """Set the whole-quiz time limit. A non-null value clears the per-page limit."""
        return self._queue.call(self.manifest_store.update, global_time_limit=minutes)

    def set_page_time_limit(self, minutes: Optional[int]) -> Manifest:
        """Set the default per-page time limit. A non-null value clears the global limit."""
        return self._queue.call(self.manifest_store.update, page_time_limit=minutes)

    # ─────────────────────────────────────────────────────────────────────────
    # Archive
    # ─────────────────────────────────────────────────────────────────────────

    def export_document(self) -> bytes:
        """Export the whole quiz as archive bytes."""
        return self._queue.call(self._export_bytes)

    def _export_bytes(self) -> bytes:
        manifest = self.manifest_store.load()
        pages = assembler.iter_pages(manifest, self.page_cache, self.buffer.page)
        return export_archive(manifest, pages, self.assets, config=self.archive_config)

    def export_to(self, output_path: Path) -> Path:
        """
        Write the archive to ``output_path`` (``.zip`` appended if missing).

        Returns:
            Path of the written archive
        """
        output_path = Path(output_path)
        if output_path.suffix != ".zip":
            output_path = output_path.with_suffix(".zip")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self._queue.call(self._export_file, output_path)
        return output_path

    def _export_file(self, output_path: Path) -> None:
        manifest = self.manifest_store.load()
        pages = assembler.iter_pages(manifest, self.page_cache, self.buffer.page)
        write_archive(manifest, pages, self.assets, output_path, config=self.archive_config)

    def import_document(self, source: ArchiveSource) -> ImportResult:
        """
        Replace the current quiz with an archive's content.

        Raises:
            ArchiveFormatError: If the archive has no usable manifest; the
                current quiz is left untouched
        """
        return self._queue.call(self._import, source)

    def _import(self, source: ArchiveSource) -> ImportResult:
        previous_handles = self.assets.handles()
        result = import_archive(
            source,
            assets=self.assets,
            page_cache=self.page_cache,
            config=self.archive_config,
        )

        self.buffer.discard()
        for handle in previous_handles:
            self.assets.release(handle)

        self.manifest_store.save(result.manifest)
        if result.active_page is not None:
            self.buffer.load(result.active_page)
        else:
            self._open()
        return result

    def suggested_filename(self) -> str:
        return suggested_filename(self.manifest.name)

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    def document(self) -> QuizDocument:
        """Materialise the whole quiz (every page in memory)."""
        return self._queue.call(
            lambda: assembler.assemble(self.manifest_store.load(), self.page_cache, self.buffer.page)
        )

    def question_count(self) -> int:
        return self._queue.call(
            lambda: assembler.count_questions(self.manifest_store.load(), self.page_cache, self.buffer.page)
        )

    def full_quiz_json(self) -> str:
        return assembler.full_quiz_json(self.document())

    def page_json(self, page_id: Optional[str] = None) -> str:
        """JSON preview of one page (default: the active page)."""
        return self._queue.call(self._page_json, page_id)

    def _page_json(self, page_id: Optional[str]) -> str:
        active = self.buffer.page
        if page_id is None or (active is not None and active.id == page_id):
            if active is None:
                raise RuntimeError("No page is open")
            return assembler.page_json(active)
        ref = self._require_ref(self.manifest_store.load(), page_id)
        return assembler.page_json(assembler.load_page(self.page_cache, ref.id, ref.title))

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def _release_page_images(self, page: PageContent) -> None:
        for question in page.questions:
            if is_ephemeral(question.image):
                self.assets.release(question.image)

    def close(self) -> None:
        """Flush the active page and stop the queue. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.buffer.flush()
        self._queue.shutdown()
        logger.debug("Quiz session closed")

    def __enter__(self) -> QuizSession:
        return self

    def __exit__(self, *args) -> None:
        self.close()
