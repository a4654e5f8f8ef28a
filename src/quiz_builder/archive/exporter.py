"""
Module: archive.exporter

Purpose:
    Write a quiz document as a self-contained ZIP archive. Pages are
    consumed one at a time from an iterable, so only one non-resident page
    is held in memory while exporting.

Key Functions:
    - write_archive(): Stream the archive into a file or file object
    - export_archive(): Same, returning the archive bytes

Dependencies:
    - zipfile (std)
    - storage.assets: resolves session image handles, detects extensions

Used By:
    - editor.session.QuizSession.export_document / export_to
    - cli: repack command
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, replace
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Union

from quiz_builder.config import ArchiveConfig
from quiz_builder.core.errors import AssetResolutionError
from quiz_builder.core.models.manifest import Manifest, PageRef
from quiz_builder.core.models.pages import PageContent
from quiz_builder.core.models.questions import Question
from quiz_builder.core.schemas.validator import ARCHIVE_SCHEMA_VERSION
from quiz_builder.core.utils.serialization import (
    dumps_record,
    serialize_answers,
    serialize_page_config,
)
from quiz_builder.archive import layout
from quiz_builder.storage.assets import AssetStore, image_extension, is_ephemeral

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportStats:
    """Counts reported after an export."""

    pages: int = 0
    questions: int = 0
    images: int = 0
    dropped_images: int = 0


def write_archive(
    manifest: Manifest,
    pages: Iterable[PageContent],
    assets: AssetStore,
    output: Union[Path, BinaryIO],
    *,
    config: Optional[ArchiveConfig] = None,
) -> ExportStats:
    """
    Write a quiz archive.

    Creates a ZIP file with structure:
        quiz.zip
        └── quiz/
            ├── manifest.json
            └── page_<id>/
                ├── page_config.json
                ├── answers.json
                └── assets/<questionId>.<ext>

    Args:
        manifest: Supplies name, description and time limits
        pages: Pages in manifest order (see editor.assembler.iter_pages)
        assets: Resolves the session image handles held by questions
        output: Destination path or writable binary file object
        config: Archive layout options

    Returns:
        ExportStats for the written archive

    Note:
        An image whose handle cannot be resolved is exported as ``null``
        with a warning; the rest of the export continues.
    """
    config = config or ArchiveConfig()
    root = config.root_folder.strip("/")

    refs: list[PageRef] = []
    used_dirs: set[str] = set()
    total_questions = 0
    images = 0
    dropped = 0

    with zipfile.ZipFile(output, "w", config.compression) as zf:
        for page in pages:
            page_dir = layout.unique_name(layout.page_dir_name(page.id), used_dirs)
            used_dirs.add(page_dir)

            questions, written, missing = _export_images(zf, f"{root}/{page_dir}", page, assets, config)
            images += written
            dropped += missing

            config_file = f"{page_dir}/{layout.PAGE_CONFIG_NAME}"
            answers_file = f"{page_dir}/{layout.ANSWERS_NAME}"
            zf.writestr(
                f"{root}/{config_file}",
                dumps_record(serialize_page_config(page, questions), config.json_indent),
            )
            zf.writestr(
                f"{root}/{answers_file}",
                dumps_record(serialize_answers(page), config.json_indent),
            )

            refs.append(PageRef(id=page.id, title=page.title, config_file=config_file, answers_file=answers_file))
            total_questions += len(page.questions)
            logger.debug(f"Exported page {page.id!r}: {len(page.questions)} questions, {written} images")

        record = replace(
            manifest,
            total_pages=len(refs),
            total_questions=total_questions,
            active_page=refs[0].id if refs else "",
            page_order=tuple(refs),
        ).to_dict()
        record["schemaVersion"] = ARCHIVE_SCHEMA_VERSION
        zf.writestr(f"{root}/{layout.MANIFEST_NAME}", dumps_record(record, config.json_indent))

    if dropped:
        logger.warning(f"Exported without {dropped} unresolvable image(s)")
    logger.info(f"Exported quiz {manifest.name!r}: {len(refs)} pages, {total_questions} questions, {images} images")
    return ExportStats(pages=len(refs), questions=total_questions, images=images, dropped_images=dropped)


def export_archive(
    manifest: Manifest,
    pages: Iterable[PageContent],
    assets: AssetStore,
    *,
    config: Optional[ArchiveConfig] = None,
) -> bytes:
    """Build the archive in memory and return its bytes."""
    buffer = BytesIO()
    write_archive(manifest, pages, assets, buffer, config=config)
    return buffer.getvalue()


def _export_images(
    zf: zipfile.ZipFile,
    page_prefix: str,
    page: PageContent,
    assets: AssetStore,
    config: ArchiveConfig,
) -> tuple[list[Question], int, int]:
    """
    Write each question's image under the page's assets folder.

    Returns:
        (questions with archive-relative image paths, images written, images dropped)
    """
    questions: list[Question] = []
    used_names: set[str] = set()
    written = 0
    dropped = 0

    for question in page.questions:
        ref = question.image
        if ref is None:
            questions.append(question)
            continue

        if not is_ephemeral(ref):
            logger.warning(f"Question {question.id!r} image {ref!r} is not a session asset, dropping it")
            questions.append(question.with_changes(image=None))
            dropped += 1
            continue

        try:
            data = assets.read(ref)
        except AssetResolutionError as e:
            logger.warning(f"Question {question.id!r}: {e}, exporting without image")
            questions.append(question.with_changes(image=None))
            dropped += 1
            continue

        extension = image_extension(data, config.default_image_extension)
        name = layout.unique_name(layout.asset_name(question.id, extension), used_names)
        used_names.add(name)
        relative = f"{layout.ASSETS_DIR}/{name}"
        zf.writestr(f"{page_prefix}/{relative}", data)
        questions.append(question.with_changes(image=relative))
        written += 1

    return questions, written, dropped
