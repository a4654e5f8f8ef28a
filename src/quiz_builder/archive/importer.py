"""
Module: archive.importer

Purpose:
    Read a quiz archive back into the editor's stores. The manifest is
    validated before anything is touched; after that each page is
    processed independently, so one broken page costs only that page.

Key Classes:
    - ImportResult: Manifest, first page content and skipped page ids

Key Functions:
    - import_archive(): Parse an archive and distribute its pages

Failure policy:
    - ArchiveFormatError: no usable manifest (missing, not JSON, invalid,
      duplicate page ids). No store has been modified.
    - PageParseError (per page, internal): the page is logged and kept in
      the page order with empty content. Corrupt or undecompressable
      entries count as parse errors.
    - Missing or unreadable image: the question's image becomes null,
      with a warning.

Dependencies:
    - zipfile (std)
    - core.schemas.validator: manifest/page/answers record shapes
    - storage.assets / storage.page_cache: destinations
"""

from __future__ import annotations

import json
import logging
import posixpath
import zipfile
import zlib
from dataclasses import dataclass, field, replace
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from quiz_builder.config import ArchiveConfig
from quiz_builder.core.errors import ArchiveFormatError, PageParseError, ValidationError
from quiz_builder.core.models.manifest import Manifest, PageRef
from quiz_builder.core.models.pages import Answers, PageContent, prune_answers
from quiz_builder.core.models.questions import Question
from quiz_builder.core.schemas.validator import ARCHIVE_SCHEMA_VERSION, validate_answers_record
from quiz_builder.core.utils.serialization import (
    deserialize_manifest,
    deserialize_page_config,
    serialize_page_content,
)
from quiz_builder.archive import layout
from quiz_builder.storage.assets import AssetStore, is_ephemeral
from quiz_builder.storage.page_cache import PageCache

logger = logging.getLogger(__name__)

ArchiveSource = Union[bytes, bytearray, Path, str, BinaryIO]

# What ZipFile.read raises for corrupt, truncated, encrypted or unsupported entries
_ENTRY_ERRORS = (zipfile.BadZipFile, OSError, EOFError, zlib.error, NotImplementedError, RuntimeError)


@dataclass(frozen=True)
class ImportResult:
    """
    Outcome of an archive import.

    Attributes:
        manifest: Imported manifest with recomputed totals, the first
            page active, and archive file paths stripped from the page order
        active_page: Content of the first page (None for an empty quiz);
            it is not written to the page cache
        skipped_pages: Ids of pages imported empty because they could not
            be parsed
    """

    manifest: Manifest
    active_page: Optional[PageContent]
    skipped_pages: tuple[str, ...] = field(default_factory=tuple)


def import_archive(
    source: ArchiveSource,
    *,
    assets: AssetStore,
    page_cache: PageCache,
    config: Optional[ArchiveConfig] = None,
) -> ImportResult:
    """
    Import a quiz archive.

    Pages other than the first are written to ``page_cache``; cache entries
    for pages that are not in the archive are deleted. Images are
    registered with ``assets`` under fresh session handles.

    Args:
        source: Archive bytes, a path, or a readable binary file object
        assets: Registry for imported images
        page_cache: Destination for non-first pages
        config: Archive layout options

    Returns:
        ImportResult

    Raises:
        ArchiveFormatError: If the archive has no usable manifest
    """
    config = config or ArchiveConfig()
    if isinstance(source, (bytes, bytearray)):
        source = BytesIO(source)

    try:
        zf = zipfile.ZipFile(source, "r")
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveFormatError(f"Not a quiz archive: {e}") from e

    with zf:
        prefix = _find_root(zf, config.root_folder.strip("/"))
        manifest = _read_manifest(zf, prefix)

        skipped: list[str] = []
        seen_questions: set[str] = set()
        first: Optional[PageContent] = None
        total_questions = 0

        for index, ref in enumerate(manifest.page_order):
            try:
                content = _read_page(zf, prefix, ref, assets, seen_questions)
            except PageParseError as e:
                logger.warning(f"Skipping page {ref.id!r}: {e}")
                skipped.append(ref.id)
                content = PageContent.empty(ref.id, ref.title)

            seen_questions.update(content.question_ids)
            total_questions += len(content.questions)
            if index == 0:
                first = content
                # The resident copy supersedes whatever the cache held
                page_cache.delete(ref.id)
            else:
                page_cache.put(ref.id, serialize_page_content(content))

    keep = set(manifest.page_ids)
    for stale in page_cache.page_ids():
        if stale not in keep:
            page_cache.delete(stale)

    result_manifest = replace(
        manifest,
        total_pages=len(manifest.page_order),
        total_questions=total_questions,
        active_page=first.id if first else "",
        page_order=tuple(PageRef(id=ref.id, title=ref.title) for ref in manifest.page_order),
    )
    logger.info(
        f"Imported quiz {result_manifest.name!r}: {result_manifest.total_pages} pages, "
        f"{total_questions} questions, {len(skipped)} skipped"
    )
    return ImportResult(manifest=result_manifest, active_page=first, skipped_pages=tuple(skipped))


# ─────────────────────────────────────────────────────────────────────────────
# Manifest
# ─────────────────────────────────────────────────────────────────────────────

def _find_root(zf: zipfile.ZipFile, root_folder: str) -> str:
    """Return the entry prefix of the archive root ("quiz/" or "" for legacy archives)."""
    names = set(zf.namelist())
    if f"{root_folder}/{layout.MANIFEST_NAME}" in names:
        return f"{root_folder}/"
    if layout.MANIFEST_NAME in names:
        logger.info("Archive manifest found at the zip root (legacy layout)")
        return ""
    raise ArchiveFormatError("Missing manifest file in quiz archive")


def _read_manifest(zf: zipfile.ZipFile, prefix: str) -> Manifest:
    try:
        data = json.loads(zf.read(f"{prefix}{layout.MANIFEST_NAME}").decode("utf-8"))
    except _ENTRY_ERRORS + (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArchiveFormatError(f"Unreadable quiz manifest: {e}") from e

    try:
        manifest = deserialize_manifest(data)
    except ValidationError as e:
        raise ArchiveFormatError(f"Invalid quiz manifest: {e}") from e

    version = data.get("schemaVersion")
    if version is not None and (isinstance(version, bool) or not isinstance(version, int)):
        logger.warning(f"Ignoring unrecognised archive schema version {version!r}")
    elif version is None or version < ARCHIVE_SCHEMA_VERSION:
        logger.info(f"Archive schema version {version} is older than {ARCHIVE_SCHEMA_VERSION}, reading in compatibility mode")
    elif version > ARCHIVE_SCHEMA_VERSION:
        logger.warning(f"Archive schema version {version} is newer than supported ({ARCHIVE_SCHEMA_VERSION})")
    return manifest


# ─────────────────────────────────────────────────────────────────────────────
# Pages
# ─────────────────────────────────────────────────────────────────────────────

def _read_json_entry(zf: zipfile.ZipFile, name: str, page_id: str) -> Any:
    """
    Read and decode one JSON entry.

    Raises:
        KeyError: If the entry does not exist
        PageParseError: If it cannot be read or decoded
    """
    try:
        raw = zf.read(name)
    except KeyError:
        raise
    except _ENTRY_ERRORS as e:
        raise PageParseError(f"Cannot read {name}: {e}", page_id=page_id) from e
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PageParseError(f"Malformed JSON in {name}: {e}", page_id=page_id) from e


def _read_page(
    zf: zipfile.ZipFile,
    prefix: str,
    ref: PageRef,
    assets: AssetStore,
    seen_questions: set[str],
) -> PageContent:
    """
    Parse one page's records and resolve its images.

    Raises:
        PageParseError: If the page config or answers record is missing,
            malformed or invalid, or its question ids clash with an
            earlier page
    """
    config_file = ref.config_file or layout.legacy_page_path(ref.id)
    try:
        record = _read_json_entry(zf, f"{prefix}{config_file}", ref.id)
    except KeyError:
        raise PageParseError(f"Missing page config file {config_file}", page_id=ref.id) from None
    if not isinstance(record, dict):
        raise PageParseError(f"{config_file} is not an object", page_id=ref.id)

    # Legacy combined records carry answers inline and no id
    inline_answers = record.pop("answers", None)
    record.setdefault("id", ref.id)

    try:
        record_id, title, time_limit, questions = deserialize_page_config(record)
    except ValidationError as e:
        raise PageParseError(f"Invalid page config {config_file}: {e}", page_id=ref.id) from e
    if record_id != ref.id:
        logger.warning(f"Page config {config_file} has id {record_id!r}, using manifest id {ref.id!r}")

    clashes = [q.id for q in questions if q.id in seen_questions]
    if clashes:
        raise PageParseError(f"Question ids already used on another page: {clashes}", page_id=ref.id)

    if inline_answers is not None:
        raw_answers = inline_answers
    else:
        raw_answers = _read_answers(zf, prefix, ref, config_file)
    try:
        validate_answers_record(raw_answers)
    except ValidationError as e:
        raise PageParseError(f"Invalid answers record: {e}", page_id=ref.id) from e
    answers: Answers = prune_answers(questions, raw_answers, page_id=ref.id)

    try:
        content = PageContent(
            id=ref.id,
            title=ref.title or title,
            time_limit=time_limit,
            questions=questions,
            answers=answers,
        )
    except ValueError as e:
        raise PageParseError(str(e), page_id=ref.id) from e

    # Images last: nothing below can fail the page, so no handle leaks
    page_dir = posixpath.dirname(config_file)
    resolved = tuple(_resolve_image(zf, prefix, page_dir, q, assets) for q in content.questions)
    return content.with_changes(questions=resolved)


def _read_answers(zf: zipfile.ZipFile, prefix: str, ref: PageRef, config_file: str) -> Any:
    answers_file = ref.answers_file or posixpath.join(posixpath.dirname(config_file), layout.ANSWERS_NAME)
    try:
        return _read_json_entry(zf, f"{prefix}{answers_file}", ref.id)
    except KeyError:
        logger.debug(f"Page {ref.id!r} has no answers record")
        return {}


def _resolve_image(
    zf: zipfile.ZipFile,
    prefix: str,
    page_dir: str,
    question: Question,
    assets: AssetStore,
) -> Question:
    ref = question.image
    if ref is None:
        return question
    if is_ephemeral(ref):
        logger.warning(f"Question {question.id!r} carries a stale session handle, dropping image")
        return question.with_changes(image=None)

    path = layout.resolve(page_dir, ref)
    if path is None:
        logger.warning(f"Question {question.id!r} image path {ref!r} points outside the archive")
        return question.with_changes(image=None)
    try:
        data = zf.read(f"{prefix}{path}")
    except KeyError:
        logger.warning(f"Question {question.id!r} image {path} is missing from the archive")
        return question.with_changes(image=None)
    except _ENTRY_ERRORS as e:
        logger.warning(f"Question {question.id!r} image {path} is unreadable: {e}")
        return question.with_changes(image=None)
    return question.with_changes(image=assets.register(data))
