"""
Module: archive.layout

Purpose:
    Path conventions inside a quiz archive:

        quiz.zip
        └── quiz/
            ├── manifest.json
            ├── page_<id>/
            │   ├── page_config.json
            │   ├── answers.json
            │   └── assets/
            │       └── <questionId>.png
            └── ...

    Paths stored in records are relative: ``configFile``/``answersFile``
    relative to the root folder, question images relative to their page
    folder.
"""

from __future__ import annotations

import posixpath
import re
from typing import Iterable, Optional

MANIFEST_NAME = "manifest.json"
PAGE_CONFIG_NAME = "page_config.json"
ANSWERS_NAME = "answers.json"
ASSETS_DIR = "assets"
LEGACY_PAGES_DIR = "pages"

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_component(value: str) -> str:
    """
    Make ``value`` usable as a single path component.

    Examples:
        >>> safe_component("page-1")
        'page-1'
        >>> safe_component("a/b c")
        'a_b_c'
        >>> safe_component("..")
        '_'
    """
    cleaned = _UNSAFE.sub("_", value).strip()
    if cleaned in ("", ".", ".."):
        return "_"
    return cleaned


def unique_name(candidate: str, taken: Iterable[str]) -> str:
    """
    Return ``candidate`` or ``candidate`` with a numeric suffix not in ``taken``.

    The suffix goes before the extension: ``q1.png`` -> ``q1-2.png``.
    """
    taken = set(taken)
    if candidate not in taken:
        return candidate
    stem, dot, ext = candidate.partition(".")
    n = 2
    while True:
        name = f"{stem}-{n}{dot}{ext}"
        if name not in taken:
            return name
        n += 1


def page_dir_name(page_id: str) -> str:
    return f"page_{safe_component(page_id)}"


def asset_name(question_id: str, extension: str) -> str:
    return f"{safe_component(question_id)}.{extension}"


def legacy_page_path(page_id: str) -> str:
    """Combined questions+answers record written by older exports."""
    return f"{LEGACY_PAGES_DIR}/{page_id}.json"


def resolve(base_dir: str, relative: str) -> Optional[str]:
    """
    Resolve ``relative`` against ``base_dir`` inside the archive root.

    Returns:
        Normalised POSIX path, or None if it is absolute or escapes the root
    """
    if not relative or relative.startswith("/") or "\\" in relative:
        return None
    joined = posixpath.normpath(posixpath.join(base_dir, relative))
    if joined == "." or joined.startswith("../") or joined == "..":
        return None
    return joined
