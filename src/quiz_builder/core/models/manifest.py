"""
Module: manifest

Purpose:
    Provides the Manifest and PageRef dataclasses: document-level metadata
    and page ordering, kept independent of page content.

Key Functions:
    - Manifest.default(): Empty manifest used when nothing is persisted
    - Manifest.to_dict() / Manifest.from_dict(): camelCase wire record
    - merge_manifest(): Partial update with time-limit exclusivity

Dependencies:
    - dataclasses (std)

Used By:
    - storage.manifest_store.ManifestStore
    - editor.session.QuizSession
    - archive.exporter / archive.importer
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class PageRef:
    """
    Reference to a page in the manifest's page order.

    Identity is ``id``; ``title`` is freely editable and non-unique.
    ``config_file`` and ``answers_file`` are only meaningful inside an
    archive and are empty while editing.
    """

    id: str
    title: str = ""
    config_file: str = ""
    answers_file: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"page id must be a non-empty string: {self.id!r}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "configFile": self.config_file,
            "answersFile": self.answers_file,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PageRef:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            config_file=data.get("configFile", ""),
            answers_file=data.get("answersFile", ""),
        )


@dataclass(frozen=True)
class Manifest:
    """
    Document metadata and page ordering (immutable).

    Attributes:
        name: Quiz name
        description: Quiz description
        total_pages: Page count as of the last save
        total_questions: Question count as of the last save
        active_page: Id of the page open in the editor ("" if none)
        global_time_limit: Whole-quiz limit in minutes, or None
        page_time_limit: Per-page limit in minutes, or None
        page_order: Ordered page references

    Invariants:
        - global_time_limit and page_time_limit are never both set
        - page ids in page_order are unique
    """

    name: str = ""
    description: str = ""
    total_pages: int = 0
    total_questions: int = 0
    active_page: str = ""
    global_time_limit: Optional[int] = None
    page_time_limit: Optional[int] = None
    page_order: tuple[PageRef, ...] = ()

    def __post_init__(self) -> None:
        """Validate manifest on construction."""
        if not isinstance(self.page_order, tuple):
            object.__setattr__(self, "page_order", tuple(self.page_order))

        if self.global_time_limit is not None and self.page_time_limit is not None:
            raise ValueError("global_time_limit and page_time_limit are mutually exclusive")
        for label, value in (
            ("global_time_limit", self.global_time_limit),
            ("page_time_limit", self.page_time_limit),
        ):
            if value is not None and value <= 0:
                raise ValueError(f"{label} must be positive: {value}")

        ids = [ref.id for ref in self.page_order]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate page ids in page order: {ids}")

    @classmethod
    def default(cls) -> Manifest:
        return cls()

    @property
    def page_ids(self) -> tuple[str, ...]:
        return tuple(ref.id for ref in self.page_order)

    def get_page(self, page_id: str) -> Optional[PageRef]:
        for ref in self.page_order:
            if ref.id == page_id:
                return ref
        return None

    def to_dict(self) -> dict:
        """Serialize to the persisted manifest record (camelCase keys)."""
        return {
            "name": self.name,
            "description": self.description,
            "totalPages": self.total_pages,
            "totalQuestions": self.total_questions,
            "activePage": self.active_page,
            "globalTimeLimit": self.global_time_limit,
            "pageTimeLimit": self.page_time_limit,
            "pageOrder": [ref.to_dict() for ref in self.page_order],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Manifest:
        """
        Deserialize from a manifest record. Missing keys take defaults.

        Raises:
            ValueError: If the record breaks a manifest invariant
        """
        return cls(
            name=data.get("name") or "",
            description=data.get("description") or "",
            total_pages=data.get("totalPages") or 0,
            total_questions=data.get("totalQuestions") or 0,
            active_page=data.get("activePage") or "",
            global_time_limit=data.get("globalTimeLimit"),
            page_time_limit=data.get("pageTimeLimit"),
            page_order=tuple(PageRef.from_dict(p) for p in data.get("pageOrder") or ()),
        )


_FIELD_NAMES = frozenset(f.name for f in fields(Manifest))


def merge_manifest(current: Manifest, **changes: Any) -> Manifest:
    """
    Merge a partial update into ``current``.

    Setting one time limit to a non-null value clears the other.

    Args:
        current: Base manifest
        **changes: Manifest field names and their new values

    Returns:
        New merged Manifest

    Raises:
        TypeError: On an unknown field name
        ValueError: If both time limits are set non-null in one update
    """
    unknown = set(changes) - _FIELD_NAMES
    if unknown:
        raise TypeError(f"unknown manifest fields: {sorted(unknown)}")

    if changes.get("global_time_limit") is not None:
        if changes.get("page_time_limit") is not None:
            raise ValueError("cannot set global_time_limit and page_time_limit together")
        changes["page_time_limit"] = None
    elif changes.get("page_time_limit") is not None:
        changes["global_time_limit"] = None

    return replace(current, **changes)
