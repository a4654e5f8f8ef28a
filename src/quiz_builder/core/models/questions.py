"""
Module: questions

Purpose:
    Provides the Question and Option dataclasses. A Question is a tagged
    union on ``type``: single-select and multi-select questions carry an
    ordered tuple of options, fill-in-the-blank questions carry none.
    Type-specific invariants are checked on construction, never at render
    time.

Key Functions:
    - Question.with_changes(): Copy with updated fields (re-validated)
    - Question.get_option(option_id): Find an option by id
    - Question.to_dict() / Question.from_dict(): Serialization

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - core.models.pages.PageContent
    - editor.buffer.ActivePageBuffer
    - archive.exporter / archive.importer
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional


MIN_SELECT_OPTIONS = 2


class QuestionType(str, Enum):
    """Kind of question. Values are the wire strings used in page records."""
    SINGLE_SELECT = "multiple-choice"
    MULTI_SELECT = "multiple-response"
    FILL_IN_BLANK = "fill-in-the-blank"

    def __str__(self) -> str:
        return self.value

    @property
    def has_options(self) -> bool:
        return self is not QuestionType.FILL_IN_BLANK


@dataclass(frozen=True, slots=True)
class Option:
    """
    A selectable answer choice (immutable).

    Correctness is never stored here. It lives in the page's answers map.

    Attributes:
        id: Unique within the owning question
        text: Display text
    """

    id: str
    text: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"option id must be a non-empty string: {self.id!r}")

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict) -> Option:
        # Legacy records carried isCorrect on options; it is ignored here.
        return cls(id=data["id"], text=data.get("text", ""))


@dataclass(frozen=True)
class Question:
    """
    A single quiz question (immutable).

    Attributes:
        id: Unique across the entire document
        type: Discriminant selecting the type-specific invariants
        text: Question prompt
        options: Ordered options (empty for fill-in-the-blank)
        image: Asset reference - an ephemeral session handle while editing,
            an archive-relative path inside an archive, or None

    Invariants:
        - option ids are unique within the question
        - select types have at least two options
        - fill-in-the-blank has no options

    Example:
        >>> q = Question(
        ...     id="q1",
        ...     type=QuestionType.SINGLE_SELECT,
        ...     text="2 + 2?",
        ...     options=(Option("o1", "4"), Option("o2", "5")),
        ... )
        >>> q.option_ids
        ('o1', 'o2')
    """

    id: str
    type: QuestionType
    text: str = ""
    options: tuple[Option, ...] = ()
    image: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate question on construction."""
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"question id must be a non-empty string: {self.id!r}")

        # Accept raw wire strings and lists from callers
        if not isinstance(self.type, QuestionType):
            object.__setattr__(self, "type", QuestionType(self.type))
        if not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))

        ids = [opt.id for opt in self.options]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate option ids in question {self.id!r}: {ids}")

        if self.type.has_options:
            if len(self.options) < MIN_SELECT_OPTIONS:
                raise ValueError(
                    f"{self.type.value} question {self.id!r} needs at least "
                    f"{MIN_SELECT_OPTIONS} options, got {len(self.options)}"
                )
        elif self.options:
            raise ValueError(f"fill-in-the-blank question {self.id!r} cannot have options")

    @property
    def option_ids(self) -> tuple[str, ...]:
        return tuple(opt.id for opt in self.options)

    def get_option(self, option_id: str) -> Optional[Option]:
        """
        Find an option by id.

        Args:
            option_id: Option identifier

        Returns:
            Matching Option or None
        """
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def with_changes(self, **changes: Any) -> Question:
        """Return a copy with ``changes`` applied. Invariants are re-checked."""
        return replace(self, **changes)

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """
        Serialize to the page config record form.

        Note: ``options`` is omitted for fill-in-the-blank questions.
        """
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "text": self.text,
        }
        if self.type.has_options:
            d["options"] = [opt.to_dict() for opt in self.options]
        d["image"] = self.image
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Question:
        """
        Deserialize from a page config record entry.

        Raises:
            ValueError: If the record violates a question invariant
            KeyError: If id or type is missing
        """
        return cls(
            id=data["id"],
            type=QuestionType(data["type"]),
            text=data.get("text", ""),
            options=tuple(Option.from_dict(o) for o in data.get("options") or ()),
            image=data.get("image"),
        )

    def __repr__(self) -> str:
        return f"Question({self.id!r}, type={self.type.value}, options={len(self.options)})"
