"""
Module: editor.reorder

Purpose:
    The one ordered-collection move used for pages within the manifest,
    questions within the active page and options within a question.

Key Functions:
    - move(): Remove the source item and reinsert it at the target's index
    - move_option(): Option move that ignores cross-question drops

Semantics:
    ``move`` removes the item identified by ``source_id`` and reinserts it
    at the index ``target_id`` occupied before the removal, so dragging
    down lands after the target and dragging up lands before it:

        >>> move(["a", "b", "c"], "a", "c")
        ['b', 'c', 'a']
        >>> move(["a", "b", "c"], "c", "a")
        ['c', 'a', 'b']

    Equal ids, or an id that is not present, return an unchanged copy.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Hashable, Optional, Sequence, TypeVar

from quiz_builder.core.models.questions import Question

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _item_id(item: Any) -> Hashable:
    return getattr(item, "id", item)


def index_of(sequence: Sequence[T], item_id: Hashable, key: Callable[[T], Hashable] = _item_id) -> Optional[int]:
    for i, item in enumerate(sequence):
        if key(item) == item_id:
            return i
    return None


def move(
    sequence: Sequence[T],
    source_id: Hashable,
    target_id: Hashable,
    *,
    key: Callable[[T], Hashable] = _item_id,
) -> list[T]:
    """
    Move the item ``source_id`` to the position of ``target_id``.

    Args:
        sequence: Items to reorder (not modified)
        source_id: Id of the dragged item
        target_id: Id of the item it was dropped on
        key: Maps an item to its id (default: ``item.id`` or the item)

    Returns:
        New list with the item moved
    """
    items = list(sequence)
    if source_id == target_id:
        return items

    old_index = index_of(items, source_id, key)
    new_index = index_of(items, target_id, key)
    if old_index is None or new_index is None:
        logger.debug(f"Ignoring move of {source_id!r} onto {target_id!r}: id not found")
        return items

    items.insert(new_index, items.pop(old_index))
    return items


def move_option(
    question: Question,
    option_id: str,
    target_question_id: str,
    target_option_id: str,
) -> Question:
    """
    Reorder an option within ``question``.

    A drop onto another question's option list is ignored: options never
    change owner.

    Returns:
        The reordered question, or ``question`` itself when nothing moved
    """
    if target_question_id != question.id:
        logger.debug(
            f"Ignoring cross-question option move {option_id!r}: "
            f"{question.id!r} -> {target_question_id!r}"
        )
        return question

    reordered = move(question.options, option_id, target_option_id)
    if [o.id for o in reordered] == list(question.option_ids):
        return question
    return question.with_changes(options=tuple(reordered))
