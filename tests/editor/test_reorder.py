"""
Unit tests for the reorder engine.
"""

import pytest

from quiz_builder.core.models.manifest import PageRef
from quiz_builder.core.models.questions import Option, Question, QuestionType
from quiz_builder.editor.reorder import index_of, move, move_option


def make_question(qid: str = "q1", option_ids=("o1", "o2", "o3")) -> Question:
    return Question(qid, QuestionType.MULTI_SELECT, options=tuple(Option(o) for o in option_ids))


class TestMove:
    """Tests for the generic move."""

    @pytest.mark.parametrize(
        "source, target, expected",
        [
            ("a", "c", ["b", "c", "a"]),
            ("c", "a", ["c", "a", "b"]),
            ("a", "b", ["b", "a", "c"]),
            ("b", "a", ["b", "a", "c"]),
        ],
    )
    def test_move_reinserts_at_target_index(self, source, target, expected):
        assert move(["a", "b", "c"], source, target) == expected

    def test_move_when_same_id_then_unchanged(self):
        seq = ["a", "b", "c"]
        for item in seq:
            assert move(seq, item, item) == seq

    def test_move_when_id_absent_then_unchanged(self):
        assert move(["a", "b"], "a", "zzz") == ["a", "b"]
        assert move(["a", "b"], "zzz", "a") == ["a", "b"]

    def test_move_does_not_modify_input(self):
        seq = ("a", "b", "c")
        result = move(seq, "a", "c")
        assert seq == ("a", "b", "c")
        assert isinstance(result, list)

    def test_move_swap_back_restores_two_elements(self):
        seq = ["a", "b"]
        assert move(move(seq, "a", "b"), "b", "a") == seq

    def test_move_uses_item_id_attribute(self):
        pages = [PageRef("p1"), PageRef("p2"), PageRef("p3")]
        assert [p.id for p in move(pages, "p3", "p1")] == ["p3", "p1", "p2"]

    def test_move_with_custom_key(self):
        rows = [{"k": 1}, {"k": 2}]
        assert move(rows, 2, 1, key=lambda r: r["k"]) == [{"k": 2}, {"k": 1}]

    def test_index_of(self):
        assert index_of(["a", "b"], "b") == 1
        assert index_of(["a", "b"], "c") is None


class TestMoveOption:
    """Tests for option moves within a question."""

    def test_move_option_within_question(self):
        q = make_question()
        moved = move_option(q, "o3", "q1", "o1")
        assert moved.option_ids == ("o3", "o1", "o2")

    def test_move_option_when_cross_question_then_ignored(self):
        q = make_question()
        assert move_option(q, "o1", "q2", "x1") is q

    def test_move_option_when_noop_then_same_object(self):
        q = make_question()
        assert move_option(q, "o1", "q1", "o1") is q
        assert move_option(q, "missing", "q1", "o1") is q
