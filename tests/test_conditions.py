"""Tests for the Condition Language and the Signal Store."""

import pytest

from unlock_kernel.conditions.language import compare, describe, evaluate, referenced_topics
from unlock_kernel.models.condition import (
    AndCondition,
    ComparisonOp,
    OrCondition,
    TrueCondition,
    all_of,
    any_of,
    completed,
    negate,
    threshold,
)
from unlock_kernel.signal_store.store import SignalStore


class TestSignalStore:
    def setup_method(self):
        self.store = SignalStore()

    def test_record_completed_first_time_only(self):
        assert self.store.record_completed("research:x") is True
        assert self.store.record_completed("research:x") is False
        assert self.store.is_completed("research:x") is True
        assert self.store.state.completed == ["research:x"]

    def test_record_value_overwrites(self):
        self.store.record_value("kills:goblin", 5)
        self.store.record_value("kills:goblin", 3)
        assert self.store.get_value("kills:goblin") == 3.0

    def test_absent_topic(self):
        assert self.store.get_value("nope") is None
        assert self.store.is_completed("nope") is False

    def test_snapshot_is_serializable(self):
        self.store.record_value("resource:bones", 20)
        self.store.record_completed("research:x")
        snap = self.store.get_state_snapshot()
        assert snap == {"values": {"resource:bones": 20.0}, "completed": ["research:x"]}

    def test_known_topics_and_clear(self):
        self.store.record_value("a", 1)
        self.store.record_completed("b")
        assert self.store.known_topics() == {"a", "b"}
        self.store.clear()
        assert self.store.known_topics() == set()
        assert self.store.is_completed("b") is False


class TestCompare:
    @pytest.mark.parametrize("op,current,expected", [
        (ComparisonOp.GE, 9, False),
        (ComparisonOp.GE, 10, True),
        (ComparisonOp.GT, 10, False),
        (ComparisonOp.GT, 11, True),
        (ComparisonOp.LE, 10, True),
        (ComparisonOp.LE, 11, False),
        (ComparisonOp.LT, 10, False),
        (ComparisonOp.LT, 9, True),
        (ComparisonOp.EQ, 10, True),
        (ComparisonOp.EQ, 10.000001, False),
    ])
    def test_boundaries(self, op, current, expected):
        assert compare(float(current), 10.0, op) is expected


class TestEvaluate:
    def setup_method(self):
        self.store = SignalStore()

    def test_true(self):
        assert evaluate(TrueCondition(), self.store) is True

    def test_empty_and_is_satisfied(self):
        assert evaluate(AndCondition(), self.store) is True

    def test_empty_or_is_unsatisfied(self):
        assert evaluate(OrCondition(), self.store) is False

    def test_threshold_absent_topic_not_satisfied(self):
        assert evaluate(threshold("kills:siled", 0, ComparisonOp.GE), self.store) is False

    def test_threshold_boundary(self):
        condition = threshold("kills:siled", 10)
        self.store.record_value("kills:siled", 9)
        assert evaluate(condition, self.store) is False
        self.store.record_value("kills:siled", 10)
        assert evaluate(condition, self.store) is True

    def test_completed_check(self):
        condition = completed("research:invaders")
        assert evaluate(condition, self.store) is False
        self.store.record_completed("research:invaders")
        assert evaluate(condition, self.store) is True

    def test_and_requires_both(self):
        condition = all_of(completed("research:invaders"), threshold("resource:bones", 20))
        self.store.record_completed("research:invaders")
        assert evaluate(condition, self.store) is False
        self.store.record_value("resource:bones", 20)
        assert evaluate(condition, self.store) is True

    def test_or_requires_one(self):
        condition = any_of(completed("a"), threshold("b", 1))
        assert evaluate(condition, self.store) is False
        self.store.record_value("b", 1)
        assert evaluate(condition, self.store) is True

    def test_not_inverts(self):
        condition = negate(completed("research:forbidden"))
        assert evaluate(condition, self.store) is True
        self.store.record_completed("research:forbidden")
        assert evaluate(condition, self.store) is False

    def test_evaluate_does_not_touch_store(self):
        condition = all_of(threshold("a", 1), completed("b"))
        evaluate(condition, self.store)
        assert self.store.known_topics() == set()

    def test_unsupported_node(self):
        with pytest.raises(TypeError):
            evaluate("not a condition", self.store)


class TestReferencedTopics:
    def test_collects_every_leaf_once(self):
        condition = all_of(
            threshold("kills:goblin", 10),
            any_of(completed("research:x"), threshold("kills:goblin", 20)),
            negate(completed("quest:intro")),
        )
        assert referenced_topics(condition) == {"kills:goblin", "research:x", "quest:intro"}

    def test_no_topics(self):
        assert referenced_topics(TrueCondition()) == set()
        assert referenced_topics(all_of()) == set()


class TestDescribe:
    def test_renders_tree(self):
        condition = all_of(completed("research:x"), threshold("resource:bones", 20))
        assert describe(condition) == "and(completed(research:x), resource:bones Ge 20)"
