"""
Condition Language — pure evaluation of condition trees against the Signal Store.

Behavioral Contract:
- Never writes to the store
- And / Or short-circuit in list order
- Ge / Le include the boundary, Gt / Lt exclude it, Eq is exact float equality
- A threshold on a topic that has never reported a value is not satisfied
"""

import operator
from typing import Callable, Dict, Set

from unlock_kernel.models.condition import (
    AndCondition,
    ComparisonOp,
    CompletedCheck,
    LeafCondition,
    NotCondition,
    OrCondition,
    ThresholdCheck,
    TrueCondition,
)
from unlock_kernel.signal_store.store import SignalStore


_COMPARATORS: Dict[ComparisonOp, Callable[[float, float], bool]] = {
    ComparisonOp.EQ: operator.eq,
    ComparisonOp.GE: operator.ge,
    ComparisonOp.GT: operator.gt,
    ComparisonOp.LE: operator.le,
    ComparisonOp.LT: operator.lt,
}


def compare(current: float, target: float, op: ComparisonOp) -> bool:
    """Compare a stored value against a target with the given operator."""
    return _COMPARATORS[op](current, target)


def _check_completed(check: CompletedCheck, store: SignalStore) -> bool:
    return store.is_completed(check.topic)


def _check_threshold(check: ThresholdCheck, store: SignalStore) -> bool:
    current = store.get_value(check.topic)
    if current is None:
        return False
    return compare(current, check.target, check.op)


def _evaluate_leaf(leaf: LeafCondition, store: SignalStore) -> bool:
    check = leaf.check
    if isinstance(check, CompletedCheck):
        return _check_completed(check, store)
    return _check_threshold(check, store)


def evaluate(condition, store: SignalStore) -> bool:
    """Evaluate a condition tree against the current store contents."""
    if isinstance(condition, TrueCondition):
        return True
    if isinstance(condition, LeafCondition):
        return _evaluate_leaf(condition, store)
    if isinstance(condition, AndCondition):
        # all() / any() stop at the first decisive child
        return all(evaluate(child, store) for child in condition.children)
    if isinstance(condition, OrCondition):
        return any(evaluate(child, store) for child in condition.children)
    if isinstance(condition, NotCondition):
        return not evaluate(condition.child, store)
    raise TypeError(f"Unsupported condition node: {type(condition).__name__}")


def referenced_topics(condition) -> Set[str]:
    """Every topic named by a leaf anywhere in the tree, deduplicated."""
    topics: Set[str] = set()
    _collect_topics(condition, topics)
    return topics


def _collect_topics(condition, topics: Set[str]) -> None:
    if isinstance(condition, LeafCondition):
        topics.add(condition.check.topic)
    elif isinstance(condition, (AndCondition, OrCondition)):
        for child in condition.children:
            _collect_topics(child, topics)
    elif isinstance(condition, NotCondition):
        _collect_topics(condition.child, topics)


def describe(condition) -> str:
    """Render a condition tree as a compact human-readable expression."""
    if isinstance(condition, TrueCondition):
        return "true"
    if isinstance(condition, LeafCondition):
        check = condition.check
        if isinstance(check, CompletedCheck):
            return f"completed({check.topic})"
        return f"{check.topic} {check.op.value} {check.target:g}"
    if isinstance(condition, AndCondition):
        return "and(" + ", ".join(describe(c) for c in condition.children) + ")"
    if isinstance(condition, OrCondition):
        return "or(" + ", ".join(describe(c) for c in condition.children) + ")"
    if isinstance(condition, NotCondition):
        return f"not({describe(condition.child)})"
    raise TypeError(f"Unsupported condition node: {type(condition).__name__}")
