"""Unlock Kernel data models."""

from unlock_kernel.models.condition import (
    AndCondition,
    ComparisonOp,
    CompletedCheck,
    Condition,
    LeafCondition,
    NotCondition,
    OrCondition,
    ThresholdCheck,
    TrueCondition,
    all_of,
    any_of,
    completed,
    negate,
    threshold,
)
from unlock_kernel.models.engine import EngineConfig
from unlock_kernel.models.signal import (
    CompletedSignal,
    Signal,
    SignalState,
    ValueChangedSignal,
)
from unlock_kernel.models.unlock import (
    LedgerEntry,
    UnlockAchieved,
    UnlockDefinition,
    UnlockState,
)

__all__ = [
    "AndCondition",
    "ComparisonOp",
    "CompletedCheck",
    "CompletedSignal",
    "Condition",
    "EngineConfig",
    "LeafCondition",
    "LedgerEntry",
    "NotCondition",
    "OrCondition",
    "Signal",
    "SignalState",
    "ThresholdCheck",
    "TrueCondition",
    "UnlockAchieved",
    "UnlockDefinition",
    "UnlockState",
    "ValueChangedSignal",
    "all_of",
    "any_of",
    "completed",
    "negate",
    "threshold",
]
