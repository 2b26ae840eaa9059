"""Condition tree — the declarative gate attached to every unlock definition."""

from enum import Enum
from typing import Annotated, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class ComparisonOp(str, Enum):
    EQ = "Eq"   # exact equality on the stored float
    GE = "Ge"   # >=
    GT = "Gt"   # >
    LE = "Le"   # <=
    LT = "Lt"   # <


class CompletedCheck(BaseModel):
    """Satisfied once the topic has pulsed at least once."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["completed"] = "completed"
    topic: str = Field(min_length=1)


class ThresholdCheck(BaseModel):
    """Compares the latest stored value for a topic against a target."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["threshold"] = "threshold"
    topic: str = Field(min_length=1)
    target: float
    op: ComparisonOp = ComparisonOp.GE


LeafCheck = Annotated[
    Union[CompletedCheck, ThresholdCheck],
    Field(discriminator="kind"),
]


class TrueCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["true"] = "true"


class LeafCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["leaf"] = "leaf"
    check: LeafCheck


class AndCondition(BaseModel):
    """All children must hold. No children is vacuously satisfied."""

    model_config = ConfigDict(frozen=True)

    type: Literal["and"] = "and"
    children: Tuple["Condition", ...] = ()


class OrCondition(BaseModel):
    """At least one child must hold. No children is never satisfied."""

    model_config = ConfigDict(frozen=True)

    type: Literal["or"] = "or"
    children: Tuple["Condition", ...] = ()


class NotCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["not"] = "not"
    child: "Condition"


Condition = Annotated[
    Union[TrueCondition, LeafCondition, AndCondition, OrCondition, NotCondition],
    Field(discriminator="type"),
]

AndCondition.model_rebuild()
OrCondition.model_rebuild()
NotCondition.model_rebuild()


# --- Builders (used by tests and by hosts declaring content in code) ---

def completed(topic: str) -> LeafCondition:
    return LeafCondition(check=CompletedCheck(topic=topic))


def threshold(
    topic: str, target: float, op: ComparisonOp = ComparisonOp.GE
) -> LeafCondition:
    return LeafCondition(check=ThresholdCheck(topic=topic, target=target, op=op))


def all_of(*children) -> AndCondition:
    return AndCondition(children=tuple(children))


def any_of(*children) -> OrCondition:
    return OrCondition(children=tuple(children))


def negate(child) -> NotCondition:
    return NotCondition(child=child)
