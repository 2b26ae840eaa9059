"""Signals — inbound facts about topics, and the store's view of them."""

from typing import Annotated, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class CompletedSignal(BaseModel):
    """One-shot pulse. Maps the inbound ``StatusCompleted`` interface."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["completed"] = "completed"
    topic: str = Field(min_length=1)        # e.g., "research:bone_crafting"


class ValueChangedSignal(BaseModel):
    """Latest numeric value for a topic. Maps the inbound ``ValueChanged`` interface."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["value_changed"] = "value_changed"
    topic: str = Field(min_length=1)        # e.g., "kills:goblin"
    value: float


Signal = Annotated[
    Union[CompletedSignal, ValueChangedSignal],
    Field(discriminator="kind"),
]


class SignalState(BaseModel):
    """Latest observed value per topic plus every topic that has pulsed."""

    values: Dict[str, float] = {}
    completed: List[str] = []               # Pulse order, no duplicates
