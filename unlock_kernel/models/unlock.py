"""Unlock definitions, their runtime state, and the notification they emit."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from unlock_kernel.models.condition import Condition


class UnlockState(str, Enum):
    PENDING = "pending"
    ACHIEVED = "achieved"   # Terminal. There is no re-lock.


class UnlockDefinition(BaseModel):
    """A declarative rule pairing a condition with a reward id. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)           # e.g., "recipe_bone_sword"
    display_name: Optional[str] = None
    reward_id: str = Field(min_length=1)    # Opaque to the engine, matched by consumers
    condition: Condition


class UnlockAchieved(BaseModel):
    """Outbound notification. Exactly one per definition per engine lifetime (plus replay)."""

    model_config = ConfigDict(frozen=True)

    unlock_id: str
    reward_id: str
    display_name: Optional[str] = None
    replayed: bool = False                  # True when produced by restore replay
    signal_sequence: Optional[int] = None   # Which processed signal caused it


class LedgerEntry(BaseModel):
    """One fired unlock in the Completed Ledger."""

    sequence: int                           # 0-based append position
    unlock_id: str
    reward_id: str
    achieved_at: datetime
    restored: bool = False
