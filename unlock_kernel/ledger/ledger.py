"""
Completed Ledger — append-only record of unlock ids that have fired.

Behavioral Contract:
- Append-only. Entries are never modified or removed, except by clear()
  during a full engine reset.
- Each unlock id appears at most once.
- snapshot() is the only state that needs to survive a restart.
"""

from datetime import datetime
from typing import Dict, List, Optional, Set

from unlock_kernel.models.unlock import LedgerEntry


class CompletedLedger:
    """In-memory ledger owned by the engine."""

    def __init__(self):
        self._entries: List[LedgerEntry] = []
        self._by_id: Dict[str, LedgerEntry] = {}

    def append(
        self,
        unlock_id: str,
        reward_id: str,
        restored: bool = False,
        achieved_at: Optional[datetime] = None,
    ) -> LedgerEntry:
        """Record a fired unlock. Appending an id twice is a caller bug."""
        if unlock_id in self._by_id:
            raise ValueError(f"Unlock {unlock_id!r} is already in the ledger")

        entry = LedgerEntry(
            sequence=len(self._entries),
            unlock_id=unlock_id,
            reward_id=reward_id,
            achieved_at=achieved_at or datetime.utcnow(),
            restored=restored,
        )
        self._entries.append(entry)
        self._by_id[unlock_id] = entry
        return entry

    def snapshot(self) -> Set[str]:
        """The set of achieved unlock ids, for the persistence collaborator."""
        return set(self._by_id)

    def entries(self) -> List[LedgerEntry]:
        """All entries in append order."""
        return list(self._entries)

    def is_achieved(self, unlock_id: str) -> bool:
        return unlock_id in self._by_id

    def get(self, unlock_id: str) -> LedgerEntry:
        return self._by_id[unlock_id]

    def clear(self) -> None:
        self._entries.clear()
        self._by_id.clear()

    def __contains__(self, unlock_id: object) -> bool:
        return unlock_id in self._by_id

    def __len__(self) -> int:
        return len(self._entries)
