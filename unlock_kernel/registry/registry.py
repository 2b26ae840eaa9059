"""
Unlock Registry — owns every UnlockDefinition and its runtime UnlockState.

Behavioral Contract:
- Definitions are loaded once and never mutated
- Duplicate ids abort loading; nothing from the failed batch is kept
- The topic index is built at load time from referenced_topics()
- candidates_for() only returns Pending ids, ascending, so an Achieved
  definition is never evaluated again
- Pending -> Achieved is one-way
"""

import logging
from typing import Dict, Iterable, List, Set

from unlock_kernel.conditions.language import referenced_topics
from unlock_kernel.models.unlock import UnlockDefinition, UnlockState

logger = logging.getLogger(__name__)


class DuplicateIdError(ValueError):
    """Raised when two definitions share an id."""

    def __init__(self, unlock_id: str):
        self.unlock_id = unlock_id
        super().__init__(f"Duplicate unlock id: {unlock_id!r}")


class UnknownUnlockError(KeyError):
    """Raised when an id was never loaded into the registry."""

    def __init__(self, unlock_id: str):
        self.unlock_id = unlock_id
        super().__init__(unlock_id)

    def __str__(self) -> str:
        return f"Unknown unlock id: {self.unlock_id!r}"


class AlreadyAchievedError(RuntimeError):
    """Raised when mark_achieved() is called twice for one id. Always a caller bug."""

    def __init__(self, unlock_id: str):
        self.unlock_id = unlock_id
        super().__init__(f"Unlock {unlock_id!r} is already achieved")


class UnlockRegistry:
    """
    Definitions plus a topic -> pending-ids index.

    The index only ever shrinks after load: achieving an id removes it from
    every topic bucket it was filed under.
    """

    def __init__(self):
        self._definitions: Dict[str, UnlockDefinition] = {}
        self._states: Dict[str, UnlockState] = {}
        self._topics_by_id: Dict[str, Set[str]] = {}
        self._pending_by_topic: Dict[str, Set[str]] = {}

    def load(self, definitions: Iterable[UnlockDefinition]) -> None:
        """Load a batch of definitions, failing fast on duplicate ids."""
        batch: Dict[str, UnlockDefinition] = {}
        for definition in definitions:
            if definition.id in batch or definition.id in self._definitions:
                raise DuplicateIdError(definition.id)
            batch[definition.id] = definition

        for unlock_id, definition in batch.items():
            topics = referenced_topics(definition.condition)
            self._definitions[unlock_id] = definition
            self._states[unlock_id] = UnlockState.PENDING
            self._topics_by_id[unlock_id] = topics
            for topic in topics:
                self._pending_by_topic.setdefault(topic, set()).add(unlock_id)

        logger.info(
            "Loaded %d unlock definitions (%d indexed topics)",
            len(batch), len(self._pending_by_topic),
        )

    def candidates_for(self, topic: str) -> List[str]:
        """Pending unlock ids whose condition references this topic, ascending."""
        return sorted(self._pending_by_topic.get(topic, ()))

    def mark_achieved(self, unlock_id: str) -> UnlockDefinition:
        """Transition an unlock Pending -> Achieved."""
        definition = self.get(unlock_id)
        if self._states[unlock_id] == UnlockState.ACHIEVED:
            raise AlreadyAchievedError(unlock_id)

        self._states[unlock_id] = UnlockState.ACHIEVED
        for topic in self._topics_by_id[unlock_id]:
            bucket = self._pending_by_topic.get(topic)
            if bucket is not None:
                bucket.discard(unlock_id)
                if not bucket:
                    del self._pending_by_topic[topic]
        return definition

    def get(self, unlock_id: str) -> UnlockDefinition:
        """Get a definition by id."""
        try:
            return self._definitions[unlock_id]
        except KeyError:
            raise UnknownUnlockError(unlock_id) from None

    def state_of(self, unlock_id: str) -> UnlockState:
        if unlock_id not in self._states:
            raise UnknownUnlockError(unlock_id)
        return self._states[unlock_id]

    def topics_of(self, unlock_id: str) -> Set[str]:
        """Topics the unlock's condition references."""
        if unlock_id not in self._topics_by_id:
            raise UnknownUnlockError(unlock_id)
        return set(self._topics_by_id[unlock_id])

    def definitions(self) -> List[UnlockDefinition]:
        """All loaded definitions, ascending by id."""
        return [self._definitions[i] for i in sorted(self._definitions)]

    def pending_ids(self) -> List[str]:
        return sorted(
            i for i, s in self._states.items() if s == UnlockState.PENDING
        )

    def achieved_ids(self) -> List[str]:
        return sorted(
            i for i, s in self._states.items() if s == UnlockState.ACHIEVED
        )

    def unconditional_ids(self) -> List[str]:
        """
        Pending ids whose condition names no topic at all (e.g. True, And([])).
        No signal can ever reach these through the index.
        """
        return sorted(
            i for i in self.pending_ids() if not self._topics_by_id[i]
        )

    def indexed_topics(self) -> List[str]:
        """Topics that still have at least one pending listener."""
        return sorted(self._pending_by_topic)

    def __contains__(self, unlock_id: object) -> bool:
        return unlock_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)
