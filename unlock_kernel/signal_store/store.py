"""
Signal Store — latest-value cache per topic plus the pulse-seen set.

Written by: Evaluator only
Read by: Condition Language
"""

from typing import Optional, Set

from unlock_kernel.models.signal import SignalState


class SignalStore:
    """
    In-memory signal store. Entries are created on first observation of a
    topic and never deleted during normal operation.
    """

    def __init__(self):
        self._state = SignalState()
        self._completed: Set[str] = set()

    @property
    def state(self) -> SignalState:
        """Get the current signal state."""
        return self._state

    def record_completed(self, topic: str) -> bool:
        """Mark a topic as having pulsed. Returns True the first time only."""
        if topic in self._completed:
            return False
        self._completed.add(topic)
        self._state.completed.append(topic)
        return True

    def record_value(self, topic: str, value: float) -> None:
        """Overwrite the latest value for a topic. No history is kept."""
        self._state.values[topic] = float(value)

    def get_value(self, topic: str) -> Optional[float]:
        return self._state.values.get(topic)

    def is_completed(self, topic: str) -> bool:
        return topic in self._completed

    def known_topics(self) -> Set[str]:
        """Every topic observed so far, by either signal kind."""
        return set(self._state.values) | self._completed

    def get_state_snapshot(self) -> dict:
        """Get a serializable snapshot of the current signal state."""
        return self._state.model_dump(mode="json")

    def clear(self) -> None:
        """Drop every observation. Only a full engine reset calls this."""
        self._state = SignalState()
        self._completed.clear()
