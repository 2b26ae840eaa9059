"""
Evaluator — the only component that mutates shared unlock state.

Per signal:
  1. Update the Signal Store
  2. Look up Pending candidates indexed under the signal's topic
  3. Evaluate each candidate, ascending by id
  4. Mark satisfied ones Achieved, append them to the ledger, emit UnlockAchieved

Unlocks whose topics did not change are never re-evaluated, and Achieved
unlocks never come back out of the candidate index.
"""

import logging
from typing import Iterable, List, Optional

from unlock_kernel.conditions.language import evaluate
from unlock_kernel.ledger.ledger import CompletedLedger
from unlock_kernel.models.signal import CompletedSignal, ValueChangedSignal
from unlock_kernel.models.unlock import UnlockAchieved
from unlock_kernel.registry.registry import UnlockRegistry
from unlock_kernel.signal_store.store import SignalStore

logger = logging.getLogger(__name__)


class Evaluator:
    """Incremental re-evaluation of the unlock registry driven by signals."""

    def __init__(
        self,
        store: SignalStore,
        registry: UnlockRegistry,
        ledger: CompletedLedger,
    ):
        self.store = store
        self.registry = registry
        self.ledger = ledger

    def on_signal(self, signal, sequence: Optional[int] = None) -> List[UnlockAchieved]:
        """Apply one signal and return the notifications it produced, in order."""
        if isinstance(signal, CompletedSignal):
            first = self.store.record_completed(signal.topic)
            if not first:
                logger.debug("Repeated pulse on %s", signal.topic)
        elif isinstance(signal, ValueChangedSignal):
            self.store.record_value(signal.topic, signal.value)
        else:
            raise TypeError(f"Unsupported signal: {type(signal).__name__}")

        candidates = self.registry.candidates_for(signal.topic)
        if not candidates:
            return []

        logger.debug(
            "Signal %s on %s: %d candidates", signal.kind, signal.topic, len(candidates)
        )
        return self.settle(candidates, sequence)

    def settle(
        self, unlock_ids: Iterable[str], sequence: Optional[int] = None
    ) -> List[UnlockAchieved]:
        """Evaluate the given Pending ids against the current store."""
        notifications = []
        for unlock_id in unlock_ids:
            definition = self.registry.get(unlock_id)
            if not evaluate(definition.condition, self.store):
                continue
            notifications.append(self._achieve(unlock_id, sequence))
        return notifications

    def _achieve(self, unlock_id: str, sequence: Optional[int]) -> UnlockAchieved:
        definition = self.registry.mark_achieved(unlock_id)
        self.ledger.append(definition.id, definition.reward_id)
        logger.info(
            "Unlock achieved: %s (reward %s)", definition.id, definition.reward_id
        )
        return UnlockAchieved(
            unlock_id=definition.id,
            reward_id=definition.reward_id,
            display_name=definition.display_name,
            signal_sequence=sequence,
        )
