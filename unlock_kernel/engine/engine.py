"""
Unlock Engine — owns the Signal Store, Unlock Registry and Completed Ledger.

Constructed once at startup and handed to producers (who publish signals)
and consumers (who subscribe to UnlockAchieved). There is no global state.

Lifecycle:
  construct -> [restore(snapshot)] -> start -> live signals ... -> [reset]

Ordering:
- Signals are processed strictly in arrival order through a single-consumer
  queue; each one runs to completion before the next.
- Notifications for one signal are emitted in ascending unlock id order.
- Achieving an unlock enqueues a pulse on "<prefix><unlock_id>" behind the
  current signal, so chained unlocks fire after their prerequisite.
"""

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Callable, Deque, Iterable, List, Optional, Set, Union

from unlock_kernel.content.loader import load_definitions
from unlock_kernel.engine.evaluator import Evaluator
from unlock_kernel.ledger.ledger import CompletedLedger
from unlock_kernel.models.engine import EngineConfig
from unlock_kernel.models.signal import CompletedSignal, ValueChangedSignal
from unlock_kernel.models.unlock import UnlockAchieved, UnlockDefinition
from unlock_kernel.registry.registry import UnlockRegistry
from unlock_kernel.signal_store.store import SignalStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[UnlockAchieved], None]


class EngineStateError(RuntimeError):
    """Raised when an operation is not allowed in the engine's current phase."""
    pass


class UnlockEngine:
    """
    The Unlock Engine — turns an ordered signal stream into an ordered,
    exactly-once stream of UnlockAchieved notifications.
    """

    def __init__(
        self,
        definitions: Iterable[UnlockDefinition] = (),
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        self._definitions: List[UnlockDefinition] = list(definitions)

        self.store = SignalStore()
        self.ledger = CompletedLedger()
        self.registry = self._build_registry(self._definitions)
        self.evaluator = Evaluator(self.store, self.registry, self.ledger)

        self._queue: Deque = deque()
        self._subscribers: List[Subscriber] = []
        self._sequence = 0
        self._started = False
        self._restored = False
        self._draining = False
        self._running = False
        self._subscriber_failures = 0

    @classmethod
    def from_content(
        cls,
        path: Union[str, Path],
        config: Optional[EngineConfig] = None,
    ) -> "UnlockEngine":
        """Build an engine from a content file or directory."""
        return cls(load_definitions(path), config=config)

    @staticmethod
    def _build_registry(definitions: List[UnlockDefinition]) -> UnlockRegistry:
        registry = UnlockRegistry()
        registry.load(definitions)
        return registry

    # --- Consumers ---

    def subscribe(self, callback: Subscriber) -> None:
        """Register a notification consumer. Called in emission order."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # --- Producers ---

    def publish(self, signal) -> None:
        """Enqueue a signal. Nothing is evaluated until the queue is drained."""
        if not isinstance(signal, (CompletedSignal, ValueChangedSignal)):
            raise TypeError(f"Unsupported signal: {type(signal).__name__}")
        self._queue.append(signal)

    def submit(self, signal) -> List[UnlockAchieved]:
        """Enqueue a signal and drain the queue."""
        self.publish(signal)
        return self.process_pending()

    def completed(self, topic: str) -> List[UnlockAchieved]:
        """Inbound StatusCompleted{topic}."""
        return self.submit(CompletedSignal(topic=topic))

    def value_changed(self, topic: str, value: float) -> List[UnlockAchieved]:
        """Inbound ValueChanged{topic, value}."""
        return self.submit(ValueChangedSignal(topic=topic, value=value))

    # --- Processing ---

    def start(self) -> List[UnlockAchieved]:
        """
        Close the restore window and settle every Pending definition once
        against the current store, so conditions that already hold (``True``,
        ``Not`` over an absent topic, dependants of restored unlocks) fire
        without waiting for a signal. Runs once; implicit on the first drain.
        """
        if self._started:
            return []
        self._started = True

        if not self.config.settle_on_start:
            return []

        notifications = self.evaluator.settle(self.registry.pending_ids())
        self._emit(notifications)
        notifications.extend(self.process_pending())
        return notifications

    def process_pending(self) -> List[UnlockAchieved]:
        """
        Drain the signal queue in arrival order.
        Re-entrant calls (a subscriber publishing) return immediately; the
        outer drain picks their signals up.
        """
        if self._draining:
            return []

        notifications: List[UnlockAchieved] = []
        if not self._started:
            notifications.extend(self.start())

        self._draining = True
        try:
            while self._queue:
                signal = self._queue.popleft()
                sequence = self._sequence
                self._sequence += 1
                produced = self.evaluator.on_signal(signal, sequence)
                self._emit(produced)
                notifications.extend(produced)
        finally:
            self._draining = False
        return notifications

    def _emit(self, notifications: List[UnlockAchieved]) -> None:
        for notification in notifications:
            if self.config.publish_unlock_topics:
                self._queue.append(CompletedSignal(
                    topic=self.unlock_topic(notification.unlock_id)
                ))
            self._notify(notification)

    def _notify(self, notification: UnlockAchieved) -> None:
        for callback in list(self._subscribers):
            try:
                callback(notification)
            except Exception:
                self._subscriber_failures += 1
                logger.exception(
                    "Subscriber %r failed on unlock %s",
                    callback, notification.unlock_id,
                )

    def unlock_topic(self, unlock_id: str) -> str:
        """The topic pulsed when an unlock is achieved."""
        return f"{self.config.unlock_topic_prefix}{unlock_id}"

    # --- Restore & Replay ---

    @property
    def can_restore(self) -> bool:
        return not self._started and not self._restored

    def restore(self, unlock_ids: Iterable[str]) -> List[UnlockAchieved]:
        """
        Mark a persisted snapshot Achieved without evaluating conditions and
        replay one notification per id, ascending. Ids missing from the
        registry are ignored. Allowed once, before any live signal.
        """
        if self._restored:
            raise EngineStateError("Ledger snapshot was already restored")
        if self._started:
            raise EngineStateError(
                "Cannot restore after the engine has started processing signals"
            )
        self._restored = True

        notifications = []
        ignored = []
        for unlock_id in sorted(set(unlock_ids)):
            if unlock_id not in self.registry:
                ignored.append(unlock_id)
                continue
            definition = self.registry.mark_achieved(unlock_id)
            self.ledger.append(definition.id, definition.reward_id, restored=True)
            if self.config.publish_unlock_topics:
                self.store.record_completed(self.unlock_topic(unlock_id))
            notifications.append(UnlockAchieved(
                unlock_id=definition.id,
                reward_id=definition.reward_id,
                display_name=definition.display_name,
                replayed=True,
            ))

        if ignored:
            logger.warning(
                "Ignored %d restored unlock ids absent from the registry: %s",
                len(ignored), ", ".join(ignored),
            )
        logger.info("Restored %d achieved unlocks", len(notifications))

        for notification in notifications:
            self._notify(notification)
        return notifications

    def snapshot(self) -> Set[str]:
        """Achieved unlock ids to hand to the persistence collaborator."""
        return self.ledger.snapshot()

    # --- Rebuilds ---

    def reload(self, definitions: Iterable[UnlockDefinition]) -> List[UnlockAchieved]:
        """
        Full rebuild from new content. Pending state is discarded; the ledger
        is kept and re-applied. Ledger ids no longer defined stay in the
        ledger but have no registry entry.
        """
        definitions = list(definitions)
        registry = self._build_registry(definitions)

        missing = []
        for entry in self.ledger.entries():
            if entry.unlock_id in registry:
                registry.mark_achieved(entry.unlock_id)
            else:
                missing.append(entry.unlock_id)
        if missing:
            logger.warning(
                "Reloaded content no longer defines %d achieved unlocks: %s",
                len(missing), ", ".join(missing),
            )

        self._definitions = definitions
        self.registry = registry
        self.evaluator = Evaluator(self.store, self.registry, self.ledger)

        if not self._started:
            return []

        notifications = self.evaluator.settle(self.registry.pending_ids())
        self._emit(notifications)
        notifications.extend(self.process_pending())
        return notifications

    def reset(self) -> None:
        """Forget every signal, achievement and queued item. Content stays loaded."""
        self.store.clear()
        self.ledger.clear()
        self.registry = self._build_registry(self._definitions)
        self.evaluator = Evaluator(self.store, self.registry, self.ledger)
        self._queue.clear()
        self._subscriber_failures = 0
        self._sequence = 0
        self._started = False
        self._restored = False
        logger.info("Unlock engine reset")

    # --- Async single consumer ---

    async def run_async(
        self,
        inbox: "asyncio.Queue",
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        """Consume signals from an asyncio queue until the stop event is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            while not stop_event.is_set():
                try:
                    signal = await asyncio.wait_for(
                        inbox.get(),
                        timeout=self.config.poll_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    continue
                try:
                    self.submit(signal)
                finally:
                    inbox.task_done()
        finally:
            self._running = False

    # --- Diagnostics ---

    def status(self) -> dict:
        """Counts for diagnostics and the API."""
        return {
            "running": self._running,
            "started": self._started,
            "restored": self._restored,
            "can_restore": self.can_restore,
            "signals_processed": self._sequence,
            "queued_signals": len(self._queue),
            "definitions": len(self.registry),
            "pending": len(self.registry.pending_ids()),
            "achieved": len(self.ledger),
            "tracked_topics": len(self.store.known_topics()),
            "subscribers": len(self._subscribers),
            "subscriber_failures": self._subscriber_failures,
        }
