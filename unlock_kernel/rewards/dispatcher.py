"""
Reward Dispatcher — routes UnlockAchieved notifications to reward consumers.

The engine never decides how a reward is applied. Consumers register a
handler for an exact reward id (an explicit key on their own content) and
the dispatcher calls it for live and replayed notifications alike, so
consumer state can be rebuilt purely from the replay stream.

Behavioral Contract:
- Exact reward id match only; reward ids are never parsed
- Handlers for one reward id run in registration order
- A notification with no handler is not an error
"""

import logging
from typing import Callable, Dict, List

from unlock_kernel.models.unlock import UnlockAchieved

logger = logging.getLogger(__name__)

RewardHandler = Callable[[UnlockAchieved], None]


class RewardDispatcher:
    """Handler registry keyed by reward id. Subscribe ``handle`` to an engine."""

    def __init__(self):
        self._handlers: Dict[str, List[RewardHandler]] = {}
        self._unhandled: List[UnlockAchieved] = []

    def register(self, reward_id: str, handler: RewardHandler) -> None:
        """Register a handler for one reward id."""
        self._handlers.setdefault(reward_id, []).append(handler)

    def unregister(self, reward_id: str) -> None:
        """Remove every handler for a reward id."""
        self._handlers.pop(reward_id, None)

    def reward_ids(self) -> List[str]:
        return sorted(self._handlers)

    @property
    def unhandled(self) -> List[UnlockAchieved]:
        """Notifications that arrived with no registered handler."""
        return list(self._unhandled)

    def handle(self, notification: UnlockAchieved) -> bool:
        """Dispatch one notification. Returns False when nobody claimed it."""
        handlers = self._handlers.get(notification.reward_id)
        if not handlers:
            logger.debug(
                "No handler for reward %s (unlock %s)",
                notification.reward_id, notification.unlock_id,
            )
            self._unhandled.append(notification)
            return False

        for handler in handlers:
            handler(notification)
        return True
