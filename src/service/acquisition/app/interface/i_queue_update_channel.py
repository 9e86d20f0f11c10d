"""Queue Update Channel Interface (Port)

Best-effort, at-least-once push of per-event queue changes. Deliveries carry no
authoritative position; they only hint that a position check is worthwhile.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any


QueueUpdateHandler = Callable[[dict[str, Any]], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]


class IQueueUpdateChannel(ABC):
    @abstractmethod
    async def subscribe(self, *, event_id: str, on_message: QueueUpdateHandler) -> Unsubscribe:
        """
        Register on_message for updates of one event.

        Returns:
            Coroutine function removing exactly this registration
        """
        pass
