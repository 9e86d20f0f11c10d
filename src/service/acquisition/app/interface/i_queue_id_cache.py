from abc import ABC, abstractmethod
from typing import Optional


class IQueueIdCache(ABC):
    """Local memory of the queue id the admission service issued per event"""

    @abstractmethod
    async def get(self, *, event_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, *, event_id: str, queue_id: str) -> None:
        pass

    @abstractmethod
    async def remove(self, *, event_id: str) -> None:
        pass
