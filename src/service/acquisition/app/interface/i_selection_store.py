from abc import ABC, abstractmethod
from typing import Optional

from src.service.acquisition.domain.entity.ticket_selection_entity import StoredSelection


class ISelectionStore(ABC):
    """Durable, non-authoritative cache of what the buyer was trying to buy, keyed by event id"""

    @abstractmethod
    async def get(self, *, event_id: str) -> Optional[StoredSelection]:
        pass

    @abstractmethod
    async def set(self, *, event_id: str, stored: StoredSelection) -> None:
        pass

    @abstractmethod
    async def remove(self, *, event_id: str) -> None:
        pass
