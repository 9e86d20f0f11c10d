from typing import Optional

from src.service.acquisition.app.interface.i_queue_id_cache import IQueueIdCache
from src.service.acquisition.app.interface.i_selection_store import ISelectionStore
from src.service.acquisition.domain.entity.ticket_selection_entity import StoredSelection


class InMemorySelectionStore(ISelectionStore):
    """Process-local store, used by tests and single-process runs"""

    def __init__(self) -> None:
        self._items: dict[str, StoredSelection] = {}

    async def get(self, *, event_id: str) -> Optional[StoredSelection]:
        return self._items.get(event_id)

    async def set(self, *, event_id: str, stored: StoredSelection) -> None:
        self._items[event_id] = stored

    async def remove(self, *, event_id: str) -> None:
        self._items.pop(event_id, None)


class NullSelectionStore(ISelectionStore):
    """Private-browsing style store: writes are dropped, reads find nothing"""

    async def get(self, *, event_id: str) -> Optional[StoredSelection]:
        return None

    async def set(self, *, event_id: str, stored: StoredSelection) -> None:
        return None

    async def remove(self, *, event_id: str) -> None:
        return None


class InMemoryQueueIdCache(IQueueIdCache):
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    async def get(self, *, event_id: str) -> Optional[str]:
        return self._items.get(event_id)

    async def set(self, *, event_id: str, queue_id: str) -> None:
        self._items[event_id] = queue_id

    async def remove(self, *, event_id: str) -> None:
        self._items.pop(event_id, None)
