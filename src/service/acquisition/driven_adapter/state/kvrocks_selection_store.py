"""
Kvrocks-backed session state

Keys (prefixed by KVROCKS_KEY_PREFIX):
- acquisition:{session_id}:selection:{event_id} -> orjson StoredSelection
- acquisition:{session_id}:queue_id:{event_id}  -> queue id string

Both are caches: a read or write failure is logged and treated as "nothing
stored", never as an acquisition failure.
"""

from typing import Optional

import orjson
from redis.exceptions import RedisError

from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import KvrocksClient
from src.service.acquisition.app.interface.i_queue_id_cache import IQueueIdCache
from src.service.acquisition.app.interface.i_selection_store import ISelectionStore
from src.service.acquisition.domain.entity.ticket_selection_entity import StoredSelection


class _SessionScopedKeys:
    def __init__(self, *, kvrocks_client: KvrocksClient, session_id: str, kind: str) -> None:
        self.kvrocks_client = kvrocks_client
        self.session_id = session_id
        self.kind = kind

    def key(self, event_id: str) -> str:
        return self.kvrocks_client.key(f'acquisition:{self.session_id}:{self.kind}:{event_id}')


class KvrocksSelectionStore(ISelectionStore):
    def __init__(self, *, kvrocks_client: KvrocksClient, session_id: str, ttl_seconds: int) -> None:
        self.kvrocks_client = kvrocks_client
        self.ttl_seconds = ttl_seconds
        self._keys = _SessionScopedKeys(
            kvrocks_client=kvrocks_client, session_id=session_id, kind='selection'
        )

    async def get(self, *, event_id: str) -> Optional[StoredSelection]:
        try:
            raw = await self.kvrocks_client.get_client().get(self._keys.key(event_id))
        except RedisError as e:
            Logger.base.warning(f'⚠️ [SELECTION] Read failed for event={event_id}: {e}')
            return None
        if raw is None:
            return None
        try:
            return StoredSelection.from_dict(orjson.loads(raw))
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            Logger.base.warning(f'⚠️ [SELECTION] Discarding unreadable selection: {e}')
            await self.remove(event_id=event_id)
            return None

    async def set(self, *, event_id: str, stored: StoredSelection) -> None:
        try:
            await self.kvrocks_client.get_client().set(
                self._keys.key(event_id), orjson.dumps(stored.to_dict()), ex=self.ttl_seconds
            )
        except RedisError as e:
            Logger.base.warning(f'⚠️ [SELECTION] Write failed for event={event_id}: {e}')

    async def remove(self, *, event_id: str) -> None:
        try:
            await self.kvrocks_client.get_client().delete(self._keys.key(event_id))
        except RedisError as e:
            Logger.base.warning(f'⚠️ [SELECTION] Delete failed for event={event_id}: {e}')


class KvrocksQueueIdCache(IQueueIdCache):
    def __init__(self, *, kvrocks_client: KvrocksClient, session_id: str, ttl_seconds: int) -> None:
        self.kvrocks_client = kvrocks_client
        self.ttl_seconds = ttl_seconds
        self._keys = _SessionScopedKeys(
            kvrocks_client=kvrocks_client, session_id=session_id, kind='queue_id'
        )

    async def get(self, *, event_id: str) -> Optional[str]:
        try:
            value = await self.kvrocks_client.get_client().get(self._keys.key(event_id))
        except RedisError as e:
            Logger.base.warning(f'⚠️ [QUEUE_ID] Read failed for event={event_id}: {e}')
            return None
        if isinstance(value, bytes):
            value = value.decode()
        return value or None

    async def set(self, *, event_id: str, queue_id: str) -> None:
        try:
            await self.kvrocks_client.get_client().set(
                self._keys.key(event_id), queue_id, ex=self.ttl_seconds
            )
        except RedisError as e:
            Logger.base.warning(f'⚠️ [QUEUE_ID] Write failed for event={event_id}: {e}')

    async def remove(self, *, event_id: str) -> None:
        try:
            await self.kvrocks_client.get_client().delete(self._keys.key(event_id))
        except RedisError as e:
            Logger.base.warning(f'⚠️ [QUEUE_ID] Delete failed for event={event_id}: {e}')
