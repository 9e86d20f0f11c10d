"""
Push Connection Manager

One process-wide Kvrocks pub/sub connection shared by every acquisition
session. Subscriptions are reference counted per channel: the channel is
subscribed on the first handler and unsubscribed when the last one leaves.

Lifecycle:
    await manager.init()         # app startup, owns a background task group
    unsubscribe = await manager.subscribe(channel, handler)
    await unsubscribe()
    await manager.teardown()     # app shutdown
"""

from collections.abc import Awaitable, Callable
from typing import Any, Optional

import anyio
from anyio.abc import TaskGroup
import orjson
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import KvrocksClient


PushHandler = Callable[[dict[str, Any]], Awaitable[None]]


class PushConnectionManager:
    def __init__(self, *, kvrocks_client: KvrocksClient, poll_timeout: float = 1.0) -> None:
        self._kvrocks_client = kvrocks_client
        self._poll_timeout = poll_timeout
        self._client: Optional[Redis] = None
        self._pubsub: Optional[PubSub] = None
        self._task_group: Optional[TaskGroup] = None
        self._handlers: dict[str, dict[int, PushHandler]] = {}
        self._next_handle = 0
        self._lock = anyio.Lock()

    @property
    def channels(self) -> list[str]:
        return list(self._handlers)

    async def init(self) -> None:
        if self._task_group is not None:
            return
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        Logger.base.info('📡 [PUSH] Connection manager started')

    async def ensure_connected(self) -> PubSub:
        if self._pubsub is not None:
            return self._pubsub
        if self._task_group is None:
            raise RuntimeError('PushConnectionManager not initialized. Call await init() first.')

        self._client = await self._kvrocks_client.create_pubsub_client()
        self._pubsub = self._client.pubsub()
        self._task_group.start_soon(self._listen)
        Logger.base.info('📡 [PUSH] Pub/sub connection opened')
        return self._pubsub

    async def subscribe(self, channel: str, handler: PushHandler) -> Callable[[], Awaitable[None]]:
        async with self._lock:
            pubsub = await self.ensure_connected()
            if channel not in self._handlers:
                await pubsub.subscribe(channel)
                self._handlers[channel] = {}
                Logger.base.info(f'📡 [PUSH] Subscribed to {channel}')
            handle = self._next_handle
            self._next_handle += 1
            self._handlers[channel][handle] = handler

        async def unsubscribe() -> None:
            await self._remove(channel, handle)

        return unsubscribe

    async def _remove(self, channel: str, handle: int) -> None:
        async with self._lock:
            handlers = self._handlers.get(channel)
            if handlers is None or handlers.pop(handle, None) is None:
                return
            if handlers:
                return
            del self._handlers[channel]
            if self._pubsub is not None:
                try:
                    await self._pubsub.unsubscribe(channel)
                except RedisError as e:
                    Logger.base.warning(f'⚠️ [PUSH] Unsubscribe from {channel} failed: {e}')
            Logger.base.info(f'🔌 [PUSH] Unsubscribed from {channel}')

    async def _listen(self) -> None:
        while self._pubsub is not None:
            if not self._handlers:
                await anyio.sleep(self._poll_timeout)
                continue
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self._poll_timeout
                )
            except RedisError as e:
                Logger.base.warning(f'⚠️ [PUSH] Listener error, retrying: {e}')
                await anyio.sleep(self._poll_timeout)
                continue
            if message is None or message.get('type') != 'message':
                continue
            self._dispatch(channel=message['channel'], raw=message['data'])

    def _dispatch(self, *, channel: str | bytes, raw: Any) -> None:
        if isinstance(channel, bytes):
            channel = channel.decode()
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError:
            Logger.base.warning(f'⚠️ [PUSH] Dropped undecodable message on {channel}')
            return
        if not isinstance(payload, dict):
            payload = {'data': payload}

        assert self._task_group is not None
        for handler in list(self._handlers.get(channel, {}).values()):
            self._task_group.start_soon(self._run_handler, channel, handler, payload)

    @staticmethod
    async def _run_handler(channel: str, handler: PushHandler, payload: dict[str, Any]) -> None:
        try:
            await handler(payload)
        except Exception as e:  # one broken session must not stop the shared listener
            Logger.base.exception(f'💥 [PUSH] Handler for {channel} failed: {e}')

    async def teardown(self) -> None:
        pubsub, client, task_group = self._pubsub, self._client, self._task_group
        self._pubsub = None
        self._client = None
        self._task_group = None
        self._handlers.clear()

        if task_group is not None:
            task_group.cancel_scope.cancel()
            await task_group.__aexit__(None, None, None)
        if pubsub is not None:
            await pubsub.aclose()
        if client is not None:
            await client.aclose()
        Logger.base.info('🔌 [PUSH] Connection manager stopped')
