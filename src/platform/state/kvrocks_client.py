from typing import Optional

from redis.asyncio import ConnectionPool as AsyncConnectionPool, Redis as AsyncRedis

from src.platform.config.core_setting import Settings
from src.platform.logging.loguru_io import Logger


class KvrocksClient:
    """
    Async Kvrocks Client with connection pool.

    Usage:
        await kvrocks_client.initialize()  # In startup
        client = kvrocks_client.get_client()  # In handlers
    """

    def __init__(self, *, settings: Settings) -> None:
        self._settings = settings
        self._client: Optional[AsyncRedis] = None

    @property
    def url(self) -> str:
        return (
            f'redis://{self._settings.KVROCKS_HOST}:{self._settings.KVROCKS_PORT}'
            f'/{self._settings.KVROCKS_DB}'
        )

    def key(self, raw_key: str) -> str:
        """Apply the deployment key prefix (tests use a per-worker prefix)"""
        return f'{self._settings.KVROCKS_KEY_PREFIX}{raw_key}'

    async def initialize(self) -> AsyncRedis:
        """Initialize connection pool (idempotent)"""
        if self._client is not None:
            return self._client

        pool = AsyncConnectionPool.from_url(
            self.url,
            password=self._settings.KVROCKS_PASSWORD or None,
            decode_responses=self._settings.REDIS_DECODE_RESPONSES,
            max_connections=self._settings.KVROCKS_POOL_MAX_CONNECTIONS,
            socket_timeout=self._settings.KVROCKS_POOL_SOCKET_TIMEOUT,
            socket_connect_timeout=self._settings.KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT,
            socket_keepalive=self._settings.KVROCKS_POOL_SOCKET_KEEPALIVE,
            health_check_interval=self._settings.KVROCKS_POOL_HEALTH_CHECK_INTERVAL,
        )
        client = AsyncRedis.from_pool(pool)
        await client.ping()  # Fail-fast
        Logger.base.info(f'✅ [KVROCKS] Connected to {self.url}')
        self._client = client
        return client

    def get_client(self) -> AsyncRedis:
        if self._client is None:
            raise RuntimeError(
                'Kvrocks client not initialized. '
                'Call await kvrocks_client.initialize() during startup.'
            )
        return self._client

    async def create_pubsub_client(self) -> AsyncRedis:
        """Dedicated connection without read timeout - pub/sub listeners block indefinitely"""
        return AsyncRedis.from_url(
            self.url,
            password=self._settings.KVROCKS_PASSWORD or None,
            decode_responses=self._settings.REDIS_DECODE_RESPONSES,
            socket_timeout=None,
            socket_connect_timeout=self._settings.KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT,
            socket_keepalive=self._settings.KVROCKS_POOL_SOCKET_KEEPALIVE,
        )

    async def disconnect(self) -> None:
        """Close connection pool"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
