from redis.exceptions import RedisError

from src.platform.state.kvrocks_client import KvrocksClient
from src.service.acquisition.app.interface.i_queue_update_channel import (
    IQueueUpdateChannel,
    QueueUpdateHandler,
    Unsubscribe,
)
from src.service.acquisition.domain.acquisition_error import AdmissionServiceError
from src.service.acquisition.driven_adapter.state.push_connection_manager import (
    PushConnectionManager,
)


class KvrocksQueueUpdateChannel(IQueueUpdateChannel):
    """Queue updates published by the admission service on channel queue:{event_id}"""

    def __init__(
        self, *, kvrocks_client: KvrocksClient, push_connection_manager: PushConnectionManager
    ) -> None:
        self.kvrocks_client = kvrocks_client
        self.push_connection_manager = push_connection_manager

    def channel(self, *, event_id: str) -> str:
        return self.kvrocks_client.key(f'queue:{event_id}')

    async def subscribe(self, *, event_id: str, on_message: QueueUpdateHandler) -> Unsubscribe:
        try:
            return await self.push_connection_manager.subscribe(
                self.channel(event_id=event_id), on_message
            )
        except (RedisError, OSError, RuntimeError) as e:
            raise AdmissionServiceError(f'Queue updates unavailable: {e}') from e
