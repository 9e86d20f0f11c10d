from typing import Optional

import attrs


LOST_POSITION = -1


@attrs.define(frozen=True)
class QueueTicket:
    """
    The caller's admission record for one event.

    position is 1-based; 0 means the admission service already moved the caller
    past the head of the queue, LOST_POSITION means the server no longer knows it.
    """

    event_id: str
    queue_id: Optional[str] = None
    position: int = 0
    total: int = 0
    is_processing: bool = False
    holder_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_lost(self) -> bool:
        return self.position < 0

    @property
    def is_ready(self) -> bool:
        # 0 and 1 both count: the service may advance the caller between two checks
        return not self.is_lost and (self.position <= 1 or self.is_processing)

    @property
    def position_label(self) -> str:
        return f'{self.position} of {self.total}'

    def estimated_wait_minutes(self, minutes_per_buyer: int = 2) -> int:
        if self.is_ready or self.is_lost:
            return 0
        return self.position * minutes_per_buyer

    @classmethod
    def lost(
        cls, *, event_id: str, error: str, queue_id: Optional[str] = None
    ) -> 'QueueTicket':
        return cls(event_id=event_id, queue_id=queue_id, position=LOST_POSITION, error=error)
