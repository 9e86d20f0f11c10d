"""Admission Service Interface (Port)

Remote virtual waiting room. Implementations raise AdmissionServiceError on
transport or protocol failures; the admission queue client turns those into
lost-position sentinels.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.service.acquisition.domain.entity.queue_ticket_entity import QueueTicket
from src.service.acquisition.domain.value_object.buyer_info import GuestBuyer


class IAdmissionService(ABC):
    @abstractmethod
    async def join(
        self,
        *,
        event_id: str,
        queue_id: Optional[str] = None,
        guest_info: Optional[GuestBuyer] = None,
    ) -> QueueTicket:
        """Enqueue the caller, re-sending queue_id makes the call idempotent"""
        pass

    @abstractmethod
    async def check_position(self, *, event_id: str, queue_id: str) -> QueueTicket:
        pass

    @abstractmethod
    async def complete(self, *, event_id: str, holder_id: Optional[str]) -> None:
        """Release the processing slot"""
        pass
