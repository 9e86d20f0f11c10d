"""Acquisition Domain Entities"""

from src.service.acquisition.domain.entity.purchase_attempt_entity import (
    Confirmation,
    IssuedTicket,
    PurchaseAttempt,
)
from src.service.acquisition.domain.entity.queue_ticket_entity import LOST_POSITION, QueueTicket
from src.service.acquisition.domain.entity.ticket_selection_entity import (
    StoredSelection,
    TicketSelection,
)

__all__ = [
    'Confirmation',
    'IssuedTicket',
    'LOST_POSITION',
    'PurchaseAttempt',
    'QueueTicket',
    'StoredSelection',
    'TicketSelection',
]
