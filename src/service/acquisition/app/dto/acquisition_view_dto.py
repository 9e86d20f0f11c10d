from typing import Optional

import attrs

from src.service.acquisition.app.dto.payment_dto import PaymentSurface
from src.service.acquisition.domain.entity.purchase_attempt_entity import Confirmation
from src.service.acquisition.domain.entity.queue_ticket_entity import QueueTicket
from src.service.acquisition.domain.entity.ticket_selection_entity import TicketSelection
from src.service.acquisition.domain.enum import (
    AcquisitionState,
    PaymentProvider,
    TimeoutWarningState,
)
from src.service.acquisition.domain.value_object.acquisition_notice import AcquisitionNotice


@attrs.define(frozen=True)
class QueueStatusView:
    position: int
    total: int
    position_label: str
    estimated_wait_minutes: int
    is_processing: bool
    timeout_warning: TimeoutWarningState = TimeoutWarningState.INACTIVE
    warning_countdown_seconds: Optional[int] = None


@attrs.define(frozen=True)
class AcquisitionView:
    """Read-only snapshot for whatever presents the acquisition flow"""

    event_id: str
    state: AcquisitionState
    provider: PaymentProvider
    quantity: int
    selection: Optional[TicketSelection] = None
    queue: Optional[QueueStatusView] = None
    payment_surface: Optional[PaymentSurface] = None
    awaiting_payment_callback: bool = False
    notice: Optional[AcquisitionNotice] = None
    confirmation: Optional[Confirmation] = None

    @classmethod
    def queue_status(
        cls,
        ticket: QueueTicket,
        *,
        minutes_per_buyer: int,
        timeout_warning: TimeoutWarningState,
        warning_countdown_seconds: Optional[int],
    ) -> QueueStatusView:
        return QueueStatusView(
            position=ticket.position,
            total=ticket.total,
            position_label=ticket.position_label,
            estimated_wait_minutes=ticket.estimated_wait_minutes(minutes_per_buyer),
            is_processing=ticket.is_processing,
            timeout_warning=timeout_warning,
            warning_countdown_seconds=warning_countdown_seconds,
        )
