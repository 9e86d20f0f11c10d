from datetime import datetime, timezone
from typing import List, Optional

import attrs
import uuid_utils

from src.service.acquisition.domain.value_object.buyer_info import BuyerInfo
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome


@attrs.define(frozen=True)
class IssuedTicket:
    id: str
    ticket_number: str
    tier_id: Optional[str] = None
    attendee_name: Optional[str] = None
    attendee_email: Optional[str] = None


@attrs.define(frozen=True)
class Confirmation:
    """What the confirmation view needs: the first issued ticket plus the payment reference"""

    event_id: str
    ticket_id: str
    ticket_number: str
    quantity: int
    payment_reference: Optional[str] = None


@attrs.define
class PurchaseAttempt:
    id: str
    event_id: str
    tier_id: str
    quantity: int
    buyer: BuyerInfo
    payment_outcome: Optional[PaymentOutcome] = None
    tickets: List[IssuedTicket] = attrs.field(factory=list)
    error: Optional[str] = None
    created_at: datetime = attrs.field(factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @classmethod
    def start(
        cls,
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        buyer: BuyerInfo,
        payment_outcome: Optional[PaymentOutcome] = None,
    ) -> 'PurchaseAttempt':
        return cls(
            id=str(uuid_utils.uuid7()),
            event_id=event_id,
            tier_id=tier_id,
            quantity=quantity,
            buyer=buyer,
            payment_outcome=payment_outcome,
        )

    @property
    def is_paid(self) -> bool:
        return self.payment_outcome is not None

    @property
    def payment_reference(self) -> Optional[str]:
        return self.payment_outcome.reference if self.payment_outcome else None

    @property
    def succeeded(self) -> bool:
        return bool(self.tickets) and self.error is None

    def succeed(self, tickets: List[IssuedTicket]) -> None:
        self.tickets = list(tickets)
        self.finished_at = datetime.now(timezone.utc)

    def fail(self, error: str) -> None:
        self.error = error
        self.finished_at = datetime.now(timezone.utc)

    def confirmation(self) -> Confirmation:
        first = self.tickets[0]
        return Confirmation(
            event_id=self.event_id,
            ticket_id=first.id,
            ticket_number=first.ticket_number,
            quantity=self.quantity,
            payment_reference=self.payment_reference,
        )
