"""Purchase API Interface (Port)

Single writer of ticket inventory. Implementations raise PurchaseApiError when
the API refuses or fails; malformed payloads surface as unexpected exceptions.
"""

from abc import ABC, abstractmethod
from typing import List

from src.service.acquisition.domain.entity.purchase_attempt_entity import IssuedTicket
from src.service.acquisition.domain.value_object.buyer_info import AuthenticatedBuyer, GuestBuyer
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome


class IPurchaseApi(ABC):
    @abstractmethod
    async def purchase(
        self,
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        buyer: AuthenticatedBuyer,
        payment: PaymentOutcome,
    ) -> List[IssuedTicket]:
        pass

    @abstractmethod
    async def guest_purchase(
        self,
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        buyer: GuestBuyer,
        payment: PaymentOutcome,
    ) -> List[IssuedTicket]:
        pass

    @abstractmethod
    async def purchase_free(
        self, *, event_id: str, tier_id: str, quantity: int, buyer: AuthenticatedBuyer
    ) -> List[IssuedTicket]:
        pass

    @abstractmethod
    async def guest_purchase_free(
        self, *, event_id: str, tier_id: str, quantity: int, buyer: GuestBuyer
    ) -> List[IssuedTicket]:
        pass
