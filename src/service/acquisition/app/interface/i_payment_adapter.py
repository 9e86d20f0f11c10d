"""Payment Adapter Interface

Both providers hide behind this contract. pay() never raises the payment error
taxonomy: cancellation and provider failures come back inside PaymentOutcome.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.service.acquisition.app.dto.payment_dto import PaymentSurface
from src.service.acquisition.domain.enum.payment_status import PaymentProvider
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome
from src.service.acquisition.domain.value_object.payment_request import PaymentRequest


class IPaymentAdapter(ABC):
    @property
    @abstractmethod
    def provider(self) -> PaymentProvider:
        pass

    @property
    @abstractmethod
    def surface(self) -> Optional[PaymentSurface]:
        """Currently mounted interactive surface, if any"""
        pass

    @property
    @abstractmethod
    def awaiting_callback(self) -> bool:
        """True while the pay control must stay disabled"""
        pass

    @abstractmethod
    async def pay(self, *, request: PaymentRequest) -> PaymentOutcome:
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Discard the mounted surface; a pending pay() resolves as cancelled"""
        pass
