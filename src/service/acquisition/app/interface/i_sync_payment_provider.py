from abc import ABC, abstractmethod
from typing import Optional

from src.service.acquisition.app.dto.payment_dto import CheckoutSession


class ISyncPaymentProvider(ABC):
    """Redirect checkout provider. Amounts are in minor currency units."""

    @abstractmethod
    async def initialize_checkout(
        self,
        *,
        reference: str,
        amount_minor: int,
        currency: str,
        email: Optional[str],
        callback_url: str,
    ) -> CheckoutSession:
        """
        Raises:
            ConfigurationUnavailableError: provider refused our credentials
            ProviderRenderError: checkout page could not be opened
        """
        pass
