from abc import ABC, abstractmethod

from src.service.acquisition.app.dto.payment_dto import CaptureResult, ProviderClientConfig


class IAsyncPaymentProviderApi(ABC):
    """Order based provider as exposed by our payment API. Amounts are in major units."""

    @abstractmethod
    async def fetch_client_config(self) -> ProviderClientConfig:
        """Raises ConfigurationUnavailableError"""
        pass

    @abstractmethod
    async def create_order(self, *, amount: str, currency: str, description: str) -> str:
        """Returns the provider order id"""
        pass

    @abstractmethod
    async def capture_order(self, *, order_id: str) -> CaptureResult:
        """Raises CaptureFailedError carrying order_id"""
        pass
