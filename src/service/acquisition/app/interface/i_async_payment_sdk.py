from abc import ABC, abstractmethod

from src.service.acquisition.app.dto.payment_dto import ProviderClientConfig, SdkHandle


class IAsyncPaymentSdk(ABC):
    @abstractmethod
    async def load(self, *, config: ProviderClientConfig) -> SdkHandle:
        """Fetch the provider SDK bundle for this client config (ProviderRenderError on failure)"""
        pass
