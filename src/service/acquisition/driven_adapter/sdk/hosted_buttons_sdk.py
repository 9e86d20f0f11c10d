import httpx

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import ProviderClientConfig, SdkHandle
from src.service.acquisition.app.interface.i_async_payment_sdk import IAsyncPaymentSdk
from src.service.acquisition.domain.acquisition_error import ProviderRenderError


class HostedButtonsSdk(IAsyncPaymentSdk):
    """Fetches the provider's button bundle once per client id so the approval surface can render"""

    def __init__(self, *, http_client: httpx.AsyncClient, sdk_url: str) -> None:
        self.http_client = http_client
        self.sdk_url = sdk_url

    @Logger.io
    async def load(self, *, config: ProviderClientConfig) -> SdkHandle:
        params = {'client-id': config.client_id, 'currency': config.currency, 'components': 'buttons'}
        try:
            response = await self.http_client.get(self.sdk_url, params=params)
        except httpx.HTTPError as e:
            raise ProviderRenderError(f'Payment SDK could not be loaded: {e}') from e
        if response.status_code != 200:
            raise ProviderRenderError(f'Payment SDK could not be loaded ({response.status_code})')

        return SdkHandle(
            client_id=config.client_id,
            currency=config.currency,
            script_url=str(response.url),
        )
