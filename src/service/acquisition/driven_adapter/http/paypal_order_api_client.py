"""
Order provider endpoints exposed by our payment API:

- GET  /paypal/config            -> {success, data: {'client-id', currency, intent}}
- POST /paypal/create-order      -> {success, data: {id, status}}
- POST /paypal/capture/{orderId} -> {success, data: {id, status, order_id}}
"""

from typing import Any

import httpx

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import CaptureResult, ProviderClientConfig
from src.service.acquisition.app.interface.i_async_payment_provider_api import (
    IAsyncPaymentProviderApi,
)
from src.service.acquisition.domain.acquisition_error import (
    CaptureFailedError,
    ConfigurationUnavailableError,
    ProviderRenderError,
)


def _unwrap(response: httpx.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if response.is_error or not body.get('success', False):
        return None
    return body.get('data') or {}


class PaypalOrderApiClient(IAsyncPaymentProviderApi):
    def __init__(self, *, http_client: httpx.AsyncClient) -> None:
        self.http_client = http_client

    @Logger.io
    async def fetch_client_config(self) -> ProviderClientConfig:
        try:
            response = await self.http_client.get('/paypal/config')
        except httpx.HTTPError as e:
            raise ConfigurationUnavailableError(f'PayPal configuration unavailable: {e}') from e

        data = _unwrap(response)
        if not data or not data.get('client-id'):
            raise ConfigurationUnavailableError('PayPal configuration unavailable')
        return ProviderClientConfig(
            client_id=data['client-id'],
            currency=data.get('currency', 'USD'),
            intent=data.get('intent', 'capture'),
        )

    @Logger.io
    async def create_order(self, *, amount: str, currency: str, description: str) -> str:
        try:
            response = await self.http_client.post(
                '/paypal/create-order',
                json={'amount': amount, 'currency': currency, 'description': description},
            )
        except httpx.HTTPError as e:
            raise ProviderRenderError(f'PayPal order could not be created: {e}') from e

        data = _unwrap(response)
        if not data or not data.get('id'):
            raise ProviderRenderError('PayPal order could not be created')
        return str(data['id'])

    @Logger.io
    async def capture_order(self, *, order_id: str) -> CaptureResult:
        try:
            response = await self.http_client.post(f'/paypal/capture/{order_id}')
        except httpx.HTTPError as e:
            raise CaptureFailedError(f'Payment capture failed: {e}', reference=order_id) from e

        data = _unwrap(response)
        if not data or not data.get('id'):
            raise CaptureFailedError('Payment capture failed', reference=order_id)
        return CaptureResult(
            capture_id=str(data['id']),
            status=str(data.get('status', '')),
            order_id=str(data.get('order_id') or order_id),
        )
