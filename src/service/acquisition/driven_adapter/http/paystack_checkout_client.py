from typing import Optional

import httpx

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import CheckoutSession
from src.service.acquisition.app.interface.i_sync_payment_provider import ISyncPaymentProvider
from src.service.acquisition.domain.acquisition_error import (
    ConfigurationUnavailableError,
    ProviderRenderError,
)


class PaystackCheckoutClient(ISyncPaymentProvider):
    """Redirect checkout via POST /transaction/initialize (amount in minor units)"""

    def __init__(self, *, http_client: httpx.AsyncClient, secret_key: str) -> None:
        self.http_client = http_client
        self.secret_key = secret_key

    @Logger.io
    async def initialize_checkout(
        self,
        *,
        reference: str,
        amount_minor: int,
        currency: str,
        email: Optional[str],
        callback_url: str,
    ) -> CheckoutSession:
        if not self.secret_key:
            raise ConfigurationUnavailableError('Card payments are not configured')

        try:
            response = await self.http_client.post(
                '/transaction/initialize',
                json={
                    'reference': reference,
                    'amount': amount_minor,
                    'currency': currency,
                    'email': email,
                    'callback_url': callback_url,
                },
                headers={'Authorization': f'Bearer {self.secret_key}'},
            )
        except httpx.HTTPError as e:
            raise ProviderRenderError(f'Checkout could not be opened: {e}', reference=reference) from e

        if response.status_code in (401, 403):
            raise ConfigurationUnavailableError('Card payments are currently unavailable')
        try:
            body = response.json()
        except ValueError:
            body = {}
        data = body.get('data') or {}
        if response.is_error or not body.get('status') or not data.get('authorization_url'):
            raise ProviderRenderError(
                body.get('message') or f'Checkout could not be opened ({response.status_code})',
                reference=reference,
            )

        return CheckoutSession(
            reference=data.get('reference') or reference,
            authorization_url=data['authorization_url'],
            access_code=data.get('access_code'),
        )
