"""
Purchase API HTTP Client

POST /tickets/purchase is the single write path for ticket inventory, for both
buyer variants and for free and paid tiers. Only the payment fields differ:

- paid:  paymentMethod "<Provider> - <CUR>", paymentReference, paymentTransaction
- free:  paymentMethod "Free Ticket", synthetic FREE-TICKET reference, isFreeTicket
"""

import time
from typing import Any, List, Optional

import httpx
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.interface.i_purchase_api import IPurchaseApi
from src.service.acquisition.domain.acquisition_error import PurchaseApiError
from src.service.acquisition.domain.entity.purchase_attempt_entity import IssuedTicket
from src.service.acquisition.domain.enum.payment_status import PaymentProvider
from src.service.acquisition.domain.value_object.buyer_info import AuthenticatedBuyer, GuestBuyer
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome


class PurchaseApiHttpClient(IPurchaseApi):
    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        provider_names: dict[PaymentProvider, str],
        service_token: Optional[str] = None,
        default_currency: str = 'USD',
    ) -> None:
        self.http_client = http_client
        self.provider_names = provider_names
        self.service_token = service_token
        self.default_currency = default_currency
        self.tracer = trace.get_tracer(__name__)

    # --------------------------------------------------------------- payloads

    @staticmethod
    def _base_payload(
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        name: Optional[str],
        email: Optional[str],
        phone: str,
    ) -> dict[str, Any]:
        return {
            'eventId': event_id,
            'ticketTypeId': tier_id,
            'quantity': quantity,
            'attendeeInfo': {'name': name, 'email': email, 'phoneNumber': phone},
            'phoneNumber': phone,
        }

    def _paid_fields(self, payment: PaymentOutcome) -> dict[str, Any]:
        provider_name = self.provider_names.get(payment.provider, payment.provider.value)
        return {
            'paymentMethod': f'{provider_name} - {payment.currency}',
            'paymentReference': payment.reference,
            'paymentTransaction': payment.transaction_id,
            'paymentCurrency': payment.currency,
        }

    def _free_fields(self, *, guest: bool) -> dict[str, Any]:
        prefix = 'FREE-TICKET-GUEST-' if guest else 'FREE-TICKET-'
        return {
            'paymentMethod': 'Free Ticket',
            'paymentReference': f'{prefix}{int(time.time() * 1000)}',
            'paymentCurrency': self.default_currency,
            'isFreeTicket': True,
        }

    # ---------------------------------------------------------------- request

    async def _post(
        self, *, payload: dict[str, Any], access_token: Optional[str], tier_id: str
    ) -> List[IssuedTicket]:
        token = access_token or self.service_token
        headers = {'Authorization': f'Bearer {token}'} if token else {}

        with self.tracer.start_as_current_span(
            'purchase_api.purchase',
            attributes={
                'event.id': payload['eventId'],
                'purchase.quantity': payload['quantity'],
                'purchase.free': bool(payload.get('isFreeTicket')),
            },
        ):
            try:
                response = await self.http_client.post(
                    '/tickets/purchase', json=payload, headers=headers
                )
            except httpx.HTTPError as e:
                raise PurchaseApiError(f'Purchase API unreachable: {e}') from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error or not body.get('success', False):
            message = body.get('message') or f'Purchase API returned {response.status_code}'
            raise PurchaseApiError(message, status_code=response.status_code)

        return [
            IssuedTicket(
                id=str(item['_id']),
                ticket_number=str(item.get('ticketNumber', '')),
                tier_id=tier_id,
                attendee_name=item.get('attendeeName'),
                attendee_email=item.get('attendeeEmail'),
            )
            for item in body.get('data') or []
        ]

    # -------------------------------------------------------------- variants

    @Logger.io
    async def purchase(
        self,
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        buyer: AuthenticatedBuyer,
        payment: PaymentOutcome,
    ) -> List[IssuedTicket]:
        payload = self._base_payload(
            event_id=event_id,
            tier_id=tier_id,
            quantity=quantity,
            name=None,
            email=buyer.email,
            phone=buyer.phone,
        )
        payload |= self._paid_fields(payment)
        return await self._post(payload=payload, access_token=buyer.access_token, tier_id=tier_id)

    @Logger.io
    async def guest_purchase(
        self,
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        buyer: GuestBuyer,
        payment: PaymentOutcome,
    ) -> List[IssuedTicket]:
        payload = self._base_payload(
            event_id=event_id,
            tier_id=tier_id,
            quantity=quantity,
            name=buyer.name,
            email=buyer.email,
            phone=buyer.phone,
        )
        payload |= self._paid_fields(payment)
        return await self._post(payload=payload, access_token=None, tier_id=tier_id)

    @Logger.io
    async def purchase_free(
        self, *, event_id: str, tier_id: str, quantity: int, buyer: AuthenticatedBuyer
    ) -> List[IssuedTicket]:
        payload = self._base_payload(
            event_id=event_id,
            tier_id=tier_id,
            quantity=quantity,
            name=None,
            email=buyer.email,
            phone=buyer.phone,
        )
        payload |= self._free_fields(guest=False)
        return await self._post(payload=payload, access_token=buyer.access_token, tier_id=tier_id)

    @Logger.io
    async def guest_purchase_free(
        self, *, event_id: str, tier_id: str, quantity: int, buyer: GuestBuyer
    ) -> List[IssuedTicket]:
        payload = self._base_payload(
            event_id=event_id,
            tier_id=tier_id,
            quantity=quantity,
            name=buyer.name,
            email=buyer.email,
            phone=buyer.phone,
        )
        payload |= self._free_fields(guest=True)
        return await self._post(payload=payload, access_token=None, tier_id=tier_id)
