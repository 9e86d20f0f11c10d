from typing import List, Optional

from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.interface.i_purchase_api import IPurchaseApi
from src.service.acquisition.domain.acquisition_error import (
    InvalidQuantityError,
    PurchaseApiError,
    PurchaseRejectedError,
    ReconciliationError,
)
from src.service.acquisition.domain.entity.purchase_attempt_entity import IssuedTicket
from src.service.acquisition.domain.value_object.buyer_info import (
    AuthenticatedBuyer,
    BuyerInfo,
    GuestBuyer,
    validate_buyer_info,
)
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome


class FinalizePurchaseUseCase:
    """
    Turn an admission slot plus a payment outcome (or none, for free tiers)
    into issued tickets through the purchase API.

    Failure severity depends on whether money moved:
    - no payment: PurchaseRejectedError, safe to retry
    - successful payment: ReconciliationError embedding the payment reference

    Callers must invoke this at most once per successful payment outcome.
    """

    def __init__(self, *, purchase_api: IPurchaseApi) -> None:
        self.purchase_api = purchase_api
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def finalize(
        self,
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        buyer: BuyerInfo,
        payment_outcome: Optional[PaymentOutcome] = None,
    ) -> List[IssuedTicket]:
        # Free and paid paths enforce the same contact preconditions
        buyer = validate_buyer_info(buyer)
        if quantity < 1:
            raise InvalidQuantityError('Quantity must be at least 1')
        if payment_outcome is not None and not payment_outcome.is_success:
            raise PurchaseRejectedError('Only a successful payment can be finalized')

        with self.tracer.start_as_current_span(
            'use_case.finalize_purchase',
            attributes={
                'event.id': event_id,
                'tier.id': tier_id,
                'purchase.quantity': quantity,
                'purchase.free': payment_outcome is None,
            },
        ):
            try:
                tickets = await self._submit(
                    event_id=event_id,
                    tier_id=tier_id,
                    quantity=quantity,
                    buyer=buyer,
                    payment_outcome=payment_outcome,
                )
                if not tickets:
                    raise PurchaseApiError('Purchase API returned no tickets')
            except PurchaseApiError as e:
                if payment_outcome is not None:
                    assert payment_outcome.reference is not None
                    Logger.base.error(
                        f'🚨 [FINALIZE] Paid but not issued, reference={payment_outcome.reference}: '
                        f'{e.message}'
                    )
                    raise ReconciliationError(
                        reference=payment_outcome.reference, detail=e.message
                    ) from e
                raise PurchaseRejectedError(e.message) from e

            Logger.base.info(
                f'✅ [FINALIZE] Issued {len(tickets)} ticket(s) for event={event_id} tier={tier_id}'
            )
            return tickets

    async def _submit(
        self,
        *,
        event_id: str,
        tier_id: str,
        quantity: int,
        buyer: BuyerInfo,
        payment_outcome: Optional[PaymentOutcome],
    ) -> List[IssuedTicket]:
        if isinstance(buyer, GuestBuyer):
            if payment_outcome is None:
                return await self.purchase_api.guest_purchase_free(
                    event_id=event_id, tier_id=tier_id, quantity=quantity, buyer=buyer
                )
            return await self.purchase_api.guest_purchase(
                event_id=event_id,
                tier_id=tier_id,
                quantity=quantity,
                buyer=buyer,
                payment=payment_outcome,
            )

        assert isinstance(buyer, AuthenticatedBuyer)
        if payment_outcome is None:
            return await self.purchase_api.purchase_free(
                event_id=event_id, tier_id=tier_id, quantity=quantity, buyer=buyer
            )
        return await self.purchase_api.purchase(
            event_id=event_id,
            tier_id=tier_id,
            quantity=quantity,
            buyer=buyer,
            payment=payment_outcome,
        )
