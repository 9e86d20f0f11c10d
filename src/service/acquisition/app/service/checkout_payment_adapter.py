"""
Synchronous checkout adapter

Open a redirect checkout (minor units), then wait for exactly one callback:
the success/failure callback or the distinct cancel callback. A checkout that
never calls back within the callback timeout counts as cancelled, so the
acquisition flow can never hang on a dismissed checkout page.
"""

from typing import Optional

import anyio
from opentelemetry import trace
import uuid_utils

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import CallbackResult, PaymentSurface
from src.service.acquisition.app.interface.i_payment_adapter import IPaymentAdapter
from src.service.acquisition.app.interface.i_sync_payment_provider import ISyncPaymentProvider
from src.service.acquisition.app.service.pending_callback_registry import PendingCallbackRegistry
from src.service.acquisition.domain.acquisition_error import PaymentDeclinedError, PaymentError
from src.service.acquisition.domain.enum.payment_status import PaymentProvider
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome
from src.service.acquisition.domain.value_object.payment_request import PaymentRequest


_SUCCESS_STATUSES = frozenset({'success', 'successful', 'completed'})


class CheckoutPaymentAdapter(IPaymentAdapter):
    def __init__(
        self,
        *,
        checkout_provider: ISyncPaymentProvider,
        callback_registry: PendingCallbackRegistry,
        callback_url: str,
        callback_timeout: float,
    ) -> None:
        self._checkout_provider = checkout_provider
        self._registry = callback_registry
        self._callback_url = callback_url
        self._callback_timeout = callback_timeout
        self._pending_reference: Optional[str] = None
        self._surface: Optional[PaymentSurface] = None
        self.tracer = trace.get_tracer(__name__)

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.CHECKOUT

    @property
    def surface(self) -> Optional[PaymentSurface]:
        return self._surface

    @property
    def awaiting_callback(self) -> bool:
        return self._pending_reference is not None

    @Logger.io
    async def pay(self, *, request: PaymentRequest) -> PaymentOutcome:
        await self.teardown()
        reference = f'CHK-{uuid_utils.uuid7()}'
        pending = self._registry.register(reference)
        self._pending_reference = reference

        with self.tracer.start_as_current_span(
            'payment.checkout',
            attributes={'payment.reference': reference, 'payment.currency': request.currency},
        ):
            try:
                session = await self._checkout_provider.initialize_checkout(
                    reference=reference,
                    amount_minor=request.minor_units(),
                    currency=request.currency,
                    email=request.payer_email,
                    callback_url=self._callback_url,
                )
                self._surface = PaymentSurface(
                    provider=self.provider,
                    reference=reference,
                    redirect_url=session.authorization_url,
                )
                Logger.base.info(
                    f'💳 [PAYMENT] Checkout opened reference={reference} '
                    f'amount={request.minor_units()} {request.currency}'
                )

                result: Optional[CallbackResult] = None
                with anyio.move_on_after(self._callback_timeout):
                    result = await pending.wait()
                return self._to_outcome(
                    reference=reference, currency=request.currency, result=result
                )
            except PaymentError as e:
                Logger.base.warning(f'⚠️ [PAYMENT] Checkout failed reference={reference}: {e}')
                return PaymentOutcome.failed(
                    provider=self.provider, currency=request.currency, failure=e
                )
            finally:
                self._registry.discard(reference)
                self._pending_reference = None
                self._surface = None

    def _to_outcome(
        self, *, reference: str, currency: str, result: Optional[CallbackResult]
    ) -> PaymentOutcome:
        if result is None:
            Logger.base.warning(
                f'⌛ [PAYMENT] No checkout callback for {reference}, treating as cancelled'
            )
            return PaymentOutcome.cancelled(
                provider=self.provider, currency=currency, reference=reference
            )
        if result.cancelled:
            return PaymentOutcome.cancelled(
                provider=self.provider, currency=currency, reference=reference
            )
        if result.status.lower() in _SUCCESS_STATUSES:
            return PaymentOutcome.succeeded(
                provider=self.provider,
                currency=currency,
                reference=result.reference or reference,
                transaction_id=result.transaction_id,
            )
        return PaymentOutcome.failed(
            provider=self.provider,
            currency=currency,
            failure=PaymentDeclinedError(
                f'Payment was not completed (status: {result.status})', reference=reference
            ),
        )

    async def teardown(self) -> None:
        if self._pending_reference is not None:
            self._registry.resolve(
                self._pending_reference, CallbackResult.cancel(self._pending_reference)
            )
        self._surface = None
