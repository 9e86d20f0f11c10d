"""
Asynchronous order adapter

fetch client config -> load SDK (shared, idempotent) -> create order (major
units) -> mount approval surface -> wait for approval -> capture.

A surface that reports it could not render evicts the shared SDK handle.

Only one approval surface is ever live per adapter: the previous one is torn
down before a new order is mounted, and a torn-down order id can no longer be
approved.
"""

from typing import Optional

import anyio
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import CallbackResult, PaymentSurface, SdkHandle
from src.service.acquisition.app.interface.i_async_payment_provider_api import (
    IAsyncPaymentProviderApi,
)
from src.service.acquisition.app.interface.i_payment_adapter import IPaymentAdapter
from src.service.acquisition.app.service.pending_callback_registry import (
    PendingCallback,
    PendingCallbackRegistry,
)
from src.service.acquisition.app.service.sdk_loader import SdkLoader
from src.service.acquisition.domain.acquisition_error import (
    CaptureFailedError,
    PaymentDeclinedError,
    PaymentError,
    ProviderRenderError,
)
from src.service.acquisition.domain.enum.payment_status import PaymentProvider
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome
from src.service.acquisition.domain.value_object.payment_request import PaymentRequest


_APPROVED_STATUSES = frozenset({'approved', 'success', 'completed'})


class OrderPaymentAdapter(IPaymentAdapter):
    def __init__(
        self,
        *,
        order_api: IAsyncPaymentProviderApi,
        sdk_loader: SdkLoader,
        callback_registry: PendingCallbackRegistry,
        approval_timeout: float,
    ) -> None:
        self._order_api = order_api
        self._sdk_loader = sdk_loader
        self._registry = callback_registry
        self._approval_timeout = approval_timeout
        self._pending_order_id: Optional[str] = None
        self._surface: Optional[PaymentSurface] = None
        self.surfaces_mounted = 0
        self.tracer = trace.get_tracer(__name__)

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.ORDER

    @property
    def surface(self) -> Optional[PaymentSurface]:
        return self._surface

    @property
    def awaiting_callback(self) -> bool:
        return self._pending_order_id is not None

    @Logger.io
    async def pay(self, *, request: PaymentRequest) -> PaymentOutcome:
        await self.teardown()
        with self.tracer.start_as_current_span(
            'payment.order', attributes={'payment.currency': request.currency}
        ) as span:
            try:
                config = await self._order_api.fetch_client_config()
                handle = await self._sdk_loader.load(config=config)
                order_id = await self._order_api.create_order(
                    amount=request.major_units(),
                    currency=request.currency,
                    description=request.description,
                )
                span.set_attribute('payment.reference', order_id)
                pending = self._mount(order_id=order_id, handle=handle)
                Logger.base.info(
                    f'🧾 [PAYMENT] Order {order_id} created for '
                    f'{request.major_units()} {request.currency}'
                )

                result: Optional[CallbackResult] = None
                with anyio.move_on_after(self._approval_timeout):
                    result = await pending.wait()
                if result is None or result.cancelled:
                    return PaymentOutcome.cancelled(
                        provider=self.provider, currency=request.currency, reference=order_id
                    )
                if result.render_failed:
                    # The cached handle drew nothing, the next payment loads the SDK again
                    self._sdk_loader.invalidate(client_id=config.client_id)
                    raise ProviderRenderError(
                        'Payment buttons could not be displayed', reference=order_id
                    )
                if result.status.lower() not in _APPROVED_STATUSES:
                    raise PaymentDeclinedError(
                        f'Order was not approved (status: {result.status})', reference=order_id
                    )

                capture = await self._order_api.capture_order(order_id=order_id)
                if not capture.is_completed:
                    raise CaptureFailedError(
                        f'Capture returned status {capture.status}', reference=order_id
                    )
                Logger.base.info(f'✅ [PAYMENT] Order {order_id} captured as {capture.capture_id}')
                return PaymentOutcome.succeeded(
                    provider=self.provider,
                    currency=request.currency,
                    reference=order_id,
                    transaction_id=capture.capture_id,
                )
            except PaymentError as e:
                Logger.base.warning(f'⚠️ [PAYMENT] Order payment failed: {e}')
                return PaymentOutcome.failed(
                    provider=self.provider, currency=request.currency, failure=e
                )
            finally:
                self._unmount()

    def _mount(self, *, order_id: str, handle: SdkHandle) -> PendingCallback:
        pending = self._registry.register(order_id)
        self._pending_order_id = order_id
        self._surface = PaymentSurface(
            provider=self.provider, reference=order_id, script_url=handle.script_url
        )
        self.surfaces_mounted += 1
        return pending

    def _unmount(self) -> None:
        if self._pending_order_id is not None:
            self._registry.discard(self._pending_order_id)
        self._pending_order_id = None
        self._surface = None

    async def teardown(self) -> None:
        if self._pending_order_id is not None:
            self._registry.resolve(
                self._pending_order_id, CallbackResult.cancel(self._pending_order_id)
            )
        self._surface = None
