"""
Payment provider callbacks

The checkout provider redirects (or posts) back here when the buyer finishes
or abandons the hosted page; the approval surface posts order approvals,
cancels and render failures. Each delivery resolves the pending callback
parked by the payment adapter. Repeated deliveries are acknowledged but never resolve twice.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import CallbackResult
from src.service.acquisition.app.service.pending_callback_registry import PendingCallbackRegistry
from src.service.acquisition.driving_adapter.http_controller.schema.payment_callback_schema import (
    CallbackAcceptedResponse,
    CheckoutCallbackRequest,
    CheckoutCancelRequest,
    OrderApprovalRequest,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


def _deliver(
    registry: PendingCallbackRegistry, *, key: str, result: CallbackResult
) -> CallbackAcceptedResponse:
    with tracer.start_as_current_span(
        'controller.payment_callback',
        attributes={'payment.reference': key, 'payment.status': result.status},
    ):
        if registry.resolve(key, result):
            return CallbackAcceptedResponse(accepted=True, reference=key)
        if registry.was_resolved(key):
            return CallbackAcceptedResponse(accepted=False, reference=key, duplicate=True)
        raise NotFoundError(f'No payment is waiting for reference {key}')


@router.post('/checkout/callback')
@Logger.io
@inject
async def checkout_callback(
    request: CheckoutCallbackRequest,
    registry: PendingCallbackRegistry = Depends(Provide[Container.pending_callback_registry]),
) -> CallbackAcceptedResponse:
    return _deliver(
        registry,
        key=request.reference,
        result=CallbackResult(
            status=request.status,
            reference=request.reference,
            transaction_id=request.transaction,
        ),
    )


@router.post('/checkout/cancel')
@Logger.io
@inject
async def checkout_cancel(
    request: CheckoutCancelRequest,
    registry: PendingCallbackRegistry = Depends(Provide[Container.pending_callback_registry]),
) -> CallbackAcceptedResponse:
    return _deliver(registry, key=request.reference, result=CallbackResult.cancel(request.reference))


@router.post('/orders/{order_id}/approve')
@Logger.io
@inject
async def approve_order(
    order_id: str,
    request: OrderApprovalRequest,
    registry: PendingCallbackRegistry = Depends(Provide[Container.pending_callback_registry]),
) -> CallbackAcceptedResponse:
    return _deliver(
        registry,
        key=order_id,
        result=CallbackResult(status=request.status, reference=order_id),
    )


@router.post('/orders/{order_id}/cancel')
@Logger.io
@inject
async def cancel_order(
    order_id: str,
    registry: PendingCallbackRegistry = Depends(Provide[Container.pending_callback_registry]),
) -> CallbackAcceptedResponse:
    return _deliver(registry, key=order_id, result=CallbackResult.cancel(order_id))


@router.post('/orders/{order_id}/render-error')
@Logger.io
@inject
async def order_render_error(
    order_id: str,
    registry: PendingCallbackRegistry = Depends(Provide[Container.pending_callback_registry]),
) -> CallbackAcceptedResponse:
    return _deliver(registry, key=order_id, result=CallbackResult.render_error(order_id))
