"""
Unit tests for OrderPaymentAdapter

create order (major units) -> approval callback -> capture:
- the SDK is fetched once and shared by later payments
- capture problems carry the order id for reconciliation
- only one approval surface is live at a time
"""

from typing import List
from unittest.mock import AsyncMock

import anyio
import pytest

from src.service.acquisition.app.dto.payment_dto import CallbackResult, CaptureResult
from src.service.acquisition.app.service.order_payment_adapter import OrderPaymentAdapter
from src.service.acquisition.app.service.pending_callback_registry import PendingCallbackRegistry
from src.service.acquisition.domain.acquisition_error import (
    CaptureFailedError,
    ConfigurationUnavailableError,
    PaymentDeclinedError,
    ProviderRenderError,
)
from src.service.acquisition.domain.enum import PaymentStatus
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome
from src.service.acquisition.domain.value_object.payment_request import PaymentRequest
from test.service.acquisition.stubs import wait_for


REQUEST = PaymentRequest(amount='50', currency='USD', description='2 x General Admission')


async def _pay_and_approve(
    adapter: OrderPaymentAdapter,
    registry: PendingCallbackRegistry,
    result: CallbackResult,
) -> PaymentOutcome:
    outcomes: List[PaymentOutcome] = []

    async def pay() -> None:
        outcomes.append(await adapter.pay(request=REQUEST))

    async with anyio.create_task_group() as tg:
        tg.start_soon(pay)
        await wait_for(lambda: adapter.awaiting_callback)
        assert registry.resolve(adapter.surface.reference, result)
    return outcomes[0]


@pytest.mark.unit
class TestOrderPaymentAdapter:
    @pytest.mark.asyncio
    async def test_approved_order_is_captured(
        self,
        order_adapter: OrderPaymentAdapter,
        order_api: AsyncMock,
        callback_registry: PendingCallbackRegistry,
    ) -> None:
        # Act
        outcome = await _pay_and_approve(
            order_adapter, callback_registry, CallbackResult(status='approved', reference='ORDER-123')
        )

        # Assert
        assert outcome.is_success
        assert outcome.reference == 'ORDER-123'
        assert outcome.transaction_id == 'CAPTURE-9'
        order_api.create_order.assert_awaited_once_with(
            amount='50.00', currency='USD', description='2 x General Admission'
        )
        order_api.capture_order.assert_awaited_once_with(order_id='ORDER-123')
        assert order_adapter.surface is None
        assert order_adapter.surfaces_mounted == 1

    @pytest.mark.asyncio
    async def test_approval_surface_uses_loaded_sdk(
        self, order_adapter: OrderPaymentAdapter, callback_registry: PendingCallbackRegistry
    ) -> None:
        async with anyio.create_task_group() as tg:
            tg.start_soon(lambda: order_adapter.pay(request=REQUEST))
            await wait_for(lambda: order_adapter.awaiting_callback)

            surface = order_adapter.surface
            assert surface.reference == 'ORDER-123'
            assert surface.script_url == 'https://sdk.example.com/js?client-id=client-abc'
            callback_registry.resolve('ORDER-123', CallbackResult.cancel('ORDER-123'))

    @pytest.mark.asyncio
    async def test_sdk_is_loaded_once_across_payments(
        self,
        order_adapter: OrderPaymentAdapter,
        payment_sdk: AsyncMock,
        callback_registry: PendingCallbackRegistry,
    ) -> None:
        for _ in range(2):
            await _pay_and_approve(
                order_adapter, callback_registry, CallbackResult.cancel('ORDER-123')
            )

        payment_sdk.load.assert_awaited_once()
        assert order_adapter.surfaces_mounted == 2

    @pytest.mark.asyncio
    async def test_render_failure_reloads_sdk_on_next_payment(
        self,
        order_adapter: OrderPaymentAdapter,
        order_api: AsyncMock,
        payment_sdk: AsyncMock,
        callback_registry: PendingCallbackRegistry,
    ) -> None:
        # Act
        failed = await _pay_and_approve(
            order_adapter, callback_registry, CallbackResult.render_error('ORDER-123')
        )
        retried = await _pay_and_approve(
            order_adapter, callback_registry, CallbackResult(status='approved')
        )

        # Assert
        assert failed.status is PaymentStatus.FAILED
        assert isinstance(failed.failure, ProviderRenderError)
        assert failed.failure.reference == 'ORDER-123'
        assert retried.is_success
        assert payment_sdk.load.await_count == 2
        order_api.capture_order.assert_awaited_once_with(order_id='ORDER-123')

    @pytest.mark.asyncio
    async def test_cancelled_approval_skips_capture(
        self,
        order_adapter: OrderPaymentAdapter,
        order_api: AsyncMock,
        callback_registry: PendingCallbackRegistry,
    ) -> None:
        outcome = await _pay_and_approve(
            order_adapter, callback_registry, CallbackResult.cancel('ORDER-123')
        )

        assert outcome.status is PaymentStatus.CANCELLED
        assert outcome.reference == 'ORDER-123'
        order_api.capture_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unapproved_status_is_declined(
        self, order_adapter: OrderPaymentAdapter, callback_registry: PendingCallbackRegistry
    ) -> None:
        outcome = await _pay_and_approve(
            order_adapter, callback_registry, CallbackResult(status='denied')
        )

        assert outcome.status is PaymentStatus.FAILED
        assert isinstance(outcome.failure, PaymentDeclinedError)

    @pytest.mark.asyncio
    async def test_incomplete_capture_carries_order_reference(
        self,
        order_adapter: OrderPaymentAdapter,
        order_api: AsyncMock,
        callback_registry: PendingCallbackRegistry,
    ) -> None:
        # Arrange
        order_api.capture_order.return_value = CaptureResult(
            capture_id='CAPTURE-9', status='PENDING', order_id='ORDER-123'
        )

        # Act
        outcome = await _pay_and_approve(
            order_adapter, callback_registry, CallbackResult(status='approved')
        )

        # Assert
        assert outcome.status is PaymentStatus.FAILED
        assert isinstance(outcome.failure, CaptureFailedError)
        assert outcome.reference == 'ORDER-123'
        assert 'ORDER-123' in outcome.failure.message

    @pytest.mark.asyncio
    async def test_capture_error_is_returned_not_raised(
        self,
        order_adapter: OrderPaymentAdapter,
        order_api: AsyncMock,
        callback_registry: PendingCallbackRegistry,
    ) -> None:
        order_api.capture_order.side_effect = CaptureFailedError(
            'Capture declined', reference='ORDER-123'
        )

        outcome = await _pay_and_approve(
            order_adapter, callback_registry, CallbackResult(status='approved')
        )

        assert isinstance(outcome.failure, CaptureFailedError)
        assert outcome.reference == 'ORDER-123'

    @pytest.mark.asyncio
    async def test_missing_client_config_fails_before_any_order(
        self, order_adapter: OrderPaymentAdapter, order_api: AsyncMock
    ) -> None:
        order_api.fetch_client_config.side_effect = ConfigurationUnavailableError(
            'Payment provider is not configured'
        )

        outcome = await order_adapter.pay(request=REQUEST)

        assert isinstance(outcome.failure, ConfigurationUnavailableError)
        order_api.create_order.assert_not_awaited()
        assert order_adapter.surfaces_mounted == 0

    @pytest.mark.asyncio
    async def test_teardown_cancels_live_surface(
        self, order_adapter: OrderPaymentAdapter, callback_registry: PendingCallbackRegistry
    ) -> None:
        outcomes: List[PaymentOutcome] = []

        async def pay() -> None:
            outcomes.append(await order_adapter.pay(request=REQUEST))

        async with anyio.create_task_group() as tg:
            tg.start_soon(pay)
            await wait_for(lambda: order_adapter.awaiting_callback)
            await order_adapter.teardown()

        assert outcomes[0].status is PaymentStatus.CANCELLED
        # A torn-down order can no longer be approved
        assert not callback_registry.resolve('ORDER-123', CallbackResult(status='approved'))
