"""
Shared fixtures for acquisition unit tests

Policy timers are shrunk to fractions of a second; every collaborator over the
network is a stub from test.service.acquisition.stubs or an AsyncMock.
"""

from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from src.service.acquisition.app.command.acquisition_orchestrator import AcquisitionOrchestrator
from src.service.acquisition.app.command.finalize_purchase_use_case import (
    FinalizePurchaseUseCase,
)
from src.service.acquisition.app.dto.payment_dto import (
    CaptureResult,
    CheckoutSession,
    ProviderClientConfig,
    SdkHandle,
)
from src.service.acquisition.app.interface.i_payment_adapter import IPaymentAdapter
from src.service.acquisition.app.service.admission_queue_client import AdmissionQueueClient
from src.service.acquisition.app.service.checkout_payment_adapter import CheckoutPaymentAdapter
from src.service.acquisition.app.service.order_payment_adapter import OrderPaymentAdapter
from src.service.acquisition.app.service.pending_callback_registry import PendingCallbackRegistry
from src.service.acquisition.app.service.sdk_loader import SdkLoader
from src.service.acquisition.domain.entity.ticket_selection_entity import TicketSelection
from src.service.acquisition.domain.enum import PaymentProvider
from src.service.acquisition.domain.value_object.acquisition_policy import AcquisitionPolicy
from src.service.acquisition.domain.value_object.buyer_info import AuthenticatedBuyer, GuestBuyer
from src.service.acquisition.driven_adapter.state.in_memory_store import (
    InMemoryQueueIdCache,
    InMemorySelectionStore,
)
from test.service.acquisition.stubs import (
    EVENT_ID,
    StubAdmissionService,
    StubPurchaseApi,
    StubQueueUpdateChannel,
)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def policy() -> AcquisitionPolicy:
    """Default thresholds, sub-second timers"""
    return AcquisitionPolicy(
        queue_refresh_interval=0.01,
        payment_callback_timeout=2.0,
        order_approval_timeout=2.0,
    )


@pytest.fixture
def paid_selection() -> TicketSelection:
    return TicketSelection(
        tier_id='tier-1',
        name='General Admission',
        price=Decimal('25.00'),
        currency='USD',
        total_inventory=100,
        units_sold=2,
    )


@pytest.fixture
def high_demand_selection() -> TicketSelection:
    return TicketSelection(
        tier_id='tier-vip',
        name='VIP',
        price=Decimal('120.00'),
        currency='USD',
        total_inventory=100,
        units_sold=15,
    )


@pytest.fixture
def free_selection() -> TicketSelection:
    return TicketSelection(
        tier_id='tier-free',
        name='Community Pass',
        price=Decimal('0'),
        currency='USD',
        total_inventory=50,
        units_sold=3,
    )


@pytest.fixture
def guest_buyer() -> GuestBuyer:
    return GuestBuyer(name='Ada Lovelace', email='ada@example.com', phone='+15550100')


@pytest.fixture
def authenticated_buyer() -> AuthenticatedBuyer:
    return AuthenticatedBuyer(user_id='user-42', phone='+15550142', email='grace@example.com')


# =============================================================================
# Collaborator fixtures
# =============================================================================


@pytest.fixture
def admission_service() -> StubAdmissionService:
    return StubAdmissionService()


@pytest.fixture
def update_channel() -> StubQueueUpdateChannel:
    return StubQueueUpdateChannel()


@pytest.fixture
def queue_id_cache() -> InMemoryQueueIdCache:
    return InMemoryQueueIdCache()


@pytest.fixture
def selection_store() -> InMemorySelectionStore:
    return InMemorySelectionStore()


@pytest.fixture
def purchase_api() -> StubPurchaseApi:
    return StubPurchaseApi()


@pytest.fixture
def callback_registry() -> PendingCallbackRegistry:
    return PendingCallbackRegistry()


@pytest.fixture
def admission_client(
    admission_service: StubAdmissionService,
    update_channel: StubQueueUpdateChannel,
    queue_id_cache: InMemoryQueueIdCache,
    policy: AcquisitionPolicy,
) -> AdmissionQueueClient:
    return AdmissionQueueClient(
        admission_service=admission_service,
        update_channel=update_channel,
        queue_id_cache=queue_id_cache,
        policy=policy,
    )


@pytest.fixture
def checkout_provider() -> AsyncMock:
    provider = AsyncMock()
    provider.initialize_checkout = AsyncMock(
        side_effect=lambda **kwargs: CheckoutSession(
            reference=kwargs['reference'],
            authorization_url=f'https://checkout.example.com/{kwargs["reference"]}',
            access_code='ac_123',
        )
    )
    return provider


@pytest.fixture
def order_api() -> AsyncMock:
    api = AsyncMock()
    api.fetch_client_config = AsyncMock(return_value=ProviderClientConfig(client_id='client-abc'))
    api.create_order = AsyncMock(return_value='ORDER-123')
    api.capture_order = AsyncMock(
        return_value=CaptureResult(capture_id='CAPTURE-9', status='COMPLETED', order_id='ORDER-123')
    )
    return api


@pytest.fixture
def payment_sdk() -> AsyncMock:
    sdk = AsyncMock()
    sdk.load = AsyncMock(
        return_value=SdkHandle(
            client_id='client-abc',
            currency='USD',
            script_url='https://sdk.example.com/js?client-id=client-abc',
        )
    )
    return sdk


@pytest.fixture
def checkout_adapter(
    checkout_provider: AsyncMock,
    callback_registry: PendingCallbackRegistry,
    policy: AcquisitionPolicy,
) -> CheckoutPaymentAdapter:
    return CheckoutPaymentAdapter(
        checkout_provider=checkout_provider,
        callback_registry=callback_registry,
        callback_url='https://shop.example.com/api/payment/checkout/callback',
        callback_timeout=policy.payment_callback_timeout,
    )


@pytest.fixture
def order_adapter(
    order_api: AsyncMock,
    payment_sdk: AsyncMock,
    callback_registry: PendingCallbackRegistry,
    policy: AcquisitionPolicy,
) -> OrderPaymentAdapter:
    return OrderPaymentAdapter(
        order_api=order_api,
        sdk_loader=SdkLoader(sdk=payment_sdk, load_timeout=1.0),
        callback_registry=callback_registry,
        approval_timeout=policy.order_approval_timeout,
    )


@pytest.fixture
def make_orchestrator(
    admission_client: AdmissionQueueClient,
    checkout_adapter: CheckoutPaymentAdapter,
    order_adapter: OrderPaymentAdapter,
    purchase_api: StubPurchaseApi,
    selection_store: InMemorySelectionStore,
    policy: AcquisitionPolicy,
):
    """Build an orchestrator for EVENT_ID, adapters can be swapped per test"""

    async def _make(
        *, adapters: Optional[dict[PaymentProvider, IPaymentAdapter]] = None
    ) -> AcquisitionOrchestrator:
        return await AcquisitionOrchestrator.create(
            event_id=EVENT_ID,
            admission_client=admission_client,
            payment_adapters=adapters
            or {PaymentProvider.CHECKOUT: checkout_adapter, PaymentProvider.ORDER: order_adapter},
            finalizer=FinalizePurchaseUseCase(purchase_api=purchase_api),
            selection_store=selection_store,
            policy=policy,
        )

    return _make
