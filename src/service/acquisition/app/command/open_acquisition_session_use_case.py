from collections.abc import Callable

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.command.acquisition_orchestrator import AcquisitionOrchestrator
from src.service.acquisition.app.command.finalize_purchase_use_case import (
    FinalizePurchaseUseCase,
)
from src.service.acquisition.app.interface.i_admission_service import IAdmissionService
from src.service.acquisition.app.interface.i_async_payment_provider_api import (
    IAsyncPaymentProviderApi,
)
from src.service.acquisition.app.interface.i_queue_id_cache import IQueueIdCache
from src.service.acquisition.app.interface.i_queue_update_channel import IQueueUpdateChannel
from src.service.acquisition.app.interface.i_selection_store import ISelectionStore
from src.service.acquisition.app.interface.i_sync_payment_provider import ISyncPaymentProvider
from src.service.acquisition.app.service.admission_queue_client import AdmissionQueueClient
from src.service.acquisition.app.service.checkout_payment_adapter import CheckoutPaymentAdapter
from src.service.acquisition.app.service.order_payment_adapter import OrderPaymentAdapter
from src.service.acquisition.app.service.pending_callback_registry import PendingCallbackRegistry
from src.service.acquisition.app.service.sdk_loader import SdkLoader
from src.service.acquisition.domain.enum.payment_status import PaymentProvider
from src.service.acquisition.domain.value_object.acquisition_policy import AcquisitionPolicy


class OpenAcquisitionSessionUseCase:
    """
    Assemble one orchestrator per (session, event).

    Process-wide collaborators (HTTP clients, push channel, callback registry,
    SDK loader) are shared; the selection store and queue id cache are scoped
    to the buyer session so a reload finds its own state again. A buyer who
    opts out of remembering gets a store that keeps nothing.
    """

    def __init__(
        self,
        *,
        admission_service: IAdmissionService,
        queue_update_channel: IQueueUpdateChannel,
        checkout_provider: ISyncPaymentProvider,
        order_api: IAsyncPaymentProviderApi,
        sdk_loader: SdkLoader,
        callback_registry: PendingCallbackRegistry,
        finalize_purchase_use_case: FinalizePurchaseUseCase,
        selection_store_factory: Callable[..., ISelectionStore],
        forgetful_store_factory: Callable[[], ISelectionStore],
        queue_id_cache_factory: Callable[..., IQueueIdCache],
        policy: AcquisitionPolicy,
        checkout_callback_url: str,
    ) -> None:
        self.admission_service = admission_service
        self.queue_update_channel = queue_update_channel
        self.checkout_provider = checkout_provider
        self.order_api = order_api
        self.sdk_loader = sdk_loader
        self.callback_registry = callback_registry
        self.finalize_purchase_use_case = finalize_purchase_use_case
        self.selection_store_factory = selection_store_factory
        self.forgetful_store_factory = forgetful_store_factory
        self.queue_id_cache_factory = queue_id_cache_factory
        self.policy = policy
        self.checkout_callback_url = checkout_callback_url

    @Logger.io
    async def execute(
        self,
        *,
        event_id: str,
        session_id: str,
        default_provider: PaymentProvider = PaymentProvider.CHECKOUT,
        remember_selection: bool = True,
    ) -> AcquisitionOrchestrator:
        admission_client = AdmissionQueueClient(
            admission_service=self.admission_service,
            update_channel=self.queue_update_channel,
            queue_id_cache=self.queue_id_cache_factory(session_id=session_id),
            policy=self.policy,
        )
        adapters = {
            PaymentProvider.CHECKOUT: CheckoutPaymentAdapter(
                checkout_provider=self.checkout_provider,
                callback_registry=self.callback_registry,
                callback_url=self.checkout_callback_url,
                callback_timeout=self.policy.payment_callback_timeout,
            ),
            PaymentProvider.ORDER: OrderPaymentAdapter(
                order_api=self.order_api,
                sdk_loader=self.sdk_loader,
                callback_registry=self.callback_registry,
                approval_timeout=self.policy.order_approval_timeout,
            ),
        }
        return await AcquisitionOrchestrator.create(
            event_id=event_id,
            admission_client=admission_client,
            payment_adapters=adapters,
            finalizer=self.finalize_purchase_use_case,
            selection_store=(
                self.selection_store_factory(session_id=session_id)
                if remember_selection
                else self.forgetful_store_factory()
            ),
            policy=self.policy,
            default_provider=default_provider,
        )
