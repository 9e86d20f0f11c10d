"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers
import httpx

from src.platform.config.core_setting import Settings
from src.platform.state.kvrocks_client import KvrocksClient
from src.service.acquisition.app.command.finalize_purchase_use_case import (
    FinalizePurchaseUseCase,
)
from src.service.acquisition.app.command.open_acquisition_session_use_case import (
    OpenAcquisitionSessionUseCase,
)
from src.service.acquisition.app.service.acquisition_session_registry import (
    AcquisitionSessionRegistry,
)
from src.service.acquisition.app.service.pending_callback_registry import PendingCallbackRegistry
from src.service.acquisition.app.service.sdk_loader import SdkLoader
from src.service.acquisition.domain.enum.payment_status import PaymentProvider
from src.service.acquisition.domain.value_object.acquisition_policy import AcquisitionPolicy
from src.service.acquisition.driven_adapter.http.admission_service_http_client import (
    AdmissionServiceHttpClient,
)
from src.service.acquisition.driven_adapter.http.paypal_order_api_client import (
    PaypalOrderApiClient,
)
from src.service.acquisition.driven_adapter.http.paystack_checkout_client import (
    PaystackCheckoutClient,
)
from src.service.acquisition.driven_adapter.http.purchase_api_http_client import (
    PurchaseApiHttpClient,
)
from src.service.acquisition.driven_adapter.sdk.hosted_buttons_sdk import HostedButtonsSdk
from src.service.acquisition.driven_adapter.state.in_memory_store import NullSelectionStore
from src.service.acquisition.driven_adapter.state.kvrocks_queue_update_channel import (
    KvrocksQueueUpdateChannel,
)
from src.service.acquisition.driven_adapter.state.kvrocks_selection_store import (
    KvrocksQueueIdCache,
    KvrocksSelectionStore,
)
from src.service.acquisition.driven_adapter.state.push_connection_manager import (
    PushConnectionManager,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)
    policy = providers.Singleton(AcquisitionPolicy.from_settings, settings=config_service)

    # Infrastructure
    kvrocks_client = providers.Singleton(KvrocksClient, settings=config_service)
    push_connection_manager = providers.Singleton(
        PushConnectionManager, kvrocks_client=kvrocks_client
    )

    # HTTP clients (closed by the lifespan, one pool per collaborator)
    admission_http_client = providers.Singleton(
        httpx.AsyncClient,
        base_url=config_service.provided.ADMISSION_SERVICE_URL,
        timeout=config_service.provided.HTTP_TIMEOUT_SECONDS,
    )
    purchase_http_client = providers.Singleton(
        httpx.AsyncClient,
        base_url=config_service.provided.PURCHASE_API_URL,
        timeout=config_service.provided.HTTP_TIMEOUT_SECONDS,
    )
    payment_http_client = providers.Singleton(
        httpx.AsyncClient,
        base_url=config_service.provided.PAYMENT_API_URL,
        timeout=config_service.provided.HTTP_TIMEOUT_SECONDS,
    )
    checkout_http_client = providers.Singleton(
        httpx.AsyncClient,
        base_url=config_service.provided.SYNC_PROVIDER_URL,
        timeout=config_service.provided.HTTP_TIMEOUT_SECONDS,
    )
    sdk_http_client = providers.Singleton(
        httpx.AsyncClient,
        timeout=config_service.provided.SDK_LOAD_TIMEOUT_SECONDS,
        follow_redirects=True,
    )

    # Driven adapters
    admission_service = providers.Singleton(
        AdmissionServiceHttpClient,
        http_client=admission_http_client,
        access_token=config_service.provided.API_ACCESS_TOKEN.get_secret_value.call(),
    )
    queue_update_channel = providers.Singleton(
        KvrocksQueueUpdateChannel,
        kvrocks_client=kvrocks_client,
        push_connection_manager=push_connection_manager,
    )
    purchase_api = providers.Singleton(
        PurchaseApiHttpClient,
        http_client=purchase_http_client,
        provider_names=providers.Dict(
            {
                PaymentProvider.CHECKOUT: config_service.provided.SYNC_PROVIDER_NAME,
                PaymentProvider.ORDER: config_service.provided.ASYNC_PROVIDER_NAME,
            }
        ),
        service_token=config_service.provided.API_ACCESS_TOKEN.get_secret_value.call(),
    )
    checkout_provider = providers.Singleton(
        PaystackCheckoutClient,
        http_client=checkout_http_client,
        secret_key=config_service.provided.SYNC_PROVIDER_SECRET_KEY.get_secret_value.call(),
    )
    order_api = providers.Singleton(PaypalOrderApiClient, http_client=payment_http_client)
    payment_sdk = providers.Singleton(
        HostedButtonsSdk,
        http_client=sdk_http_client,
        sdk_url=config_service.provided.ASYNC_SDK_URL,
    )

    # Session-scoped state (called with session_id=...)
    selection_store = providers.Factory(
        KvrocksSelectionStore,
        kvrocks_client=kvrocks_client,
        ttl_seconds=config_service.provided.SELECTION_TTL_SECONDS,
    )
    queue_id_cache = providers.Factory(
        KvrocksQueueIdCache,
        kvrocks_client=kvrocks_client,
        ttl_seconds=config_service.provided.SELECTION_TTL_SECONDS,
    )
    # Buyers who opt out of remembering their selection
    forgetful_selection_store = providers.Factory(NullSelectionStore)

    # Background task group (set by main.py lifespan), runs admission waits and payments
    background_task_group = providers.Object(None)

    # Process-wide acquisition services
    pending_callback_registry = providers.Singleton(PendingCallbackRegistry)
    sdk_loader = providers.Singleton(
        SdkLoader,
        sdk=payment_sdk,
        load_timeout=config_service.provided.SDK_LOAD_TIMEOUT_SECONDS,
    )

    # Use cases
    finalize_purchase_use_case = providers.Singleton(
        FinalizePurchaseUseCase, purchase_api=purchase_api
    )
    open_acquisition_session_use_case = providers.Singleton(
        OpenAcquisitionSessionUseCase,
        admission_service=admission_service,
        queue_update_channel=queue_update_channel,
        checkout_provider=checkout_provider,
        order_api=order_api,
        sdk_loader=sdk_loader,
        callback_registry=pending_callback_registry,
        finalize_purchase_use_case=finalize_purchase_use_case,
        selection_store_factory=selection_store.provider,
        forgetful_store_factory=forgetful_selection_store.provider,
        queue_id_cache_factory=queue_id_cache.provider,
        policy=policy,
        checkout_callback_url=config_service.provided.SYNC_PROVIDER_CALLBACK_URL,
    )
    acquisition_session_registry = providers.Singleton(
        AcquisitionSessionRegistry, open_session_use_case=open_acquisition_session_use_case
    )


container = Container()


def cleanup() -> None:
    container.reset_singletons()
