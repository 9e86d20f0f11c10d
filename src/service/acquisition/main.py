"""
Acquisition Service - Main Application
Hosts buyer acquisition sessions, receives payment provider callbacks and owns
the shared push connection and HTTP clients every session uses.
"""

from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.platform.logging.loguru_io_config import intercept_std_logging
from src.platform.observability.tracing import TracingConfig


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Manage application lifespan: startup and shutdown"""
    Logger.base.info('🚀 [Acquisition Service] Starting up...')
    intercept_std_logging('uvicorn', 'uvicorn.access', 'uvicorn.error')

    tracing = TracingConfig(service_name=settings.SERVICE_NAME)
    tracing.setup()
    tracing.instrument_clients()
    Logger.base.info('📊 [Acquisition Service] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Acquisition Service] Dependency injection wired')

    # Initialize Kvrocks connection pool (fail-fast)
    kvrocks_client = container.kvrocks_client()
    await kvrocks_client.initialize()

    push_connection_manager = container.push_connection_manager()
    await push_connection_manager.init()

    # Inject background task group into DI container for admission waits and payments
    background_tasks = anyio.create_task_group()
    await background_tasks.__aenter__()
    container.background_task_group.override(background_tasks)
    Logger.base.info('🔧 [Acquisition Service] Background task group configured')

    Logger.base.info('✅ [Acquisition Service] Startup complete')

    yield

    Logger.base.info('🛑 [Acquisition Service] Shutting down...')

    # Buyers keep their stored selection and admission slot
    await container.acquisition_session_registry().close_all()
    background_tasks.cancel_scope.cancel()
    await background_tasks.__aexit__(None, None, None)
    container.background_task_group.reset_override()

    await push_connection_manager.teardown()

    for http_client in (
        container.admission_http_client(),
        container.purchase_http_client(),
        container.payment_http_client(),
        container.checkout_http_client(),
        container.sdk_http_client(),
    ):
        await http_client.aclose()
    Logger.base.info('🌐 [Acquisition Service] HTTP clients closed')

    await kvrocks_client.disconnect()

    # Shutdown tracing (flush remaining spans)
    tracing.shutdown()
    container.unwire()

    Logger.base.info('👋 [Acquisition Service] Shutdown complete')


app = create_app(lifespan=lifespan)
