"""
FastAPI app factory shared by the service entrypoint and the controller tests.

The HTTP surface of the acquisition service: buyer sessions under
/api/acquisition, provider callbacks under /api/payment and a health check.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.platform.config.core_setting import settings
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.observability.tracing import TracingConfig
from src.service.acquisition.driving_adapter.http_controller.acquisition_session_controller import (
    router as acquisition_session_router,
)
from src.service.acquisition.driving_adapter.http_controller.payment_callback_controller import (
    router as payment_callback_router,
)


ROUTERS: list[tuple[APIRouter, str, str]] = [
    (acquisition_session_router, '/api/acquisition', 'acquisition'),
    (payment_callback_router, '/api/payment', 'payment'),
]


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
) -> FastAPI:
    """
    Args:
        lifespan: startup/shutdown of the push connection, HTTP pools and Kvrocks
        title_suffix: appended to the OpenAPI title, e.g. " (Test)"
    """
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description='Ticket acquisition: admission queue, payment and purchase finalization',
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Auto-instrument FastAPI (must be done before mounting routes)
    TracingConfig(service_name=settings.SERVICE_NAME).instrument_fastapi(app=app)

    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['POST', 'GET'],
        allow_headers=['*'],
    )
    register_exception_handlers(app)

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    @app.get('/health')
    async def health_check() -> dict[str, str]:
        return {'status': 'healthy', 'service': settings.SERVICE_NAME, 'version': settings.VERSION}

    return app
