"""
OpenTelemetry tracing for the acquisition service.

- FastAPI, Redis and httpx are auto-instrumented
- outbound spans (admission service, purchase API, payment providers) carry the
  event being acquired as ``acquisition.event_id``
- spans are exported over OTLP when OTEL_EXPORTER_OTLP_ENDPOINT is set
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io_config import event_id_var


EVENT_ID_ATTRIBUTE = 'acquisition.event_id'


def tag_current_event(span: trace.Span, *_: Any) -> None:
    """httpx/redis request hook: copy the event bound by Logger.io onto the span"""
    if span.is_recording() and (event_id := event_id_var.get()) != '-':
        span.set_attribute(EVENT_ID_ATTRIBUTE, event_id)


class TracingConfig:
    """
    Usage:
        tracing = TracingConfig(service_name='acquisition-service')
        tracing.setup()
        tracing.instrument_clients()
        ...
        tracing.shutdown()
    """

    def __init__(
        self,
        *,
        service_name: str,
        otlp_endpoint: str | None = None,
        enable_console: bool | None = None,
    ) -> None:
        self.service_name = service_name
        self.otlp_endpoint = otlp_endpoint or settings.OTEL_EXPORTER_OTLP_ENDPOINT
        self.enable_console = (
            settings.OTEL_CONSOLE_EXPORT if enable_console is None else enable_console
        )
        self._provider: TracerProvider | None = None

    def setup(self) -> None:
        """Install the tracer provider, call once at startup"""
        resource = Resource(
            attributes={
                SERVICE_NAME: self.service_name,
                DEPLOYMENT_ENVIRONMENT: settings.DEPLOY_ENV,
            }
        )
        # Sampling is left to the collector (tail-based), SDK keeps everything
        self._provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

        if self.otlp_endpoint:
            self._provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otlp_endpoint))
            )
        if self.enable_console:
            self._provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self._provider)

    def instrument_fastapi(self, *, app: Any, excluded_urls: str = 'health') -> None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded_urls)

    def instrument_clients(self) -> None:
        """Redis (selection store, push channel) and httpx (every collaborator)"""
        RedisInstrumentor().instrument(request_hook=tag_current_event)
        HTTPXClientInstrumentor().instrument(
            request_hook=tag_current_event, async_request_hook=_async_tag_current_event
        )

    def shutdown(self) -> None:
        if self._provider:
            self._provider.shutdown()


async def _async_tag_current_event(span: trace.Span, *_: Any) -> None:
    tag_current_event(span)
