"""
Loguru sinks and shared logging context for the acquisition service.

Every record carries the service context and, when emitted inside a call that
received an ``event_id``, the event being acquired. Stdlib loggers (uvicorn,
httpx, redis) are routed through the same sinks via ``intercept_std_logging``.
"""

from contextvars import ContextVar
from datetime import datetime, timezone
from enum import StrEnum
from functools import lru_cache
import logging
import os
import socket
import sys
from typing import TYPE_CHECKING, Any

from loguru import logger as loguru_logger


if TYPE_CHECKING:
    from loguru import Logger as LoguruLogger

from src.platform.config.core_setting import settings


# Keys whose values never reach the log sinks (buyer contact info and provider credentials)
SENSITIVE_KEYWORDS = {
    'password',
    'phone',
    'email',
    'secret_key',
    'access_token',
    'authorization',
}

chain_start_time_var: ContextVar[float] = ContextVar('chain_start_time_var', default=0)
call_depth_var: ContextVar[int] = ContextVar('call_depth_var', default=0)
event_id_var: ContextVar[str] = ContextVar('event_id_var', default='-')


class ExtraField(StrEnum):
    SERVICE_CONTEXT = 'service_context'
    EVENT_ID = 'event_id'
    CHAIN_START_TIME = 'chain_start_time'
    CALL_TARGET = 'call_target'


@lru_cache(maxsize=1)
def get_service_context() -> str:
    """service@env:host-pid, enough to tell replicas apart in aggregated logs"""
    host = socket.gethostname().split('.')[0][:12]
    return f'{settings.SERVICE_NAME}@{settings.DEPLOY_ENV}:{host}-{os.getpid()}'


def _default_extra() -> dict[str, Any]:
    return {
        ExtraField.SERVICE_CONTEXT: get_service_context(),
        ExtraField.CHAIN_START_TIME: '',
        ExtraField.CALL_TARGET: '',
    }


def _attach_event_id(record: Any) -> None:
    record['extra'][ExtraField.EVENT_ID] = event_id_var.get()


def _parse_http_status_level(message: str) -> str | None:
    """
    Map a uvicorn access line to a level by its status code.

    Format: '127.0.0.1:52814 - "POST /api/payment/checkout/callback HTTP/1.1" 200'
    """
    if ' - "' not in message or ' HTTP/' not in message:
        return None

    parts = message.split('"')
    if len(parts) < 3 or not (status_parts := parts[2].strip().split()):
        return None
    try:
        status_code = int(status_parts[0])
    except ValueError:
        return None

    if status_code >= 500:
        return 'CRITICAL'
    if status_code >= 400:
        return 'ERROR'
    if status_code >= 300:
        return 'WARNING'
    return 'SUCCESS' if status_code >= 200 else 'INFO'


class InterceptHandler(logging.Handler):
    _bound: 'LoguruLogger | None' = None

    @classmethod
    def _logger(cls) -> 'LoguruLogger':
        if cls._bound is None:
            cls._bound = loguru_logger.bind(**_default_extra()).patch(_attach_event_id)
        return cls._bound

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()

        if record.levelno <= logging.DEBUG and (
            'Using selector:' in message or record.name.startswith(('httpx', 'httpcore'))
        ):
            return

        level = _parse_http_status_level(message)
        if level is None:
            try:
                level = loguru_logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        self._logger().opt(depth=depth, exception=record.exc_info).log(level, message)


io_log_format = ' | '.join(
    (
        f'<c>{{extra[{ExtraField.SERVICE_CONTEXT}]}}</>',
        '<lvl>{level:<8}</>',
        f'<m>evt={{extra[{ExtraField.EVENT_ID}]}}</>',
        f'<c>{{file}}::{{function}}:{{line}}</>=><y>{{extra[{ExtraField.CALL_TARGET}]}}</>',
        '{message}',
        '<lk>{elapsed}</>',
        f'<lk>{{extra[{ExtraField.CHAIN_START_TIME}]:<18}}</>',
    )
)


def _configure_sinks() -> 'LoguruLogger':
    loguru_logger.remove()
    bound = loguru_logger.bind(**_default_extra()).patch(_attach_event_id)
    min_log_level = 'DEBUG' if settings.DEBUG else 'INFO'

    bound.add(sys.stdout, format=io_log_format, level=min_log_level, enqueue=True)

    # Hourly files in DEBUG only, production collects stdout
    if settings.DEBUG:
        hour = datetime.now(timezone.utc).strftime('%Y-%m-%d_%H')
        bound.add(
            str(settings.LOG_DIR / f'{settings.LOG_FILE_PREFIX}{hour}.log'),
            format=io_log_format,
            rotation='1 hour',
            retention='7 days',
            compression='gz',
            enqueue=True,
            level=min_log_level,
        )
    return bound


custom_logger = _configure_sinks()


def intercept_std_logging(*logger_names: str) -> None:
    """Route stdlib loggers (uvicorn, httpx, redis) through loguru sinks."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in logger_names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
