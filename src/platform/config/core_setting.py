from pathlib import Path
from typing import List

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Ticket Acquisition'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Logging
    SERVICE_NAME: str = 'acquisition-service'
    DEPLOY_ENV: str = 'local_dev'
    LOG_DIR: Path = _PROJECT_ROOT / 'logs'
    LOG_FILE_PREFIX: str = ''

    # Tracing
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None
    OTEL_CONSOLE_EXPORT: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []  # add your frontend URL here

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith('['):
            return [i.strip() for i in v.split(',')]
        elif isinstance(v, list):
            return v
        return []

    # Kvrocks Configuration (Redis protocol + Kvrocks storage)
    KVROCKS_HOST: str = 'localhost'
    KVROCKS_PORT: int = 6666
    KVROCKS_DB: int = 0
    KVROCKS_PASSWORD: str = ''
    KVROCKS_KEY_PREFIX: str = ''
    REDIS_DECODE_RESPONSES: bool = True

    # Kvrocks Connection Pool Configuration
    KVROCKS_POOL_MAX_CONNECTIONS: int = 50
    KVROCKS_POOL_SOCKET_TIMEOUT: int = 10  # Socket read/write timeout (seconds)
    KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT: int = 10  # Connection timeout (seconds)
    KVROCKS_POOL_SOCKET_KEEPALIVE: bool = True
    KVROCKS_POOL_HEALTH_CHECK_INTERVAL: int = 30  # Health check interval (seconds)

    # Collaborators
    ADMISSION_SERVICE_URL: str = 'http://localhost:5000/api'
    PURCHASE_API_URL: str = 'http://localhost:5000/api'
    PAYMENT_API_URL: str = 'http://localhost:5000/api'
    API_ACCESS_TOKEN: SecretStr = SecretStr('')
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Synchronous payment provider (redirect checkout, amounts in minor units)
    SYNC_PROVIDER_NAME: str = 'Paystack'
    SYNC_PROVIDER_URL: str = 'https://api.paystack.co'
    SYNC_PROVIDER_SECRET_KEY: SecretStr = SecretStr('sk_test_change_me')
    SYNC_PROVIDER_CALLBACK_URL: str = 'http://localhost:8100/api/payment/checkout/callback'
    PAYMENT_CALLBACK_TIMEOUT_SECONDS: float = 900.0

    # Asynchronous payment provider (order create/capture, amounts in major units)
    ASYNC_PROVIDER_NAME: str = 'PayPal'
    ASYNC_SDK_URL: str = 'https://www.paypal.com/sdk/js'
    SDK_LOAD_TIMEOUT_SECONDS: float = 10.0
    ORDER_APPROVAL_TIMEOUT_SECONDS: float = 900.0

    # Acquisition policy
    HIGH_DEMAND_THRESHOLD: int = 10  # Admission queue required when units sold exceed this
    QUEUE_REFRESH_INTERVAL_SECONDS: float = 5.0
    QUEUE_LOST_RETRY_LIMIT: int = 3
    TIMEOUT_WARNING_DELAY_SECONDS: float = 30.0
    PROCESSING_WINDOW_SECONDS: float = 60.0
    MINUTES_PER_QUEUED_BUYER: int = 2
    SELECTION_TTL_SECONDS: int = 24 * 60 * 60


settings = Settings()  # type: ignore
