from typing import TYPE_CHECKING

import attrs


if TYPE_CHECKING:
    from src.platform.config.core_setting import Settings


@attrs.define(frozen=True)
class AcquisitionPolicy:
    """Tunable acquisition constants (seconds unless named otherwise)"""

    high_demand_threshold: int = 10
    queue_refresh_interval: float = 5.0
    queue_lost_retry_limit: int = 3
    timeout_warning_delay: float = 30.0
    processing_window: float = 60.0
    minutes_per_queued_buyer: int = 2
    payment_callback_timeout: float = 900.0
    order_approval_timeout: float = 900.0

    @classmethod
    def from_settings(cls, settings: 'Settings') -> 'AcquisitionPolicy':
        return cls(
            high_demand_threshold=settings.HIGH_DEMAND_THRESHOLD,
            queue_refresh_interval=settings.QUEUE_REFRESH_INTERVAL_SECONDS,
            queue_lost_retry_limit=settings.QUEUE_LOST_RETRY_LIMIT,
            timeout_warning_delay=settings.TIMEOUT_WARNING_DELAY_SECONDS,
            processing_window=settings.PROCESSING_WINDOW_SECONDS,
            minutes_per_queued_buyer=settings.MINUTES_PER_QUEUED_BUYER,
            payment_callback_timeout=settings.PAYMENT_CALLBACK_TIMEOUT_SECONDS,
            order_approval_timeout=settings.ORDER_APPROVAL_TIMEOUT_SECONDS,
        )
