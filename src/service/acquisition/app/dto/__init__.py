"""Acquisition Application DTOs"""

from src.service.acquisition.app.dto.acquisition_view_dto import AcquisitionView, QueueStatusView
from src.service.acquisition.app.dto.payment_dto import (
    CallbackResult,
    CaptureResult,
    CheckoutSession,
    PaymentSurface,
    ProviderClientConfig,
    SdkHandle,
)

__all__ = [
    'AcquisitionView',
    'CallbackResult',
    'CaptureResult',
    'CheckoutSession',
    'PaymentSurface',
    'ProviderClientConfig',
    'QueueStatusView',
    'SdkHandle',
]
