"""Acquisition Value Objects"""

from src.service.acquisition.domain.value_object.acquisition_notice import AcquisitionNotice
from src.service.acquisition.domain.value_object.acquisition_policy import AcquisitionPolicy
from src.service.acquisition.domain.value_object.buyer_info import (
    AuthenticatedBuyer,
    BuyerInfo,
    GuestBuyer,
    validate_buyer_info,
)
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome
from src.service.acquisition.domain.value_object.payment_request import PaymentRequest

__all__ = [
    'AcquisitionNotice',
    'AcquisitionPolicy',
    'AuthenticatedBuyer',
    'BuyerInfo',
    'GuestBuyer',
    'PaymentOutcome',
    'PaymentRequest',
    'validate_buyer_info',
]
