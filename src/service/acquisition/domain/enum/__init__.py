"""Acquisition Domain Enums"""

from src.service.acquisition.domain.enum.acquisition_state import (
    LOCKED_SELECTION_STATES,
    AcquisitionState,
)
from src.service.acquisition.domain.enum.notice_kind import NoticeKind
from src.service.acquisition.domain.enum.payment_status import PaymentProvider, PaymentStatus
from src.service.acquisition.domain.enum.timeout_warning_state import TimeoutWarningState

__all__ = [
    'AcquisitionState',
    'LOCKED_SELECTION_STATES',
    'NoticeKind',
    'PaymentProvider',
    'PaymentStatus',
    'TimeoutWarningState',
]
