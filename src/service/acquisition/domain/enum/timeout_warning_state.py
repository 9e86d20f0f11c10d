from enum import StrEnum


class TimeoutWarningState(StrEnum):
    INACTIVE = 'inactive'  # not holding the processing slot
    PROCESSING = 'processing'
    WARNING = 'warning'
    EXPIRED = 'expired'  # advisory, the admission service owns the real expiry
