from enum import StrEnum


class AcquisitionState(StrEnum):
    """Acquisition flow states, in the order a buyer normally walks through them"""

    IDLE = 'idle'
    SELECTED = 'selected'
    ADMISSION_WAIT = 'admission_wait'
    READY = 'ready'
    PAYMENT_IN_FLIGHT = 'payment_in_flight'
    FINALIZING = 'finalizing'
    SUCCESS = 'success'
    FAILED = 'failed'


# Selection may not be changed while a purchase is being written or after it succeeded
LOCKED_SELECTION_STATES = frozenset({AcquisitionState.FINALIZING, AcquisitionState.SUCCESS})
