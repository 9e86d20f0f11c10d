import math
import time
from typing import Callable, Optional

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.domain.enum.timeout_warning_state import TimeoutWarningState


class TimeoutWarningTracker:
    """
    Processing -> (warning_delay) Warning(countdown) -> (processing_window) Expired

    Only the is_processing observation drives it: a false observation cancels
    the countdown, the next false -> true edge starts it again from zero.
    State is derived from the clock, so it never needs a timer task of its own.
    """

    def __init__(
        self,
        *,
        warning_delay: float,
        processing_window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._warning_delay = warning_delay
        self._processing_window = processing_window
        self._clock = clock
        self._started_at: Optional[float] = None
        self._expiry_reported = False

    def observe(self, *, is_processing: bool) -> TimeoutWarningState:
        if not is_processing:
            self.reset()
            return TimeoutWarningState.INACTIVE
        if self._started_at is None:
            self._started_at = self._clock()

        state = self.state
        if state is TimeoutWarningState.EXPIRED and not self._expiry_reported:
            self._expiry_reported = True
            Logger.base.warning(
                f'⏰ [ADMISSION] Processing window of {self._processing_window:.0f}s elapsed'
            )
        return state

    def reset(self) -> None:
        self._started_at = None
        self._expiry_reported = False

    def _elapsed(self) -> Optional[float]:
        if self._started_at is None:
            return None
        return self._clock() - self._started_at

    @property
    def state(self) -> TimeoutWarningState:
        elapsed = self._elapsed()
        if elapsed is None:
            return TimeoutWarningState.INACTIVE
        if elapsed < self._warning_delay:
            return TimeoutWarningState.PROCESSING
        if elapsed < self._processing_window:
            return TimeoutWarningState.WARNING
        return TimeoutWarningState.EXPIRED

    @property
    def countdown_seconds(self) -> Optional[int]:
        """Seconds left in the warning countdown, None outside the Warning state"""
        elapsed = self._elapsed()
        if elapsed is None or self.state is not TimeoutWarningState.WARNING:
            return None
        return math.ceil(self._processing_window - elapsed)
