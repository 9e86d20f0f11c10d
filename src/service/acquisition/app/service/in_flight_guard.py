from collections.abc import Iterator
from contextlib import contextmanager


class InFlightGuard:
    """
    Drop-not-queue re-entrancy guard for one operation kind.

    Usage:
        with guard.claim() as claimed:
            if not claimed:
                return  # another call of this kind is still running
            await do_work()
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @contextmanager
    def claim(self) -> Iterator[bool]:
        if self._in_flight:
            yield False
            return
        self._in_flight = True
        try:
            yield True
        finally:
            self._in_flight = False
