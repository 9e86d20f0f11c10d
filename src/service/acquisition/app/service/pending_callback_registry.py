"""
Pending provider callbacks

Payment adapters park one PendingCallback per opened checkout / mounted order
surface; the HTTP callback controller resolves them. Each key resolves at most
once, later deliveries for the same key are reported as duplicates.
"""

from collections import deque
from typing import Optional

import anyio

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import CallbackResult
from src.service.acquisition.domain.acquisition_error import ProviderRenderError


class PendingCallback:
    def __init__(self, key: str) -> None:
        self.key = key
        self.result: Optional[CallbackResult] = None
        self._resolved = anyio.Event()

    @property
    def is_resolved(self) -> bool:
        return self._resolved.is_set()

    def resolve(self, result: CallbackResult) -> None:
        self.result = result
        self._resolved.set()

    async def wait(self) -> CallbackResult:
        await self._resolved.wait()
        assert self.result is not None
        return self.result


class PendingCallbackRegistry:
    def __init__(self, *, remembered_keys: int = 1024) -> None:
        self._pending: dict[str, PendingCallback] = {}
        self._recently_resolved: deque[str] = deque(maxlen=remembered_keys)

    def register(self, key: str) -> PendingCallback:
        existing = self._pending.get(key)
        if existing is not None and not existing.is_resolved:
            raise ProviderRenderError(f'A payment surface is already live for {key}', reference=key)
        pending = PendingCallback(key)
        self._pending[key] = pending
        return pending

    def resolve(self, key: str, result: CallbackResult) -> bool:
        """Returns False for unknown keys and for duplicate deliveries"""
        pending = self._pending.get(key)
        if pending is None or pending.is_resolved:
            Logger.base.warning(f'🔁 [PAYMENT] Ignored callback for {key} (unknown or duplicate)')
            return False
        pending.resolve(result)
        self._recently_resolved.append(key)
        Logger.base.info(f'📬 [PAYMENT] Callback resolved {key}: {result.status}')
        return True

    def discard(self, key: str) -> None:
        self._pending.pop(key, None)

    def is_pending(self, key: str) -> bool:
        pending = self._pending.get(key)
        return pending is not None and not pending.is_resolved

    def was_resolved(self, key: str) -> bool:
        return key in self._recently_resolved
