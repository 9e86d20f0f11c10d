"""
Lazy provider SDK loading

The SDK is a one-time, process-wide resource keyed by the server-issued client
id. A load requested while another load of the same key is pending awaits the
explicit in-flight token instead of starting a second fetch.
"""

from typing import Optional

import anyio

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.dto.payment_dto import ProviderClientConfig, SdkHandle
from src.service.acquisition.app.interface.i_async_payment_sdk import IAsyncPaymentSdk
from src.service.acquisition.domain.acquisition_error import ProviderRenderError


class _LoadToken:
    def __init__(self) -> None:
        self._done = anyio.Event()
        self.handle: Optional[SdkHandle] = None
        self.error: Optional[ProviderRenderError] = None

    def finish(
        self, *, handle: Optional[SdkHandle] = None, error: Optional[ProviderRenderError] = None
    ) -> None:
        self.handle = handle
        self.error = error
        self._done.set()

    @property
    def is_finished(self) -> bool:
        return self._done.is_set()

    async def wait(self) -> SdkHandle:
        await self._done.wait()
        if self.error is not None:
            raise ProviderRenderError(self.error.message)
        assert self.handle is not None
        return self.handle


class SdkLoader:
    def __init__(self, *, sdk: IAsyncPaymentSdk, load_timeout: float = 10.0) -> None:
        self._sdk = sdk
        self._load_timeout = load_timeout
        self._handles: dict[str, SdkHandle] = {}
        self._in_flight: dict[str, _LoadToken] = {}
        self.loads_started = 0

    async def load(self, *, config: ProviderClientConfig) -> SdkHandle:
        key = config.client_id
        if (handle := self._handles.get(key)) is not None:
            return handle
        if (token := self._in_flight.get(key)) is not None:
            return await token.wait()

        token = _LoadToken()
        self._in_flight[key] = token
        self.loads_started += 1
        try:
            with anyio.fail_after(self._load_timeout):
                handle = await self._sdk.load(config=config)
        except TimeoutError:
            error = ProviderRenderError(
                f'Payment SDK did not load within {self._load_timeout:.0f} seconds'
            )
            token.finish(error=error)
            raise error from None
        except ProviderRenderError as e:
            token.finish(error=e)
            raise
        else:
            self._handles[key] = handle
            token.finish(handle=handle)
        finally:
            self._in_flight.pop(key, None)
            if not token.is_finished:
                token.finish(error=ProviderRenderError('Payment SDK load was interrupted'))

        Logger.base.info(f'📦 [PAYMENT] SDK loaded for client {key}')
        return handle

    def invalidate(self, *, client_id: str) -> None:
        if self._handles.pop(client_id, None) is not None:
            Logger.base.warning(f'🗑️ [PAYMENT] SDK handle for client {client_id} dropped')
