"""
Acquisition sessions held by this process

One orchestrator per (buyer session, event). Steps that wait on someone else
(admission queue, payment approval) run on the service's background task
group, so the request that starts them returns at once and the buyer follows
progress through the view.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import anyio
from anyio.abc import TaskGroup

from src.platform.exception.exceptions import CustomBaseError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.command.acquisition_orchestrator import AcquisitionOrchestrator
from src.service.acquisition.app.command.open_acquisition_session_use_case import (
    OpenAcquisitionSessionUseCase,
)
from src.service.acquisition.domain.enum.payment_status import PaymentProvider


class AcquisitionSessionRegistry:
    def __init__(self, *, open_session_use_case: OpenAcquisitionSessionUseCase) -> None:
        self._open_session = open_session_use_case
        self._sessions: dict[tuple[str, str], AcquisitionOrchestrator] = {}
        self._lock = anyio.Lock()

    @Logger.io
    async def open(
        self,
        *,
        session_id: str,
        event_id: str,
        default_provider: PaymentProvider = PaymentProvider.CHECKOUT,
        remember_selection: bool = True,
    ) -> AcquisitionOrchestrator:
        """Return the live orchestrator for this session, assembling it on first use"""
        key = (session_id, event_id)
        async with self._lock:
            orchestrator = self._sessions.get(key)
            if orchestrator is None:
                orchestrator = await self._open_session.execute(
                    event_id=event_id,
                    session_id=session_id,
                    default_provider=default_provider,
                    remember_selection=remember_selection,
                )
                self._sessions[key] = orchestrator
        return orchestrator

    def get(self, *, session_id: str, event_id: str) -> AcquisitionOrchestrator:
        orchestrator = self._sessions.get((session_id, event_id))
        if orchestrator is None:
            raise NotFoundError(f'No acquisition session is open for event {event_id}')
        return orchestrator

    @Logger.io
    async def close(self, *, session_id: str, event_id: str) -> None:
        orchestrator = self._sessions.pop((session_id, event_id), None)
        if orchestrator is not None:
            await orchestrator.leave()

    async def close_all(self) -> None:
        for session_id, event_id in list(self._sessions):
            await self.close(session_id=session_id, event_id=event_id)

    def start(
        self,
        task_group: TaskGroup,
        orchestrator: AcquisitionOrchestrator,
        step: Callable[[], Awaitable[Any]],
    ) -> None:
        task_group.start_soon(self._run, orchestrator.event_id, step)

    @staticmethod
    async def _run(event_id: str, step: Callable[[], Awaitable[Any]]) -> None:
        try:
            await step()
        except CustomBaseError as e:
            # The orchestrator notice already tells the buyer
            Logger.base.warning(f'⚠️ [SESSION] Step for event={event_id} refused: {e}')
        except Exception as e:
            Logger.base.exception(f'❌ [SESSION] Step for event={event_id} crashed: {e}')
