"""
Admission Queue Client

Local view of the caller's place in a per-event virtual waiting room.

- join / check_position never raise for transport failures: they return a
  lost-position sentinel carrying the error message
- polling always works on its own; push deliveries only make the next check
  happen sooner and are coalesced with timer refreshes (dropped, never queued)
- after QUEUE_LOST_RETRY_LIMIT consecutive lost responses the client rejoins
  exactly once, reusing the stored guest info
"""

from collections.abc import Awaitable, Callable
import time
from typing import Optional

import anyio

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.interface.i_admission_service import IAdmissionService
from src.service.acquisition.app.interface.i_queue_id_cache import IQueueIdCache
from src.service.acquisition.app.interface.i_queue_update_channel import (
    IQueueUpdateChannel,
    Unsubscribe,
)
from src.service.acquisition.app.service.in_flight_guard import InFlightGuard
from src.service.acquisition.app.service.timeout_warning_tracker import TimeoutWarningTracker
from src.service.acquisition.domain.acquisition_error import AdmissionServiceError
from src.service.acquisition.domain.entity.queue_ticket_entity import QueueTicket
from src.service.acquisition.domain.enum.timeout_warning_state import TimeoutWarningState
from src.service.acquisition.domain.value_object.acquisition_policy import AcquisitionPolicy
from src.service.acquisition.domain.value_object.buyer_info import GuestBuyer


QueueTicketCallback = Callable[[QueueTicket], Awaitable[None]]


async def _noop_unsubscribe() -> None:
    return None


class AdmissionQueueClient:
    def __init__(
        self,
        *,
        admission_service: IAdmissionService,
        update_channel: IQueueUpdateChannel,
        queue_id_cache: IQueueIdCache,
        policy: AcquisitionPolicy,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._service = admission_service
        self._channel = update_channel
        self._queue_ids = queue_id_cache
        self._policy = policy
        self._clock = clock

        self._tickets: dict[str, QueueTicket] = {}
        self._guest_info: dict[str, GuestBuyer] = {}
        self._queued: set[str] = set()  # events we believe we are queued or admitted for
        self._lost_counts: dict[str, int] = {}
        self._rejoin_counts: dict[str, int] = {}
        self._warnings: dict[str, TimeoutWarningTracker] = {}
        self._waiters: dict[str, anyio.Event] = {}

        self._check_guard = InFlightGuard('check_position')
        self._join_guard = InFlightGuard('join')

    # ------------------------------------------------------------------ state

    def current(self, *, event_id: str) -> Optional[QueueTicket]:
        return self._tickets.get(event_id)

    def lost_count(self, *, event_id: str) -> int:
        return self._lost_counts.get(event_id, 0)

    def rejoin_count(self, *, event_id: str) -> int:
        return self._rejoin_counts.get(event_id, 0)

    def timeout_warning(self, *, event_id: str) -> tuple[TimeoutWarningState, Optional[int]]:
        tracker = self._tracker(event_id)
        return tracker.state, tracker.countdown_seconds

    def _tracker(self, event_id: str) -> TimeoutWarningTracker:
        if event_id not in self._warnings:
            self._warnings[event_id] = TimeoutWarningTracker(
                warning_delay=self._policy.timeout_warning_delay,
                processing_window=self._policy.processing_window,
                clock=self._clock,
            )
        return self._warnings[event_id]

    def _forget(self, event_id: str) -> None:
        self._tickets.pop(event_id, None)
        self._queued.discard(event_id)
        self._lost_counts.pop(event_id, None)
        self._warnings.pop(event_id, None)

    # ------------------------------------------------------------------- join

    @Logger.io
    async def join(self, *, event_id: str, guest_info: Optional[GuestBuyer] = None) -> QueueTicket:
        with self._join_guard.claim() as claimed:
            if not claimed:
                Logger.base.info(f'⏭️ [ADMISSION] join already in flight for event={event_id}')
                return self._tickets.get(event_id) or QueueTicket.lost(
                    event_id=event_id, error='Join already in progress'
                )
            return await self._join(event_id=event_id, guest_info=guest_info)

    async def _join(self, *, event_id: str, guest_info: Optional[GuestBuyer]) -> QueueTicket:
        if guest_info is not None:
            self._guest_info[event_id] = guest_info
        guest_info = self._guest_info.get(event_id)
        # Re-sending a cached queue id keeps a retried join from enqueueing twice
        queue_id = await self._queue_ids.get(event_id=event_id)

        try:
            ticket = await self._service.join(
                event_id=event_id, queue_id=queue_id, guest_info=guest_info
            )
        except AdmissionServiceError as e:
            Logger.base.warning(f'⚠️ [ADMISSION] join failed for event={event_id}: {e.message}')
            return QueueTicket.lost(event_id=event_id, error=e.message, queue_id=queue_id)

        if ticket.is_lost:
            return ticket
        if ticket.queue_id:
            await self._queue_ids.set(event_id=event_id, queue_id=ticket.queue_id)

        self._queued.add(event_id)
        self._lost_counts[event_id] = 0
        tracker = self._tracker(event_id)
        tracker.reset()
        tracker.observe(is_processing=ticket.is_processing)
        self._tickets[event_id] = ticket
        Logger.base.info(
            f'🎟️ [ADMISSION] Joined event={event_id} queue={ticket.queue_id} '
            f'position={ticket.position_label}'
        )
        return ticket

    @Logger.io
    async def rejoin(self, *, event_id: str) -> QueueTicket:
        """Manual "Rejoin Queue": forget the dead queue id and join with the stored guest info"""
        await self._queue_ids.remove(event_id=event_id)
        return await self.join(event_id=event_id)

    # --------------------------------------------------------------- position

    @Logger.io
    async def check_position(
        self, *, event_id: str, queue_id: Optional[str] = None
    ) -> QueueTicket:
        queue_id = queue_id or await self._queue_ids.get(event_id=event_id)
        if not queue_id:
            ticket = QueueTicket.lost(event_id=event_id, error='Not in the queue for this event')
        else:
            try:
                ticket = await self._service.check_position(event_id=event_id, queue_id=queue_id)
            except AdmissionServiceError as e:
                ticket = QueueTicket.lost(event_id=event_id, error=e.message, queue_id=queue_id)
        return await self._observe(event_id=event_id, ticket=ticket)

    async def refresh(self, *, event_id: str) -> Optional[QueueTicket]:
        """
        Single guarded entry point for the poll timer, push deliveries and
        manual "refresh now". Returns None when dropped because a check is
        already in flight.
        """
        with self._check_guard.claim() as claimed:
            if not claimed:
                return None
            return await self.check_position(event_id=event_id)

    async def recover(self, *, event_id: str) -> Optional[QueueTicket]:
        """Re-check a queue id cached by an earlier session, None when there is none"""
        if not await self._queue_ids.get(event_id=event_id):
            return None
        return await self.refresh(event_id=event_id)

    async def _observe(self, *, event_id: str, ticket: QueueTicket) -> QueueTicket:
        self._tickets[event_id] = ticket
        if not ticket.is_lost:
            self._queued.add(event_id)
            self._lost_counts[event_id] = 0
            self._tracker(event_id).observe(is_processing=ticket.is_processing)
            return ticket

        self._tracker(event_id).reset()
        if event_id not in self._queued:
            return ticket

        lost_count = self._lost_counts.get(event_id, 0) + 1
        self._lost_counts[event_id] = lost_count
        Logger.base.warning(
            f'⚠️ [ADMISSION] Lost position for event={event_id} '
            f'({lost_count}/{self._policy.queue_lost_retry_limit}): {ticket.error}'
        )
        if lost_count < self._policy.queue_lost_retry_limit:
            return ticket
        return await self._auto_rejoin(event_id=event_id)

    async def _auto_rejoin(self, *, event_id: str) -> QueueTicket:
        self._lost_counts[event_id] = 0
        self._rejoin_counts[event_id] = self._rejoin_counts.get(event_id, 0) + 1
        Logger.base.info(f'🔄 [ADMISSION] Rejoining event={event_id}')

        rejoined = await self.rejoin(event_id=event_id)
        if rejoined.is_lost:
            # Stop auto-rejoining, the buyer gets the manual rejoin action instead
            self._queued.discard(event_id)
            self._tickets[event_id] = rejoined
            Logger.base.error(f'❌ [ADMISSION] Rejoin failed for event={event_id}: {rejoined.error}')
        return rejoined

    # ------------------------------------------------------------------- push

    async def subscribe(
        self, *, event_id: str, on_update: Optional[QueueTicketCallback] = None
    ) -> Unsubscribe:
        async def handle_push(_payload: dict) -> None:
            waiter = self._waiters.get(event_id)
            if waiter is not None:
                # wait_until_ready is polling this event: make it check now
                waiter.set()
                return
            ticket = await self.refresh(event_id=event_id)
            if ticket is not None and on_update is not None:
                await on_update(ticket)

        try:
            return await self._channel.subscribe(event_id=event_id, on_message=handle_push)
        except AdmissionServiceError as e:
            Logger.base.warning(
                f'⚠️ [ADMISSION] Push unavailable for event={event_id}, polling only: {e.message}'
            )
            return _noop_unsubscribe

    async def wait_until_ready(
        self, *, event_id: str, on_update: Optional[QueueTicketCallback] = None
    ) -> QueueTicket:
        """
        Poll (and wake early on push) until the caller is ready.

        Also returns a lost ticket once the client has given up on the queue
        (failed rejoin or never joined), so the caller can offer a manual rejoin.
        Cancelling the awaiting task stops polling and unsubscribes.
        """
        unsubscribe = await self.subscribe(event_id=event_id)
        try:
            while True:
                wake = anyio.Event()
                self._waiters[event_id] = wake
                ticket = await self.refresh(event_id=event_id)
                if ticket is not None:
                    if on_update is not None:
                        await on_update(ticket)
                    if ticket.is_ready:
                        return ticket
                    if ticket.is_lost and event_id not in self._queued:
                        return ticket
                with anyio.move_on_after(self._policy.queue_refresh_interval):
                    await wake.wait()
        finally:
            self._waiters.pop(event_id, None)
            with anyio.CancelScope(shield=True):
                await unsubscribe()

    # --------------------------------------------------------------- complete

    @Logger.io
    async def complete(self, *, event_id: str, holder_id: Optional[str] = None) -> None:
        ticket = self._tickets.get(event_id)
        if ticket is None and not await self._queue_ids.get(event_id=event_id):
            # Never queued for this event, there is no slot to release
            return
        holder_id = holder_id or (ticket.holder_id if ticket else None)
        try:
            await self._service.complete(event_id=event_id, holder_id=holder_id)
            Logger.base.info(f'🏁 [ADMISSION] Released slot for event={event_id}')
        except Exception as e:  # never blocks purchase success reporting
            Logger.base.warning(f'⚠️ [ADMISSION] complete failed for event={event_id}: {e}')
        finally:
            await self._queue_ids.remove(event_id=event_id)
            self._forget(event_id)
