"""
Unit tests for AdmissionQueueClient

- join / position transport failures become lost-position sentinels
- consecutive lost responses trigger exactly one rejoin with the stored guest info
- overlapping refreshes are dropped, push only makes the next check sooner
- complete never raises and always forgets the queue id
"""

from typing import List

import anyio
import pytest

from src.service.acquisition.app.service.admission_queue_client import AdmissionQueueClient
from src.service.acquisition.domain.acquisition_error import AdmissionServiceError
from src.service.acquisition.domain.entity.queue_ticket_entity import QueueTicket
from src.service.acquisition.domain.enum import TimeoutWarningState
from src.service.acquisition.domain.value_object.acquisition_policy import AcquisitionPolicy
from src.service.acquisition.domain.value_object.buyer_info import GuestBuyer
from src.service.acquisition.driven_adapter.state.in_memory_store import InMemoryQueueIdCache
from test.service.acquisition.stubs import (
    EVENT_ID,
    StubAdmissionService,
    StubQueueUpdateChannel,
    wait_for,
)


def _ticket(position: int, *, total: int = 10, queue_id: str = 'q-1', **kwargs) -> QueueTicket:
    return QueueTicket(
        event_id=EVENT_ID, queue_id=queue_id, position=position, total=total, **kwargs
    )


class FailingChannel(StubQueueUpdateChannel):
    async def subscribe(self, *, event_id, on_message):
        raise AdmissionServiceError('push connection refused')


@pytest.mark.unit
class TestJoin:
    @pytest.mark.asyncio
    async def test_join_caches_queue_id_and_resends_it(
        self,
        admission_client: AdmissionQueueClient,
        admission_service: StubAdmissionService,
        queue_id_cache: InMemoryQueueIdCache,
        guest_buyer: GuestBuyer,
    ) -> None:
        # Arrange
        admission_service.join_script = [_ticket(4)]

        # Act
        first = await admission_client.join(event_id=EVENT_ID, guest_info=guest_buyer)
        await admission_client.join(event_id=EVENT_ID)

        # Assert
        assert first.position_label == '4 of 10'
        assert await queue_id_cache.get(event_id=EVENT_ID) == 'q-1'
        assert admission_service.join_calls[0]['queue_id'] is None
        assert admission_service.join_calls[1]['queue_id'] == 'q-1'
        # Guest info is remembered for later joins
        assert admission_service.join_calls[1]['guest_info'] == guest_buyer

    @pytest.mark.asyncio
    async def test_join_failure_returns_lost_sentinel(
        self, admission_client: AdmissionQueueClient, admission_service: StubAdmissionService
    ) -> None:
        admission_service.join_script = [AdmissionServiceError('Admission service unreachable')]

        ticket = await admission_client.join(event_id=EVENT_ID)

        assert ticket.is_lost
        assert ticket.error == 'Admission service unreachable'
        assert admission_client.current(event_id=EVENT_ID) is None


@pytest.mark.unit
class TestCheckPosition:
    @pytest.mark.asyncio
    async def test_without_queue_id_is_lost(self, admission_client: AdmissionQueueClient) -> None:
        ticket = await admission_client.check_position(event_id=EVENT_ID)

        assert ticket.is_lost
        assert ticket.error == 'Not in the queue for this event'

    @pytest.mark.asyncio
    async def test_transport_error_is_lost_without_rejoin_below_limit(
        self, admission_client: AdmissionQueueClient, admission_service: StubAdmissionService
    ) -> None:
        # Arrange
        admission_service.join_script = [_ticket(5)]
        admission_service.position_script = [AdmissionServiceError('timeout')]
        await admission_client.join(event_id=EVENT_ID)

        # Act
        first = await admission_client.check_position(event_id=EVENT_ID)
        second = await admission_client.check_position(event_id=EVENT_ID)

        # Assert
        assert first.is_lost and second.is_lost
        assert admission_client.lost_count(event_id=EVENT_ID) == 2
        assert len(admission_service.join_calls) == 1

    @pytest.mark.asyncio
    async def test_rejoins_once_after_consecutive_lost_responses(
        self,
        admission_client: AdmissionQueueClient,
        admission_service: StubAdmissionService,
        queue_id_cache: InMemoryQueueIdCache,
        guest_buyer: GuestBuyer,
    ) -> None:
        # Arrange
        admission_service.join_script = [_ticket(5), _ticket(8, queue_id='q-2')]
        admission_service.position_script = [
            QueueTicket.lost(event_id=EVENT_ID, error='Queue not found', queue_id='q-1')
        ]
        await admission_client.join(event_id=EVENT_ID, guest_info=guest_buyer)

        # Act
        results = [await admission_client.check_position(event_id=EVENT_ID) for _ in range(3)]

        # Assert
        assert results[0].is_lost and results[1].is_lost
        assert results[2].position_label == '8 of 10'
        assert admission_client.rejoin_count(event_id=EVENT_ID) == 1
        assert admission_client.lost_count(event_id=EVENT_ID) == 0
        rejoin_call = admission_service.join_calls[1]
        assert rejoin_call['queue_id'] is None
        assert rejoin_call['guest_info'] == guest_buyer
        assert await queue_id_cache.get(event_id=EVENT_ID) == 'q-2'

    @pytest.mark.asyncio
    async def test_failed_rejoin_stops_auto_rejoining(
        self, admission_client: AdmissionQueueClient, admission_service: StubAdmissionService
    ) -> None:
        # Arrange
        admission_service.join_script = [_ticket(5), AdmissionServiceError('Queue closed')]
        admission_service.position_script = [AdmissionServiceError('Queue not found')]
        await admission_client.join(event_id=EVENT_ID)

        # Act
        for _ in range(6):
            ticket = await admission_client.check_position(event_id=EVENT_ID)

        # Assert
        assert ticket.is_lost
        assert admission_client.rejoin_count(event_id=EVENT_ID) == 1
        assert len(admission_service.join_calls) == 2

    @pytest.mark.asyncio
    async def test_processing_ticket_drives_timeout_warning(
        self,
        admission_service: StubAdmissionService,
        update_channel: StubQueueUpdateChannel,
        queue_id_cache: InMemoryQueueIdCache,
    ) -> None:
        # Arrange
        now = [0.0]
        client = AdmissionQueueClient(
            admission_service=admission_service,
            update_channel=update_channel,
            queue_id_cache=queue_id_cache,
            policy=AcquisitionPolicy(),
            clock=lambda: now[0],
        )
        admission_service.join_script = [_ticket(2)]
        admission_service.position_script = [_ticket(1, is_processing=True)]
        await client.join(event_id=EVENT_ID)

        # Act
        await client.check_position(event_id=EVENT_ID)
        now[0] = 40.0

        # Assert
        assert client.timeout_warning(event_id=EVENT_ID) == (TimeoutWarningState.WARNING, 20)


@pytest.mark.unit
class TestRefreshAndPush:
    @pytest.mark.asyncio
    async def test_overlapping_refresh_is_dropped(
        self, admission_client: AdmissionQueueClient, admission_service: StubAdmissionService
    ) -> None:
        # Arrange
        admission_service.join_script = [_ticket(5)]
        admission_service.position_script = [_ticket(4)]
        admission_service.position_gate = anyio.Event()
        await admission_client.join(event_id=EVENT_ID)
        results: List[QueueTicket] = []

        async def refresh() -> None:
            ticket = await admission_client.refresh(event_id=EVENT_ID)
            assert ticket is not None
            results.append(ticket)

        # Act
        async with anyio.create_task_group() as tg:
            tg.start_soon(refresh)
            await wait_for(lambda: len(admission_service.position_calls) == 1)
            dropped = await admission_client.refresh(event_id=EVENT_ID)
            admission_service.position_gate.set()

        # Assert
        assert dropped is None
        assert len(admission_service.position_calls) == 1
        assert results[0].position == 4

    @pytest.mark.asyncio
    async def test_wait_until_ready_polls_and_unsubscribes(
        self,
        admission_client: AdmissionQueueClient,
        admission_service: StubAdmissionService,
        update_channel: StubQueueUpdateChannel,
    ) -> None:
        # Arrange
        admission_service.join_script = [_ticket(3)]
        admission_service.position_script = [_ticket(3), _ticket(2), _ticket(1)]
        await admission_client.join(event_id=EVENT_ID)
        seen: List[int] = []

        async def on_update(ticket: QueueTicket) -> None:
            seen.append(ticket.position)

        # Act
        with anyio.fail_after(2):
            ticket = await admission_client.wait_until_ready(event_id=EVENT_ID, on_update=on_update)

        # Assert
        assert ticket.is_ready
        assert seen == [3, 2, 1]
        assert update_channel.subscriber_count(EVENT_ID) == 0

    @pytest.mark.asyncio
    async def test_push_triggers_an_early_check(
        self,
        admission_service: StubAdmissionService,
        update_channel: StubQueueUpdateChannel,
        queue_id_cache: InMemoryQueueIdCache,
    ) -> None:
        # Arrange - poll interval far longer than the test timeout
        client = AdmissionQueueClient(
            admission_service=admission_service,
            update_channel=update_channel,
            queue_id_cache=queue_id_cache,
            policy=AcquisitionPolicy(queue_refresh_interval=60.0),
        )
        admission_service.join_script = [_ticket(2)]
        admission_service.position_script = [_ticket(2), _ticket(1)]
        await client.join(event_id=EVENT_ID)
        results: List[QueueTicket] = []

        async def wait() -> None:
            results.append(await client.wait_until_ready(event_id=EVENT_ID))

        # Act
        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(wait)
                await wait_for(lambda: len(admission_service.position_calls) == 1)
                await update_channel.push(EVENT_ID)

        # Assert
        assert results[0].is_ready
        assert len(admission_service.position_calls) == 2

    @pytest.mark.asyncio
    async def test_push_unavailable_falls_back_to_polling(
        self,
        admission_service: StubAdmissionService,
        queue_id_cache: InMemoryQueueIdCache,
        policy: AcquisitionPolicy,
    ) -> None:
        client = AdmissionQueueClient(
            admission_service=admission_service,
            update_channel=FailingChannel(),
            queue_id_cache=queue_id_cache,
            policy=policy,
        )
        admission_service.join_script = [_ticket(3)]
        admission_service.position_script = [_ticket(2), _ticket(1)]
        await client.join(event_id=EVENT_ID)

        with anyio.fail_after(2):
            ticket = await client.wait_until_ready(event_id=EVENT_ID)

        assert ticket.is_ready

    @pytest.mark.asyncio
    async def test_cancelled_wait_unsubscribes(
        self,
        admission_client: AdmissionQueueClient,
        admission_service: StubAdmissionService,
        update_channel: StubQueueUpdateChannel,
    ) -> None:
        admission_service.join_script = [_ticket(6)]
        admission_service.position_script = [_ticket(6)]
        await admission_client.join(event_id=EVENT_ID)

        with anyio.move_on_after(0.05):
            await admission_client.wait_until_ready(event_id=EVENT_ID)

        assert update_channel.subscriber_count(EVENT_ID) == 0
        assert admission_service.complete_calls == []


@pytest.mark.unit
class TestComplete:
    @pytest.mark.asyncio
    async def test_complete_skipped_when_never_queued(
        self, admission_client: AdmissionQueueClient, admission_service: StubAdmissionService
    ) -> None:
        await admission_client.complete(event_id=EVENT_ID)

        assert admission_service.complete_calls == []

    @pytest.mark.asyncio
    async def test_complete_releases_slot_and_forgets_queue(
        self,
        admission_client: AdmissionQueueClient,
        admission_service: StubAdmissionService,
        queue_id_cache: InMemoryQueueIdCache,
    ) -> None:
        admission_service.join_script = [_ticket(1, holder_id='holder-7')]
        await admission_client.join(event_id=EVENT_ID)

        await admission_client.complete(event_id=EVENT_ID)

        assert admission_service.complete_calls == [{'event_id': EVENT_ID, 'holder_id': 'holder-7'}]
        assert await queue_id_cache.get(event_id=EVENT_ID) is None
        assert admission_client.current(event_id=EVENT_ID) is None

    @pytest.mark.asyncio
    async def test_complete_failure_is_swallowed(
        self,
        admission_client: AdmissionQueueClient,
        admission_service: StubAdmissionService,
        queue_id_cache: InMemoryQueueIdCache,
    ) -> None:
        # Arrange
        admission_service.join_script = [_ticket(1)]
        await admission_client.join(event_id=EVENT_ID)

        async def failing_complete(**kwargs) -> None:
            raise AdmissionServiceError('slot already expired')

        admission_service.complete = failing_complete  # type: ignore[method-assign]

        # Act
        await admission_client.complete(event_id=EVENT_ID)

        # Assert
        assert await queue_id_cache.get(event_id=EVENT_ID) is None
