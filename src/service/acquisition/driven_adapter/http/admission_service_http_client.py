"""
Admission Service HTTP Client

Talks to the virtual waiting room:
- POST /queue/join               {eventId, queueId?, name?, email?}
- GET  /queue/position/{eventId} ?queueId=
- POST /queue/complete/{eventId} {userId}

Every response is wrapped as {success, message?, data}.
"""

from typing import Any, Optional

import httpx
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.interface.i_admission_service import IAdmissionService
from src.service.acquisition.domain.acquisition_error import AdmissionServiceError
from src.service.acquisition.domain.entity.queue_ticket_entity import QueueTicket
from src.service.acquisition.domain.value_object.buyer_info import GuestBuyer


class AdmissionServiceHttpClient(IAdmissionService):
    def __init__(self, *, http_client: httpx.AsyncClient, access_token: Optional[str] = None):
        self.http_client = http_client
        self.access_token = access_token
        self.tracer = trace.get_tracer(__name__)

    def _headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {'Authorization': f'Bearer {self.access_token}'}

    async def _send(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self.http_client.request(
                method, path, headers=self._headers(), **kwargs
            )
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AdmissionServiceError(f'Admission service unreachable: {e}') from e

        if response.is_error or not body.get('success', False):
            raise AdmissionServiceError(
                body.get('message') or f'Admission service returned {response.status_code}',
                status_code=response.status_code if response.is_error else 502,
            )
        return body.get('data') or {}

    @staticmethod
    def _to_ticket(*, event_id: str, data: dict[str, Any], queue_id: Optional[str]) -> QueueTicket:
        try:
            return QueueTicket(
                event_id=event_id,
                queue_id=data.get('queueId') or queue_id,
                position=int(data['position']),
                total=int(data.get('total', 0)),
                is_processing=bool(data.get('isProcessing', False)),
                holder_id=data.get('userId'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AdmissionServiceError(f'Malformed admission response: {data!r}') from e

    @Logger.io(truncate_content=True)
    async def join(
        self,
        *,
        event_id: str,
        queue_id: Optional[str] = None,
        guest_info: Optional[GuestBuyer] = None,
    ) -> QueueTicket:
        payload: dict[str, Any] = {'eventId': event_id}
        if queue_id:
            payload['queueId'] = queue_id
        if guest_info is not None:
            payload['name'] = guest_info.name
            payload['email'] = guest_info.email

        with self.tracer.start_as_current_span(
            'admission.join', attributes={'event.id': event_id}
        ):
            data = await self._send('POST', '/queue/join', json=payload)
        return self._to_ticket(event_id=event_id, data=data, queue_id=queue_id)

    async def check_position(self, *, event_id: str, queue_id: str) -> QueueTicket:
        with self.tracer.start_as_current_span(
            'admission.check_position', attributes={'event.id': event_id}
        ):
            data = await self._send(
                'GET', f'/queue/position/{event_id}', params={'queueId': queue_id}
            )
        return self._to_ticket(event_id=event_id, data=data, queue_id=queue_id)

    async def complete(self, *, event_id: str, holder_id: Optional[str]) -> None:
        await self._send('POST', f'/queue/complete/{event_id}', json={'userId': holder_id})
