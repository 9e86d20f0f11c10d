"""
Acquisition session endpoints

Thin driving adapter over AcquisitionSessionRegistry: every route resolves the
buyer's orchestrator and calls one operation on it. Proceed, rejoin and pay
wait on the admission queue or a payment provider, so they are started in the
background and answered with 202 plus the current view; the buyer polls the
view until the state moves on.
"""

from typing import Optional

from anyio.abc import TaskGroup
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.command.acquisition_orchestrator import AcquisitionOrchestrator
from src.service.acquisition.app.service.acquisition_session_registry import (
    AcquisitionSessionRegistry,
)
from src.service.acquisition.domain.acquisition_error import InvalidTransitionError
from src.service.acquisition.domain.enum import AcquisitionState
from src.service.acquisition.domain.value_object.buyer_info import validate_buyer_info
from src.service.acquisition.driving_adapter.http_controller.schema.acquisition_session_schema import (
    AcquisitionViewResponse,
    ChangeQuantityRequest,
    OpenSessionRequest,
    PayRequest,
    ProceedRequest,
    SelectProviderRequest,
    SelectTierRequest,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)

SESSION_PATH = '/sessions/{session_id}/events/{event_id}'


def _view(orchestrator: AcquisitionOrchestrator) -> AcquisitionViewResponse:
    return AcquisitionViewResponse.model_validate(orchestrator.view())


def _require_state(
    orchestrator: AcquisitionOrchestrator, action: str, *allowed: AcquisitionState
) -> None:
    # Background steps cannot answer the request, so refuse up front
    if orchestrator.state not in allowed:
        raise InvalidTransitionError(f'Cannot {action} from {orchestrator.state}')


@router.post('/sessions', status_code=status.HTTP_201_CREATED)
@Logger.io
@inject
async def open_session(
    request: OpenSessionRequest,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
) -> AcquisitionViewResponse:
    with tracer.start_as_current_span('controller.open_session') as span:
        span.set_attribute('event.id', request.event_id)
        orchestrator = await registry.open(
            session_id=request.session_id,
            event_id=request.event_id,
            default_provider=request.provider,
            remember_selection=request.remember_selection,
        )
        span.set_attribute('acquisition.state', orchestrator.state.value)
        return _view(orchestrator)


@router.get(SESSION_PATH)
@Logger.io
@inject
async def get_view(
    session_id: str,
    event_id: str,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
) -> AcquisitionViewResponse:
    return _view(registry.get(session_id=session_id, event_id=event_id))


@router.post(f'{SESSION_PATH}/tier')
@Logger.io
@inject
async def select_tier(
    session_id: str,
    event_id: str,
    request: SelectTierRequest,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    await orchestrator.select_tier(selection=request.to_selection())
    return _view(orchestrator)


@router.post(f'{SESSION_PATH}/quantity')
@Logger.io
@inject
async def change_quantity(
    session_id: str,
    event_id: str,
    request: ChangeQuantityRequest,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    await orchestrator.change_quantity(quantity=request.quantity)
    return _view(orchestrator)


@router.post(f'{SESSION_PATH}/provider')
@Logger.io
@inject
async def select_provider(
    session_id: str,
    event_id: str,
    request: SelectProviderRequest,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    await orchestrator.select_provider(provider=request.provider)
    return _view(orchestrator)


@router.post(f'{SESSION_PATH}/proceed', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
@inject
async def proceed(
    session_id: str,
    event_id: str,
    request: Optional[ProceedRequest] = None,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
    task_group: TaskGroup = Depends(Provide[Container.background_task_group]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    _require_state(
        orchestrator, 'proceed', AcquisitionState.SELECTED, AcquisitionState.ADMISSION_WAIT
    )
    guest = request.guest.to_buyer() if request and request.guest else None
    registry.start(task_group, orchestrator, lambda: orchestrator.proceed(buyer=guest))
    return _view(orchestrator)


@router.post(f'{SESSION_PATH}/rejoin', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
@inject
async def rejoin_queue(
    session_id: str,
    event_id: str,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
    task_group: TaskGroup = Depends(Provide[Container.background_task_group]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    _require_state(orchestrator, 'rejoin the queue', AcquisitionState.ADMISSION_WAIT)
    registry.start(task_group, orchestrator, orchestrator.rejoin_queue)
    return _view(orchestrator)


@router.post(f'{SESSION_PATH}/pay', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
@inject
async def pay(
    session_id: str,
    event_id: str,
    request: PayRequest,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
    task_group: TaskGroup = Depends(Provide[Container.background_task_group]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    _require_state(orchestrator, 'pay', AcquisitionState.READY)
    buyer = validate_buyer_info(request.to_buyer())
    registry.start(task_group, orchestrator, lambda: orchestrator.pay(buyer=buyer))
    return _view(orchestrator)


@router.post(f'{SESSION_PATH}/retry-finalize')
@Logger.io
@inject
async def retry_finalize(
    session_id: str,
    event_id: str,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    await orchestrator.retry_finalize()
    return _view(orchestrator)


@router.post(f'{SESSION_PATH}/leave')
@Logger.io
@inject
async def leave(
    session_id: str,
    event_id: str,
    registry: AcquisitionSessionRegistry = Depends(Provide[Container.acquisition_session_registry]),
) -> AcquisitionViewResponse:
    orchestrator = registry.get(session_id=session_id, event_id=event_id)
    await registry.close(session_id=session_id, event_id=event_id)
    return _view(orchestrator)
