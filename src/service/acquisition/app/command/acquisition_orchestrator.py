"""
Acquisition Orchestrator

Top-level state machine for one buyer acquiring tickets for one event:

    Idle -> Selected -> (AdmissionWait)? -> Ready -> PaymentInFlight -> Finalizing -> Success | Failed

- Selected -> AdmissionWait when the tier is in high demand, skipped when a ready
  queue ticket is already held
- Ready -> Finalizing directly for free tiers, no payment adapter is touched
- PaymentInFlight -> Failed -> Ready on cancel or provider error, keeping the
  admission slot
- Finalizing -> Failed after a successful payment keeps the stored selection and
  only a manual retry_finalize() resubmits
- Any state except Success / Finalizing re-enters Selected on tier or quantity
  change, tearing down the mounted payment surface first

Pay and finalize each go through their own in-flight guard; duplicate payment
callbacks are absorbed by a per-reference consumed set.
"""

from collections.abc import Awaitable, Callable, Mapping
from typing import Optional

import anyio
import attrs
from opentelemetry import trace

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.acquisition.app.command.finalize_purchase_use_case import (
    FinalizePurchaseUseCase,
)
from src.service.acquisition.app.dto.acquisition_view_dto import AcquisitionView
from src.service.acquisition.app.interface.i_payment_adapter import IPaymentAdapter
from src.service.acquisition.app.interface.i_selection_store import ISelectionStore
from src.service.acquisition.app.service.admission_queue_client import AdmissionQueueClient
from src.service.acquisition.app.service.in_flight_guard import InFlightGuard
from src.service.acquisition.domain.acquisition_error import (
    CaptureFailedError,
    ConfigurationUnavailableError,
    ContactInfoError,
    InvalidQuantityError,
    InvalidTransitionError,
    PurchaseRejectedError,
    ReconciliationError,
)
from src.service.acquisition.domain.entity.purchase_attempt_entity import (
    Confirmation,
    PurchaseAttempt,
)
from src.service.acquisition.domain.entity.ticket_selection_entity import (
    StoredSelection,
    TicketSelection,
)
from src.service.acquisition.domain.enum import (
    LOCKED_SELECTION_STATES,
    AcquisitionState,
    PaymentProvider,
    PaymentStatus,
)
from src.service.acquisition.domain.value_object.acquisition_notice import AcquisitionNotice
from src.service.acquisition.domain.value_object.acquisition_policy import AcquisitionPolicy
from src.service.acquisition.domain.value_object.buyer_info import (
    BuyerInfo,
    GuestBuyer,
    validate_buyer_info,
)
from src.service.acquisition.domain.value_object.payment_outcome import PaymentOutcome
from src.service.acquisition.domain.value_object.payment_request import PaymentRequest


S = AcquisitionState

_TRANSITIONS: dict[AcquisitionState, frozenset[AcquisitionState]] = {
    S.IDLE: frozenset({S.SELECTED}),
    S.SELECTED: frozenset({S.SELECTED, S.ADMISSION_WAIT, S.READY, S.FINALIZING}),
    S.ADMISSION_WAIT: frozenset({S.SELECTED, S.READY, S.FINALIZING}),
    S.READY: frozenset({S.SELECTED, S.PAYMENT_IN_FLIGHT, S.FINALIZING, S.FAILED}),
    S.PAYMENT_IN_FLIGHT: frozenset({S.SELECTED, S.FINALIZING, S.FAILED}),
    S.FINALIZING: frozenset({S.SUCCESS, S.FAILED}),
    S.FAILED: frozenset({S.SELECTED, S.READY, S.FINALIZING}),
    S.SUCCESS: frozenset(),
}

_QUEUE_LOST_MESSAGE = 'Your place in the queue was lost. Rejoin the queue to continue.'
_JOIN_FAILED_MESSAGE = 'We could not place you in the queue. Rejoin the queue to continue.'
_CANCELLED_MESSAGE = 'Payment was cancelled. Your selection is saved, you can try again.'
_UNEXPECTED_MESSAGE = 'Something went wrong. Please select your ticket again and retry.'


@attrs.define(frozen=True)
class _PaymentContext:
    """What a payment was started for, so a late success finalizes the right purchase"""

    tier_id: str
    quantity: int
    buyer: BuyerInfo


class AcquisitionOrchestrator:
    def __init__(
        self,
        *,
        event_id: str,
        admission_client: AdmissionQueueClient,
        payment_adapters: Mapping[PaymentProvider, IPaymentAdapter],
        finalizer: FinalizePurchaseUseCase,
        selection_store: ISelectionStore,
        policy: AcquisitionPolicy,
        default_provider: PaymentProvider = PaymentProvider.CHECKOUT,
    ) -> None:
        self.event_id = event_id
        self._admission_client = admission_client
        self._adapters = dict(payment_adapters)
        self._finalizer = finalizer
        self._store = selection_store
        self._policy = policy

        self.state = AcquisitionState.IDLE
        self.selection: Optional[TicketSelection] = None
        self.quantity = 1
        self.provider = default_provider
        self.notice: Optional[AcquisitionNotice] = None
        self.confirmation: Optional[Confirmation] = None
        self.history: list[tuple[AcquisitionState, AcquisitionState]] = []
        self.attempts: list[PurchaseAttempt] = []

        self._payment_context: Optional[_PaymentContext] = None
        self._unfinalized: Optional[PurchaseAttempt] = None
        self._consumed_references: set[str] = set()
        self._pay_guard = InFlightGuard('pay')
        self._finalize_guard = InFlightGuard('finalize')
        self._admission_guard = InFlightGuard('admission_wait')
        self._admission_scope: Optional[anyio.CancelScope] = None
        self._admission_done: Optional[anyio.Event] = None
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    async def create(cls, **kwargs) -> 'AcquisitionOrchestrator':
        orchestrator = cls(**kwargs)
        await orchestrator.restore()
        return orchestrator

    # ------------------------------------------------------------ transitions

    def _transition(self, target: AcquisitionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(f'Cannot move from {self.state} to {target}')
        if target is not self.state:
            Logger.base.info(f'🔀 [ACQUISITION] event={self.event_id} {self.state} -> {target}')
        self.history.append((self.state, target))
        self.state = target

    def _require_selection(self) -> TicketSelection:
        if self.selection is None:
            raise InvalidTransitionError('Select a ticket tier first')
        return self.selection

    def _ensure_selection_unlocked(self) -> None:
        if self.state in LOCKED_SELECTION_STATES:
            raise InvalidTransitionError(f'Selection cannot change while {self.state}')

    async def _persist_selection(self) -> None:
        selection = self._require_selection()
        await self._store.set(
            event_id=self.event_id,
            stored=StoredSelection(selection=selection, quantity=self.quantity),
        )

    async def _teardown_payment_surfaces(self) -> None:
        for adapter in self._adapters.values():
            await adapter.teardown()

    # --------------------------------------------------------------- recovery

    @Logger.io
    async def restore(self) -> AcquisitionState:
        """Rehydrate from the selection store after a reload instead of forcing a re-pick"""
        if self.selection is not None:
            return self.state
        stored = await self._store.get(event_id=self.event_id)
        if stored is None:
            return self.state

        self.selection = stored.selection
        self.quantity = stored.quantity
        self._transition(S.SELECTED)

        ticket = await self._admission_client.recover(event_id=self.event_id)
        if ticket is None or ticket.is_lost:
            return self.state
        self._transition(S.READY if ticket.is_ready else S.ADMISSION_WAIT)
        return self.state

    # -------------------------------------------------------------- selection

    @Logger.io
    async def select_tier(self, *, selection: TicketSelection) -> AcquisitionState:
        self._ensure_selection_unlocked()
        await self._teardown_payment_surfaces()
        self.selection = selection
        self.quantity = 1
        self.notice = None
        if self._unfinalized is not None:
            Logger.base.warning(
                f'💸 [ACQUISITION] Paid attempt {self._unfinalized.id} for event={self.event_id} '
                f'abandoned unfinalized, reference={self._unfinalized.payment_reference}'
            )
            self._unfinalized = None
        await self._persist_selection()
        self._transition(S.SELECTED)
        return self.state

    @Logger.io
    async def change_quantity(self, *, quantity: int) -> AcquisitionState:
        selection = self._require_selection()
        self._ensure_selection_unlocked()
        try:
            selection.validate_quantity(quantity)
        except InvalidQuantityError as e:
            self.notice = AcquisitionNotice.action(e.message)
            raise
        await self._teardown_payment_surfaces()
        self.quantity = quantity
        self.notice = None
        await self._persist_selection()
        self._transition(S.SELECTED)
        return self.state

    @Logger.io
    async def select_provider(self, *, provider: PaymentProvider) -> AcquisitionState:
        if provider not in self._adapters:
            raise DomainError(f'Payment provider {provider} is not available')
        self._ensure_selection_unlocked()
        # The old surface goes first, two live surfaces must never coexist
        await self._teardown_payment_surfaces()
        self.provider = provider
        return self.state

    # -------------------------------------------------------------- admission

    @Logger.io
    async def proceed(self, *, buyer: Optional[BuyerInfo] = None) -> AcquisitionState:
        """Selected -> Ready, through the admission queue when demand is high"""
        if self.state not in (S.SELECTED, S.ADMISSION_WAIT):
            raise InvalidTransitionError(f'Cannot proceed from {self.state}')
        selection = self._require_selection()

        if not selection.requires_admission(self._policy.high_demand_threshold):
            self._transition(S.READY)
            return self.state

        held = self._admission_client.current(event_id=self.event_id)
        if held is not None and held.is_ready:
            # Ready ticket from an earlier background join
            self._transition(S.READY)
            return self.state

        guest = buyer if isinstance(buyer, GuestBuyer) else None
        return await self._run_admission(lambda: self._join_and_wait(guest))

    @Logger.io
    async def rejoin_queue(self) -> AcquisitionState:
        if self.state is not S.ADMISSION_WAIT:
            raise InvalidTransitionError(f'Nothing to rejoin from {self.state}')
        # The running wait watches the dead queue entry, it goes first
        await self._stop_admission_wait()
        return await self._run_admission(self._rejoin_and_wait)

    async def _run_admission(
        self, step: Callable[[], Awaitable[AcquisitionState]]
    ) -> AcquisitionState:
        """At most one join/wait per orchestrator, cancellable as a whole by leave()"""
        with self._admission_guard.claim() as claimed:
            if not claimed:
                Logger.base.info(
                    f'⏭️ [ACQUISITION] admission wait already running for event={self.event_id}'
                )
                return self.state
            done = anyio.Event()
            self._admission_done = done
            try:
                with anyio.CancelScope() as scope:
                    self._admission_scope = scope
                    return await step()
                Logger.base.info(f'🚪 [ACQUISITION] Admission wait left for event={self.event_id}')
                return self.state
            finally:
                self._admission_scope = None
                self._admission_done = None
                done.set()

    async def _stop_admission_wait(self) -> None:
        scope, done = self._admission_scope, self._admission_done
        if scope is None or done is None:
            return
        scope.cancel()
        await done.wait()

    async def _join_and_wait(self, guest: Optional[GuestBuyer]) -> AcquisitionState:
        if self.state is S.SELECTED:
            self._transition(S.ADMISSION_WAIT)
            ticket = await self._admission_client.join(event_id=self.event_id, guest_info=guest)
            if ticket.is_lost:
                self.notice = AcquisitionNotice.action(_JOIN_FAILED_MESSAGE)
                return self.state
            if ticket.is_ready:
                self._transition(S.READY)
                return self.state
        return await self._await_admission()

    async def _rejoin_and_wait(self) -> AcquisitionState:
        ticket = await self._admission_client.rejoin(event_id=self.event_id)
        if ticket.is_lost:
            self.notice = AcquisitionNotice.action(_JOIN_FAILED_MESSAGE)
            return self.state
        self.notice = None
        if ticket.is_ready:
            self._transition(S.READY)
            return self.state
        return await self._await_admission()

    async def _await_admission(self) -> AcquisitionState:
        ticket = await self._admission_client.wait_until_ready(event_id=self.event_id)
        if ticket.is_ready:
            self.notice = None
            self._transition(S.READY)
        else:
            self.notice = AcquisitionNotice.action(_QUEUE_LOST_MESSAGE)
        return self.state

    # ---------------------------------------------------------------- payment

    @Logger.io
    async def pay(self, *, buyer: BuyerInfo) -> AcquisitionState:
        with self._pay_guard.claim() as claimed:
            if not claimed:
                Logger.base.info(f'⏭️ [ACQUISITION] pay already in flight for event={self.event_id}')
                return self.state
            if self.state is not S.READY:
                raise InvalidTransitionError(f'Cannot pay from {self.state}')
            selection = self._require_selection()

            try:
                buyer = validate_buyer_info(buyer)
            except ContactInfoError as e:
                self.notice = AcquisitionNotice.action(e.message)
                raise
            self.notice = None
            self._payment_context = _PaymentContext(
                tier_id=selection.tier_id, quantity=self.quantity, buyer=buyer
            )

            if selection.is_free:
                return await self._finalize(context=self._payment_context, payment_outcome=None)

            adapter = self._adapters[self.provider]
            request = PaymentRequest(
                amount=selection.total_price(self.quantity),
                currency=selection.currency,
                description=f'{self.quantity} x {selection.name}',
                payer_email=buyer.payer_email,
            )
            self._transition(S.PAYMENT_IN_FLIGHT)
            try:
                with self.tracer.start_as_current_span(
                    'acquisition.pay',
                    attributes={'event.id': self.event_id, 'payment.provider': self.provider.value},
                ):
                    outcome = await adapter.pay(request=request)
            except Exception as e:
                return self._fail_unexpected(e)
            return await self.handle_payment_outcome(outcome=outcome)

    @Logger.io
    async def handle_payment_outcome(self, *, outcome: PaymentOutcome) -> AcquisitionState:
        """Entry point for provider results; a success reference is consumed at most once"""
        if outcome.is_success:
            assert outcome.reference is not None
            if outcome.reference in self._consumed_references:
                Logger.base.warning(
                    f'🔁 [ACQUISITION] Duplicate payment outcome {outcome.reference} ignored'
                )
                return self.state
            self._consumed_references.add(outcome.reference)
            context = self._payment_context
            if context is None:
                raise InvalidTransitionError('No payment was started for this outcome')
            return await self._finalize(context=context, payment_outcome=outcome)

        if self.state is not S.PAYMENT_IN_FLIGHT:
            # Late failure from a surface that was already torn down
            return self.state
        self.notice = self._payment_failure_notice(outcome)
        self._transition(S.FAILED)
        self._transition(S.READY)
        return self.state

    def _payment_failure_notice(self, outcome: PaymentOutcome) -> AcquisitionNotice:
        failure = outcome.failure
        if outcome.status is PaymentStatus.CANCELLED:
            return AcquisitionNotice.retry(_CANCELLED_MESSAGE)
        if isinstance(failure, CaptureFailedError):
            return AcquisitionNotice.support(
                'Your payment was authorized but could not be completed.',
                reference=failure.reference or outcome.reference or '',
            )
        if isinstance(failure, ConfigurationUnavailableError):
            return AcquisitionNotice.retry(
                f'{failure.message}. Please choose another payment method.'
            )
        if failure is not None:
            return AcquisitionNotice.retry(f'{failure.message}. Please try again.')
        return AcquisitionNotice.retry('Payment failed. Please try again.')

    # --------------------------------------------------------------- finalize

    @Logger.io
    async def retry_finalize(self) -> AcquisitionState:
        """Manual resubmit of a payment that settled but was not turned into tickets"""
        if self.state is not S.FAILED or self._unfinalized is None:
            raise InvalidTransitionError('There is no paid purchase waiting to be finalized')
        attempt = self._unfinalized
        return await self._finalize(
            context=_PaymentContext(
                tier_id=attempt.tier_id, quantity=attempt.quantity, buyer=attempt.buyer
            ),
            payment_outcome=attempt.payment_outcome,
        )

    async def _finalize(
        self, *, context: _PaymentContext, payment_outcome: Optional[PaymentOutcome]
    ) -> AcquisitionState:
        # Callback-driven and manual-retry finalize share this guard
        with self._finalize_guard.claim() as claimed:
            if not claimed:
                Logger.base.info(f'⏭️ [ACQUISITION] finalize already in flight for {self.event_id}')
                return self.state

            attempt = PurchaseAttempt.start(
                event_id=self.event_id,
                tier_id=context.tier_id,
                quantity=context.quantity,
                buyer=context.buyer,
                payment_outcome=payment_outcome,
            )
            self.attempts.append(attempt)
            self._transition(S.FINALIZING)

            try:
                with self.tracer.start_as_current_span(
                    'acquisition.finalize',
                    attributes={'event.id': self.event_id, 'purchase.attempt': attempt.id},
                ):
                    tickets = await self._finalizer.finalize(
                        event_id=self.event_id,
                        tier_id=context.tier_id,
                        quantity=context.quantity,
                        buyer=context.buyer,
                        payment_outcome=payment_outcome,
                    )
            except ReconciliationError as e:
                attempt.fail(e.message)
                self._unfinalized = attempt
                self.notice = AcquisitionNotice.support(e.message, reference=e.reference)
                self._transition(S.FAILED)
                return self.state
            except (PurchaseRejectedError, ContactInfoError, InvalidQuantityError) as e:
                attempt.fail(e.message)
                self.notice = AcquisitionNotice.retry(f'{e.message}. Please try again.')
                self._transition(S.FAILED)
                self._transition(S.READY)
                return self.state
            except Exception as e:
                attempt.fail(str(e))
                if payment_outcome is not None and payment_outcome.reference:
                    Logger.base.exception(f'🚨 [ACQUISITION] Finalize crashed after payment: {e}')
                    self._unfinalized = attempt
                    self.notice = AcquisitionNotice.support(
                        'Your payment was received but the ticket could not be issued. '
                        'Please contact support.',
                        reference=payment_outcome.reference,
                    )
                    self._transition(S.FAILED)
                    return self.state
                return self._fail_unexpected(e)

            attempt.succeed(tickets)
            self._unfinalized = None
            self.confirmation = attempt.confirmation()
            self.notice = None
            await self._store.remove(event_id=self.event_id)
            await self._admission_client.complete(event_id=self.event_id)
            self._transition(S.SUCCESS)
            return self.state

    def _fail_unexpected(self, error: Exception) -> AcquisitionState:
        Logger.base.exception(f'💥 [ACQUISITION] Unexpected failure in {self.state}: {error}')
        self.notice = AcquisitionNotice.retry(_UNEXPECTED_MESSAGE)
        self._transition(S.FAILED)
        return self.state

    # ----------------------------------------------------------- cancellation

    @Logger.io
    async def leave(self) -> None:
        """
        Buyer closed the flow. Polling and push stop and the payment surface is
        discarded, but the admission slot is not completed and the stored
        selection stays, so the buyer can come back.
        """
        await self._stop_admission_wait()
        await self._teardown_payment_surfaces()
        Logger.base.info(f'🚪 [ACQUISITION] Left event={self.event_id} in {self.state}')

    # ------------------------------------------------------------------- view

    def view(self) -> AcquisitionView:
        queue = None
        ticket = self._admission_client.current(event_id=self.event_id)
        if ticket is not None:
            warning_state, countdown = self._admission_client.timeout_warning(
                event_id=self.event_id
            )
            queue = AcquisitionView.queue_status(
                ticket,
                minutes_per_buyer=self._policy.minutes_per_queued_buyer,
                timeout_warning=warning_state,
                warning_countdown_seconds=countdown,
            )
        adapter = self._adapters.get(self.provider)
        return AcquisitionView(
            event_id=self.event_id,
            state=self.state,
            provider=self.provider,
            quantity=self.quantity,
            selection=self.selection,
            queue=queue,
            payment_surface=adapter.surface if adapter else None,
            awaiting_payment_callback=any(a.awaiting_callback for a in self._adapters.values()),
            notice=self.notice,
            confirmation=self.confirmation,
        )
