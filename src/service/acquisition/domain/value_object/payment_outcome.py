from typing import Optional

import attrs

from src.service.acquisition.domain.acquisition_error import PaymentError, UserCancelledError
from src.service.acquisition.domain.enum.payment_status import PaymentProvider, PaymentStatus


@attrs.define(frozen=True)
class PaymentOutcome:
    """
    Normalized result of either payment provider.

    A success must carry a non-empty provider reference; the finalizer consumes
    each successful outcome at most once, keyed by that reference.
    """

    status: PaymentStatus
    provider: PaymentProvider
    currency: str
    reference: Optional[str] = attrs.field(default=None)
    transaction_id: Optional[str] = None
    failure: Optional[PaymentError] = attrs.field(default=None, eq=False)

    @reference.validator
    def _check_reference(self, attribute: attrs.Attribute, value: Optional[str]) -> None:
        if self.status is PaymentStatus.SUCCESS and not (value and value.strip()):
            raise ValueError('A successful payment outcome must carry a provider reference')

    @property
    def is_success(self) -> bool:
        return self.status is PaymentStatus.SUCCESS

    @classmethod
    def succeeded(
        cls,
        *,
        provider: PaymentProvider,
        currency: str,
        reference: str,
        transaction_id: Optional[str] = None,
    ) -> 'PaymentOutcome':
        return cls(
            status=PaymentStatus.SUCCESS,
            provider=provider,
            currency=currency,
            reference=reference,
            transaction_id=transaction_id,
        )

    @classmethod
    def cancelled(
        cls, *, provider: PaymentProvider, currency: str, reference: Optional[str] = None
    ) -> 'PaymentOutcome':
        return cls(
            status=PaymentStatus.CANCELLED,
            provider=provider,
            currency=currency,
            reference=reference,
            failure=UserCancelledError(reference=reference),
        )

    @classmethod
    def failed(
        cls, *, provider: PaymentProvider, currency: str, failure: PaymentError
    ) -> 'PaymentOutcome':
        # UserCancelledError travels as a cancellation, never as a failure toast
        status = (
            PaymentStatus.CANCELLED
            if isinstance(failure, UserCancelledError)
            else PaymentStatus.FAILED
        )
        return cls(
            status=status,
            provider=provider,
            currency=currency,
            reference=failure.reference,
            failure=failure,
        )
