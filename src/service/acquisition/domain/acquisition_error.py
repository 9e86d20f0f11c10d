"""
Acquisition error taxonomy

- Recoverable locally: AdmissionServiceError (position check transport failure)
- User actionable: ContactInfoError, InvalidQuantityError
- Provider terminal for the attempt: UserCancelledError, ProviderRenderError,
  ConfigurationUnavailableError, PaymentDeclinedError
- Reconciliation grade: CaptureFailedError, ReconciliationError (always carry the reference)
"""

from typing import Optional

from src.platform.exception.exceptions import (
    ConflictError,
    CustomBaseError,
    DomainError,
    ExternalServiceError,
)


class AdmissionServiceError(ExternalServiceError):
    pass


class PaymentError(CustomBaseError):
    """Base for provider adapter failures, carried inside PaymentOutcome.failure"""

    retryable: bool = True

    def __init__(
        self, message: str, *, reference: Optional[str] = None, status_code: int = 402
    ) -> None:
        self.reference = reference
        super().__init__(message, status_code)


class ConfigurationUnavailableError(PaymentError):
    """Provider config could not be issued, retrying the same provider will not help"""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=503)


class ProviderRenderError(PaymentError):
    def __init__(self, message: str, *, reference: Optional[str] = None) -> None:
        super().__init__(message, reference=reference, status_code=502)


class UserCancelledError(PaymentError):
    def __init__(
        self, message: str = 'Payment was cancelled', *, reference: Optional[str] = None
    ) -> None:
        super().__init__(message, reference=reference, status_code=400)


class PaymentDeclinedError(PaymentError):
    pass


class CaptureFailedError(PaymentError):
    """Authorized but not settled"""

    retryable = False

    def __init__(self, message: str, *, reference: str) -> None:
        super().__init__(f'{message} (reference: {reference})', reference=reference, status_code=502)


class PurchaseApiError(ExternalServiceError):
    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message, status_code)


class PurchaseRejectedError(DomainError):
    """Purchase refused before any money moved, safe to retry"""


class ReconciliationError(CustomBaseError):
    """Payment settled but no ticket was issued"""

    def __init__(self, *, reference: str, detail: str) -> None:
        self.reference = reference
        self.detail = detail
        super().__init__(
            f'Your payment was received but the ticket could not be issued: {detail}. '
            f'Please contact support with payment reference {reference}.',
            502,
        )


class ContactInfoError(DomainError):
    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = missing_fields
        super().__init__(f'Missing or invalid contact details: {", ".join(missing_fields)}')


class InvalidQuantityError(DomainError):
    pass


class InvalidTransitionError(ConflictError):
    pass
