"""Payment provider DTOs shared by the ports, the adapters and the callback controller."""

from typing import Optional

import attrs

from src.service.acquisition.domain.enum.payment_status import PaymentProvider


@attrs.define(frozen=True)
class CheckoutSession:
    """Redirect checkout opened at the synchronous provider"""

    reference: str
    authorization_url: str
    access_code: Optional[str] = None


@attrs.define(frozen=True)
class ProviderClientConfig:
    """Server-issued client configuration the asynchronous provider SDK is keyed by"""

    client_id: str
    currency: str = 'USD'
    intent: str = 'capture'


@attrs.define(frozen=True)
class SdkHandle:
    client_id: str
    currency: str
    script_url: str


@attrs.define(frozen=True)
class CaptureResult:
    capture_id: str
    status: str
    order_id: str

    @property
    def is_completed(self) -> bool:
        return self.status.upper() == 'COMPLETED'


@attrs.define(frozen=True)
class CallbackResult:
    """
    What a provider told us about one pending session.

    status is the provider's raw status string ('success', 'approved', 'failed', ...);
    cancelled is set only by the distinct cancel callbacks, render_failed only when
    the approval surface reports that the SDK could not draw it.
    """

    status: str
    reference: Optional[str] = None
    transaction_id: Optional[str] = None
    cancelled: bool = False
    render_failed: bool = False

    @classmethod
    def cancel(cls, reference: Optional[str] = None) -> 'CallbackResult':
        return cls(status='cancelled', reference=reference, cancelled=True)

    @classmethod
    def render_error(cls, reference: Optional[str] = None) -> 'CallbackResult':
        return cls(status='render_error', reference=reference, render_failed=True)


@attrs.define(frozen=True)
class PaymentSurface:
    """The interactive payment surface currently mounted for the buyer"""

    provider: PaymentProvider
    reference: str
    redirect_url: Optional[str] = None  # checkout: where to send the buyer
    script_url: Optional[str] = None  # order: SDK bundle that renders the approval buttons
