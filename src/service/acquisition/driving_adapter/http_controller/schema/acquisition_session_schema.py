"""
Acquisition session API schemas - Pydantic models for request/response
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from src.service.acquisition.domain.entity.ticket_selection_entity import TicketSelection
from src.service.acquisition.domain.enum import (
    AcquisitionState,
    NoticeKind,
    PaymentProvider,
    TimeoutWarningState,
)
from src.service.acquisition.domain.value_object.buyer_info import (
    AuthenticatedBuyer,
    BuyerInfo,
    GuestBuyer,
)


class OpenSessionRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    event_id: str = Field(..., min_length=1)
    provider: PaymentProvider = PaymentProvider.CHECKOUT
    remember_selection: bool = True

    model_config = {
        'json_schema_extra': {
            'example': {'session_id': 'sess-7f3a', 'event_id': 'evt-1', 'provider': 'checkout'}
        }
    }


class SelectTierRequest(BaseModel):
    """Tier snapshot as listed to the buyer; inventory numbers are advisory"""

    tier_id: str
    name: str
    price: Decimal = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    total_inventory: int = Field(..., ge=0)
    units_sold: int = Field(..., ge=0)

    model_config = {
        'json_schema_extra': {
            'example': {
                'tier_id': 'tier-vip',
                'name': 'VIP',
                'price': '120.00',
                'currency': 'USD',
                'total_inventory': 100,
                'units_sold': 15,
            }
        }
    }

    def to_selection(self) -> TicketSelection:
        return TicketSelection(
            tier_id=self.tier_id,
            name=self.name,
            price=self.price,
            currency=self.currency,
            total_inventory=self.total_inventory,
            units_sold=self.units_sold,
        )


class ChangeQuantityRequest(BaseModel):
    quantity: int


class SelectProviderRequest(BaseModel):
    provider: PaymentProvider


class GuestContact(BaseModel):
    name: str
    email: str
    phone: str

    def to_buyer(self) -> GuestBuyer:
        return GuestBuyer(name=self.name, email=self.email, phone=self.phone)


class ProceedRequest(BaseModel):
    guest: Optional[GuestContact] = None


class PayRequest(BaseModel):
    """Logged-in buyers send user_id and phone, guests send name, email and phone"""

    phone: str
    user_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None

    model_config = {
        'json_schema_extra': {
            'example': {'name': 'Ada Lovelace', 'email': 'ada@example.com', 'phone': '+15550100'}
        }
    }

    def to_buyer(self) -> BuyerInfo:
        if self.user_id:
            return AuthenticatedBuyer(user_id=self.user_id, phone=self.phone, email=self.email)
        return GuestBuyer(name=self.name or '', email=self.email or '', phone=self.phone)


class TicketSelectionResponse(BaseModel):
    tier_id: str
    name: str
    price: Decimal
    currency: str
    total_inventory: int
    units_sold: int

    model_config = {'from_attributes': True}


class QueueStatusResponse(BaseModel):
    position: int
    total: int
    position_label: str
    estimated_wait_minutes: int
    is_processing: bool
    timeout_warning: TimeoutWarningState
    warning_countdown_seconds: Optional[int] = None

    model_config = {'from_attributes': True}


class PaymentSurfaceResponse(BaseModel):
    provider: PaymentProvider
    reference: str
    redirect_url: Optional[str] = None
    script_url: Optional[str] = None

    model_config = {'from_attributes': True}


class NoticeResponse(BaseModel):
    kind: NoticeKind
    message: str
    reference: Optional[str] = None

    model_config = {'from_attributes': True}


class ConfirmationResponse(BaseModel):
    event_id: str
    ticket_id: str
    ticket_number: str
    quantity: int
    payment_reference: Optional[str] = None

    model_config = {'from_attributes': True}


class AcquisitionViewResponse(BaseModel):
    event_id: str
    state: AcquisitionState
    provider: PaymentProvider
    quantity: int
    selection: Optional[TicketSelectionResponse] = None
    queue: Optional[QueueStatusResponse] = None
    payment_surface: Optional[PaymentSurfaceResponse] = None
    awaiting_payment_callback: bool = False
    notice: Optional[NoticeResponse] = None
    confirmation: Optional[ConfirmationResponse] = None

    model_config = {'from_attributes': True}
