"""Buyer contact details, validated once before money or inventory is touched."""

import re
from typing import Optional, Union

import attrs

from src.service.acquisition.domain.acquisition_error import ContactInfoError


_PHONE_PATTERN = re.compile(r'^\+?[0-9][0-9 ()\-]{5,19}$')
_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


@attrs.define(frozen=True)
class AuthenticatedBuyer:
    """Logged-in buyer: name and email are known server-side, only the SMS phone is sent"""

    user_id: str
    phone: str
    email: Optional[str] = None  # payer email for the checkout provider
    access_token: Optional[str] = attrs.field(default=None, repr=False)

    @property
    def payer_email(self) -> Optional[str]:
        return self.email


@attrs.define(frozen=True)
class GuestBuyer:
    name: str
    email: str
    phone: str

    @property
    def payer_email(self) -> Optional[str]:
        return self.email


BuyerInfo = Union[AuthenticatedBuyer, GuestBuyer]


def _is_valid_phone(phone: str) -> bool:
    return bool(_PHONE_PATTERN.match(phone))


def validate_buyer_info(buyer: BuyerInfo) -> BuyerInfo:
    """
    Return a whitespace-normalized copy of the buyer or raise ContactInfoError
    naming every missing field. Phone is mandatory for both variants.
    """
    missing: list[str] = []
    phone = (buyer.phone or '').strip()
    if not _is_valid_phone(phone):
        missing.append('phone')

    if isinstance(buyer, GuestBuyer):
        name = (buyer.name or '').strip()
        email = (buyer.email or '').strip()
        if not name:
            missing.append('name')
        if not _EMAIL_PATTERN.match(email):
            missing.append('email')
        if missing:
            raise ContactInfoError(missing)
        return GuestBuyer(name=name, email=email, phone=phone)

    if missing:
        raise ContactInfoError(missing)
    return attrs.evolve(buyer, phone=phone)
