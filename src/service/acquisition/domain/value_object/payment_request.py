from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import attrs

from src.platform.exception.exceptions import DomainError


# Every currency the providers are configured for uses two decimal places
_MINOR_UNITS_PER_MAJOR = Decimal(100)
_CENT = Decimal('0.01')


def _positive(instance: 'PaymentRequest', attribute: attrs.Attribute, value: Decimal) -> None:
    if value <= 0:
        raise DomainError(f'{attribute.name} must be positive')


@attrs.define(frozen=True)
class PaymentRequest:
    """What the buyer is about to pay, in major units"""

    amount: Decimal = attrs.field(converter=Decimal, validator=_positive)
    currency: str
    description: str
    payer_email: Optional[str] = None

    def minor_units(self) -> int:
        return int((self.amount * _MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), ROUND_HALF_UP))

    def major_units(self) -> str:
        return str(self.amount.quantize(_CENT, ROUND_HALF_UP))
