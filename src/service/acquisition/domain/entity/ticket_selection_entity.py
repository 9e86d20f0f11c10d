from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.acquisition.domain.acquisition_error import InvalidQuantityError


@attrs.define(frozen=True)
class TicketSelection:
    """
    The tier a buyer intends to buy.

    Inventory numbers are an advisory snapshot: the purchase API is the only
    writer and the only authority on what is actually left.
    """

    tier_id: str
    name: str
    price: Decimal = attrs.field(converter=Decimal)
    currency: str
    total_inventory: int
    units_sold: int

    def __attrs_post_init__(self) -> None:
        if self.price < 0:
            raise DomainError('Ticket price cannot be negative')
        if self.units_sold < 0 or self.total_inventory < 0:
            raise DomainError('Inventory counts cannot be negative')
        if self.units_sold > self.total_inventory:
            raise DomainError(
                f'units_sold ({self.units_sold}) exceeds total_inventory ({self.total_inventory})'
            )

    @property
    def remaining(self) -> int:
        return self.total_inventory - self.units_sold

    @property
    def is_free(self) -> bool:
        return self.price == 0

    def requires_admission(self, high_demand_threshold: int) -> bool:
        return self.units_sold > high_demand_threshold

    def validate_quantity(self, quantity: int) -> int:
        if quantity < 1:
            raise InvalidQuantityError('Quantity must be at least 1')
        if quantity > self.remaining:
            raise InvalidQuantityError(f'Only {self.remaining} tickets available')
        return quantity

    def total_price(self, quantity: int) -> Decimal:
        return self.price * quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            'tier_id': self.tier_id,
            'name': self.name,
            'price': str(self.price),
            'currency': self.currency,
            'total_inventory': self.total_inventory,
            'units_sold': self.units_sold,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'TicketSelection':
        return cls(
            tier_id=str(data['tier_id']),
            name=data['name'],
            price=Decimal(str(data['price'])),
            currency=data['currency'],
            total_inventory=int(data['total_inventory']),
            units_sold=int(data['units_sold']),
        )


@attrs.define(frozen=True)
class StoredSelection:
    """Shadow copy kept by the selection store, it owns nothing"""

    selection: TicketSelection
    quantity: int = 1
    saved_at: datetime = attrs.field(factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            'selection': self.selection.to_dict(),
            'quantity': self.quantity,
            'saved_at': self.saved_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'StoredSelection':
        return cls(
            selection=TicketSelection.from_dict(data['selection']),
            quantity=int(data.get('quantity', 1)),
            saved_at=datetime.fromisoformat(data['saved_at']),
        )
