from enum import StrEnum


class PaymentStatus(StrEnum):
    SUCCESS = 'success'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


class PaymentProvider(StrEnum):
    """
    CHECKOUT: synchronous redirect checkout, settled by a single callback (minor units)
    ORDER: asynchronous create-order -> approval -> capture (major units)
    """

    CHECKOUT = 'checkout'
    ORDER = 'order'
