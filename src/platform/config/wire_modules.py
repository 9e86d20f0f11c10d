"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.acquisition.driving_adapter.http_controller import (
    acquisition_session_controller,
    payment_callback_controller,
)


WIRE_MODULES: list[ModuleType] = [
    acquisition_session_controller,
    payment_callback_controller,
]
