"""
Unit tests for PendingCallbackRegistry

- a registered key resolves exactly once
- duplicates and unknown keys are refused
- only one live surface per key
"""

import anyio
import pytest

from src.service.acquisition.app.dto.payment_dto import CallbackResult
from src.service.acquisition.app.service.pending_callback_registry import PendingCallbackRegistry
from src.service.acquisition.domain.acquisition_error import ProviderRenderError


@pytest.fixture
def registry() -> PendingCallbackRegistry:
    return PendingCallbackRegistry(remembered_keys=2)


@pytest.mark.unit
class TestPendingCallbackRegistry:
    @pytest.mark.asyncio
    async def test_waiter_receives_resolution(self, registry: PendingCallbackRegistry) -> None:
        # Arrange
        pending = registry.register('CHK-1')
        result = CallbackResult(status='success', reference='CHK-1', transaction_id='T-1')

        # Act
        assert registry.resolve('CHK-1', result)
        with anyio.fail_after(1):
            received = await pending.wait()

        # Assert
        assert received == result
        assert not registry.is_pending('CHK-1')
        assert registry.was_resolved('CHK-1')

    def test_duplicate_and_unknown_deliveries_are_refused(
        self, registry: PendingCallbackRegistry
    ) -> None:
        registry.register('CHK-1')

        assert registry.resolve('CHK-1', CallbackResult(status='success'))
        assert not registry.resolve('CHK-1', CallbackResult(status='success'))
        assert not registry.resolve('CHK-unknown', CallbackResult(status='success'))

    def test_second_live_surface_for_same_key_is_refused(
        self, registry: PendingCallbackRegistry
    ) -> None:
        registry.register('ORDER-1')

        with pytest.raises(ProviderRenderError, match='already live'):
            registry.register('ORDER-1')

    def test_discarded_key_is_no_longer_pending(self, registry: PendingCallbackRegistry) -> None:
        registry.register('ORDER-1')
        registry.discard('ORDER-1')

        assert not registry.is_pending('ORDER-1')
        assert not registry.resolve('ORDER-1', CallbackResult.cancel('ORDER-1'))

    def test_resolved_key_memory_is_bounded(self, registry: PendingCallbackRegistry) -> None:
        for key in ('A', 'B', 'C'):
            registry.register(key)
            registry.resolve(key, CallbackResult(status='success'))

        assert not registry.was_resolved('A')
        assert registry.was_resolved('C')
