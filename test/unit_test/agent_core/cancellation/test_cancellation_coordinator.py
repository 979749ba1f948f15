"""Unit tests for CancellationCoordinator and CancellationScope."""

from __future__ import annotations

import pytest

from steerable_agent.agent_core.cancellation import CancellationCoordinator, CancellationSource
from steerable_agent.agent_core.errors import InvalidStateError


class TestCancellationCoordinator:
    def test_request_cancel_trips_active_scope(self) -> None:
        coordinator = CancellationCoordinator()
        scope = coordinator.begin_scope()

        coordinator.request_cancel()

        assert scope.is_cancellation_requested
        assert scope.internal_requested
        assert scope.external_requested is False
        assert coordinator.is_cancellation_requested

    def test_external_token_trips_scope(self) -> None:
        coordinator = CancellationCoordinator()
        external = CancellationSource()
        scope = coordinator.begin_scope(external.token)

        external.cancel()

        assert scope.token.is_cancelled
        assert scope.external_requested
        assert scope.internal_requested is False

    def test_only_one_scope_at_a_time(self) -> None:
        coordinator = CancellationCoordinator()
        coordinator.begin_scope()

        with pytest.raises(InvalidStateError):
            coordinator.begin_scope()

    def test_release_is_idempotent_and_frees_the_slot(self) -> None:
        coordinator = CancellationCoordinator()
        scope = coordinator.begin_scope()

        scope.release()
        scope.release()

        assert scope.is_released
        assert coordinator.has_active_scope is False
        coordinator.begin_scope()

    def test_scope_as_context_manager(self) -> None:
        coordinator = CancellationCoordinator()

        with coordinator.begin_scope() as scope:
            assert coordinator.has_active_scope

        assert scope.is_released
        assert coordinator.has_active_scope is False

    def test_reset_refused_while_scope_active(self) -> None:
        coordinator = CancellationCoordinator()
        coordinator.begin_scope()

        with pytest.raises(InvalidStateError):
            coordinator.reset()

    def test_reset_clears_request_for_next_scope(self) -> None:
        coordinator = CancellationCoordinator()
        with coordinator.begin_scope():
            coordinator.request_cancel()

        coordinator.reset()
        scope = coordinator.begin_scope()

        assert scope.is_cancellation_requested is False
        assert coordinator.is_cancellation_requested is False

    def test_request_before_scope_is_seen_by_next_scope(self) -> None:
        coordinator = CancellationCoordinator()
        coordinator.request_cancel()

        scope = coordinator.begin_scope()

        assert scope.token.is_cancelled

    def test_external_token_of_released_scope_is_detached(self) -> None:
        coordinator = CancellationCoordinator()
        external = CancellationSource()
        scope = coordinator.begin_scope(external.token)
        linked_token = scope.token
        scope.release()

        external.cancel()

        assert linked_token.is_cancelled is False
        assert coordinator.is_cancellation_requested is False

    def test_token_falls_back_to_internal_when_idle(self) -> None:
        coordinator = CancellationCoordinator()
        token = coordinator.token()

        coordinator.request_cancel()

        assert token.is_cancelled

    def test_request_cancel_twice_is_the_same_as_once(self) -> None:
        coordinator = CancellationCoordinator()
        scope = coordinator.begin_scope()
        fired = []
        scope.token.register(lambda: fired.append(True))

        coordinator.request_cancel()
        coordinator.request_cancel()

        assert fired == [True]
        assert scope.is_cancellation_requested
