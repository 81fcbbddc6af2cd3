from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest

from src.orchestrate.circuit_breaker import CircuitBreakerRegistry, CircuitState


class _FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _registry(clock: _FakeClock) -> CircuitBreakerRegistry:
    registry = CircuitBreakerRegistry(failure_threshold=3, cooldown_seconds=300, clock=clock)
    registry.register("nsp")
    registry.register("ugc")
    return registry


def test_breaker_opens_after_exactly_threshold_failures() -> None:
    registry = _registry(_FakeClock())

    registry.record_failure("nsp")
    registry.record_failure("nsp")
    assert registry.is_available("nsp") is True

    registry.record_failure("nsp")
    state = registry.get("nsp")
    assert registry.is_available("nsp") is False
    assert state.state is CircuitState.OPEN
    assert state.opened_at is not None
    assert state.consecutive_failures == 3
    assert registry.is_available("ugc") is True


def test_success_resets_the_failure_count() -> None:
    registry = _registry(_FakeClock())

    registry.record_failure("nsp")
    registry.record_failure("nsp")
    registry.record_success("nsp")
    registry.record_failure("nsp")

    assert registry.get("nsp").consecutive_failures == 1
    assert registry.is_available("nsp") is True


def test_exactly_one_probe_after_cooldown_then_close_on_success() -> None:
    clock = _FakeClock()
    registry = _registry(clock)
    for _ in range(3):
        registry.record_failure("nsp")

    clock.advance(299)
    assert registry.is_available("nsp") is False

    clock.advance(1)
    assert registry.is_available("nsp") is True
    assert registry.get("nsp").state is CircuitState.HALF_OPEN
    assert registry.is_available("nsp") is False

    registry.record_success("nsp")
    state = registry.get("nsp")
    assert state.state is CircuitState.CLOSED
    assert state.consecutive_failures == 0
    assert state.opened_at is None


def test_failed_probe_reopens_with_fresh_cooldown() -> None:
    clock = _FakeClock()
    registry = _registry(clock)
    for _ in range(3):
        registry.record_failure("nsp")
    clock.advance(300)
    assert registry.is_available("nsp") is True

    registry.record_failure("nsp")
    state = registry.get("nsp")
    assert state.state is CircuitState.OPEN
    assert state.opened_at == clock.now

    clock.advance(100)
    assert registry.is_available("nsp") is False


def test_released_probe_can_probe_again() -> None:
    clock = _FakeClock()
    registry = _registry(clock)
    for _ in range(3):
        registry.record_failure("nsp")
    clock.advance(300)
    assert registry.is_available("nsp") is True

    registry.release_probe("nsp")

    assert registry.get("nsp").state is CircuitState.OPEN
    assert registry.is_available("nsp") is True


def test_reset_one_or_all() -> None:
    registry = _registry(_FakeClock())
    for _ in range(3):
        registry.record_failure("nsp")
        registry.record_failure("ugc")

    registry.reset("nsp")
    assert registry.is_available("nsp") is True
    assert registry.is_available("ugc") is False

    registry.reset()
    snapshot = registry.snapshot()
    assert {name: state.state for name, state in snapshot.items()} == {
        "nsp": CircuitState.CLOSED,
        "ugc": CircuitState.CLOSED,
    }
    assert all(state.consecutive_failures == 0 for state in snapshot.values())


def test_snapshot_returns_copies() -> None:
    registry = _registry(_FakeClock())

    snapshot = registry.snapshot()
    snapshot["nsp"].consecutive_failures = 99

    assert registry.get("nsp").consecutive_failures == 0
    assert snapshot["nsp"].to_dict()["state"] == "CLOSED"


def test_unregistered_adapter_raises_key_error() -> None:
    registry = _registry(_FakeClock())

    with pytest.raises(KeyError):
        registry.record_failure("missing")
    with pytest.raises(KeyError):
        registry.is_available("missing")


def _run_together(count: int, target) -> list:
    barrier = threading.Barrier(count)
    results: list = []
    results_lock = threading.Lock()

    def _worker() -> None:
        barrier.wait()
        value = target()
        with results_lock:
            results.append(value)

    threads = [threading.Thread(target=_worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)
    return results


def test_concurrent_failures_are_all_counted() -> None:
    registry = CircuitBreakerRegistry(failure_threshold=3, cooldown_seconds=300, clock=_FakeClock())
    registry.register("nsp")

    _run_together(20, lambda: registry.record_failure("nsp"))

    state = registry.get("nsp")
    assert state.consecutive_failures == 20
    assert state.state is CircuitState.OPEN


def test_only_one_concurrent_caller_is_let_through_after_cooldown() -> None:
    clock = _FakeClock()
    registry = _registry(clock)
    for _ in range(3):
        registry.record_failure("nsp")
    clock.advance(301)

    results = _run_together(16, lambda: registry.is_available("nsp"))

    assert len(results) == 16
    assert results.count(True) == 1
    assert registry.get("nsp").state is CircuitState.HALF_OPEN
