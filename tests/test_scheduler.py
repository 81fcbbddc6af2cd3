from __future__ import annotations

import pytest

from src.orchestrate.scheduler import RECENT_RUNS_KEPT, PeriodicTrigger


class _FakeOrchestrator:
    def __init__(self, *, running: bool = False) -> None:
        self.running = running
        self.triggered = 0

    def trigger_async(self) -> str:
        self.triggered += 1
        return f"run-{self.triggered}"


def test_tick_triggers_a_run_when_idle() -> None:
    orchestrator = _FakeOrchestrator()
    trigger = PeriodicTrigger(orchestrator, interval_minutes=30)

    assert trigger.tick() == "run-1"
    assert list(trigger.triggered_runs) == ["run-1"]


def test_tick_is_skipped_while_a_run_is_in_flight() -> None:
    orchestrator = _FakeOrchestrator(running=True)
    trigger = PeriodicTrigger(orchestrator, interval_minutes=30)

    assert trigger.tick() is None
    assert orchestrator.triggered == 0


def test_start_and_stop_manage_the_background_thread() -> None:
    trigger = PeriodicTrigger(_FakeOrchestrator(), interval_minutes=30)

    trigger.start()
    assert trigger.is_running is True
    trigger.stop(timeout=2)

    assert trigger.is_running is False


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PeriodicTrigger(_FakeOrchestrator(), interval_minutes=0)


def test_triggered_run_history_is_bounded() -> None:
    trigger = PeriodicTrigger(_FakeOrchestrator(), interval_minutes=30)

    for _ in range(RECENT_RUNS_KEPT + 5):
        trigger.tick()

    assert len(trigger.triggered_runs) == RECENT_RUNS_KEPT
    assert trigger.triggered_runs[0] == "run-6"
    assert trigger.triggered_runs[-1] == f"run-{RECENT_RUNS_KEPT + 5}"
