from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3
DEFAULT_COOLDOWN_SECONDS = 300.0


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(slots=True)
class CircuitBreakerState:
    adapter_name: str
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    last_failure_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.state is not CircuitState.CLOSED

    def to_dict(self) -> dict[str, Any]:
        return {
            "adapter_name": self.adapter_name,
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "last_failure_at": self.last_failure_at.isoformat() if self.last_failure_at else None,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
        }


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class CircuitBreakerRegistry:
    """Per-adapter CLOSED/OPEN/HALF_OPEN state machines.

    A breaker opens after ``failure_threshold`` consecutive failures. Once
    ``cooldown_seconds`` have passed since it opened, exactly one
    ``is_available`` call is let through as a probe and the breaker moves to
    HALF_OPEN; the probe's outcome closes or re-opens it. All reads and writes
    of one adapter's state hold that adapter's lock.
    """

    def __init__(
        self,
        *,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1.")
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be non-negative.")
        self.failure_threshold = failure_threshold
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self._clock = clock or _utc_now
        self._states: dict[str, CircuitBreakerState] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def register(self, name: str) -> None:
        with self._registry_lock:
            if name in self._states:
                return
            self._states[name] = CircuitBreakerState(adapter_name=name)
            self._locks[name] = threading.Lock()

    def names(self) -> list[str]:
        with self._registry_lock:
            return list(self._states)

    def _entry(self, name: str) -> tuple[CircuitBreakerState, threading.Lock]:
        with self._registry_lock:
            try:
                return self._states[name], self._locks[name]
            except KeyError:
                raise KeyError(f"No circuit breaker registered for adapter '{name}'.") from None

    def is_available(self, name: str) -> bool:
        state, lock = self._entry(name)
        with lock:
            if state.state is CircuitState.CLOSED:
                return True
            if state.state is CircuitState.HALF_OPEN:
                return False
            if state.opened_at is not None and self._clock() - state.opened_at >= self.cooldown:
                state.state = CircuitState.HALF_OPEN
                logger.info("Circuit breaker for %s is HALF_OPEN; allowing one probe", name)
                return True
            return False

    def record_success(self, name: str) -> None:
        state, lock = self._entry(name)
        with lock:
            previous = state.state
            state.state = CircuitState.CLOSED
            state.consecutive_failures = 0
            state.opened_at = None
        if previous is not CircuitState.CLOSED:
            logger.info("Circuit breaker for %s CLOSED after successful probe", name)

    def record_failure(self, name: str) -> None:
        state, lock = self._entry(name)
        with lock:
            now = self._clock()
            state.consecutive_failures += 1
            state.last_failure_at = now
            opened = False
            if state.state is CircuitState.HALF_OPEN:
                opened = True
            elif state.state is CircuitState.CLOSED and state.consecutive_failures >= self.failure_threshold:
                opened = True
            if opened:
                state.state = CircuitState.OPEN
                state.opened_at = now
            failures = state.consecutive_failures
        if opened:
            logger.warning(
                "Circuit breaker OPEN for %s after %d consecutive failures; cooling down for %ss",
                name,
                failures,
                int(self.cooldown.total_seconds()),
            )
        else:
            logger.info("Recorded failure %d/%d for %s", failures, self.failure_threshold, name)

    def release_probe(self, name: str) -> None:
        """Return an abandoned HALF_OPEN probe to OPEN so the next check may probe again."""

        state, lock = self._entry(name)
        with lock:
            if state.state is CircuitState.HALF_OPEN:
                state.state = CircuitState.OPEN

    def reset(self, name: str | None = None) -> None:
        names = [name] if name is not None else self.names()
        for adapter_name in names:
            state, lock = self._entry(adapter_name)
            with lock:
                state.state = CircuitState.CLOSED
                state.consecutive_failures = 0
                state.opened_at = None
                state.last_failure_at = None
        logger.info("Circuit breakers reset: %s", ", ".join(names) if names else "(none registered)")

    def get(self, name: str) -> CircuitBreakerState:
        state, lock = self._entry(name)
        with lock:
            return replace(state)

    def snapshot(self) -> dict[str, CircuitBreakerState]:
        return {name: self.get(name) for name in self.names()}
