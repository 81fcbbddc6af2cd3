from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional

from src.orchestrate.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

RECENT_RUNS_KEPT = 50


class PeriodicTrigger:
    """Calls ``trigger_async`` every ``interval_minutes``; a tick is skipped while a run is in flight."""

    def __init__(self, orchestrator: Orchestrator, *, interval_minutes: float) -> None:
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive.")
        self.orchestrator = orchestrator
        self.interval_seconds = interval_minutes * 60.0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.triggered_runs: deque[str] = deque(maxlen=RECENT_RUNS_KEPT)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="scrape-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduled scraping every %.1f minutes", self.interval_seconds / 60.0)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Scheduled scraping stopped")

    def tick(self) -> Optional[str]:
        if self.orchestrator.running:
            logger.info("Scheduled run skipped: a run is already in progress")
            return None
        run_id = self.orchestrator.trigger_async()
        self.triggered_runs.append(run_id)
        return run_id

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.tick()
            except Exception:
                logger.exception("Scheduled trigger failed")
