from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from typing import Any, Callable, Optional
from uuid import uuid4

from src.dedupe.duplicates import RunScopedIndex, is_duplicate
from src.ingest.base import BaseScraperAdapter
from src.ingest.http import PoliteHttpClient
from src.ingest.registry import AdapterRegistry
from src.io.store import ScholarshipStore
from src.normalize.schema import Candidate
from src.orchestrate.circuit_breaker import CircuitBreakerRegistry
from src.orchestrate.settings import PipelineSettings
from src.orchestrate.summary import (
    STATUS_DISABLED,
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_STOPPED,
    STATUS_SUCCEEDED,
    STATUS_TIMED_OUT,
    AdapterOutcome,
    RunSummary,
)
from src.validate.link_validator import (
    REASON_BELOW_THRESHOLD,
    REASON_NETWORK_ERROR,
    LinkValidator,
    ValidationResult,
)

logger = logging.getLogger(__name__)

REASON_VALIDATION_ERROR = "validation_error"
_POLL_SECONDS = 0.05


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _new_run_id() -> str:
    return uuid4().hex[:12]


class Orchestrator:
    """Runs every enabled, available adapter and pushes its candidates through
    validation, duplicate detection and persistence.

    Adapters scrape concurrently on one pool; each completed adapter's
    candidates are processed in the order returned on a second pool. A run
    never raises because an adapter, a link or a save failed; those outcomes
    are tallied in the returned ``RunSummary``.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        store: ScholarshipStore,
        *,
        settings: PipelineSettings | None = None,
        validator: Any | None = None,
        breakers: CircuitBreakerRegistry | None = None,
        http_client_factory: Callable[[], Any] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings.baseline()
        self.registry = registry
        self.store = store
        self.validator = validator or LinkValidator(
            PoliteHttpClient(
                requests_per_second=0.0,
                timeout_seconds=self.settings.request_timeout_seconds,
                max_retries=0,
            ),
            threshold=self.settings.quality_threshold,
            max_redirects=self.settings.max_redirects,
            weights=self.settings.quality_weights,
        )
        self._clock = clock or _utc_now
        self.breakers = breakers or CircuitBreakerRegistry(
            failure_threshold=self.settings.breaker_failure_threshold,
            cooldown_seconds=self.settings.breaker_cooldown_seconds,
            clock=self._clock,
        )
        for name in registry.names():
            self.breakers.register(name)
        self._client_factory = http_client_factory or self._default_http_client

        self._lock = threading.Lock()
        self._active_runs: dict[str, threading.Event] = {}
        self._threads: dict[str, threading.Thread] = {}
        self._last_summary: Optional[RunSummary] = None

    def _default_http_client(self) -> PoliteHttpClient:
        return PoliteHttpClient(
            requests_per_second=self.settings.adapter_requests_per_second,
            timeout_seconds=self.settings.request_timeout_seconds,
            max_retries=self.settings.adapter_max_retries,
            backoff_factor=self.settings.adapter_backoff_factor,
        )

    @property
    def last_summary(self) -> Optional[RunSummary]:
        with self._lock:
            return self._last_summary

    @property
    def running(self) -> bool:
        with self._lock:
            return bool(self._active_runs)

    def run_once(self, run_id: str | None = None) -> RunSummary:
        resolved_id = run_id or _new_run_id()
        return self._run(resolved_id, self._begin_run(resolved_id))

    def trigger_async(self) -> str:
        """Start a run on a daemon thread and return its id immediately."""

        run_id = _new_run_id()
        stop_event = self._begin_run(run_id)
        thread = threading.Thread(
            target=self._run_in_background,
            args=(run_id, stop_event),
            name=f"scrape-run-{run_id}",
            daemon=True,
        )
        with self._lock:
            self._threads[run_id] = thread
        thread.start()
        logger.info("Triggered background run %s", run_id)
        return run_id

    def wait_for_run(self, run_id: str, timeout: float | None = None) -> bool:
        with self._lock:
            thread = self._threads.get(run_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def stop(self) -> int:
        """Signal every in-flight run to stop; returns how many were signalled."""

        with self._lock:
            events = list(self._active_runs.items())
        for run_id, event in events:
            event.set()
            logger.warning("Stop requested for run %s", run_id)
        return len(events)

    def status(self) -> dict[str, dict[str, Any]]:
        snapshot = self.breakers.snapshot()
        report: dict[str, dict[str, Any]] = {}
        for entry in self.registry:
            name = entry.adapter.name
            state = snapshot[name]
            report[name] = {
                "enabled": entry.enabled,
                "circuit_open": state.is_open,
                "failure_count": state.consecutive_failures,
                "state": state.state.value,
            }
        return report

    def status_report(self) -> dict[str, Any]:
        summary = self.last_summary
        return {
            "per_adapter": self.status(),
            "last_run_summary": summary.to_dict() if summary is not None else None,
            "running": self.running,
            "validation_stats": self.validator.stats(),
        }

    def _begin_run(self, run_id: str) -> threading.Event:
        stop_event = threading.Event()
        with self._lock:
            if run_id in self._active_runs:
                raise ValueError(f"Run '{run_id}' is already in progress.")
            self._active_runs[run_id] = stop_event
        return stop_event

    def _run_in_background(self, run_id: str, stop_event: threading.Event) -> None:
        try:
            self._run(run_id, stop_event)
        except Exception:
            logger.exception("Background run %s crashed", run_id)
        finally:
            with self._lock:
                self._threads.pop(run_id, None)

    def _run(self, run_id: str, stop_event: threading.Event) -> RunSummary:
        summary = RunSummary(run_id=run_id, started_at=self._clock())
        logger.info("Run %s started with %d registered adapters", run_id, len(self.registry))
        try:
            self._execute(summary, stop_event)
        finally:
            summary.finished_at = self._clock()
            summary.stopped = stop_event.is_set()
            with self._lock:
                self._active_runs.pop(run_id, None)
                self._last_summary = summary
        logger.info(
            "Run %s finished in %.1fs: invoked=%d accepted=%d rejected=%d duplicates=%d "
            "persistence_errors=%d stopped=%s",
            run_id,
            summary.duration_seconds,
            len(summary.adapters_invoked),
            summary.total_accepted,
            summary.total_rejected,
            summary.total_duplicates,
            summary.persistence_errors,
            summary.stopped,
        )
        return summary

    def _select_adapters(self, summary: RunSummary, stop_event: threading.Event) -> list[BaseScraperAdapter]:
        runnable: list[BaseScraperAdapter] = []
        for entry in self.registry:
            name = entry.adapter.name
            outcome = summary.outcome(name)
            if not entry.enabled:
                outcome.status = STATUS_DISABLED
            elif stop_event.is_set():
                outcome.status = STATUS_STOPPED
            elif not self.breakers.is_available(name):
                outcome.status = STATUS_SKIPPED
                logger.info("Skipping %s: circuit breaker is open", name)
            else:
                runnable.append(entry.adapter)
        return runnable

    def _execute(self, summary: RunSummary, stop_event: threading.Event) -> None:
        runnable = self._select_adapters(summary, stop_event)
        if not runnable:
            logger.warning("Run %s has no runnable adapters", summary.run_id)
            return

        index = RunScopedIndex(self.store)
        run_lock = threading.Lock()
        started_at: dict[str, float] = {}
        workers = min(len(runnable), self.settings.max_adapter_workers)
        adapter_pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"scrape-{summary.run_id}")
        processing_pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"process-{summary.run_id}")
        abandoned = False
        try:
            scrapes: dict[Future, BaseScraperAdapter] = {
                adapter_pool.submit(self._scrape, adapter, summary.outcome(adapter.name), started_at): adapter
                for adapter in runnable
            }
            processing: list[Future] = []
            timed_out: list[Future] = []
            pending = set(scrapes)
            while pending:
                if stop_event.is_set():
                    for future in pending:
                        future.cancel()
                        self._mark_stopped(summary.outcome(scrapes[future].name))
                    abandoned = True
                    break

                done, pending = wait(pending, timeout=_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    adapter = scrapes[future]
                    candidates = self._collect(future, adapter, summary.outcome(adapter.name))
                    if candidates is not None:
                        processing.append(
                            processing_pool.submit(
                                self._process_candidates,
                                adapter.name,
                                candidates,
                                summary.outcome(adapter.name),
                                index,
                                run_lock,
                                stop_event,
                            )
                        )

                now = time.monotonic()
                for future in list(pending):
                    adapter = scrapes[future]
                    adapter_started = started_at.get(adapter.name)
                    if adapter_started is None or now - adapter_started < self.settings.adapter_timeout_seconds:
                        continue
                    pending.discard(future)
                    timed_out.append(future)
                    abandoned = True
                    self._mark_timed_out(adapter.name, summary.outcome(adapter.name), now - adapter_started)

                # Abandoned scrapes keep their worker; queued adapters starve once every worker is stuck.
                if pending and sum(1 for future in timed_out if not future.done()) >= workers:
                    for future in list(pending):
                        if future.cancel():
                            pending.discard(future)
                            self._mark_starved(summary.outcome(scrapes[future].name))

            remaining = set(processing)
            while remaining:
                if stop_event.is_set():
                    abandoned = True
                    break
                _, remaining = wait(remaining, timeout=_POLL_SECONDS, return_when=FIRST_COMPLETED)
            for future in processing:
                if future.done() and not future.cancelled() and future.exception() is not None:
                    logger.error("Candidate processing crashed", exc_info=future.exception())
        finally:
            adapter_pool.shutdown(wait=not abandoned, cancel_futures=True)
            processing_pool.shutdown(wait=not abandoned, cancel_futures=True)

    def _scrape(
        self,
        adapter: BaseScraperAdapter,
        outcome: AdapterOutcome,
        started_at: dict[str, float],
    ) -> list[Candidate]:
        started_at[adapter.name] = time.monotonic()
        outcome.invoked = True
        http_client = self._client_factory()
        try:
            return list(adapter.scrape(http_client))
        finally:
            http_client.close()

    def _collect(
        self,
        future: Future,
        adapter: BaseScraperAdapter,
        outcome: AdapterOutcome,
    ) -> Optional[list[Candidate]]:
        name = adapter.name
        try:
            candidates = future.result()
        except Exception as exc:
            outcome.status = STATUS_FAILED
            outcome.error = f"{type(exc).__name__}: {exc}"
            self.breakers.record_failure(name)
            logger.exception("Adapter %s failed", name)
            return None

        outcome.status = STATUS_SUCCEEDED
        outcome.candidates = len(candidates)
        self.breakers.record_success(name)
        logger.info("Adapter %s returned %d candidates", name, len(candidates))
        return candidates

    def _mark_timed_out(self, name: str, outcome: AdapterOutcome, elapsed: float) -> None:
        outcome.status = STATUS_TIMED_OUT
        outcome.error = f"Timed out after {elapsed:.1f}s"
        self.breakers.record_failure(name)
        logger.warning(
            "Adapter %s exceeded its %.0fs timeout; abandoning it",
            name,
            self.settings.adapter_timeout_seconds,
        )

    def _mark_starved(self, outcome: AdapterOutcome) -> None:
        outcome.status = STATUS_SKIPPED
        outcome.error = "No free worker: every worker is held by a timed-out scrape"
        self.breakers.release_probe(outcome.adapter_name)
        logger.warning("Skipping %s: %s", outcome.adapter_name, outcome.error)

    def _mark_stopped(self, outcome: AdapterOutcome) -> None:
        outcome.status = STATUS_STOPPED
        self.breakers.release_probe(outcome.adapter_name)

    def _process_candidates(
        self,
        adapter_name: str,
        candidates: list[Candidate],
        outcome: AdapterOutcome,
        index: RunScopedIndex,
        run_lock: threading.Lock,
        stop_event: threading.Event,
    ) -> None:
        started = time.monotonic()
        batch_size = self.settings.validation_concurrency
        delay = self.settings.validation_delay_seconds
        validated = 0
        validation_pool = ThreadPoolExecutor(max_workers=batch_size) if batch_size > 1 else None
        try:
            for offset in range(0, len(candidates), batch_size):
                if offset and stop_event.wait(delay):
                    break
                if stop_event.is_set():
                    break
                batch = candidates[offset : offset + batch_size]
                if validation_pool is None:
                    results = [self._validate(candidate) for candidate in batch]
                else:
                    results = list(validation_pool.map(self._validate, batch))
                if stop_event.is_set():
                    break
                for candidate, result in zip(batch, results):
                    validated += 1
                    self._route(candidate, result, outcome, index, run_lock)
        finally:
            if validation_pool is not None:
                validation_pool.shutdown(wait=False, cancel_futures=True)
            outcome.duration_seconds = time.monotonic() - started

        if stop_event.is_set():
            logger.warning(
                "Adapter %s stopped after %d of %d candidates",
                adapter_name,
                validated,
                len(candidates),
            )
            return
        if validated and outcome.network_failures == validated:
            self.breakers.record_failure(adapter_name)
            logger.warning(
                "Every application link from %s was unreachable; counting a breaker failure",
                adapter_name,
            )

    def _validate(self, candidate: Candidate) -> ValidationResult:
        try:
            return self.validator.validate(candidate)
        except Exception as exc:
            logger.exception("Validation crashed for %r", candidate.title)
            return ValidationResult(
                errors=[f"Validation error: {type(exc).__name__}: {exc}"],
                rejection_reason=REASON_VALIDATION_ERROR,
            )

    def _route(
        self,
        candidate: Candidate,
        result: ValidationResult,
        outcome: AdapterOutcome,
        index: RunScopedIndex,
        run_lock: threading.Lock,
    ) -> None:
        if not result.accepted:
            reason = result.rejection_reason or REASON_BELOW_THRESHOLD
            outcome.rejected += 1
            outcome.rejection_reasons[reason] += 1
            if reason == REASON_NETWORK_ERROR:
                outcome.network_failures += 1
            return

        with run_lock:
            try:
                duplicate = is_duplicate(candidate, index)
                if not duplicate:
                    self.store.save(candidate, result)
            except Exception:
                outcome.persistence_errors += 1
                logger.exception("Failed to persist %r from %s", candidate.title, candidate.source_name)
                return
            if duplicate:
                outcome.duplicates += 1
                logger.info("Duplicate skipped: %r (%s)", candidate.title, candidate.application_link)
                return
            index.add(candidate)
        outcome.accepted += 1
        logger.info("Accepted %r (score %d)", candidate.title, result.quality_score)
