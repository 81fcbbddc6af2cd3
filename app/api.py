"""FastAPI control plane for the scrape orchestrator.

A thin HTTP boundary: it triggers background runs, reports adapter and
breaker status, resets breakers and stops in-flight runs. Run outcomes are
only visible through ``GET /scrapers/status``; triggering always succeeds
immediately.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, Optional

from fastapi import FastAPI
from pydantic import BaseModel, Field

from src.orchestrate.orchestrator import Orchestrator
from src.orchestrate.scheduler import PeriodicTrigger

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class TriggerResponse(BaseModel):
    accepted: bool = True
    run_id: str
    message: str = "Scraping run started in the background"


class AdapterStatus(BaseModel):
    enabled: bool
    circuit_open: bool
    failure_count: int
    state: str


class StatusResponse(BaseModel):
    """Per-adapter breaker state plus the most recent run summary, if any."""

    per_adapter: dict[str, AdapterStatus]
    last_run_summary: Optional[dict[str, Any]] = None
    running: bool
    validation_stats: dict[str, Any] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    ok: bool = True
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    scheduler_running: bool
    version: str = API_VERSION


def create_app(orchestrator: Orchestrator, scheduler: PeriodicTrigger | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore[type-arg]
        logger.info("Control plane starting with %d adapters", len(orchestrator.registry))
        if scheduler is not None:
            scheduler.start()
        yield
        if scheduler is not None:
            scheduler.stop()
        stopped = orchestrator.stop()
        logger.info("Control plane shutting down; signalled %d in-flight runs", stopped)

    app = FastAPI(
        title="Scholarship Link Pipeline",
        description="Trigger, inspect and stop scholarship scraping runs",
        version=API_VERSION,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler

    @app.post("/scrapers/trigger", response_model=TriggerResponse, status_code=202, tags=["scrapers"])
    async def trigger_run() -> TriggerResponse:
        run_id = orchestrator.trigger_async()
        return TriggerResponse(run_id=run_id)

    @app.get("/scrapers/status", response_model=StatusResponse, tags=["scrapers"])
    async def get_status() -> StatusResponse:
        return StatusResponse(**orchestrator.status_report())

    @app.post("/scrapers/reset-circuit-breakers", response_model=ActionResponse, tags=["scrapers"])
    async def reset_circuit_breakers() -> ActionResponse:
        orchestrator.breakers.reset()
        return ActionResponse(message="All circuit breakers reset to CLOSED")

    @app.post("/scrapers/stop", response_model=ActionResponse, tags=["scrapers"])
    async def stop_runs() -> ActionResponse:
        stopped = orchestrator.stop()
        return ActionResponse(message=f"Stop requested for {stopped} in-flight run(s)")

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(tz=UTC).isoformat(),
            scheduler_running=scheduler is not None and scheduler.is_running,
        )

    return app
