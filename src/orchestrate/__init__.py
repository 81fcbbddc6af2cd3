"""Scrape orchestration: circuit breakers, run policy and the periodic trigger."""

from src.orchestrate.circuit_breaker import CircuitBreakerRegistry, CircuitBreakerState, CircuitState
from src.orchestrate.orchestrator import Orchestrator
from src.orchestrate.scheduler import PeriodicTrigger
from src.orchestrate.settings import PipelineSettings, load_settings
from src.orchestrate.summary import AdapterOutcome, RunSummary

__all__ = [
    "AdapterOutcome",
    "CircuitBreakerRegistry",
    "CircuitBreakerState",
    "CircuitState",
    "Orchestrator",
    "PeriodicTrigger",
    "PipelineSettings",
    "RunSummary",
    "load_settings",
]
