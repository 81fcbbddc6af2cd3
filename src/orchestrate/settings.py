from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from src.validate.weights import QualityWeights

MAX_VALIDATION_CONCURRENCY = 3


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    """Run policy for the orchestrator; loaded once at startup."""

    quality_threshold: int = 70
    request_timeout_seconds: float = 15.0
    max_redirects: int = 5
    adapter_timeout_seconds: float = 60.0
    max_adapter_workers: int = 6
    validation_concurrency: int = 1
    validation_delay_seconds: float = 1.5
    breaker_failure_threshold: int = 3
    breaker_cooldown_seconds: float = 300.0
    adapter_requests_per_second: float = 1.0
    adapter_max_retries: int = 3
    adapter_backoff_factor: float = 0.5
    schedule_interval_minutes: Optional[float] = None
    disabled_adapters: tuple[str, ...] = ()
    quality_weights: QualityWeights = field(default_factory=QualityWeights.baseline)

    def __post_init__(self) -> None:
        if not 0 <= self.quality_threshold <= 100:
            raise ValueError("quality_threshold must be between 0 and 100.")
        for field_name in (
            "request_timeout_seconds",
            "adapter_timeout_seconds",
            "breaker_cooldown_seconds",
            "validation_delay_seconds",
            "adapter_requests_per_second",
            "adapter_backoff_factor",
        ):
            value = float(getattr(self, field_name))
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"Setting '{field_name}' must be a finite non-negative number.")
        if self.request_timeout_seconds <= 0 or self.adapter_timeout_seconds <= 0:
            raise ValueError("Timeouts must be positive.")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be non-negative.")
        if self.max_adapter_workers < 1:
            raise ValueError("max_adapter_workers must be at least 1.")
        if not 1 <= self.validation_concurrency <= MAX_VALIDATION_CONCURRENCY:
            raise ValueError(
                f"validation_concurrency must be between 1 and {MAX_VALIDATION_CONCURRENCY}."
            )
        if self.breaker_failure_threshold < 1:
            raise ValueError("breaker_failure_threshold must be at least 1.")
        if self.adapter_max_retries < 0:
            raise ValueError("adapter_max_retries must be non-negative.")
        if self.schedule_interval_minutes is not None and self.schedule_interval_minutes <= 0:
            raise ValueError("schedule_interval_minutes must be positive when set.")

    @classmethod
    def baseline(cls) -> PipelineSettings:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> PipelineSettings:
        values = dict(payload or {})
        unknown = set(values) - {item.name for item in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown pipeline setting(s): {', '.join(sorted(unknown))}.")

        baseline = cls.baseline()
        resolved: dict[str, Any] = {}
        for item in fields(cls):
            if item.name not in values:
                continue
            raw = values[item.name]
            default = getattr(baseline, item.name)
            if item.name == "quality_weights":
                resolved[item.name] = QualityWeights.from_mapping(raw)
            elif item.name == "disabled_adapters":
                resolved[item.name] = tuple(str(name) for name in raw or ())
            elif item.name == "schedule_interval_minutes":
                resolved[item.name] = None if raw is None else float(raw)
            elif isinstance(default, bool):
                resolved[item.name] = bool(raw)
            elif isinstance(default, int):
                number = float(raw)
                if not number.is_integer():
                    raise ValueError(f"Setting '{item.name}' must be a whole number.")
                resolved[item.name] = int(number)
            else:
                resolved[item.name] = float(raw)
        return replace(baseline, **resolved)

    def to_dict(self) -> dict[str, Any]:
        payload = {item.name: getattr(self, item.name) for item in fields(self)}
        payload["disabled_adapters"] = list(self.disabled_adapters)
        payload["quality_weights"] = self.quality_weights.to_dict()
        return payload


def load_settings(path: Path | None) -> PipelineSettings:
    if path is None or not path.exists():
        return PipelineSettings.baseline()
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Settings file '{path}' must contain a JSON object.")
    return PipelineSettings.from_mapping(payload)
