from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping

_POINT_FIELDS = (
    "status_ok",
    "status_success",
    "status_redirect",
    "secure",
    "latency_fast",
    "latency_acceptable",
    "relevance",
    "affordance",
    "contact",
    "tier_government_academic",
    "tier_org_edu",
)


@dataclass(frozen=True, slots=True)
class QualityWeights:
    """Point table for the link quality score; policy, not invariant."""

    status_ok: int
    status_success: int
    status_redirect: int
    secure: int
    latency_fast: int
    latency_acceptable: int
    relevance: int
    affordance: int
    contact: int
    tier_government_academic: int
    tier_org_edu: int
    fast_ms: int = 3000
    acceptable_ms: int = 5000
    min_keyword_hits: int = 3

    def __post_init__(self) -> None:
        for field_name in _POINT_FIELDS:
            value = getattr(self, field_name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Quality weight '{field_name}' must be an integer.")
            if value < 0 or value > 100:
                raise ValueError(f"Quality weight '{field_name}' must be between 0 and 100.")
        if not (0 < self.fast_ms <= self.acceptable_ms):
            raise ValueError("Latency thresholds must satisfy 0 < fast_ms <= acceptable_ms.")
        if self.min_keyword_hits < 1:
            raise ValueError("min_keyword_hits must be at least 1.")

    @classmethod
    def baseline(cls) -> QualityWeights:
        return cls(
            status_ok=40,
            status_success=30,
            status_redirect=20,
            secure=10,
            latency_fast=10,
            latency_acceptable=5,
            relevance=15,
            affordance=10,
            contact=5,
            tier_government_academic=10,
            tier_org_edu=5,
        )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> QualityWeights:
        values = payload or {}
        baseline = cls.baseline()
        resolved: dict[str, int] = {}
        for item in fields(cls):
            raw = values.get(item.name, getattr(baseline, item.name))
            number = float(raw)
            if not math.isfinite(number) or not number.is_integer():
                raise ValueError(f"Quality weight '{item.name}' must be a whole number.")
            resolved[item.name] = int(number)
        return cls(**resolved)

    def to_dict(self) -> dict[str, int]:
        return {item.name: getattr(self, item.name) for item in fields(self)}
