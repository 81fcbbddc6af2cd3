from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.validate.weights import QualityWeights

TIER_GOVERNMENT_ACADEMIC = "government/academic"
TIER_ORG_EDU = "org/edu"
TIER_COMMERCIAL = "commercial"

COMPONENTS = (
    "reachability",
    "security",
    "latency",
    "relevance",
    "affordance",
    "contact",
    "domain_tier",
)


@dataclass(frozen=True, slots=True)
class ValidationInputs:
    """Observed facts about one fetched link; everything the score depends on."""

    http_status: Optional[int]
    redirects_exhausted: bool
    is_secure: bool
    response_time_ms: int
    keyword_hits: int
    has_application_affordance: bool
    has_contact_signal: bool
    domain_tier: str


def empty_breakdown() -> dict[str, int]:
    return {component: 0 for component in COMPONENTS}


def reachability_points(inputs: ValidationInputs, weights: QualityWeights) -> int:
    status = inputs.http_status
    if status is None:
        return 0
    if status == 200:
        return weights.status_ok
    if 200 <= status < 300:
        return weights.status_success
    if 300 <= status < 400 and inputs.redirects_exhausted:
        return weights.status_redirect
    return 0


def latency_points(response_time_ms: int, weights: QualityWeights) -> int:
    if response_time_ms < weights.fast_ms:
        return weights.latency_fast
    if response_time_ms < weights.acceptable_ms:
        return weights.latency_acceptable
    return 0


def tier_points(domain_tier: str, weights: QualityWeights) -> int:
    if domain_tier == TIER_GOVERNMENT_ACADEMIC:
        return weights.tier_government_academic
    if domain_tier == TIER_ORG_EDU:
        return weights.tier_org_edu
    return 0


def score_link(
    inputs: ValidationInputs,
    weights: QualityWeights | None = None,
) -> tuple[int, dict[str, int]]:
    """Return ``(quality_score, breakdown)``; the score is the clamped sum of the breakdown."""

    resolved = weights or QualityWeights.baseline()
    if inputs.http_status is None:
        return 0, empty_breakdown()

    breakdown = {
        "reachability": reachability_points(inputs, resolved),
        "security": resolved.secure if inputs.is_secure else 0,
        "latency": latency_points(inputs.response_time_ms, resolved),
        "relevance": resolved.relevance if inputs.keyword_hits >= resolved.min_keyword_hits else 0,
        "affordance": resolved.affordance if inputs.has_application_affordance else 0,
        "contact": resolved.contact if inputs.has_contact_signal else 0,
        "domain_tier": tier_points(inputs.domain_tier, resolved),
    }
    score = max(0, min(100, sum(breakdown.values())))
    return score, breakdown
