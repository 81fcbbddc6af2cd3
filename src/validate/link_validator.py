from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

import requests

from src.normalize.schema import Candidate
from src.validate.scoring import TIER_COMMERCIAL, ValidationInputs, empty_breakdown, score_link
from src.validate.signals import classify_domain, extract_page_signals, is_html_content_type
from src.validate.weights import QualityWeights

logger = logging.getLogger(__name__)

DEFAULT_QUALITY_THRESHOLD = 70
DEFAULT_MAX_REDIRECTS = 5

REASON_INVALID_URL = "invalid_url"
REASON_NETWORK_ERROR = "network_error"
REASON_BELOW_THRESHOLD = "below_threshold"

_REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


@dataclass(slots=True)
class ValidationResult:
    http_status: Optional[int] = None
    is_secure: bool = False
    response_time_ms: int = 0
    has_relevant_content: bool = False
    has_application_affordance: bool = False
    has_contact_signal: bool = False
    domain_tier: str = TIER_COMMERCIAL
    quality_score: int = 0
    accepted: bool = False
    errors: list[str] = field(default_factory=list)
    breakdown: dict[str, int] = field(default_factory=empty_breakdown)
    final_url: Optional[str] = None
    rejection_reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ValidationStats:
    total_validated: int = 0
    passed: int = 0
    failed: int = 0
    score_total: int = 0

    def to_dict(self) -> dict[str, Any]:
        average = self.score_total / self.total_validated if self.total_validated else 0.0
        success_rate = (self.passed / self.total_validated) * 100 if self.total_validated else 0.0
        return {
            "total_validated": self.total_validated,
            "passed": self.passed,
            "failed": self.failed,
            "average_score": round(average, 3),
            "success_rate": round(success_rate, 3),
        }


@dataclass(slots=True)
class _FetchOutcome:
    status: int
    final_url: str
    redirects_exhausted: bool
    elapsed_ms: int
    content_type: str
    body: str


def is_valid_link(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.hostname)


class LinkValidator:
    """Fetches a candidate's application link once and scores what comes back."""

    def __init__(
        self,
        http_client: Any,
        *,
        threshold: int = DEFAULT_QUALITY_THRESHOLD,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        weights: QualityWeights | None = None,
    ) -> None:
        if not 0 <= threshold <= 100:
            raise ValueError("Quality threshold must be between 0 and 100.")
        if max_redirects < 0:
            raise ValueError("max_redirects must be non-negative.")
        self.http_client = http_client
        self.threshold = threshold
        self.max_redirects = max_redirects
        self.weights = weights or QualityWeights.baseline()
        self._stats = ValidationStats()
        self._stats_lock = threading.Lock()

    def validate(self, candidate: Candidate) -> ValidationResult:
        link = candidate.application_link
        result = ValidationResult()

        if not is_valid_link(link):
            result.errors.append(f"Invalid URL format: {link!r}")
            result.rejection_reason = REASON_INVALID_URL
            self._record(result)
            logger.info("Rejected %r: invalid application link %r", candidate.title, link)
            return result

        started_at = time.monotonic()
        try:
            outcome = self._fetch(link)
        except requests.RequestException as exc:
            result.response_time_ms = int((time.monotonic() - started_at) * 1000)
            result.errors.append(f"HTTP error: {type(exc).__name__}: {exc}")
            result.rejection_reason = REASON_NETWORK_ERROR
            self._record(result)
            logger.warning("Link unreachable for %r: %s (%s)", candidate.title, link, type(exc).__name__)
            return result

        result.http_status = outcome.status
        result.final_url = outcome.final_url
        result.response_time_ms = outcome.elapsed_ms
        final = urlparse(outcome.final_url)
        result.is_secure = final.scheme == "https"
        result.domain_tier = classify_domain(final.hostname or "")
        if outcome.status >= 400:
            result.errors.append(f"HTTP status {outcome.status}")
        elif outcome.redirects_exhausted:
            result.errors.append(f"Redirect limit of {self.max_redirects} reached")

        keyword_hits = 0
        if outcome.status < 400 and is_html_content_type(outcome.content_type) and outcome.body:
            signals = extract_page_signals(outcome.body)
            keyword_hits = signals.keyword_hits
            result.has_application_affordance = signals.has_application_affordance
            result.has_contact_signal = signals.has_contact_signal

        inputs = ValidationInputs(
            http_status=outcome.status,
            redirects_exhausted=outcome.redirects_exhausted,
            is_secure=result.is_secure,
            response_time_ms=outcome.elapsed_ms,
            keyword_hits=keyword_hits,
            has_application_affordance=result.has_application_affordance,
            has_contact_signal=result.has_contact_signal,
            domain_tier=result.domain_tier,
        )
        result.quality_score, result.breakdown = score_link(inputs, self.weights)
        result.has_relevant_content = result.breakdown["relevance"] > 0
        result.accepted = result.quality_score >= self.threshold
        if not result.accepted:
            result.rejection_reason = REASON_BELOW_THRESHOLD
        self._record(result)
        logger.info(
            "Validated %r score=%d/100 accepted=%s status=%s",
            candidate.title,
            result.quality_score,
            result.accepted,
            result.http_status,
        )
        return result

    def stats(self) -> dict[str, Any]:
        with self._stats_lock:
            return self._stats.to_dict()

    def _fetch(self, url: str) -> _FetchOutcome:
        started_at = time.monotonic()
        current_url = url
        redirects = 0
        while True:
            response = self.http_client.get_raw(current_url)
            location = response.headers.get("Location")
            if response.status_code in _REDIRECT_STATUSES and location:
                if redirects >= self.max_redirects:
                    response.close()
                    return _FetchOutcome(
                        status=response.status_code,
                        final_url=current_url,
                        redirects_exhausted=True,
                        elapsed_ms=int((time.monotonic() - started_at) * 1000),
                        content_type=response.headers.get("Content-Type", ""),
                        body="",
                    )
                response.close()
                redirects += 1
                current_url = urljoin(current_url, location)
                continue

            content_type = response.headers.get("Content-Type", "")
            body = response.text if is_html_content_type(content_type) else ""
            return _FetchOutcome(
                status=response.status_code,
                final_url=current_url,
                redirects_exhausted=False,
                elapsed_ms=int((time.monotonic() - started_at) * 1000),
                content_type=content_type,
                body=body,
            )

    def _record(self, result: ValidationResult) -> None:
        with self._stats_lock:
            self._stats.total_validated += 1
            self._stats.score_total += result.quality_score
            if result.accepted:
                self._stats.passed += 1
            else:
                self._stats.failed += 1
