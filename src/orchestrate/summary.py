from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"
STATUS_TIMED_OUT = "timed_out"
STATUS_SKIPPED = "skipped"
STATUS_DISABLED = "disabled"
STATUS_STOPPED = "stopped"
STATUS_PENDING = "pending"

FAILURE_STATUSES = frozenset({STATUS_FAILED, STATUS_TIMED_OUT})


@dataclass(slots=True)
class AdapterOutcome:
    adapter_name: str
    status: str = STATUS_PENDING
    invoked: bool = False
    candidates: int = 0
    accepted: int = 0
    rejected: int = 0
    duplicates: int = 0
    persistence_errors: int = 0
    network_failures: int = 0
    rejection_reasons: Counter[str] = field(default_factory=Counter)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "adapter_name": self.adapter_name,
            "status": self.status,
            "invoked": self.invoked,
            "candidates": self.candidates,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "duplicates": self.duplicates,
            "persistence_errors": self.persistence_errors,
            "network_failures": self.network_failures,
            "rejection_reasons": dict(sorted(self.rejection_reasons.items())),
            "error": self.error,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass(slots=True)
class RunSummary:
    """Aggregate result of one orchestration pass; totals are derived from the per-adapter outcomes."""

    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    adapters: dict[str, AdapterOutcome] = field(default_factory=dict)
    stopped: bool = False

    def outcome(self, adapter_name: str) -> AdapterOutcome:
        return self.adapters.setdefault(adapter_name, AdapterOutcome(adapter_name=adapter_name))

    def _names_with(self, *statuses: str) -> list[str]:
        return [name for name, outcome in self.adapters.items() if outcome.status in statuses]

    @property
    def adapters_invoked(self) -> list[str]:
        return [name for name, outcome in self.adapters.items() if outcome.invoked]

    @property
    def adapters_skipped(self) -> list[str]:
        return self._names_with(STATUS_SKIPPED)

    @property
    def adapters_disabled(self) -> list[str]:
        return self._names_with(STATUS_DISABLED)

    @property
    def adapters_failed(self) -> list[str]:
        return self._names_with(*FAILURE_STATUSES)

    @property
    def total_candidates(self) -> int:
        return sum(outcome.candidates for outcome in self.adapters.values())

    @property
    def total_accepted(self) -> int:
        return sum(outcome.accepted for outcome in self.adapters.values())

    @property
    def total_rejected(self) -> int:
        return sum(outcome.rejected for outcome in self.adapters.values())

    @property
    def total_duplicates(self) -> int:
        return sum(outcome.duplicates for outcome in self.adapters.values())

    @property
    def persistence_errors(self) -> int:
        return sum(outcome.persistence_errors for outcome in self.adapters.values())

    @property
    def rejection_reasons(self) -> dict[str, int]:
        merged: Counter[str] = Counter()
        for outcome in self.adapters.values():
            merged.update(outcome.rejection_reasons)
        return dict(sorted(merged.items()))

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def all_invoked_failed(self) -> bool:
        invoked = self.adapters_invoked
        return bool(invoked) and all(self.adapters[name].status in FAILURE_STATUSES for name in invoked)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "stopped": self.stopped,
            "adapters_invoked": self.adapters_invoked,
            "adapters_skipped": self.adapters_skipped,
            "adapters_disabled": self.adapters_disabled,
            "adapters_failed": self.adapters_failed,
            "total_candidates": self.total_candidates,
            "total_accepted": self.total_accepted,
            "total_rejected": self.total_rejected,
            "total_duplicates": self.total_duplicates,
            "persistence_errors": self.persistence_errors,
            "rejection_reasons": self.rejection_reasons,
            "adapters": {name: outcome.to_dict() for name, outcome in sorted(self.adapters.items())},
        }
