from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class Candidate:
    """Raw scholarship listing produced by a scraper adapter, before validation."""

    title: str
    application_link: str
    source_name: str
    description: str = ""
    amount: str = ""
    deadline: Optional[date | str] = None
    provider: Optional[str] = None
    eligibility: Optional[str] = None
    source_url: Optional[str] = None

    def __post_init__(self) -> None:
        title = " ".join(str(self.title or "").split())
        if not title:
            raise ValueError("Candidate title must be non-empty.")
        object.__setattr__(self, "title", title)
        object.__setattr__(self, "application_link", str(self.application_link or "").strip())
        object.__setattr__(self, "description", str(self.description or "").strip())
        object.__setattr__(self, "amount", str(self.amount or "").strip())

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        if isinstance(self.deadline, date):
            payload["deadline"] = self.deadline.isoformat()
        return payload


@dataclass(slots=True)
class ScholarshipRecord:
    """Persisted scholarship: a candidate plus its validation metadata."""

    uniqueness_key: str
    title: str
    normalized_title: str
    application_link: str
    source_name: str
    description: str
    amount: str
    deadline: Optional[str]
    provider: Optional[str]
    eligibility: Optional[str]
    source_url: Optional[str]
    quality_score: int
    validation_status: str
    validated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
