from __future__ import annotations

import logging
import math
import threading
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

import pandas as pd

from src.dedupe.duplicates import matches_listing
from src.io.atomic import write_parquet_atomic
from src.normalize.canonical_id import generate_uniqueness_key, normalize_title
from src.normalize.schema import Candidate, ScholarshipRecord
from src.validate.link_validator import ValidationResult

logger = logging.getLogger(__name__)

VALIDATION_STATUS_VERIFIED = "verified"

RECORD_COLUMNS = [
    "uniqueness_key",
    "title",
    "normalized_title",
    "application_link",
    "source_name",
    "description",
    "amount",
    "deadline",
    "provider",
    "eligibility",
    "source_url",
    "quality_score",
    "validation_status",
    "validated_at",
]


class ScholarshipStore(Protocol):
    def find_duplicate_candidates(self, link: str, normalized_title: str) -> list[ScholarshipRecord]:
        ...

    def save(self, candidate: Candidate, validation: ValidationResult) -> ScholarshipRecord:
        ...

    def count(self) -> int:
        ...


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _deadline_text(value: date | str | None) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def build_record(candidate: Candidate, validation: ValidationResult, *, validated_at: datetime) -> ScholarshipRecord:
    return ScholarshipRecord(
        uniqueness_key=generate_uniqueness_key(
            application_link=candidate.application_link,
            title=candidate.title,
        ),
        title=candidate.title,
        normalized_title=normalize_title(candidate.title),
        application_link=candidate.application_link,
        source_name=candidate.source_name,
        description=candidate.description,
        amount=candidate.amount,
        deadline=_deadline_text(candidate.deadline),
        provider=candidate.provider,
        eligibility=candidate.eligibility,
        source_url=candidate.source_url,
        quality_score=validation.quality_score,
        validation_status=VALIDATION_STATUS_VERIFIED,
        validated_at=validated_at,
    )


class InMemoryScholarshipStore:
    """Records keyed by uniqueness key; ``save`` on an existing key refreshes it in place."""

    def __init__(
        self,
        records: list[ScholarshipRecord] | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._records: dict[str, ScholarshipRecord] = {}
        self._lock = threading.RLock()
        self._clock = clock or _utc_now
        for record in records or []:
            self._records[record.uniqueness_key] = record

    def find_duplicate_candidates(self, link: str, normalized_title: str) -> list[ScholarshipRecord]:
        with self._lock:
            return [
                record
                for record in self._records.values()
                if matches_listing(record, link, normalized_title)
            ]

    def save(self, candidate: Candidate, validation: ValidationResult) -> ScholarshipRecord:
        record = build_record(candidate, validation, validated_at=self._clock())
        with self._lock:
            existing = self._records.get(record.uniqueness_key)
            if existing is not None:
                previous = (existing.quality_score, existing.validated_at)
                existing.quality_score = record.quality_score
                existing.validated_at = record.validated_at
                try:
                    self._persist()
                except Exception:
                    existing.quality_score, existing.validated_at = previous
                    raise
                return existing

            self._records[record.uniqueness_key] = record
            try:
                self._persist()
            except Exception:
                del self._records[record.uniqueness_key]
                raise
        return record

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> list[ScholarshipRecord]:
        with self._lock:
            return list(self._records.values())

    def _persist(self) -> None:
        """Called with the lock held after every mutation."""


def _clean_optional(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return str(value)


def _record_from_row(row: dict[str, Any]) -> ScholarshipRecord:
    validated_at = datetime.fromisoformat(str(row["validated_at"]))
    if validated_at.tzinfo is None:
        validated_at = validated_at.replace(tzinfo=UTC)
    return ScholarshipRecord(
        uniqueness_key=str(row["uniqueness_key"]),
        title=str(row["title"]),
        normalized_title=str(row["normalized_title"]),
        application_link=str(row["application_link"]),
        source_name=str(row["source_name"]),
        description=_clean_optional(row.get("description")) or "",
        amount=_clean_optional(row.get("amount")) or "",
        deadline=_clean_optional(row.get("deadline")),
        provider=_clean_optional(row.get("provider")),
        eligibility=_clean_optional(row.get("eligibility")),
        source_url=_clean_optional(row.get("source_url")),
        quality_score=int(row["quality_score"]),
        validation_status=str(row["validation_status"]),
        validated_at=validated_at,
    )


def records_to_frame(records: list[ScholarshipRecord]) -> pd.DataFrame:
    rows = []
    for record in records:
        row = record.to_dict()
        row["validated_at"] = record.validated_at.isoformat()
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    df["quality_score"] = df["quality_score"].astype("int64")
    return df.sort_values(by=["uniqueness_key"], kind="mergesort").reset_index(drop=True)


def load_records(path: Path) -> list[ScholarshipRecord]:
    if not path.exists():
        return []
    df = pd.read_parquet(path)
    return [_record_from_row(row) for row in df.to_dict(orient="records")]


class ParquetScholarshipStore(InMemoryScholarshipStore):
    """File-backed store: the whole table is rewritten atomically on each save."""

    def __init__(self, path: Path, *, clock: Callable[[], datetime] | None = None) -> None:
        self.path = Path(path)
        records = load_records(self.path)
        super().__init__(records, clock=clock)
        logger.info("Loaded %d scholarship records from %s", len(records), self.path)

    def _persist(self) -> None:
        write_parquet_atomic(records_to_frame(list(self._records.values())), self.path)
