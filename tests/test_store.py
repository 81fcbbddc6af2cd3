from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import pytest

from src.io.store import InMemoryScholarshipStore, ParquetScholarshipStore
from src.normalize.schema import Candidate
from src.validate.link_validator import ValidationResult


class _FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


def _candidate() -> Candidate:
    return Candidate(
        title="  Central Sector   Scheme of Scholarship ",
        application_link="https://scholarships.gov.in/apply/central-sector",
        source_name="nsp",
        amount="Rs. 20,000 per year",
        deadline=date(2026, 12, 15),
        provider="National Scholarship Portal (Government of India)",
    )


def test_in_memory_save_is_idempotent_on_uniqueness_key() -> None:
    store = InMemoryScholarshipStore(clock=_FakeClock())

    first = store.save(_candidate(), ValidationResult(quality_score=85, accepted=True))
    second = store.save(_candidate(), ValidationResult(quality_score=95, accepted=True))

    assert store.count() == 1
    assert second.uniqueness_key == first.uniqueness_key
    assert store.records()[0].quality_score == 95
    assert first.title == "Central Sector Scheme of Scholarship"
    assert first.normalized_title == "central sector scheme of scholarship"
    assert first.deadline == "2026-12-15"
    assert first.validation_status == "verified"


def test_in_memory_find_duplicate_candidates_filters_by_link_or_title() -> None:
    store = InMemoryScholarshipStore()
    store.save(_candidate(), ValidationResult(quality_score=85, accepted=True))

    assert len(store.find_duplicate_candidates("https://scholarships.gov.in/apply/central-sector", "x")) == 1
    assert len(store.find_duplicate_candidates("https://example.com/other", "central sector scheme")) == 1
    assert store.find_duplicate_candidates("https://example.com/other", "inspire fellowship") == []


def test_parquet_store_round_trips_records(tmp_path: Path) -> None:
    path = tmp_path / "processed" / "scholarships.parquet"
    store = ParquetScholarshipStore(path, clock=_FakeClock())
    saved = store.save(_candidate(), ValidationResult(quality_score=88, accepted=True))

    reloaded = ParquetScholarshipStore(path)

    assert path.exists()
    assert reloaded.count() == 1
    record = reloaded.records()[0]
    assert record.uniqueness_key == saved.uniqueness_key
    assert record.quality_score == 88
    assert record.deadline == "2026-12-15"
    assert record.eligibility is None
    assert record.validated_at == saved.validated_at
    assert list(path.parent.glob("*.tmp")) == []


def test_parquet_store_repeat_save_does_not_add_rows(tmp_path: Path) -> None:
    path = tmp_path / "scholarships.parquet"
    store = ParquetScholarshipStore(path)

    store.save(_candidate(), ValidationResult(quality_score=80, accepted=True))
    store.save(_candidate(), ValidationResult(quality_score=80, accepted=True))

    assert ParquetScholarshipStore(path).count() == 1


def test_failed_write_on_refresh_keeps_the_previous_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "scholarships.parquet"
    store = ParquetScholarshipStore(path, clock=_FakeClock())
    saved = store.save(_candidate(), ValidationResult(quality_score=80, accepted=True))
    original_validated_at = saved.validated_at

    def _fail(*_args, **_kwargs) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("src.io.store.write_parquet_atomic", _fail)
    with pytest.raises(OSError):
        store.save(_candidate(), ValidationResult(quality_score=95, accepted=True))

    record = store.records()[0]
    assert record.quality_score == 80
    assert record.validated_at == original_validated_at
    assert store.count() == 1
