from __future__ import annotations

from datetime import UTC, datetime

from src.dedupe.duplicates import RunScopedIndex, is_duplicate
from src.io.store import InMemoryScholarshipStore
from src.normalize.schema import Candidate
from src.validate.link_validator import ValidationResult


def _candidate(title: str, link: str) -> Candidate:
    return Candidate(title=title, application_link=link, source_name="fixture")


def _store_with(*candidates: Candidate) -> InMemoryScholarshipStore:
    store = InMemoryScholarshipStore(clock=lambda: datetime(2026, 3, 1, tzinfo=UTC))
    for candidate in candidates:
        store.save(candidate, ValidationResult(quality_score=90, accepted=True))
    return store


def test_exact_link_match_is_duplicate_regardless_of_title() -> None:
    store = _store_with(_candidate("Post Matric Scholarship for SC Students", "https://scholarships.gov.in/apply/1"))

    assert is_duplicate(_candidate("Completely Different Award", "https://scholarships.gov.in/apply/1"), store)


def test_title_substring_is_duplicate_in_either_direction() -> None:
    store = _store_with(_candidate("Post-Matric Scholarship (SC)", "https://scholarships.gov.in/apply/1"))

    shorter = _candidate("post matric scholarship", "https://other.example.org/a")
    longer = _candidate("Post Matric Scholarship SC Students 2026", "https://other.example.org/b")

    assert is_duplicate(shorter, store)
    assert is_duplicate(longer, store)


def test_unrelated_candidate_is_not_duplicate() -> None:
    store = _store_with(_candidate("Post Matric Scholarship", "https://scholarships.gov.in/apply/1"))

    assert not is_duplicate(_candidate("INSPIRE Fellowship", "https://online-inspire.gov.in/"), store)


def test_punctuation_only_title_never_fuzzy_matches() -> None:
    store = _store_with(_candidate("Post Matric Scholarship", "https://scholarships.gov.in/apply/1"))

    assert not is_duplicate(_candidate("!!! ???", "https://scholarships.gov.in/apply/2"), store)


def test_run_scoped_index_sees_in_run_listings_without_touching_the_store() -> None:
    store = _store_with()
    first_run = RunScopedIndex(store)
    first_run.add(_candidate("Pragati Scholarship for Girls", "https://www.aicte-india.org/pragati"))

    assert is_duplicate(_candidate("Pragati Scholarship", "https://example.org/x"), first_run)
    assert len(first_run) == 1
    assert store.count() == 0

    second_run = RunScopedIndex(store)
    assert not is_duplicate(_candidate("Pragati Scholarship", "https://example.org/x"), second_run)
