from __future__ import annotations

from src.normalize.canonical_id import generate_uniqueness_key, normalize_link, normalize_title


def test_normalize_title_strips_punctuation_and_case() -> None:
    assert normalize_title("  Post-Matric Scholarship (2026), SC/ST!  ") == "post matric scholarship 2026 sc st"
    assert normalize_title(None) == ""
    assert normalize_title("!!!") == ""


def test_normalize_link_drops_fragment_www_and_trailing_slash() -> None:
    assert (
        normalize_link("HTTPS://www.Scholarships.gov.in/apply/?b=2&a=1#top")
        == "https://scholarships.gov.in/apply?a=1&b=2"
    )
    assert normalize_link("") == ""


def test_generate_uniqueness_key_is_stable_for_same_input() -> None:
    first = generate_uniqueness_key(
        application_link="https://scholarships.gov.in/apply",
        title="National Merit Scholarship",
    )
    second = generate_uniqueness_key(
        application_link="https://www.scholarships.gov.in/apply/",
        title="national merit scholarship!",
    )

    assert first == second
    assert len(first) == 40


def test_generate_uniqueness_key_changes_when_title_changes() -> None:
    base = generate_uniqueness_key(
        application_link="https://scholarships.gov.in/apply",
        title="National Merit Scholarship",
    )
    changed = generate_uniqueness_key(
        application_link="https://scholarships.gov.in/apply",
        title="National Means Scholarship",
    )

    assert base != changed
