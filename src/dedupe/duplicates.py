from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable, Protocol

from src.normalize.canonical_id import normalize_link, normalize_title
from src.normalize.schema import Candidate


class ListingLike(Protocol):
    application_link: str
    normalized_title: str


class ExistingIndex(Protocol):
    def find_duplicate_candidates(self, link: str, normalized_title: str) -> Iterable[ListingLike]:
        """Return records that may match ``link`` or ``normalized_title``; may over-select."""


@dataclass(frozen=True, slots=True)
class SeenListing:
    application_link: str
    normalized_title: str


def titles_overlap(left: str, right: str) -> bool:
    if not left or not right:
        return False
    return left in right or right in left


def links_match(left: str, right: str) -> bool:
    if not left or not right:
        return False
    return left == right or normalize_link(left) == normalize_link(right)


def matches_listing(existing: ListingLike, link: str, normalized_title: str) -> bool:
    return links_match(existing.application_link, link) or titles_overlap(
        existing.normalized_title, normalized_title
    )


def is_duplicate(candidate: Candidate, index: ExistingIndex) -> bool:
    """Exact link match, or normalized titles containing one another in either direction.

    The index is only asked for likely matches; the rule itself is re-applied
    here so a loose index cannot produce false duplicates.
    """

    normalized = normalize_title(candidate.title)
    link = candidate.application_link
    return any(
        matches_listing(existing, link, normalized)
        for existing in index.find_duplicate_candidates(link, normalized)
    )


class RunScopedIndex:
    """A read-only base index plus the listings accepted so far in one run.

    Instances are created per run and discarded with it, so listings that were
    accepted but not yet persisted never leak into another run's checks.
    """

    def __init__(self, base: ExistingIndex) -> None:
        self._base = base
        self._seen: list[SeenListing] = []
        self._lock = threading.Lock()

    def add(self, candidate: Candidate) -> None:
        with self._lock:
            self._seen.append(
                SeenListing(
                    application_link=candidate.application_link,
                    normalized_title=normalize_title(candidate.title),
                )
            )

    def find_duplicate_candidates(self, link: str, normalized_title: str) -> list[ListingLike]:
        with self._lock:
            local = [item for item in self._seen if matches_listing(item, link, normalized_title)]
        return [*self._base.find_duplicate_candidates(link, normalized_title), *local]

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
