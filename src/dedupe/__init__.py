from __future__ import annotations

from src.dedupe.duplicates import ExistingIndex, RunScopedIndex, is_duplicate, matches_listing, titles_overlap

__all__ = ["ExistingIndex", "RunScopedIndex", "is_duplicate", "matches_listing", "titles_overlap"]
