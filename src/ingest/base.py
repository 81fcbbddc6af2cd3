from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from src.normalize.schema import Candidate


class AdapterFetchError(RuntimeError):
    """Raised when an adapter could not fetch any of its seed pages."""


class BaseScraperAdapter(ABC):
    """One external scholarship source.

    ``scrape`` extracts raw candidates only. Malformed items and individual
    failing seed pages are skipped; the method raises only when the whole
    source is unusable, which the orchestrator counts as one failure.
    """

    name: ClassVar[str]
    seed_urls: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def scrape(self, http_client: Any) -> list[Candidate]:
        """Fetch the seed pages and return the candidates found on them."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
