from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .base import BaseScraperAdapter
from .sources import (
    AicteAdapter,
    Buddy4StudyAdapter,
    NationalScholarshipPortalAdapter,
    UgcAdapter,
    VidyaLakshmiAdapter,
)


@dataclass(slots=True)
class AdapterEntry:
    adapter: BaseScraperAdapter
    enabled: bool = True


class AdapterRegistry:
    """Explicit name -> adapter mapping, populated once at startup."""

    def __init__(self) -> None:
        self._entries: dict[str, AdapterEntry] = {}

    def register(self, adapter: BaseScraperAdapter, *, enabled: bool = True) -> None:
        name = adapter.name
        if not name:
            raise ValueError("Adapter name must be non-empty.")
        if name in self._entries:
            raise ValueError(f"Adapter '{name}' is already registered.")
        self._entries[name] = AdapterEntry(adapter=adapter, enabled=enabled)

    def set_enabled(self, name: str, enabled: bool) -> None:
        self._entries[name].enabled = enabled

    def get(self, name: str) -> AdapterEntry:
        return self._entries[name]

    def names(self) -> list[str]:
        return list(self._entries)

    def __iter__(self) -> Iterator[AdapterEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries


def register_adapters(*, disabled: tuple[str, ...] = ()) -> AdapterRegistry:
    registry = AdapterRegistry()
    for adapter in (
        NationalScholarshipPortalAdapter(),
        UgcAdapter(),
        AicteAdapter(),
        Buddy4StudyAdapter(),
        VidyaLakshmiAdapter(),
    ):
        registry.register(adapter, enabled=adapter.name not in disabled)
    return registry
