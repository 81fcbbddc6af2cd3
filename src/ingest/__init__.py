from __future__ import annotations

from .base import AdapterFetchError, BaseScraperAdapter
from .http import PoliteHttpClient
from .listing import HtmlListingAdapter
from .registry import AdapterEntry, AdapterRegistry, register_adapters

__all__ = [
    "AdapterEntry",
    "AdapterFetchError",
    "AdapterRegistry",
    "BaseScraperAdapter",
    "HtmlListingAdapter",
    "PoliteHttpClient",
    "register_adapters",
]
