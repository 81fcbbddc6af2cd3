from __future__ import annotations

from src.ingest.listing import HtmlListingAdapter


class AicteAdapter(HtmlListingAdapter):
    name = "aicte"
    seed_urls = (
        "https://www.aicte-india.org/schemes",
        "https://www.aicte-india.org/schemes/students-development-schemes",
    )
    provider = "AICTE (All India Council for Technical Education)"
    keywords = ("scholarship", "scheme", "fellowship", "pragati", "saksham")
