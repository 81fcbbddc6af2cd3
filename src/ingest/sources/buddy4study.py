from __future__ import annotations

from src.ingest.listing import HtmlListingAdapter


class Buddy4StudyAdapter(HtmlListingAdapter):
    """Aggregator listings; links back to the listing index are treated as generic."""

    name = "buddy4study"
    seed_urls = ("https://www.buddy4study.com/scholarships",)
    provider = "Buddy4Study"
