from __future__ import annotations

from src.ingest.listing import HtmlListingAdapter


class VidyaLakshmiAdapter(HtmlListingAdapter):
    name = "vidya_lakshmi"
    seed_urls = ("https://www.vidyalakshmi.co.in/Students/",)
    provider = "Vidya Lakshmi Portal"
    keywords = ("scholarship", "scheme", "interest subsidy")
