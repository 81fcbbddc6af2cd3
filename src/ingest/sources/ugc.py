from __future__ import annotations

from src.ingest.listing import HtmlListingAdapter


class UgcAdapter(HtmlListingAdapter):
    name = "ugc"
    seed_urls = ("https://www.ugc.ac.in/page/Scholarships-and-Fellowships.aspx",)
    provider = "University Grants Commission"
    keywords = ("scholarship", "fellowship", "award", "grant")
