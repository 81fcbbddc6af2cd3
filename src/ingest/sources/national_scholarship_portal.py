from __future__ import annotations

from src.ingest.listing import HtmlListingAdapter


class NationalScholarshipPortalAdapter(HtmlListingAdapter):
    name = "nsp"
    seed_urls = ("https://scholarships.gov.in/", "https://scholarships.gov.in/All-Scholarships")
    provider = "National Scholarship Portal (Government of India)"
    keywords = ("scholarship", "scheme", "fellowship", "matric")
    max_items_per_page = 10
