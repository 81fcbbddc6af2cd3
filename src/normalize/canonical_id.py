from __future__ import annotations

import hashlib
import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

_PUNCTUATION_PATTERN = re.compile(r"[^\w\s]+")


def normalize_title(value: Optional[str]) -> str:
    """Lower-case, punctuation-stripped, whitespace-collapsed title."""

    if value is None:
        return ""
    stripped = _PUNCTUATION_PATTERN.sub(" ", value.lower()).replace("_", " ")
    return " ".join(stripped.split())


def normalize_link(value: Optional[str]) -> str:
    if not value:
        return ""
    parsed = urlparse(value.strip())
    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]
    path = parsed.path or "/"
    if path != "/":
        path = path.rstrip("/")
    query_items = sorted((key, val) for key, val in parse_qsl(parsed.query, keep_blank_values=False))
    return urlunparse((scheme, netloc, path, "", urlencode(query_items), ""))


def generate_uniqueness_key(*, application_link: str, title: str) -> str:
    """Build a deterministic key from the normalized link and normalized title."""

    payload = "|".join([normalize_link(application_link), normalize_title(title)])
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
