from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from html import unescape
from html.parser import HTMLParser
from typing import Any, ClassVar
from urllib.parse import urljoin, urlparse

from src.ingest.base import AdapterFetchError, BaseScraperAdapter
from src.normalize.canonical_id import normalize_link
from src.normalize.schema import Candidate

logger = logging.getLogger(__name__)

_WS_PATTERN = re.compile(r"\s+")
_BLOCK_CLASS_PATTERN = re.compile(r"card|item|scheme|scholarship|listing|post|entry", re.IGNORECASE)
_APPLY_PATTERN = re.compile(r"apply|application|register|enrol|form", re.IGNORECASE)
_AMOUNT_PATTERN = re.compile(
    r"(?:₹|INR|Rs\.?|\$)\s?\d[\d,]*(?:\.\d{2})?(?:\s*(?:per|/)\s*(?:year|month|annum))?"
    r"|up\s*to\s*(?:₹|INR|Rs\.?|\$)?\s?\d[\d,]*",
    re.IGNORECASE,
)
_NUMERIC_DATE_PATTERN = re.compile(r"\b(\d{1,2})[/\-.](\d{1,2})[/\-.](20\d{2})\b")
_ISO_DATE_PATTERN = re.compile(r"\b(20\d{2}-\d{2}-\d{2})\b")
_LONG_DATE_PATTERN = re.compile(
    r"\b(\d{1,2}\s+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*,?\s+20\d{2}"
    r"|(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2},\s+20\d{2})\b",
    re.IGNORECASE,
)
_ELIGIBILITY_HINTS = ("eligib", "criteria", "who can apply", "qualification")
_SPAM_WORDS = ("casino", "bet ", "loan", "credit card", "viagra")
_SKIPPED_TAGS = {"script", "style", "noscript", "template"}
_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "strong", "b"}
_ITEM_TAGS = {"li", "tr", "article"}
_ACTION_WORDS = {"apply", "register", "click", "read", "view", "learn", "download"}


@dataclass(slots=True)
class _Link:
    href: str
    text: str = ""
    css_class: str = ""


@dataclass(slots=True)
class _Block:
    text_parts: list[str] = field(default_factory=list)
    heading: str = ""
    links: list[_Link] = field(default_factory=list)

    @property
    def text(self) -> str:
        return _WS_PATTERN.sub(" ", " ".join(self.text_parts)).strip()


class _ListingCollector(HTMLParser):
    """Groups page text, headings and anchors into listing-sized blocks."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.blocks: list[_Block] = []
        self.links: list[_Link] = []
        self._stack: list[tuple[str, _Block | None]] = []
        self._skip_depth = 0
        self._open_link: _Link | None = None
        self._heading_parts: list[str] | None = None

    def _current_block(self) -> _Block | None:
        for _, block in reversed(self._stack):
            if block is not None:
                return block
        return None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag = tag.lower()
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
            return
        attributes = {key.lower(): value or "" for key, value in attrs}
        css_class = attributes.get("class", "")

        if tag in _ITEM_TAGS:
            if self._stack and self._stack[-1][0] == tag:
                self._close_until(tag)
            self._stack.append((tag, _Block()))
        elif tag == "div":
            block = _Block() if _BLOCK_CLASS_PATTERN.search(css_class) else None
            self._stack.append((tag, block))
        elif tag == "a" and attributes.get("href"):
            self._open_link = _Link(href=attributes["href"], css_class=css_class)
        elif tag in _HEADING_TAGS and self._heading_parts is None:
            self._heading_parts = []

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if tag in _ITEM_TAGS or tag == "div":
            self._close_until(tag)
        elif tag == "a" and self._open_link is not None:
            link = self._open_link
            link.text = _WS_PATTERN.sub(" ", link.text).strip()
            self.links.append(link)
            block = self._current_block()
            if block is not None:
                block.links.append(link)
            self._open_link = None
        elif tag in _HEADING_TAGS and self._heading_parts is not None:
            heading = _WS_PATTERN.sub(" ", " ".join(self._heading_parts)).strip()
            block = self._current_block()
            if block is not None and heading and not block.heading:
                block.heading = heading
            self._heading_parts = None

    def handle_data(self, data: str) -> None:
        if self._skip_depth or not data.strip():
            return
        if self._open_link is not None:
            self._open_link.text += f" {data}"
        if self._heading_parts is not None:
            self._heading_parts.append(data)
        block = self._current_block()
        if block is not None:
            block.text_parts.append(data)

    def close(self) -> None:
        super().close()
        while self._stack:
            self._pop()

    def _close_until(self, tag: str) -> None:
        if not any(open_tag == tag for open_tag, _ in self._stack):
            return
        while self._stack:
            open_tag = self._stack[-1][0]
            self._pop()
            if open_tag == tag:
                return

    def _pop(self) -> None:
        _, block = self._stack.pop()
        if block is not None and block.text:
            self.blocks.append(block)


class HtmlListingAdapter(BaseScraperAdapter):
    """Extracts candidates from keyword-bearing blocks of HTML listing pages."""

    provider: ClassVar[str | None] = None
    keywords: ClassVar[tuple[str, ...]] = ("scholarship", "fellowship", "scheme", "grant", "award")
    max_items_per_page: ClassVar[int] = 20
    min_title_length: ClassVar[int] = 10

    def scrape(self, http_client: Any) -> list[Candidate]:
        candidates: list[Candidate] = []
        seen: set[tuple[str, str]] = set()
        failed_seeds = 0

        for seed_url in self.seed_urls:
            try:
                html = http_client.get_text(seed_url)
            except Exception as exc:
                failed_seeds += 1
                logger.warning(
                    "Adapter=%s failed to fetch seed %s (%s)",
                    self.name,
                    seed_url,
                    type(exc).__name__,
                    exc_info=True,
                )
                continue

            for candidate in self.parse_listing_html(html, base_url=seed_url):
                key = (candidate.title.lower(), candidate.application_link)
                if key in seen:
                    continue
                seen.add(key)
                candidates.append(candidate)

        if self.seed_urls and failed_seeds == len(self.seed_urls):
            raise AdapterFetchError(f"All {failed_seeds} seed pages failed for adapter '{self.name}'.")

        logger.info("Adapter=%s seeds=%d candidates=%d", self.name, len(self.seed_urls), len(candidates))
        return candidates

    def parse_listing_html(self, html: str, *, base_url: str) -> list[Candidate]:
        collector = _ListingCollector()
        collector.feed(html)
        collector.close()

        candidates: list[Candidate] = []
        for block in collector.blocks:
            if len(candidates) >= self.max_items_per_page:
                break
            try:
                candidate = self._candidate_from_block(block, base_url=base_url)
            except ValueError as exc:
                logger.debug("Adapter=%s skipped malformed block on %s: %s", self.name, base_url, exc)
                continue
            if candidate is not None:
                candidates.append(candidate)

        if not candidates:
            candidates = self._candidates_from_links(collector.links, base_url=base_url)
        return candidates

    def _candidate_from_block(self, block: _Block, *, base_url: str) -> Candidate | None:
        text = block.text
        lowered = text.lower()
        if not (20 <= len(text) <= 5000):
            return None
        if not any(keyword in lowered for keyword in self.keywords):
            return None

        title = self._block_title(block, text)
        if len(title) < self.min_title_length or _looks_like_spam(title):
            return None

        link = self._application_link(block.links, base_url=base_url)
        if link is None:
            return None

        description = text.replace(title, "", 1).strip(" -:|")
        return Candidate(
            title=title,
            description=description[:500],
            amount=_extract_amount(text),
            deadline=_extract_deadline(text),
            application_link=link,
            source_name=self.name,
            provider=self.provider or _provider_from_url(base_url),
            eligibility=_extract_eligibility(text),
            source_url=base_url,
        )

    def _candidates_from_links(self, links: list[_Link], *, base_url: str) -> list[Candidate]:
        candidates: list[Candidate] = []
        for link in links:
            if len(candidates) >= 8:
                break
            text = link.text
            haystack = f"{text} {link.href}".lower()
            if not any(keyword in haystack for keyword in self.keywords):
                continue
            if not (self.min_title_length <= len(text) <= 200) or _looks_like_spam(text):
                continue
            absolute = _absolute_http_url(link.href, base_url)
            if absolute is None or self._is_generic_link(absolute):
                continue
            try:
                candidates.append(
                    Candidate(
                        title=text,
                        application_link=absolute,
                        source_name=self.name,
                        provider=self.provider or _provider_from_url(base_url),
                        source_url=base_url,
                    )
                )
            except ValueError:
                continue
        return candidates

    def _block_title(self, block: _Block, text: str) -> str:
        if block.heading and 5 < len(block.heading) < 200:
            return block.heading
        for link in block.links:
            first_word = link.text.split(" ", 1)[0].lower()
            if 5 < len(link.text) < 200 and first_word not in _ACTION_WORDS:
                return link.text
        return text[:150].strip()

    def _application_link(self, links: list[_Link], *, base_url: str) -> str | None:
        ranked = sorted(
            links,
            key=lambda link: 0 if _APPLY_PATTERN.search(f"{link.href} {link.text} {link.css_class}") else 1,
        )
        for link in ranked:
            absolute = _absolute_http_url(link.href, base_url)
            if absolute is not None and not self._is_generic_link(absolute):
                return absolute
        return None

    def _is_generic_link(self, url: str) -> bool:
        normalized = normalize_link(url)
        parsed = urlparse(normalized)
        if parsed.path in {"", "/"} and not parsed.query:
            return True
        return normalized in {normalize_link(seed) for seed in self.seed_urls}


def _absolute_http_url(href: str, base_url: str) -> str | None:
    href = href.strip()
    if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
        return None
    absolute = urljoin(base_url, href)
    parsed = urlparse(absolute)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    return absolute.split("#", 1)[0]


def _looks_like_spam(text: str) -> bool:
    lowered = f"{text.lower()} "
    return any(word in lowered for word in _SPAM_WORDS)


def _extract_amount(text: str) -> str:
    match = _AMOUNT_PATTERN.search(text)
    return _WS_PATTERN.sub(" ", match.group(0)).strip() if match else ""


def _extract_deadline(text: str) -> str | None:
    iso = _ISO_DATE_PATTERN.search(text)
    if iso:
        return iso.group(1)

    numeric = _NUMERIC_DATE_PATTERN.search(text)
    if numeric:
        day, month, year = (int(part) for part in numeric.groups())
        try:
            return datetime(year, month, day).date().isoformat()
        except ValueError:
            return numeric.group(0)

    long_date = _LONG_DATE_PATTERN.search(text)
    if long_date:
        raw = _WS_PATTERN.sub(" ", long_date.group(1)).replace(",", "")
        for fmt in ("%d %B %Y", "%d %b %Y", "%B %d %Y", "%b %d %Y"):
            try:
                return datetime.strptime(raw, fmt).date().isoformat()
            except ValueError:
                continue
        return long_date.group(1)
    return None


def _extract_eligibility(text: str) -> str | None:
    lowered = text.lower()
    for hint in _ELIGIBILITY_HINTS:
        index = lowered.find(hint)
        if index != -1:
            start = max(0, index - 50)
            return text[start : index + 300].strip()
    return None


def _provider_from_url(url: str) -> str:
    host = urlparse(url).netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    if ".gov." in f".{host}." or host.endswith(".nic.in"):
        return "Government of India"
    if ".ac." in f".{host}." or ".edu." in f".{host}.":
        return "Educational Institution"
    return unescape(host.split(".")[0]) if host else "unknown"
