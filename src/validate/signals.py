from __future__ import annotations

import re
from dataclasses import dataclass
from html.parser import HTMLParser

from src.validate.scoring import TIER_COMMERCIAL, TIER_GOVERNMENT_ACADEMIC, TIER_ORG_EDU

RELEVANCE_KEYWORDS = (
    "scholarship",
    "fellowship",
    "grant",
    "financial aid",
    "education",
    "student",
    "apply",
    "application",
)
CONTACT_INDICATORS = ("contact", "email", "@", "phone", "address")
GOVERNMENT_ACADEMIC_LABELS = frozenset({"gov", "ac", "nic", "mil"})
ORG_EDU_LABELS = frozenset({"org", "edu"})

_APPLY_PATTERN = re.compile(r"\b(apply|application|register|registration|enrol|enroll)", re.IGNORECASE)
_APPLY_HREF_PATTERN = re.compile(r"apply|application|register", re.IGNORECASE)
_WS_PATTERN = re.compile(r"\s+")
_SKIPPED_TAGS = {"script", "style", "noscript", "template"}
_HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


@dataclass(frozen=True, slots=True)
class PageSignals:
    title: str
    text: str
    keyword_hits: int
    has_application_affordance: bool
    has_contact_signal: bool


class _PageCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.title_parts: list[str] = []
        self.text_parts: list[str] = []
        self.has_affordance = False
        self._skip_depth = 0
        self._in_title = False
        self._control_tag: str | None = None
        self._control_parts: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag = tag.lower()
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
            return
        attributes = {key.lower(): (value or "") for key, value in attrs}
        if tag == "title":
            self._in_title = True
        elif tag == "form":
            self.has_affordance = True
        elif tag == "input" and attributes.get("type", "").lower() in {"submit", "image"}:
            self.has_affordance = True
        elif tag in {"a", "button"}:
            if tag == "button" and attributes.get("type", "").lower() == "submit":
                self.has_affordance = True
            marker = f"{attributes.get('href', '')} {attributes.get('class', '')} {attributes.get('id', '')}"
            if _APPLY_HREF_PATTERN.search(marker):
                self.has_affordance = True
            self._control_tag = tag
            self._control_parts = []

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if tag == "title":
            self._in_title = False
        elif tag == self._control_tag:
            if _APPLY_PATTERN.search(" ".join(self._control_parts)):
                self.has_affordance = True
            self._control_tag = None
            self._control_parts = []

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        if self._in_title:
            self.title_parts.append(data)
            return
        self.text_parts.append(data)
        if self._control_tag is not None:
            self._control_parts.append(data)


def is_html_content_type(content_type: str | None) -> bool:
    if not content_type:
        return True
    lowered = content_type.lower()
    return any(marker in lowered for marker in _HTML_CONTENT_TYPES)


def extract_page_signals(html: str) -> PageSignals:
    collector = _PageCollector()
    collector.feed(html)
    collector.close()

    title = _WS_PATTERN.sub(" ", " ".join(collector.title_parts)).strip().lower()
    text = _WS_PATTERN.sub(" ", " ".join(collector.text_parts)).strip().lower()
    keyword_hits = sum(1 for keyword in RELEVANCE_KEYWORDS if keyword in text or keyword in title)
    return PageSignals(
        title=title,
        text=text,
        keyword_hits=keyword_hits,
        has_application_affordance=collector.has_affordance,
        has_contact_signal=any(indicator in text for indicator in CONTACT_INDICATORS),
    )


def classify_domain(host: str) -> str:
    labels = [label for label in host.lower().rstrip(".").split(".") if label]
    if labels and labels[0] == "www":
        labels = labels[1:]
    if len(labels) < 2:
        return TIER_COMMERCIAL
    suffix_labels = labels[-2:] if len(labels[-1]) == 2 else labels[-1:]
    if GOVERNMENT_ACADEMIC_LABELS.intersection(suffix_labels):
        return TIER_GOVERNMENT_ACADEMIC
    if ORG_EDU_LABELS.intersection(suffix_labels):
        return TIER_ORG_EDU
    return TIER_COMMERCIAL
