from __future__ import annotations

import pytest

from src.validate.signals import classify_domain, extract_page_signals, is_html_content_type


@pytest.mark.parametrize(
    ("host", "tier"),
    [
        ("scholarships.gov.in", "government/academic"),
        ("www.ugc.ac.in", "government/academic"),
        ("studentaid.gov", "government/academic"),
        ("scholarships.nic.in", "government/academic"),
        ("www.aicte-india.org", "org/edu"),
        ("admissions.mit.edu", "org/edu"),
        ("charity.org.uk", "org/edu"),
        ("www.buddy4study.com", "commercial"),
        ("gov.example.com", "commercial"),
        ("localhost", "commercial"),
    ],
)
def test_classify_domain(host: str, tier: str) -> None:
    assert classify_domain(host) == tier


def test_apply_anchor_counts_as_affordance() -> None:
    signals = extract_page_signals('<p>Fellowship details</p><a href="/details">Apply Now</a>')

    assert signals.has_application_affordance is True


def test_register_href_counts_as_affordance() -> None:
    signals = extract_page_signals('<a href="/register?scheme=12">Continue</a>')

    assert signals.has_application_affordance is True


def test_plain_page_has_no_affordance_or_contact() -> None:
    signals = extract_page_signals("<h1>News</h1><p>Results were announced today.</p>")

    assert signals.has_application_affordance is False
    assert signals.has_contact_signal is False
    assert signals.keyword_hits == 0


def test_contact_and_keywords_ignore_scripts() -> None:
    html = """
    <html><head><title>Student Scholarship</title>
    <script>var grant = "fellowship education";</script></head>
    <body><p>Email the helpdesk for details.</p></body></html>
    """

    signals = extract_page_signals(html)

    assert signals.has_contact_signal is True
    assert signals.keyword_hits == 2
    assert signals.title == "student scholarship"


@pytest.mark.parametrize(
    ("content_type", "expected"),
    [
        ("text/html; charset=utf-8", True),
        ("application/xhtml+xml", True),
        ("", True),
        (None, True),
        ("application/pdf", False),
        ("application/json", False),
    ],
)
def test_is_html_content_type(content_type: str | None, expected: bool) -> None:
    assert is_html_content_type(content_type) is expected
