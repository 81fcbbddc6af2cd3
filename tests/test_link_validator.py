from __future__ import annotations

from pathlib import Path

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from src.normalize.schema import Candidate
from src.validate.link_validator import LinkValidator
from src.validate.scoring import COMPONENTS

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"
HTML = "text/html; charset=utf-8"


class _FakeResponse:
    def __init__(self, status_code: int, *, text: str = "", content_type: str = HTML, location: str | None = None) -> None:
        self.status_code = status_code
        self.text = text
        self.headers = CaseInsensitiveDict({"Content-Type": content_type})
        if location is not None:
            self.headers["Location"] = location

    def close(self) -> None:
        return None


class _FakeLinkClient:
    def __init__(self, routes: dict[str, _FakeResponse | Exception]) -> None:
        self.routes = routes
        self.requested: list[str] = []

    def get_raw(self, url: str) -> _FakeResponse:
        self.requested.append(url)
        route = self.routes[url]
        if isinstance(route, Exception):
            raise route
        return route


def _candidate(link: str, title: str = "Post Matric Scholarship") -> Candidate:
    return Candidate(title=title, application_link=link, source_name="fixture")


def test_government_apply_page_scores_95_and_is_accepted() -> None:
    html = (RESOURCES_DIR / "apply_page_sample.html").read_text(encoding="utf-8")
    client = _FakeLinkClient({"https://scholarships.gov.in/apply": _FakeResponse(200, text=html)})

    result = LinkValidator(client).validate(_candidate("https://scholarships.gov.in/apply"))

    assert result.breakdown == {
        "reachability": 40,
        "security": 10,
        "latency": 10,
        "relevance": 15,
        "affordance": 10,
        "contact": 0,
        "domain_tier": 10,
    }
    assert result.quality_score == 95
    assert result.accepted is True
    assert result.rejection_reason is None
    assert result.domain_tier == "government/academic"
    assert result.is_secure is True
    assert result.has_relevant_content is True
    assert result.errors == []


@pytest.mark.parametrize("link", ["not a url", "javascript:void(0)", "ftp://files.example.org/form.pdf", ""])
def test_invalid_links_score_zero_without_network_calls(link: str) -> None:
    client = _FakeLinkClient({})

    result = LinkValidator(client).validate(_candidate(link))

    assert client.requested == []
    assert result.quality_score == 0
    assert result.accepted is False
    assert result.rejection_reason == "invalid_url"
    assert result.errors


def test_network_failure_zeroes_every_component() -> None:
    client = _FakeLinkClient({"http://example.com/dead": requests.Timeout("read timed out")})

    result = LinkValidator(client).validate(_candidate("http://example.com/dead"))

    assert result.http_status is None
    assert result.quality_score == 0
    assert set(result.breakdown) == set(COMPONENTS)
    assert all(points == 0 for points in result.breakdown.values())
    assert result.rejection_reason == "network_error"
    assert "Timeout" in result.errors[0]


def test_redirects_are_followed_and_scored_on_the_final_url() -> None:
    client = _FakeLinkClient(
        {
            "http://example.org/old": _FakeResponse(301, location="https://example.org/new"),
            "https://example.org/new": _FakeResponse(200, text="<html><body>Welcome</body></html>"),
        }
    )

    result = LinkValidator(client).validate(_candidate("http://example.org/old"))

    assert client.requested == ["http://example.org/old", "https://example.org/new"]
    assert result.final_url == "https://example.org/new"
    assert result.is_secure is True
    assert result.domain_tier == "org/edu"
    assert result.quality_score == 40 + 10 + 10 + 5
    assert result.accepted is False
    assert result.rejection_reason == "below_threshold"


def test_redirect_budget_exhaustion_reports_the_redirect_status() -> None:
    client = _FakeLinkClient({"https://loop.example.com/a": _FakeResponse(302, location="/a")})

    result = LinkValidator(client, max_redirects=2).validate(_candidate("https://loop.example.com/a"))

    assert len(client.requested) == 3
    assert result.http_status == 302
    assert result.breakdown["reachability"] == 20
    assert result.quality_score == 20 + 10 + 10
    assert any("Redirect limit" in error for error in result.errors)


def test_non_html_content_skips_page_signals() -> None:
    client = _FakeLinkClient(
        {
            "https://scholarships.gov.in/form.pdf": _FakeResponse(
                200,
                text="scholarship apply application contact",
                content_type="application/pdf",
            )
        }
    )

    result = LinkValidator(client).validate(_candidate("https://scholarships.gov.in/form.pdf"))

    assert result.breakdown["relevance"] == 0
    assert result.breakdown["affordance"] == 0
    assert result.breakdown["contact"] == 0
    assert result.quality_score == 70
    assert result.accepted is True


def test_error_status_keeps_transport_points_only() -> None:
    client = _FakeLinkClient({"https://ugc.ac.in/missing": _FakeResponse(404, text="scholarship apply application")})

    result = LinkValidator(client).validate(_candidate("https://ugc.ac.in/missing"))

    assert result.http_status == 404
    assert result.quality_score == 10 + 10 + 10
    assert result.errors == ["HTTP status 404"]


def test_stats_track_pass_and_fail_counts() -> None:
    html = (RESOURCES_DIR / "apply_page_sample.html").read_text(encoding="utf-8")
    client = _FakeLinkClient(
        {
            "https://scholarships.gov.in/apply": _FakeResponse(200, text=html),
            "http://example.com/dead": requests.ConnectionError("refused"),
        }
    )
    validator = LinkValidator(client)

    validator.validate(_candidate("https://scholarships.gov.in/apply"))
    validator.validate(_candidate("http://example.com/dead"))

    assert validator.stats() == {
        "total_validated": 2,
        "passed": 1,
        "failed": 1,
        "average_score": 47.5,
        "success_rate": 50.0,
    }


def test_threshold_must_be_a_percentage() -> None:
    with pytest.raises(ValueError):
        LinkValidator(_FakeLinkClient({}), threshold=101)
