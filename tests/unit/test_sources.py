from __future__ import annotations

import pytest

from applyflow.adapters import generic, greenhouse, lever, workday
from applyflow.core.errors import SourceError
from applyflow.types import DiscoveryCriteria

GREENHOUSE_BOARD = {
    "jobs": [
        {
            "id": 101,
            "title": "Senior Python Engineer",
            "absolute_url": "https://boards.greenhouse.io/acme/jobs/101",
            "location": {"name": "Remote - Europe"},
            "updated_at": "2026-09-01T10:00:00Z",
        },
        {"id": 102, "title": "Broken posting without url"},
        {
            "id": 103,
            "title": "Account Executive",
            "absolute_url": "https://boards.greenhouse.io/acme/jobs/103",
            "location": {"name": "New York"},
        },
        {
            "id": 104,
            "title": "Python Data Engineer",
            "absolute_url": "https://boards.greenhouse.io/acme/jobs/104",
            "location": {"name": "Berlin"},
        },
    ]
}

JSON_LD_PAGE = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "Organization", "name": "Ignored"},
  {"@type": "JobPosting", "title": "Platform Engineer",
   "hiringOrganization": {"@type": "Organization", "name": "Globex"},
   "jobLocation": {"@type": "Place", "address": {"addressLocality": "Lisbon", "addressCountry": "PT"}},
   "employmentType": "FULL_TIME",
   "description": "&lt;p&gt;Build the platform.&lt;/p&gt;<p>Run Kubernetes.</p>"}
]}
</script>
</head><body><h1>Fallback title</h1></body></html>
"""


def test_greenhouse_discovery_filters_and_skips_malformed(settings, monkeypatch) -> None:
    requested = []

    def fake_fetch_json(url, _settings):
        requested.append(url)
        return GREENHOUSE_BOARD

    monkeypatch.setattr(greenhouse, "fetch_json", fake_fetch_json)
    source = greenhouse.GreenhouseSource(settings)

    stubs = list(source.discover(DiscoveryCriteria(board="acme", query="python")))

    assert requested == ["https://boards-api.greenhouse.io/v1/boards/acme/jobs"]
    assert [stub.job_url for stub in stubs] == [
        "https://boards.greenhouse.io/acme/jobs/101",
        "https://boards.greenhouse.io/acme/jobs/104",
    ]
    assert stubs[0].location == "Remote - Europe"
    assert stubs[0].metadata["greenhouse_id"] == 101


def test_greenhouse_discovery_honours_limit_and_location(settings, monkeypatch) -> None:
    monkeypatch.setattr(greenhouse, "fetch_json", lambda url, _settings: GREENHOUSE_BOARD)
    source = greenhouse.GreenhouseSource(settings)

    assert len(list(source.discover(DiscoveryCriteria(board="acme", limit=1)))) == 1
    berlin = list(source.discover(DiscoveryCriteria(board="acme", location="berlin")))
    assert [stub.title for stub in berlin] == ["Python Data Engineer"]


def test_greenhouse_discovery_requires_board(settings) -> None:
    with pytest.raises(ValueError):
        list(greenhouse.GreenhouseSource(settings).discover(DiscoveryCriteria()))


def test_greenhouse_discovery_rejects_unexpected_payload(settings, monkeypatch) -> None:
    monkeypatch.setattr(greenhouse, "fetch_json", lambda url, _settings: {"error": "not found"})
    with pytest.raises(SourceError) as excinfo:
        list(greenhouse.GreenhouseSource(settings).discover(DiscoveryCriteria(board="acme")))
    assert excinfo.value.category == "parse"


def test_greenhouse_enrich_reads_posting_api(settings, monkeypatch) -> None:
    payload = {
        "id": 101,
        "title": "Senior Python Engineer",
        "company_name": "Acme",
        "location": {"name": "Remote"},
        "content": "&lt;p&gt;Ship &amp;amp; scale services.&lt;/p&gt;",
        "departments": [{"name": "Engineering"}],
    }
    monkeypatch.setattr(greenhouse, "fetch_json", lambda url, _settings: payload)

    job = greenhouse.GreenhouseSource(settings).enrich("https://job-boards.greenhouse.io/acme/jobs/101")

    assert job.title == "Senior Python Engineer"
    assert job.company == "Acme"
    assert job.location == "Remote"
    assert job.description == "Ship & scale services."
    assert job.metadata["departments"] == ["Engineering"]


def test_greenhouse_enrich_falls_back_to_page(settings, monkeypatch) -> None:
    def unavailable(url, _settings):
        raise SourceError("HTTP 404", category="http", url=url)

    monkeypatch.setattr(greenhouse, "fetch_json", unavailable)
    monkeypatch.setattr(greenhouse, "fetch_html", lambda url, _settings: JSON_LD_PAGE)

    job = greenhouse.GreenhouseSource(settings).enrich("https://boards.greenhouse.io/acme/jobs/101")

    assert job.title == "Platform Engineer"
    assert job.company == "Globex"
    assert job.location == "Lisbon, PT"


def test_greenhouse_parses_embed_urls() -> None:
    assert greenhouse.parse_job_url("https://boards.greenhouse.io/embed/job_app?for=acme&token=555") == ("acme", "555")
    assert greenhouse.parse_job_url("https://boards.greenhouse.io/acme/jobs/42?gh_src=x") == ("acme", "42")
    assert greenhouse.parse_job_url("https://boards.greenhouse.io/acme") is None


def test_lever_discovery_maps_postings(settings, monkeypatch) -> None:
    postings = [
        {
            "id": "abc",
            "text": "Backend Engineer",
            "hostedUrl": "https://jobs.lever.co/globex/abc",
            "categories": {"location": "Remote", "team": "Platform", "commitment": "Full-time"},
        },
        "not-a-posting",
    ]
    monkeypatch.setattr(lever, "fetch_json", lambda url, _settings: postings)

    stubs = list(lever.LeverSource(settings).discover(DiscoveryCriteria(board="globex")))

    assert len(stubs) == 1
    assert stubs[0].platform == "lever"
    assert stubs[0].company == "globex"
    assert stubs[0].metadata == {"lever_id": "abc", "team": "Platform", "commitment": "Full-time"}


def test_lever_enrich_combines_description_sections(settings, monkeypatch) -> None:
    posting = {
        "id": "abc",
        "text": "Backend Engineer",
        "categories": {"location": "Remote"},
        "descriptionPlain": "Join the platform team.",
        "lists": [{"text": "Requirements", "content": "<li>Python</li><li>Postgres</li>"}],
        "additionalPlain": "We offer equity.",
    }
    monkeypatch.setattr(lever, "fetch_json", lambda url, _settings: posting)

    job = lever.LeverSource(settings).enrich("https://jobs.lever.co/globex/abc")

    assert job.company == "globex"
    assert job.description == "Join the platform team.\n\nRequirements\nPython\nPostgres\n\nWe offer equity."


def test_workday_enrich_uses_automation_ids(settings, monkeypatch) -> None:
    page = """
    <html><body>
      <h2 data-automation-id="jobPostingHeader">Data Analyst</h2>
      <div data-automation-id="locations">Austin, TX</div>
      <div data-automation-id="jobPostingDescription"><p>Analyse data.</p><p>Report weekly.</p></div>
    </body></html>
    """
    monkeypatch.setattr(workday, "fetch_html", lambda url, _settings: page)

    job = workday.WorkdaySource(settings).enrich("https://initech.wd1.myworkdayjobs.com/en-US/careers/job/Austin/Data-Analyst_R1")

    assert job.title == "Data Analyst"
    assert job.company == "initech"
    assert job.location == "Austin, TX"
    assert job.description == "Analyse data.\nReport weekly."


def test_workday_has_no_discovery(settings) -> None:
    with pytest.raises(SourceError) as excinfo:
        list(workday.WorkdaySource(settings).discover(DiscoveryCriteria(board="initech")))
    assert excinfo.value.category == "unsupported"


def test_generic_page_reads_json_ld(settings, monkeypatch) -> None:
    monkeypatch.setattr(generic, "fetch_html", lambda url, _settings: JSON_LD_PAGE)

    job = generic.GenericPageSource(settings).enrich("https://careers.globex.example/platform")

    assert job.title == "Platform Engineer"
    assert job.metadata["employment_type"] == "FULL_TIME"
    assert job.metadata["source"] == "json-ld"
    assert "Run Kubernetes." in job.description


def test_generic_page_falls_back_to_meta_tags(settings, monkeypatch) -> None:
    page = """
    <html><head>
      <title>Careers</title>
      <meta property="og:title" content="QA Engineer">
      <meta property="og:site_name" content="Hooli">
    </head><body><main><p>Test all the things.</p></main></body></html>
    """
    monkeypatch.setattr(generic, "fetch_html", lambda url, _settings: page)

    job = generic.GenericPageSource(settings).enrich("https://hooli.example/jobs/qa")

    assert job.title == "QA Engineer"
    assert job.company == "Hooli"
    assert job.description == "Test all the things."
    assert job.metadata == {"source": "html"}


def test_json_ld_address_list_is_joined(settings, monkeypatch) -> None:
    page = """
    <html><head><script type="application/ld+json">
    {"@type": "JobPosting", "title": "Support Engineer",
     "jobLocation": {"address": [{"addressLocality": "Austin", "addressRegion": "TX"}, "Remote (US)"]}}
    </script></head><body></body></html>
    """
    monkeypatch.setattr(generic, "fetch_html", lambda url, _settings: page)

    job = generic.GenericPageSource(settings).enrich("https://careers.initech.example/support")

    assert job.title == "Support Engineer"
    assert job.location == "Austin, TX; Remote (US)"


def test_greenhouse_accepts_plain_string_location(settings, monkeypatch) -> None:
    payload = {"id": 7, "title": "Data Analyst", "location": "Toronto", "content": ""}
    monkeypatch.setattr(greenhouse, "fetch_json", lambda url, _settings: payload)

    job = greenhouse.GreenhouseSource(settings).enrich("https://boards.greenhouse.io/acme/jobs/7")

    assert job.location == "Toronto"


def test_lever_ignores_malformed_categories(settings, monkeypatch) -> None:
    posting = {"id": "xyz", "text": "Designer", "categories": ["Design"], "descriptionPlain": "Draw things."}
    monkeypatch.setattr(lever, "fetch_json", lambda url, _settings: posting)

    job = lever.LeverSource(settings).enrich("https://jobs.lever.co/globex/xyz")

    assert job.title == "Designer"
    assert job.location == ""
    assert job.metadata["team"] == ""
