"""Tests for scrapers/indeed.py: search pagination and card parsing against a mocked browser."""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

import config
from scrapers.indeed import IndeedScraper

DESCRIPTION = "Part-time Peer Specialist for our addiction recovery program. CASAC or CRPA required."


def _element(value):
    el = MagicMock()
    el.text_content.return_value = value
    el.get_attribute.return_value = value
    return el


def _card(**fields):
    """A fake result card keyed by selector name from the Indeed selector set."""
    selectors = config.INDEED_CONFIG.selectors
    by_selector = {getattr(selectors, name): value for name, value in fields.items()}
    card = MagicMock()
    card.query_selector.side_effect = lambda sel: _element(by_selector[sel]) if sel in by_selector else None
    return card


def _full_card(**overrides):
    fields = {
        "title": "Peer Specialist",
        "company": "Brooklyn Recovery Center",
        "location": "Brooklyn",
        "salary": "$45,000 - $52,000 a year",
        "posted_date": "Posted 3 days ago",
        "url": "/rc/clk?jk=123abc",
    }
    fields.update(overrides)
    return _card(**{k: v for k, v in fields.items() if v is not None})


@pytest.fixture
def session():
    s = MagicMock(name="browser_session")
    s.wait_for.return_value = True
    s.fetch_text.return_value = DESCRIPTION
    return s


@pytest.fixture
def scraper(session):
    cfg = replace(config.INDEED_CONFIG, max_pages=3)
    return IndeedScraper(session, cfg, sleep=MagicMock())


def test_search_url_encodes_query_and_offset(scraper):
    url = scraper.search_url("peer specialist", "Brooklyn, NY", 2)
    assert url == "https://www.indeed.com/jobs?q=peer+specialist&l=Brooklyn%2C+NY&start=20"


def test_parse_job_builds_normalized_listing(scraper, session):
    job = scraper.parse_job(_full_card())

    assert job.title == "Peer Specialist"
    assert job.company == "Brooklyn Recovery Center"
    assert job.url == "https://www.indeed.com/rc/clk?jk=123abc"
    assert job.source == "Indeed"
    assert job.location == "Brooklyn, NY"
    assert job.salary == "$45,000 - $52,000"
    assert job.posted_date is not None
    assert job.description == DESCRIPTION
    assert job.job_type == "Part-time"
    assert job.specialty == "Substance Use"
    assert set(job.certifications_req) == {"CASAC", "CRPA"}
    session.fetch_text.assert_called_once_with(
        "https://www.indeed.com/rc/clk?jk=123abc", "#jobDescriptionText"
    )


def test_parse_job_keeps_absolute_link(scraper):
    job = scraper.parse_job(_full_card(url="https://www.indeed.com/viewjob?jk=9"))
    assert job.url == "https://www.indeed.com/viewjob?jk=9"


def test_parse_job_defaults_location(scraper):
    job = scraper.parse_job(_full_card(location=None))
    assert job.location == "New York, NY"


@pytest.mark.parametrize("missing", ["title", "company", "url"])
def test_parse_job_incomplete_card(scraper, session, missing):
    assert scraper.parse_job(_full_card(**{missing: None})) is None
    session.fetch_text.assert_not_called()


def test_parse_job_without_description(scraper, session):
    session.fetch_text.return_value = None
    assert scraper.parse_job(_full_card()) is None


def test_scrape_search_stops_on_empty_page(scraper, session):
    session.query_all.side_effect = [[_full_card(), _full_card(url="/rc/clk?jk=2")], []]

    jobs = scraper.scrape_search("peer specialist", "Brooklyn, NY")

    assert [j.url for j in jobs] == [
        "https://www.indeed.com/rc/clk?jk=123abc",
        "https://www.indeed.com/rc/clk?jk=2",
    ]
    assert session.navigate.call_count == 2
    scraper.sleep.assert_called_once_with(2.0)


def test_scrape_search_respects_max_pages(scraper, session):
    session.query_all.return_value = [_full_card()]

    scraper.scrape_search("peer specialist", "Brooklyn, NY")

    navigated = [c.args[0] for c in session.navigate.call_args_list]
    assert [u.rsplit("start=", 1)[1] for u in navigated] == ["0", "10", "20"]


def test_card_wait_timeout_means_no_results(scraper, session):
    session.wait_for.return_value = False
    session.query_all.return_value = []

    assert scraper.scrape_search("peer specialist", "Brooklyn, NY") == []
    assert session.navigate.call_count == 1


def test_broken_card_is_skipped(scraper, session):
    broken = MagicMock()
    broken.query_selector.side_effect = RuntimeError("element detached")
    session.query_all.side_effect = [[broken, _full_card()], []]

    jobs = scraper.scrape_search("peer specialist", "Brooklyn, NY")

    assert len(jobs) == 1


def test_first_page_failure_propagates(scraper, session):
    session.navigate.side_effect = RuntimeError("net::ERR_CONNECTION_RESET")

    with pytest.raises(RuntimeError):
        scraper.scrape_search("peer specialist", "Brooklyn, NY")


def test_later_page_failure_keeps_earlier_results(scraper, session):
    session.navigate.side_effect = [None, RuntimeError("Timeout 30000ms exceeded")]
    session.query_all.return_value = [_full_card()]

    jobs = scraper.scrape_search("peer specialist", "Brooklyn, NY")

    assert len(jobs) == 1
