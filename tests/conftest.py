"""Shared test fixtures for the peerjobs test suite."""

import json
import os

import pytest

from db import JobRepository
from models import JobListing

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def _load_sample_settings():
    with open(os.path.join(FIXTURES_DIR, "sample_settings.json")) as f:
        return json.load(f)


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch):
    """Autouse fixture that injects known settings for every test.

    Installs settings._settings so get_settings() returns the test data,
    and calls config.reload() to refresh all config globals.
    """
    import config
    import settings

    data = _load_sample_settings()
    monkeypatch.setattr(settings, "_settings", settings.Settings(**data))
    monkeypatch.delenv("PEERJOBS_DB_PATH", raising=False)
    monkeypatch.delenv("CRON_SECRET", raising=False)
    config.reload()
    yield data


@pytest.fixture
def make_job():
    """Factory fixture for creating JobListing instances with defaults."""

    def _make(**overrides):
        defaults = {
            "title": "Peer Specialist",
            "company": "Brooklyn Recovery Center",
            "url": "https://www.indeed.com/viewjob?jk=abc123",
            "source": "Indeed",
            "location": "Brooklyn, NY",
            "description": "Full-time peer specialist supporting adults in substance use recovery. CRPA preferred.",
            "salary": "$45,000 - $52,000",
            "job_type": "Full-time",
            "certifications_req": ["CRPA"],
            "specialty": "Substance Use",
        }
        defaults.update(overrides)
        return JobListing(**defaults)

    return _make


@pytest.fixture
def tmp_repo(tmp_path):
    """A JobRepository over a fresh SQLite file."""
    repo = JobRepository(str(tmp_path / "test_jobs.db"))
    repo.init_db()
    return repo


@pytest.fixture
def fixture_path():
    """Return the path to the fixtures directory."""
    return FIXTURES_DIR


def load_fixture(filename):
    """Load a fixture file by name."""
    path = os.path.join(FIXTURES_DIR, filename)
    with open(path) as f:
        if filename.endswith(".json"):
            return json.load(f)
        return f.read()
