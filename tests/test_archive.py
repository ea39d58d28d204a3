"""Tests for archive.py: stale posting archival and the markdown run report."""

import os
from datetime import datetime, timezone

from freezegun import freeze_time

from archive import _format_duration, archive_old_jobs, save_run_report
from models import ScrapeResult, SchedulerResult


def _result(*results):
    return SchedulerResult(
        timestamp=datetime(2026, 2, 19, 12, 0, tzinfo=timezone.utc),
        results=list(results),
        total_jobs_scraped=sum(r.jobs_scraped for r in results),
        total_jobs_saved=sum(r.jobs_saved for r in results),
        total_duplicates=sum(r.duplicates_skipped for r in results),
        total_errors=sum(len(r.errors) for r in results),
        duration=sum(r.duration for r in results),
    )


def test_archive_is_idempotent(tmp_repo, make_job):
    with freeze_time("2026-01-01"):
        tmp_repo.create(make_job(url="https://x/1"))
        tmp_repo.create(make_job(url="https://x/2"))

    with freeze_time("2026-05-01"):
        assert archive_old_jobs(tmp_repo, 90) == 2
        assert archive_old_jobs(tmp_repo, 90) == 0


def test_archive_keeps_recent_postings(tmp_repo, make_job):
    with freeze_time("2026-01-01"):
        tmp_repo.create(make_job(url="https://x/old"))
    with freeze_time("2026-03-15"):
        recent = tmp_repo.create(make_job(url="https://x/recent"))

    with freeze_time("2026-04-15"):
        assert archive_old_jobs(tmp_repo, 90) == 1

    assert tmp_repo.get(recent.id).is_active is True


def test_archive_cutoff_boundary(tmp_repo, make_job):
    """Postings exactly days_old old are kept; only strictly older ones go."""
    with freeze_time("2026-01-01 12:00:00"):
        tmp_repo.create(make_job())
    with freeze_time("2026-04-01 12:00:00"):
        assert archive_old_jobs(tmp_repo, 90) == 0
    with freeze_time("2026-04-01 12:00:01"):
        assert archive_old_jobs(tmp_repo, 90) == 1


def test_report_file_created(tmp_path):
    filepath = save_run_report(_result(), 0, output_dir=str(tmp_path))
    assert os.path.exists(filepath)
    assert os.path.basename(filepath) == "scrape-2026-02-19-1200.md"


def test_report_lists_sources_and_errors(tmp_path):
    indeed = ScrapeResult(source="Indeed", jobs_scraped=12, jobs_saved=5, duplicates_skipped=4,
                          errors=["Error scraping peer specialist in Bronx, NY: Timeout"], duration=65000)
    linkedin = ScrapeResult(source="LinkedIn", jobs_scraped=3, jobs_saved=3, duration=4200, cancelled=True)

    filepath = save_run_report(_result(indeed, linkedin), 7, output_dir=str(tmp_path))
    with open(filepath) as f:
        content = f.read()

    assert "**8 new jobs saved** from 15 scraped" in content
    assert "**Archived:** 7" in content
    assert "## Indeed" in content
    assert "## LinkedIn" in content
    assert "### Errors (1)" in content
    assert "- Error scraping peer specialist in Bronx, NY: Timeout" in content
    assert "Cancelled before finishing" in content


def test_report_without_sources(tmp_path):
    filepath = save_run_report(_result(), 0, output_dir=str(tmp_path))
    with open(filepath) as f:
        assert "No sources were run." in f.read()


def test_format_duration():
    assert _format_duration(4200) == "4.2s"
    assert _format_duration(65000) == "1m 5s"
