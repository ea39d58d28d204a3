import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

import config
from archive import archive_old_jobs, save_run_report
from config import SourceConfig
from engine import scrape
from models import JobSource, ScrapeResult, SchedulerResult
from scrapers.indeed import IndeedScraper
from scrapers.linkedin import LinkedInScraper
from sessions import BrowserSession, HttpSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScraperEntry:
    """Everything needed to run one source: its descriptor, extractor and fetch session."""

    config: SourceConfig
    scraper_cls: type
    session_cls: type


# Run order for a full cycle
REGISTRY: dict[JobSource, ScraperEntry] = {
    JobSource.INDEED: ScraperEntry(config.INDEED_CONFIG, IndeedScraper, BrowserSession),
    JobSource.LINKEDIN: ScraperEntry(config.LINKEDIN_CONFIG, LinkedInScraper, HttpSession),
}


def _run_entry(entry: ScraperEntry, repo, sleep, cancel) -> ScrapeResult:
    return scrape(
        entry.config,
        build_scraper=lambda session: entry.scraper_cls(session, entry.config, sleep=sleep),
        open_session=entry.session_cls,
        repo=repo,
        sleep=sleep,
        cancel=cancel,
    )


def run_all_scrapers(
    repo,
    *,
    registry: dict[JobSource, ScraperEntry] | None = None,
    sources: list[JobSource] | None = None,
    sleep=time.sleep,
    cancel: threading.Event | None = None,
) -> SchedulerResult:
    """Scrape every enabled source one after another.

    A source that fails outright still gets a ScrapeResult (zero counts, one
    error) so the remaining sources run.
    """
    registry = REGISTRY if registry is None else registry
    enabled = config.ENABLED_SOURCES if sources is None else sources
    start = time.monotonic()
    results = []

    logger.info("[scheduler] Starting scraper run...")
    for source, entry in registry.items():
        if source not in enabled:
            continue
        if cancel is not None and cancel.is_set():
            logger.info("[scheduler] Cancelled, skipping remaining sources")
            break

        logger.info(f"[scheduler] Running {source.value} scraper...")
        try:
            result = _run_entry(entry, repo, sleep, cancel)
        except Exception as e:
            logger.error(f"[scheduler] {source.value} scraper failed: {e}")
            result = ScrapeResult(source=source.value, errors=[str(e)])
        results.append(result)

    summary = SchedulerResult(
        timestamp=datetime.now(timezone.utc),
        results=results,
        total_jobs_scraped=sum(r.jobs_scraped for r in results),
        total_jobs_saved=sum(r.jobs_saved for r in results),
        total_duplicates=sum(r.duplicates_skipped for r in results),
        total_errors=sum(len(r.errors) for r in results),
        duration=int((time.monotonic() - start) * 1000),
    )
    logger.info(
        f"[scheduler] Run complete: {summary.total_jobs_scraped} scraped, "
        f"{summary.total_jobs_saved} saved, {summary.total_duplicates} duplicates, "
        f"{summary.total_errors} errors"
    )
    return summary


def scrape_source(
    source: str,
    repo,
    *,
    registry: dict[JobSource, ScraperEntry] | None = None,
    sleep=time.sleep,
    cancel: threading.Event | None = None,
) -> ScrapeResult:
    """Manually trigger a single source. Raises ValueError for an unknown source."""
    registry = REGISTRY if registry is None else registry
    try:
        key = JobSource(source)
    except ValueError:
        raise ValueError(f"Unknown source: {source}") from None
    if key not in registry:
        raise ValueError(f"No scraper registered for {key.value}")

    logger.info(f"[scheduler] Manual scrape of {key.value}")
    return _run_entry(registry[key], repo, sleep, cancel)


def run_cycle(repo, days_old: int | None = None, **kwargs) -> tuple[SchedulerResult, int]:
    """Scrape all sources, then archive postings older than days_old."""
    days_old = config.ARCHIVE_DAYS if days_old is None else days_old
    result = run_all_scrapers(repo, **kwargs)
    archived = archive_old_jobs(repo, days_old)
    return result, archived


def _scheduled_cycle(repo) -> None:
    result, archived = run_cycle(repo)
    filename = save_run_report(result, archived, config.REPORTS_DIR)
    logger.info(f"[scheduler] Report saved to {filename}")


def start_schedule(repo, hours: int | None = None) -> None:
    """Run a cycle now and then every `hours` hours until interrupted."""
    hours = config.SCHEDULE_HOURS if hours is None else hours
    scheduler = BlockingScheduler(
        timezone=timezone.utc,
        job_defaults={"coalesce": True, "max_instances": 1},
    )
    scheduler.add_job(
        _scheduled_cycle,
        trigger=IntervalTrigger(hours=hours),
        args=[repo],
        id="scrape-cycle",
        next_run_time=datetime.now(timezone.utc),
    )
    logger.info(f"[scheduler] Scraping every {hours}h, Ctrl+C to stop")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("[scheduler] Shutting down")


def get_scraper_stats(repo) -> dict:
    return repo.stats()
