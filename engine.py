"""Drive one scrape run for a source and persist what it finds."""

import itertools
import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterable

from pydantic import ValidationError

from config import SourceConfig
from db import DuplicateKeyError
from dedup import find_duplicate
from filters import is_peer_support_job
from models import JobListing, SaveOutcome, ScrapeResult, validate_listing
from retry import retrying

logger = logging.getLogger(__name__)

SAVE_ATTEMPTS = 3
SAVE_RETRY_DELAY = 1.0


def _summarize(error: ValidationError) -> str:
    """One line per failed field: "url: Input should be a valid URL; title: ..."."""
    parts = []
    for err in error.errors():
        field = ".".join(str(p) for p in err["loc"]) or "job"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def save_jobs(
    candidates: Iterable[JobListing],
    source: str,
    repo,
    *,
    sleep=time.sleep,
    attempts: int = SAVE_ATTEMPTS,
    delay: float = SAVE_RETRY_DELAY,
) -> SaveOutcome:
    """Filter, deduplicate, validate and store candidates from one search.

    Candidates are compared against the active postings for `source` as they
    stood when the pass started; candidates from the same pass are not
    compared with each other.
    """
    outcome = SaveOutcome()
    existing = repo.find_active_by_source(source)

    for job in candidates:
        if not is_peer_support_job(job.title, job.description):
            continue

        if find_duplicate(job, existing) is not None:
            outcome.duplicates += 1
            continue

        try:
            validated = validate_listing(job)
        except ValidationError as e:
            msg = f'Error saving job "{job.title}": {_summarize(e)}'
            logger.error(f"[{source}] {msg}")
            outcome.errors.append(msg)
            continue

        try:
            retrying((sqlite3.OperationalError,), attempts, delay, sleep)(repo.create, validated)
        except DuplicateKeyError:
            outcome.duplicates += 1
            continue
        except Exception as e:
            msg = f'Error saving job "{job.title}": {e}'
            logger.error(f"[{source}] {msg}")
            outcome.errors.append(msg)
            continue

        outcome.saved += 1

    return outcome


def scrape(
    config: SourceConfig,
    build_scraper: Callable,
    open_session: Callable,
    repo,
    *,
    sleep=time.sleep,
    cancel: threading.Event | None = None,
) -> ScrapeResult:
    """Run every keyword/location search for one source and save the results.

    `open_session()` must return a context manager yielding the fetch session;
    `build_scraper(session)` returns the SearchScraper that uses it. A failure
    to take the source lock, open the session or build the scraper ends the
    run with a single error. A failure inside one search is recorded and the
    run moves on to the next one.
    """
    start = time.monotonic()
    source = config.source.value
    result = ScrapeResult(source=source)

    try:
        locked = repo.acquire_source_lock(source)
        if not locked:
            msg = f"Scrape already in progress for {source}"
            logger.error(f"[{source}] {msg}")
            result.errors.append(msg)
    except Exception as e:
        locked = False
        _fatal(result, e)
    if not locked:
        result.duration = _elapsed_ms(start)
        return result

    try:
        with open_session() as session:
            scraper = build_scraper(session)
            _run_searches(scraper, config, repo, result, sleep, cancel)
    except Exception as e:
        _fatal(result, e)
    finally:
        try:
            repo.release_source_lock(source)
        except Exception as e:
            logger.error(f"[{source}] Failed to release scrape lock: {e}")

    result.duration = _elapsed_ms(start)
    logger.info(
        f"[{source}] Done: {result.jobs_scraped} scraped, {result.jobs_saved} saved, "
        f"{result.duplicates_skipped} duplicates, {len(result.errors)} errors in {result.duration}ms"
    )
    return result


def _fatal(result: ScrapeResult, error: Exception) -> None:
    msg = f"Fatal scraping error: {error}"
    logger.error(f"[{result.source}] {msg}")
    result.errors.append(msg)


def _run_searches(scraper, config: SourceConfig, repo, result: ScrapeResult, sleep, cancel) -> None:
    source = config.source.value

    for keyword, location in itertools.product(config.search_keywords, config.search_locations):
        if cancel is not None and cancel.is_set():
            logger.info(f"[{source}] Cancelled before {keyword} in {location}")
            result.cancelled = True
            break

        try:
            jobs = scraper.scrape_search(keyword, location)
            result.jobs_scraped += len(jobs)

            outcome = save_jobs(jobs, source, repo, sleep=sleep)
            result.jobs_saved += outcome.saved
            result.duplicates_skipped += outcome.duplicates
            result.errors.extend(outcome.errors)
        except Exception as e:
            msg = f"Error scraping {keyword} in {location}: {e}"
            logger.error(f"[{source}] {msg}")
            result.errors.append(msg)

        sleep(config.rate_limit_seconds)
