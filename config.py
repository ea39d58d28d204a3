"""Per-source scraper descriptors plus runtime settings derived from settings.json."""

import os
from dataclasses import dataclass

from models import JobSource
from settings import get_settings


def _load():
    """Load runtime config values from the current settings."""
    global DB_PATH, ARCHIVE_DAYS, ENABLED_SOURCES, SCHEDULE_HOURS
    global HEADLESS, REPORTS_DIR, CRON_SECRET

    _s = get_settings()
    DB_PATH = os.environ.get("PEERJOBS_DB_PATH") or _s.db_path
    ARCHIVE_DAYS = _s.archive_days
    if _s.enabled_sources is None:
        ENABLED_SOURCES = list(SOURCE_CONFIGS)
    else:
        ENABLED_SOURCES = list(_s.enabled_sources)
    SCHEDULE_HOURS = _s.schedule_hours
    HEADLESS = _s.headless
    REPORTS_DIR = _s.reports_dir
    CRON_SECRET = os.environ.get("CRON_SECRET", "")


USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}

# Timeouts, milliseconds
NAVIGATION_TIMEOUT = 30000
CARD_WAIT_TIMEOUT = 10000
DETAIL_NAVIGATION_TIMEOUT = 15000
DESCRIPTION_WAIT_TIMEOUT = 5000
HTTP_TIMEOUT = 30

NAVIGATION_ATTEMPTS = 3
NAVIGATION_RETRY_DELAY = 1.0  # seconds, doubled per attempt


@dataclass(frozen=True)
class Selectors:
    """CSS selectors for one source. Every field is required so a new source can't skip one."""

    job_card: str
    title: str
    company: str
    location: str
    salary: str
    description: str
    url: str
    posted_date: str


@dataclass(frozen=True)
class SourceConfig:
    source: JobSource
    base_url: str
    search_keywords: tuple[str, ...]
    search_locations: tuple[str, ...]
    max_pages: int
    rate_limit_ms: int  # fixed pause between requests
    selectors: Selectors

    @property
    def rate_limit_seconds(self) -> float:
        return self.rate_limit_ms / 1000


PEER_SEARCH_KEYWORDS = (
    "peer specialist",
    "peer advocate",
    "recovery coach",
    "certified recovery peer advocate",
    "peer counselor",
    "peer support specialist",
)

NYC_LOCATIONS = (
    "New York, NY",
    "Brooklyn, NY",
    "Manhattan, NY",
    "Queens, NY",
    "Bronx, NY",
    "Staten Island, NY",
)

INDEED_CONFIG = SourceConfig(
    source=JobSource.INDEED,
    base_url="https://www.indeed.com",
    search_keywords=PEER_SEARCH_KEYWORDS,
    search_locations=NYC_LOCATIONS,
    max_pages=3,
    rate_limit_ms=2000,
    selectors=Selectors(
        job_card=".job_seen_beacon",
        title="h2.jobTitle",
        company='[data-testid="company-name"]',
        location='[data-testid="text-location"]',
        salary=".salary-snippet",
        description="#jobDescriptionText",
        url="h2.jobTitle a",
        posted_date=".date",
    ),
)

# LinkedIn is stricter about request rates
LINKEDIN_CONFIG = SourceConfig(
    source=JobSource.LINKEDIN,
    base_url="https://www.linkedin.com",
    search_keywords=PEER_SEARCH_KEYWORDS,
    search_locations=NYC_LOCATIONS,
    max_pages=2,
    rate_limit_ms=3000,
    selectors=Selectors(
        job_card=".job-search-card",
        title=".base-search-card__title",
        company=".base-search-card__subtitle",
        location=".job-search-card__location",
        salary=".job-search-card__salary-info",
        description=".description__text",
        url="a.base-card__full-link",
        posted_date="time",
    ),
)

SOURCE_CONFIGS: dict[JobSource, SourceConfig] = {
    JobSource.INDEED: INDEED_CONFIG,
    JobSource.LINKEDIN: LINKEDIN_CONFIG,
}

# Initial load
_load()


def reload():
    """Re-read settings.json and refresh all module-level constants."""
    _load()
