import logging
import time
from abc import ABC, abstractmethod

from config import SourceConfig
from filters import determine_job_type, determine_specialty
from models import JobListing, JobSource
from normalize import extract_certifications, format_location, format_salary, parse_date

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "New York, NY"


class SearchScraper(ABC):
    """Site-specific extraction for one job board.

    The engine drives a scraper through `scrape_search` once per keyword and
    location; everything the scraper needs to fetch pages comes in through
    `session`, which the engine has already opened.
    """

    source: JobSource

    def __init__(self, session, config: SourceConfig, sleep=time.sleep):
        self.session = session
        self.config = config
        self.sleep = sleep

    @property
    def name(self) -> str:
        return self.source.value

    @abstractmethod
    def scrape_search(self, keyword: str, location: str) -> list[JobListing]:
        """Walk the search results for one keyword/location pair. Returns candidates."""
        ...

    @abstractmethod
    def parse_job(self, card) -> JobListing | None:
        """Build a candidate from one result card, or None if the card is incomplete."""
        ...

    def parse_cards(self, cards) -> list[JobListing]:
        """parse_job over a page of cards; a card that blows up is logged and skipped."""
        jobs = []
        for card in cards:
            try:
                job = self.parse_job(card)
            except Exception as e:
                logger.warning(f"[{self.name}] Error parsing job card: {e}")
                continue
            if job:
                jobs.append(job)
        return jobs

    def build_listing(
        self,
        title: str,
        company: str,
        url: str,
        description: str,
        location: str | None = None,
        salary: str | None = None,
        posted: str | None = None,
    ) -> JobListing:
        """Normalize raw card fields and infer type, specialty and certifications."""
        return JobListing(
            title=title,
            company=company,
            url=url,
            source=self.source.value,
            location=format_location(location or DEFAULT_LOCATION),
            salary=format_salary(salary),
            description=description,
            job_type=determine_job_type(title, description),
            certifications_req=extract_certifications(description),
            specialty=determine_specialty(description),
            posted_date=parse_date(posted),
        )
