import logging
from urllib.parse import urljoin, urlsplit, urlunsplit

import requests
from bs4 import BeautifulSoup

from models import JobListing, JobSource
from normalize import clean_text
from scrapers.base import SearchScraper

logger = logging.getLogger(__name__)

SEARCH_PATH = "/jobs-guest/jobs/api/seeMoreJobPostings/search"
RESULTS_PER_PAGE = 25


def _text(node, selector: str) -> str | None:
    el = node.select_one(selector)
    if el is None:
        return None
    return clean_text(el.get_text(" ")) or None


def canonical_url(href: str) -> str:
    """Drop tracking query strings and fragments from a posting link."""
    parts = urlsplit(href)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class LinkedInScraper(SearchScraper):
    """LinkedIn's public guest job search, fetched over an HttpSession.

    The guest endpoint returns bare result-card fragments, so no browser is
    needed; each posting page is fetched separately for its description.
    """

    source = JobSource.LINKEDIN

    def scrape_search(self, keyword: str, location: str) -> list[JobListing]:
        selectors = self.config.selectors
        search_url = f"{self.config.base_url}{SEARCH_PATH}"
        jobs = []
        logger.info(f"[{self.name}] Scraping: {keyword} in {location}")

        for page in range(self.config.max_pages):
            params = {"keywords": keyword, "location": location, "start": page * RESULTS_PER_PAGE}
            try:
                html = self.session.get_html(search_url, params=params)
            except requests.RequestException as e:
                if page == 0:
                    raise
                logger.warning(f"[{self.name}] Error on page {page + 1}: {e}")
                break

            cards = BeautifulSoup(html, "html.parser").select(selectors.job_card)
            if not cards:
                logger.info(f"[{self.name}] No more jobs found, stopping pagination")
                break

            logger.info(f"[{self.name}] Found {len(cards)} job cards on page {page + 1}")
            jobs.extend(self.parse_cards(cards))
            self.sleep(self.config.rate_limit_seconds)

        logger.info(f'[{self.name}] Scraped {len(jobs)} jobs for "{keyword}" in {location}')
        return jobs

    def parse_job(self, card) -> JobListing | None:
        selectors = self.config.selectors
        title = _text(card, selectors.title)
        company = _text(card, selectors.company)
        link = card.select_one(selectors.url)
        href = link.get("href") if link else None
        if not title or not company or not href:
            return None

        url = canonical_url(urljoin(self.config.base_url, href.strip()))
        description = self.fetch_description(url)
        if not description:
            return None

        # <time datetime="2024-05-01">2 weeks ago</time>
        posted_el = card.select_one(selectors.posted_date)
        posted = None
        if posted_el is not None:
            posted = posted_el.get("datetime") or posted_el.get_text(" ")

        return self.build_listing(
            title=title,
            company=company,
            url=url,
            description=description,
            location=_text(card, selectors.location),
            salary=_text(card, selectors.salary),
            posted=posted,
        )

    def fetch_description(self, url: str) -> str | None:
        try:
            html = self.session.get_html(url)
        except requests.RequestException as e:
            logger.debug(f"[{self.name}] Could not fetch {url}: {e}")
            return None

        el = BeautifulSoup(html, "html.parser").select_one(self.config.selectors.description)
        if el is None:
            return None
        return clean_text(el.get_text(" ")) or None
