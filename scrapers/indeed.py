import logging
from urllib.parse import urlencode, urljoin

from models import JobListing, JobSource
from scrapers.base import SearchScraper
from sessions import extract_attribute, extract_text

logger = logging.getLogger(__name__)

RESULTS_PER_PAGE = 10


class IndeedScraper(SearchScraper):
    """Indeed search results, driven through a BrowserSession."""

    source = JobSource.INDEED

    def search_url(self, keyword: str, location: str, page: int) -> str:
        query = urlencode({"q": keyword, "l": location, "start": page * RESULTS_PER_PAGE})
        return f"{self.config.base_url}/jobs?{query}"

    def scrape_search(self, keyword: str, location: str) -> list[JobListing]:
        selectors = self.config.selectors
        jobs = []
        logger.info(f"[{self.name}] Scraping: {keyword} in {location}")

        for page in range(self.config.max_pages):
            url = self.search_url(keyword, location, page)
            try:
                logger.info(f"[{self.name}] Navigating to page {page + 1}: {url}")
                self.session.navigate(url)
                if not self.session.wait_for(selectors.job_card):
                    logger.info(f"[{self.name}] No job cards found on page {page + 1}")
                cards = self.session.query_all(selectors.job_card)
            except Exception as e:
                # Nothing collected yet: let the engine record the combination as failed
                if page == 0:
                    raise
                logger.warning(f"[{self.name}] Error on page {page + 1}: {e}")
                break

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
        title = extract_text(card, selectors.title)
        company = extract_text(card, selectors.company)
        link = extract_attribute(card, selectors.url, "href")
        if not title or not company or not link:
            return None

        url = urljoin(self.config.base_url, link)
        description = self.session.fetch_text(url, selectors.description)
        if not description:
            logger.debug(f"[{self.name}] No description for {url}")
            return None

        return self.build_listing(
            title=title,
            company=company,
            url=url,
            description=description,
            location=extract_text(card, selectors.location),
            salary=extract_text(card, selectors.salary),
            posted=extract_text(card, selectors.posted_date),
        )
