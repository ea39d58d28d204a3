"""Fetch sessions handed to scrapers: a headless Chromium browser or a plain HTTP session.

Both are context managers. Entering one acquires every resource it needs and
exiting releases them on every path, so the engine can open a session with a
single `with` block.
"""

import logging
import time

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

import config
from normalize import clean_text
from retry import retrying

logger = logging.getLogger(__name__)


class BrowserSession:
    """One headless Chromium instance with a single working page."""

    def __init__(self, headless: bool | None = None, user_agent: str = config.USER_AGENT,
                 viewport: dict | None = None, sleep=time.sleep):
        self.headless = config.HEADLESS if headless is None else headless
        self.user_agent = user_agent
        self.viewport = viewport or config.VIEWPORT
        self._sleep = sleep
        self._playwright = None
        self._browser = None
        self._context = None
        self.page = None

    def __enter__(self):
        try:
            self.start()
        except Exception:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def start(self) -> None:
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        # User agent and viewport live on the context so detail tabs share them
        self._context = self._browser.new_context(user_agent=self.user_agent, viewport=self.viewport)
        self.page = self._context.new_page()

    def close(self) -> None:
        for name, resource, closer in (
            ("page", self.page, "close"),
            ("context", self._context, "close"),
            ("browser", self._browser, "close"),
            ("playwright", self._playwright, "stop"),
        ):
            if resource is None:
                continue
            try:
                getattr(resource, closer)()
            except Exception as e:
                logger.warning(f"Failed to close {name}: {e}")
        self.page = self._context = self._browser = self._playwright = None

    def navigate(self, url: str, timeout: int = config.NAVIGATION_TIMEOUT) -> None:
        """Load url in the working page, retrying transient failures with backoff."""
        if self.page is None:
            raise RuntimeError("Browser session not started")

        retrying(
            (PlaywrightError,),
            attempts=config.NAVIGATION_ATTEMPTS,
            delay=config.NAVIGATION_RETRY_DELAY,
            sleep=self._sleep,
        )(self.page.goto, url, wait_until="networkidle", timeout=timeout)

    def wait_for(self, selector: str, timeout: int = config.CARD_WAIT_TIMEOUT) -> bool:
        """Wait for selector on the working page; False when it never shows up."""
        try:
            self.page.wait_for_selector(selector, timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            return False

    def query_all(self, selector: str) -> list:
        return self.page.query_selector_all(selector)

    def fetch_text(self, url: str, selector: str,
                   navigation_timeout: int = config.DETAIL_NAVIGATION_TIMEOUT,
                   wait_timeout: int = config.DESCRIPTION_WAIT_TIMEOUT) -> str | None:
        """Open url in a separate tab and return the cleaned text of selector, or None."""
        detail = self._context.new_page()
        try:
            detail.goto(url, wait_until="networkidle", timeout=navigation_timeout)
            detail.wait_for_selector(selector, timeout=wait_timeout)
            element = detail.query_selector(selector)
            text = element.text_content() if element else None
            return clean_text(text) if text else None
        except PlaywrightError as e:
            logger.debug(f"Could not read {selector} from {url}: {e}")
            return None
        finally:
            detail.close()


class HttpSession:
    """A requests.Session with browser-like headers, for sources serving static markup."""

    def __init__(self, user_agent: str = config.USER_AGENT, timeout: int = config.HTTP_TIMEOUT,
                 retries: Retry | None = None):
        self.user_agent = user_agent
        self.timeout = timeout
        # 429 and 5xx are retried with backoff; the final response is returned for raise_for_status
        self.retries = retries or Retry(
            total=config.NAVIGATION_ATTEMPTS - 1,
            backoff_factor=config.NAVIGATION_RETRY_DELAY,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET"]),
            raise_on_status=False,
        )
        self._session = None

    def __enter__(self):
        self._session = requests.Session()
        self._session.headers.update({
            "User-Agent": self.user_agent,
            "Accept-Language": "en-US,en;q=0.9",
        })
        adapter = HTTPAdapter(max_retries=self.retries)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def get_html(self, url: str, params: dict | None = None) -> str:
        """GET url and return the body. Raises requests.HTTPError once retries are spent."""
        if self._session is None:
            raise RuntimeError("HTTP session not started")

        resp = self._session.get(url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.text


def extract_text(element, selector: str) -> str | None:
    """Cleaned text of the first match of selector under a Playwright element, or None."""
    try:
        el = element.query_selector(selector)
        if not el:
            return None
        text = el.text_content()
        return clean_text(text) if text else None
    except PlaywrightError:
        return None


def extract_attribute(element, selector: str, attribute: str) -> str | None:
    try:
        el = element.query_selector(selector)
        if not el:
            return None
        value = el.get_attribute(attribute)
        return clean_text(value) if value else None
    except PlaywrightError:
        return None
