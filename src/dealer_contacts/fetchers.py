"""Rate-limited HTTP fetch primitive shared by every network-touching component."""

from __future__ import annotations

import logging
from collections.abc import Callable

from requests import Response, Session
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from .validation import is_supported_url, polite_sleep

SleepFn = Callable[[float, float], None]

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}
HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


def make_session(user_agent: str, max_redirects: int = 10) -> Session:
    """Create a requests session with browser headers and no automatic retries."""
    session = Session()
    session.headers.update({"User-Agent": user_agent, **BROWSER_HEADERS})
    session.max_redirects = max_redirects
    retry = Retry(total=0, raise_on_redirect=False, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class RequestsFetcher:
    """Sequential fetcher that waits the politeness interval before every request.

    All three entry points share one delay, so a single instance enforces the
    interval globally across domains, probes, sitemaps and pages.
    """

    def __init__(
        self,
        *,
        session: Session,
        timeout: float,
        min_delay: float,
        max_delay: float,
        logger: logging.Logger,
        sleep_fn: SleepFn = polite_sleep,
    ) -> None:
        self._session = session
        self._timeout = timeout
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._logger = logger
        self._sleep_fn = sleep_fn

    def _get(self, url: str) -> Response | None:
        if not is_supported_url(url):
            self._logger.debug("Skipping unsupported URL: %s", url)
            return None
        self._sleep_fn(self._min_delay, self._max_delay)
        self._logger.debug("GET %s", url)
        try:
            response = self._session.get(url, timeout=self._timeout, allow_redirects=True)
        except RequestException as exc:
            self._logger.debug("Fetch failed for %s: %s", url, exc)
            return None
        if response.status_code >= 400:
            self._logger.debug("Fetch failed for %s: HTTP %d", url, response.status_code)
            return None
        return response

    def fetch(self, url: str) -> str:
        response = self._get(url)
        if response is None:
            return ""
        content_type = str(response.headers.get("Content-Type", "")).lower()
        if not any(kind in content_type for kind in HTML_CONTENT_TYPES):
            self._logger.debug("Not HTML content at %s (%s)", url, content_type or "unknown")
            return ""
        return str(response.text)

    def fetch_text(self, url: str) -> str:
        response = self._get(url)
        if response is None:
            return ""
        return str(response.text)

    def probe(self, url: str) -> str:
        response = self._get(url)
        if response is None:
            return ""
        return str(response.url or url)
