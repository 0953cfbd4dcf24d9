"""Runtime configuration model."""

from __future__ import annotations

from dataclasses import dataclass

from .validation import validate_runtime_constraints

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_REQUEST_TIMEOUT = 15.0
DEFAULT_MAX_REDIRECTS = 10
DEFAULT_DELAY = 3.0
DEFAULT_MAX_PAGES_PER_DOMAIN = 100
DEFAULT_CONTACT_STOP_THRESHOLD = 3
DEFAULT_EMAIL_STOP_THRESHOLD = 5
DEFAULT_OUTPUT = "scraped_emails.csv"
DEFAULT_SUMMARY_OUTPUT = "crawl_summary.csv"


@dataclass(frozen=True)
class CrawlConfig:
    """Validated configuration used by the crawl pipeline."""

    domains: tuple[str, ...]
    output: str = DEFAULT_OUTPUT
    summary_output: str = DEFAULT_SUMMARY_OUTPUT
    min_delay: float = DEFAULT_DELAY
    max_delay: float = DEFAULT_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    max_pages_per_domain: int = DEFAULT_MAX_PAGES_PER_DOMAIN
    contact_stop_threshold: int = DEFAULT_CONTACT_STOP_THRESHOLD
    email_stop_threshold: int = DEFAULT_EMAIL_STOP_THRESHOLD
    user_agent: str = DEFAULT_USER_AGENT
    dns_precheck: bool = True
    show_progress: bool = True

    def __post_init__(self) -> None:
        validate_runtime_constraints(
            domains=self.domains,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
            request_timeout=self.request_timeout,
            max_redirects=self.max_redirects,
            max_pages_per_domain=self.max_pages_per_domain,
            contact_stop_threshold=self.contact_stop_threshold,
            email_stop_threshold=self.email_stop_threshold,
        )
