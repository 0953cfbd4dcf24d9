"""Core orchestration pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from bs4 import BeautifulSoup
from tqdm import tqdm

from .config import CrawlConfig
from .discovery import HOMEPAGE_PATH, PageDiscoverer, page_url
from .extraction import extract_contacts, parse_html
from .fetchers import RequestsFetcher, make_session
from .io_csv import CsvResultSink, write_contact_rows
from .models import Contact, CrawlResult, DomainListSource, Fetcher, PageExtraction, ResultSink
from .resolver import DomainResolver, HostCheckFn
from .scoring import count_named_contacts, should_stop_early
from .validation import host_resolves

Extractor = Callable[[BeautifulSoup, str], PageExtraction]


class CrawlPhase(Enum):
    HOMEPAGE = "homepage"
    FOLLOWUP = "followup"
    DONE = "done"


@dataclass
class DomainCrawl:
    """Per-domain accumulator; emails dedupe by exact string, contacts by (name, email)."""

    domain: str
    phase: CrawlPhase = CrawlPhase.HOMEPAGE
    emails: list[str] = field(default_factory=list)
    contacts: list[Contact] = field(default_factory=list)
    pages_visited: int = 0

    def absorb(self, page: PageExtraction) -> list[str]:
        """Merge one page's findings and return the emails not seen before."""
        self.pages_visited += 1
        new_emails = [email for email in page.emails if email not in self.emails]
        self.emails.extend(new_emails)
        known = {(contact.name, contact.email) for contact in self.contacts}
        for contact in page.contacts:
            key = (contact.name, contact.email)
            if key not in known:
                known.add(key)
                self.contacts.append(contact)
        return new_emails

    def check_stop(self, page: PageExtraction, *, contact_threshold: int, email_threshold: int) -> bool:
        """Move to DONE when a follow-up page satisfies the early-stop rule.

        The homepage phase never stops the crawl.
        """
        if self.phase is not CrawlPhase.FOLLOWUP:
            return False
        if should_stop_early(
            count_named_contacts(page.contacts),
            len(self.emails),
            contact_threshold=contact_threshold,
            email_threshold=email_threshold,
        ):
            self.phase = CrawlPhase.DONE
        return self.phase is CrawlPhase.DONE

    def to_result(self) -> CrawlResult:
        return CrawlResult(
            domain=self.domain,
            emails=list(self.emails),
            contacts=list(self.contacts),
        )


class CrawlOrchestrator:
    """Crawls one domain at a time: resolve, homepage, discovered pages, early stop."""

    def __init__(
        self,
        *,
        fetcher: Fetcher,
        resolver: DomainResolver,
        discoverer: PageDiscoverer,
        config: CrawlConfig,
        logger: logging.Logger,
        extractor: Extractor = extract_contacts,
    ) -> None:
        self._fetcher = fetcher
        self._resolver = resolver
        self._discoverer = discoverer
        self._config = config
        self._logger = logger
        self._extractor = extractor

    def crawl(self, domain: str) -> CrawlResult:
        """Crawl one domain; failures come back as an error-flagged result."""
        try:
            return self._crawl(domain)
        except Exception as exc:
            self._logger.warning("Error scraping %s: %s", domain, exc)
            return CrawlResult(domain=domain, error=f"{type(exc).__name__}: {exc}")

    def _crawl(self, domain: str) -> CrawlResult:
        resolution = self._resolver.resolve(domain)
        state = DomainCrawl(domain=domain)

        homepage_url = page_url(resolution.base_url, HOMEPAGE_PATH)
        html = self._fetcher.fetch(homepage_url)
        if not html:
            self._logger.warning("Homepage unreachable for %s: %s", domain, homepage_url)
            return CrawlResult(domain=domain, error=f"Homepage unreachable: {homepage_url}")

        soup = parse_html(html)
        for email in state.absorb(self._extractor(soup, homepage_url)):
            self._logger.info("Found on homepage: %s", email)

        candidates = self._discoverer.discover(resolution.base_url, soup)
        candidates = candidates[: self._config.max_pages_per_domain]
        self._logger.info("Scraping up to %d pages for %s", len(candidates), domain)

        state.phase = CrawlPhase.FOLLOWUP
        for path in candidates:
            if state.phase is CrawlPhase.DONE:
                break
            if path == HOMEPAGE_PATH:
                continue
            url = page_url(resolution.base_url, path)
            page_html = self._fetcher.fetch(url)
            if not page_html:
                continue
            page = self._extractor(parse_html(page_html), url)
            for email in state.absorb(page):
                self._logger.info("Found on %s: %s", path, email)

            if state.check_stop(
                page,
                contact_threshold=self._config.contact_stop_threshold,
                email_threshold=self._config.email_stop_threshold,
            ):
                self._logger.info(
                    "Stopping %s early after %s (%d named contacts on page, %d emails total)",
                    domain,
                    path,
                    count_named_contacts(page.contacts),
                    len(state.emails),
                )

        state.phase = CrawlPhase.DONE
        self._logger.info(
            "%s: found %d emails across %d pages", domain, len(state.emails), state.pages_visited
        )
        return state.to_result()

    def run(self, domains: DomainListSource, *, sink: ResultSink | None = None) -> list[CrawlResult]:
        """Crawl domains sequentially in input order, handing each result to the sink."""
        domain_list = list(domains)
        results: list[CrawlResult] = []
        iterator: Iterable[tuple[int, str]] = enumerate(domain_list, start=1)
        if self._config.show_progress:
            iterator = tqdm(iterator, total=len(domain_list), desc="crawling domains")
        for index, domain in iterator:
            self._logger.info("[%d/%d] Processing: %s", index, len(domain_list), domain)
            result = self.crawl(domain)
            results.append(result)
            if sink is None:
                continue
            try:
                sink.write(result)
            except Exception as exc:
                self._logger.warning("Result sink failed for %s: %s", domain, exc)
        return results


def crawl_domains(
    config: CrawlConfig,
    *,
    fetcher: Fetcher,
    logger: logging.Logger,
    host_checker: HostCheckFn | None = None,
    sink: ResultSink | None = None,
) -> list[CrawlResult]:
    """Wire the components around one fetcher and crawl every configured domain."""
    orchestrator = CrawlOrchestrator(
        fetcher=fetcher,
        resolver=DomainResolver(fetcher=fetcher, logger=logger, host_checker=host_checker),
        discoverer=PageDiscoverer(fetcher=fetcher, logger=logger),
        config=config,
        logger=logger,
    )
    results = orchestrator.run(config.domains, sink=sink)

    total_emails = sum(result.email_count for result in results)
    successful = sum(1 for result in results if result.emails)
    logger.info("Total domains processed: %d", len(results))
    logger.info("Domains with emails: %d", successful)
    logger.info("Total emails found: %d", total_emails)
    return results


def run_pipeline(config: CrawlConfig, *, logger: logging.Logger) -> str:
    """Build concrete dependencies, crawl, and write the contact CSV."""
    session = make_session(config.user_agent, config.max_redirects)
    fetcher = RequestsFetcher(
        session=session,
        timeout=config.request_timeout,
        min_delay=config.min_delay,
        max_delay=config.max_delay,
        logger=logger,
    )
    results = crawl_domains(
        config,
        fetcher=fetcher,
        logger=logger,
        host_checker=host_resolves if config.dns_precheck else None,
        sink=CsvResultSink(config.summary_output),
    )
    rows = write_contact_rows(config.output, results)
    logger.info("Wrote %d contact rows", rows)
    return config.output
