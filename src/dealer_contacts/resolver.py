"""Find the URL variant that actually serves a dealership domain."""

from __future__ import annotations

import logging
from collections.abc import Callable
from urllib.parse import urlparse, urlunparse

from .models import DomainResolution, Fetcher
from .validation import normalize_domain

HostCheckFn = Callable[[str], bool]


def candidate_urls(domain: str) -> list[str]:
    """Probe order: TLS before plain HTTP, ``www`` before bare host."""
    return [
        f"https://www.{domain}",
        f"https://{domain}",
        f"http://www.{domain}",
        f"http://{domain}",
    ]


def _host(url: str) -> str:
    return urlparse(url).netloc.lower()


def _base_url(final_url: str) -> str:
    parsed = urlparse(final_url)
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", "")).rstrip("/")


class DomainResolver:
    """Probes URL variants in fixed order and keeps the first that answers below HTTP 400."""

    def __init__(
        self,
        *,
        fetcher: Fetcher,
        logger: logging.Logger,
        host_checker: HostCheckFn | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._logger = logger
        self._host_checker = host_checker

    def resolve(self, raw_domain: str) -> DomainResolution:
        domain = normalize_domain(raw_domain)
        self._logger.info("Testing domain variations for: %s", domain)
        attempted: list[str] = []
        dns_cache: dict[str, bool] = {}

        for url in candidate_urls(domain):
            attempted.append(url)
            host = _host(url)
            if self._host_checker is not None:
                if host not in dns_cache:
                    dns_cache[host] = self._host_checker(host)
                if not dns_cache[host]:
                    self._logger.debug("Skipping %s: %s does not resolve", url, host)
                    continue

            final_url = self._fetcher.probe(url)
            if not final_url:
                self._logger.debug("Variant failed: %s", url)
                continue

            base_url = _base_url(final_url)
            redirected = _host(base_url) != host
            self._logger.info("Working URL found: %s", url)
            if redirected:
                self._logger.info("Domain redirect: %s -> %s", host, _host(base_url))
            return DomainResolution(
                domain=domain,
                base_url=base_url,
                redirected=redirected,
                verified=True,
                attempted_variants=tuple(attempted),
            )

        fallback = f"https://www.{domain}"
        self._logger.warning("All URL variants failed for %s, using %s", domain, fallback)
        return DomainResolution(
            domain=domain,
            base_url=fallback,
            redirected=False,
            verified=False,
            attempted_variants=tuple(attempted),
        )
