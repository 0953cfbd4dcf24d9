"""Validation and runtime guardrails."""

from __future__ import annotations

import random
import re
import socket
import time
from pathlib import Path
from urllib.parse import urlparse

import dns.exception
import dns.resolver

from .errors import ConfigError

EMAIL_PATTERN = re.compile(
    r"\b[A-Za-z0-9](?:[A-Za-z0-9._-]*[A-Za-z0-9])?"
    r"@[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?\.[A-Za-z]{2,}\b"
)
_EMAIL_FULL = re.compile(
    r"[A-Za-z0-9](?:[A-Za-z0-9._-]*[A-Za-z0-9])?"
    r"@[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?\.[A-Za-z]{2,}"
)

# Disposable or placeholder markers, matched against the lowercase address.
SKIP_PATTERNS = (
    "noreply",
    "no-reply",
    "donotreply",
    "example@",
    "@example.com",
    "test@",
    "@test.com",
    "admin@",
    "webmaster@",
    "support@wordpress",
    "@sentry.io",
    "placeholder@",
    "dummy@",
    "fake@",
)

_PROTOCOL_PREFIX = re.compile(r"^https?://", re.IGNORECASE)


def polite_sleep(min_delay: float, max_delay: float) -> None:
    """Sleep within configured bounds."""
    time.sleep(random.uniform(min_delay, max_delay))


def is_supported_url(url: str) -> bool:
    """Allow only absolute HTTP(S) URLs with a hostname."""
    parsed = urlparse(url)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def strip_protocol(value: str) -> str:
    """Drop an http(s):// prefix and trailing slashes."""
    return _PROTOCOL_PREFIX.sub("", value.strip()).rstrip("/")


def normalize_domain(raw: str) -> str:
    """Reduce user input like ``https://www.Dealer.com/`` to ``dealer.com``."""
    domain = strip_protocol(raw).lower()
    if domain.startswith("www."):
        domain = domain[len("www.") :]
    return domain


def bare_host(url: str) -> str:
    """Lowercase hostname of a URL without a leading ``www.``."""
    host = urlparse(url).netloc.lower().split(":", maxsplit=1)[0]
    return host[len("www.") :] if host.startswith("www.") else host


def is_valid_email(candidate: str) -> bool:
    """Return True when the whole string matches the email grammar."""
    return bool(_EMAIL_FULL.fullmatch(candidate or ""))


def is_skipped_email(candidate: str) -> bool:
    """Return True for disposable or placeholder addresses."""
    lowered = candidate.lower()
    return any(pattern in lowered for pattern in SKIP_PATTERNS)


def load_lines_from_file(path: str) -> list[str]:
    """Load non-empty lines from a UTF-8 text file."""
    content = Path(path).read_text(encoding="utf-8")
    return [line.strip() for line in content.splitlines() if line.strip()]


def validate_runtime_constraints(
    *,
    domains: tuple[str, ...],
    min_delay: float,
    max_delay: float,
    request_timeout: float,
    max_redirects: int,
    max_pages_per_domain: int,
    contact_stop_threshold: int,
    email_stop_threshold: int,
) -> None:
    """Validate CLI/runtime configuration and raise ConfigError on invalid values."""
    if not domains:
        raise ConfigError("Provide --domains or --domains-file with at least one domain.")
    if min_delay < 0 or max_delay < 0:
        raise ConfigError("--min-delay and --max-delay must be >= 0.")
    if min_delay > max_delay:
        raise ConfigError("--min-delay cannot be greater than --max-delay.")
    if request_timeout <= 0:
        raise ConfigError("--timeout must be > 0.")
    if max_redirects < 0:
        raise ConfigError("max_redirects must be >= 0.")
    if max_pages_per_domain < 1:
        raise ConfigError("--max-pages must be >= 1.")
    if contact_stop_threshold < 1 or email_stop_threshold < 1:
        raise ConfigError("Early-stop thresholds must be >= 1.")


def host_resolves(hostname: str) -> bool:
    """Return False only when DNS definitively has no IPv4 or IPv6 address for hostname."""
    for record_type in ("A", "AAAA"):
        try:
            if dns.resolver.resolve(hostname, record_type, lifetime=8):
                return True
        except (dns.resolver.NoAnswer, dns.resolver.NXDOMAIN, dns.resolver.NoNameservers):
            continue
        except dns.exception.DNSException:
            # Timeouts are inconclusive; let the HTTP probe decide.
            return True
    try:
        socket.getaddrinfo(hostname, None)
        return True
    except OSError:
        return False
