"""Protocols and lightweight model types."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol


class Fetcher(Protocol):
    """Contract for the rate-limited HTTP fetch primitive."""

    def fetch(self, url: str) -> str:
        """Return HTML content for a URL or an empty string."""

    def fetch_text(self, url: str) -> str:
        """Return the raw body for a URL (sitemaps, robots.txt) or an empty string."""

    def probe(self, url: str) -> str:
        """Return the final URL after redirects when the request succeeds, else ``""``."""


class DomainListSource(Protocol):
    """Anything that yields raw domain strings in crawl order."""

    def __iter__(self) -> Iterator[str]:
        """Iterate raw domain strings."""


class ResultSink(Protocol):
    """Contract for persisting crawl results."""

    def write(self, result: CrawlResult) -> None:
        """Persist one result; may raise."""


@dataclass(frozen=True)
class Contact:
    """A person recovered from a page."""

    name: str
    email: str
    source: str
    title: str = ""
    phone: str = ""
    department: str = ""

    def render(self) -> str:
        """Render as ``name (title): email | phone``."""
        text = self.name or "Unknown"
        if self.title:
            text += f" ({self.title})"
        text += f": {self.email}"
        if self.phone:
            text += f" | {self.phone}"
        return text


@dataclass
class PageExtraction:
    """Emails and contacts found by one extraction pass."""

    emails: list[str] = field(default_factory=list)
    contacts: list[Contact] = field(default_factory=list)

    def add_email(self, email: str) -> None:
        if email not in self.emails:
            self.emails.append(email)

    def add_contact(self, contact: Contact) -> None:
        key = (contact.name, contact.email)
        if all((item.name, item.email) != key for item in self.contacts):
            self.contacts.append(contact)

    def merge(self, other: PageExtraction) -> None:
        for email in other.emails:
            self.add_email(email)
        for contact in other.contacts:
            self.add_contact(contact)


@dataclass(frozen=True)
class DomainResolution:
    """Outcome of probing the URL variants of one domain."""

    domain: str
    base_url: str
    redirected: bool = False
    verified: bool = True
    attempted_variants: tuple[str, ...] = ()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CrawlResult:
    """Per-domain crawl outcome handed to result sinks."""

    domain: str
    emails: list[str] = field(default_factory=list)
    contacts: list[Contact] = field(default_factory=list)
    timestamp: datetime = field(default_factory=_utc_now)
    error: str | None = None

    @property
    def email_count(self) -> int:
        return len(self.emails)

    @property
    def date_stamp(self) -> str:
        return self.timestamp.date().isoformat()

    def contact_summary(self) -> str:
        """Human-readable one-line summary of the domain's contacts."""
        if self.contacts:
            return "; ".join(contact.render() for contact in self.contacts)
        if self.emails:
            return ", ".join(self.emails)
        return "No contacts found"
