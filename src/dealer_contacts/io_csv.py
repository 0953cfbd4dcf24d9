"""CSV serialization helpers and the file-backed domain source."""

from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path

from .errors import SinkError
from .models import CrawlResult
from .validation import load_lines_from_file, strip_protocol

SUMMARY_FIELDS = [
    "domain",
    "email_count",
    "contacts",
    "date_scraped",
    "error",
]
CONTACT_FIELDS = [
    "domain",
    "name",
    "title",
    "email",
    "phone",
    "department",
    "source_page",
    "date_scraped",
]


def clean_domains(values: Iterable[str]) -> list[str]:
    """Trim, drop protocol/trailing slash, skip non-domains and test rows, dedupe."""
    output: list[str] = []
    for value in values:
        domain = strip_protocol(value)
        if not domain or "." not in domain or "TEST" in domain:
            continue
        if domain in output:
            continue
        output.append(domain)
    return output


def read_domains(path: str) -> list[str]:
    """Read domains from a text file (one per line) or a CSV file (first column, header skipped)."""
    if Path(path).suffix.lower() == ".csv":
        with Path(path).open(newline="", encoding="utf-8") as file_obj:
            rows = list(csv.reader(file_obj))
        return clean_domains(row[0] for row in rows[1:] if row)
    return clean_domains(load_lines_from_file(path))


def summary_row(result: CrawlResult) -> dict[str, str]:
    """The minimal per-domain projection every sink can render."""
    return {
        "domain": result.domain,
        "email_count": str(result.email_count),
        "contacts": result.contact_summary(),
        "date_scraped": result.date_stamp,
        "error": result.error or "",
    }


def contact_rows(result: CrawlResult) -> list[dict[str, str]]:
    """One row per contact, plus bare rows for emails no contact explains."""
    rows: list[dict[str, str]] = []
    explained: set[str] = set()
    for contact in result.contacts:
        explained.add(contact.email)
        rows.append(
            {
                "domain": result.domain,
                "name": contact.name,
                "title": contact.title,
                "email": contact.email,
                "phone": contact.phone,
                "department": contact.department,
                "source_page": contact.source,
                "date_scraped": result.date_stamp,
            }
        )
    for email in result.emails:
        if email in explained:
            continue
        rows.append(
            {
                "domain": result.domain,
                "name": "",
                "title": "",
                "email": email,
                "phone": "",
                "department": "",
                "source_page": "",
                "date_scraped": result.date_stamp,
            }
        )
    return rows


def write_rows(path: str, rows: list[dict[str, str]], fields: list[str]) -> None:
    """Write rows to CSV with stable schema."""
    output_path = Path(path)
    with output_path.open("w", newline="", encoding="utf-8") as file_obj:
        writer = csv.DictWriter(file_obj, fieldnames=fields)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def write_contact_rows(path: str, results: list[CrawlResult]) -> int:
    """Write the contact detail CSV for a finished run; returns the row count."""
    rows = [row for result in results for row in contact_rows(result)]
    write_rows(path, rows, CONTACT_FIELDS)
    return len(rows)


class CsvResultSink:
    """Appends one summary row per domain as soon as it finishes."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)

    def write(self, result: CrawlResult) -> None:
        try:
            needs_header = not self._path.exists() or self._path.stat().st_size == 0
            with self._path.open("a", newline="", encoding="utf-8") as file_obj:
                writer = csv.DictWriter(file_obj, fieldnames=SUMMARY_FIELDS)
                if needs_header:
                    writer.writeheader()
                writer.writerow(summary_row(result))
        except OSError as exc:
            raise SinkError(f"Could not write result for {result.domain}: {exc}") from exc
