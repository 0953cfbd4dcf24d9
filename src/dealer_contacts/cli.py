"""CLI entrypoint for dealer-contacts."""

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence

from .config import (
    DEFAULT_DELAY,
    DEFAULT_MAX_PAGES_PER_DOMAIN,
    DEFAULT_OUTPUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SUMMARY_OUTPUT,
    CrawlConfig,
)
from .errors import ConfigError
from .io_csv import clean_domains, read_domains
from .logging_utils import configure_logging, get_logger
from .pipeline import run_pipeline


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        description="Dealer Contacts - resolve dealership domains, discover staff pages, extract contacts."
    )
    source_group = parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument("--domains", nargs="+", help="Domains to crawl.")
    source_group.add_argument(
        "--domains-file",
        help="Path to a domain list (.txt one per line, or .csv with domains in the first column).",
    )
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="Contact detail CSV path.")
    parser.add_argument(
        "--summary-output",
        default=DEFAULT_SUMMARY_OUTPUT,
        help="Per-domain summary CSV, appended as each domain finishes.",
    )
    parser.add_argument(
        "--min-delay",
        type=float,
        default=None,
        help=f"Minimum polite delay before every request (default {DEFAULT_DELAY}s or DELAY_MS).",
    )
    parser.add_argument(
        "--max-delay",
        type=float,
        default=None,
        help="Maximum polite delay (defaults to --min-delay).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="Per-request timeout in seconds.",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help=(
            "Maximum pages per domain, homepage included "
            f"(default {DEFAULT_MAX_PAGES_PER_DOMAIN} or MAX_PAGES_PER_DOMAIN)."
        ),
    )
    parser.add_argument(
        "--no-dns-precheck",
        action="store_true",
        help="Probe every URL variant even when its host has no DNS record.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable tqdm progress bars.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI input."""
    return build_parser().parse_args(argv)


def _env_number(name: str, cast: type, default: float | int | None) -> float | int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}.") from exc


def _materialize_domains(args: argparse.Namespace) -> tuple[str, ...]:
    if args.domains:
        return tuple(clean_domains(args.domains))
    try:
        return tuple(read_domains(args.domains_file))
    except OSError as exc:
        raise ConfigError(f"Cannot read domain list {args.domains_file}: {exc}") from exc


def namespace_to_config(args: argparse.Namespace) -> CrawlConfig:
    """Convert CLI args (and environment overrides) to a validated CrawlConfig."""
    delay_ms = _env_number("DELAY_MS", float, None)
    env_delay = delay_ms / 1000.0 if delay_ms is not None else DEFAULT_DELAY
    min_delay = args.min_delay if args.min_delay is not None else env_delay
    max_delay = args.max_delay if args.max_delay is not None else min_delay

    max_pages = args.max_pages
    if max_pages is None:
        max_pages = _env_number("MAX_PAGES_PER_DOMAIN", int, DEFAULT_MAX_PAGES_PER_DOMAIN)

    return CrawlConfig(
        domains=_materialize_domains(args),
        output=args.output,
        summary_output=args.summary_output,
        min_delay=min_delay,
        max_delay=max_delay,
        request_timeout=args.timeout,
        max_pages_per_domain=int(max_pages),
        dns_precheck=not args.no_dns_precheck,
        show_progress=not args.no_progress,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    logger = get_logger()
    try:
        config = namespace_to_config(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    output = run_pipeline(config, logger=logger)
    logger.info("Wrote results to %s", output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
