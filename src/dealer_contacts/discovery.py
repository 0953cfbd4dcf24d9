"""Candidate page discovery for a resolved dealership site."""

from __future__ import annotations

import html
import logging
import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .extraction import parse_html
from .models import Fetcher
from .validation import bare_host, is_supported_url

HOMEPAGE_PATH = "/"
MAX_PATH_LENGTH = 200
SITEMAP_PATHS = ("/sitemap.xml", "/sitemap.txt", "/sitemap_index.xml", "/sitemaps.xml")
ROBOTS_PATH = "/robots.txt"

RELEVANCE_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "contact": (
        re.compile(r"\b(contact|reach|get.?in.?touch|connect)\b", re.I),
        re.compile(r"contact.?(us|info|information|form)", re.I),
    ),
    "team": (
        re.compile(r"\b(team|staff|people|employees|crew|personnel)\b", re.I),
        re.compile(r"\b(our.?(team|people|staff|employees)|meet.?(team|staff|people))\b", re.I),
        re.compile(r"\b(leadership|management|directors|executives|managers)\b", re.I),
        re.compile(r"\b(employee.?directory|staff.?directory)\b", re.I),
    ),
    "about": (
        re.compile(r"\b(about|company|who.?we.?are)\b", re.I),
        re.compile(r"about.?(us|company|dealership)", re.I),
        re.compile(r"\b(history|story|mission)\b", re.I),
    ),
    "department": (
        re.compile(r"\b(service|parts|sales|finance)\b", re.I),
        re.compile(r"\b(department|dept)\b", re.I),
    ),
}

FALLBACK_PATHS = (
    "/contact",
    "/contact-us",
    "/about",
    "/about-us",
    "/team",
    "/staff",
    "/our-team",
    "/our-people",
    "/leadership",
    "/management",
    "/OurPeople.htm",
    "/MeetTheTeam.htm",
    "/service",
    "/parts",
    "/sales",
)

NAVIGATION_LINK_SELECTOR = ", ".join(
    f"{region} a[href]"
    for region in (
        "nav",
        "header",
        ".nav",
        ".menu",
        ".navigation",
        '[class*="nav"]',
        '[id*="nav"]',
        '[class*="menu"]',
        '[id*="menu"]',
        "footer",
        ".footer",
        '[class*="footer"]',
        '[id*="footer"]',
    )
)

_LOC_RE = re.compile(r"<loc>\s*(.*?)\s*</loc>", re.IGNORECASE | re.DOTALL)
_CDATA_RE = re.compile(r"^<!\[CDATA\[(.*)\]\]>$", re.DOTALL)
_ROBOTS_SITEMAP_RE = re.compile(r"^\s*sitemap:\s*(\S+)", re.IGNORECASE | re.MULTILINE)


def page_url(base_url: str, path: str) -> str:
    """Absolute URL for a root-relative path on the resolved site."""
    if path == HOMEPAGE_PATH:
        return base_url.rstrip("/") + "/"
    return urljoin(base_url.rstrip("/") + "/", path)


def to_root_relative(url: str, base_url: str) -> str | None:
    """Path (plus query) of an absolute URL on the same site, else None."""
    value = url.strip()
    if value.startswith("//"):
        value = f"{urlparse(base_url).scheme or 'https'}:{value}"
    if not is_supported_url(value) or bare_host(value) != bare_host(base_url):
        return None
    parsed = urlparse(value)
    path = parsed.path or HOMEPAGE_PATH
    if parsed.query:
        path = f"{path}?{parsed.query}"
    return path


def _dedupe(paths: list[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        output.append(path)
    return output


def parse_sitemap(content: str, base_url: str, *, is_xml: bool) -> list[str]:
    """Root-relative paths of same-site URLs listed in an XML or text sitemap."""
    if is_xml:
        raw_urls = []
        for value in _LOC_RE.findall(content or ""):
            cdata = _CDATA_RE.match(value)
            raw_urls.append(html.unescape(cdata.group(1) if cdata else value))
    else:
        raw_urls = [line.strip() for line in (content or "").splitlines() if line.strip()]

    paths: list[str] = []
    for raw in raw_urls:
        path = to_root_relative(raw, base_url)
        if path:
            paths.append(path)
    return _dedupe(paths)


def parse_robots_sitemaps(content: str) -> list[str]:
    """All ``Sitemap:`` directive targets in a robots.txt body."""
    return _dedupe(_ROBOTS_SITEMAP_RE.findall(content or ""))


def is_relevant_path(path: str) -> bool:
    """True when a path falls in the contact, team, about or department categories."""
    if not path or len(path) > MAX_PATH_LENGTH:
        return False
    lowered = path.lower()
    return any(
        pattern.search(lowered)
        for patterns in RELEVANCE_PATTERNS.values()
        for pattern in patterns
    )


def harvest_navigation_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Root-relative hrefs of anchors inside navigation, menu, header and footer regions."""
    links: list[str] = []
    for anchor in soup.select(NAVIGATION_LINK_SELECTOR):
        href = str(anchor.get("href", "")).strip().split("#", maxsplit=1)[0]
        if not href:
            continue
        if href.startswith("/") and not href.startswith("//"):
            links.append(href)
            continue
        path = to_root_relative(href, base_url)
        if path:
            links.append(path)
    return _dedupe(links)


class PageDiscoverer:
    """Builds the ordered list of pages worth fetching for one site."""

    def __init__(self, *, fetcher: Fetcher, logger: logging.Logger) -> None:
        self._fetcher = fetcher
        self._logger = logger

    def discover(self, base_url: str, homepage: BeautifulSoup | str) -> list[str]:
        """Homepage first, then relevant sitemap and navigation paths, then fallbacks."""
        soup = homepage if isinstance(homepage, BeautifulSoup) else parse_html(homepage)

        sitemap_paths = self._conventional_sitemap_paths(base_url)
        robots_paths = self._robots_sitemap_paths(base_url)
        navigation_links = harvest_navigation_links(soup, base_url)
        self._logger.info(
            "Discovered %d pages from sitemaps and %d navigation/footer links",
            len(_dedupe(sitemap_paths + robots_paths)),
            len(navigation_links),
        )

        candidates = [HOMEPAGE_PATH]
        seen = {HOMEPAGE_PATH}
        for path in sitemap_paths + robots_paths + navigation_links:
            if path in seen or not is_relevant_path(path):
                continue
            seen.add(path)
            candidates.append(path)

        if not sitemap_paths:
            self._logger.info("No sitemap found for %s, adding common page paths", base_url)
            for path in FALLBACK_PATHS:
                if path not in seen:
                    seen.add(path)
                    candidates.append(path)

        self._logger.info("Found %d candidate pages for %s", len(candidates), base_url)
        return candidates

    def _conventional_sitemap_paths(self, base_url: str) -> list[str]:
        for sitemap_path in SITEMAP_PATHS:
            sitemap_url = page_url(base_url, sitemap_path)
            content = self._fetcher.fetch_text(sitemap_url)
            if not content.strip():
                continue
            self._logger.info("Found sitemap: %s", sitemap_url)
            return parse_sitemap(content, base_url, is_xml=sitemap_path.endswith(".xml"))
        return []

    def _robots_sitemap_paths(self, base_url: str) -> list[str]:
        robots = self._fetcher.fetch_text(page_url(base_url, ROBOTS_PATH))
        paths: list[str] = []
        for sitemap_url in parse_robots_sitemaps(robots):
            content = self._fetcher.fetch_text(sitemap_url)
            if not content.strip():
                continue
            self._logger.info("Found sitemap from robots.txt: %s", sitemap_url)
            is_xml = not urlparse(sitemap_url).path.lower().endswith(".txt")
            paths.extend(parse_sitemap(content, base_url, is_xml=is_xml))
        return _dedupe(paths)
