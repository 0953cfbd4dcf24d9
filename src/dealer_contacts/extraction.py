"""Email and staff-contact extraction from static HTML.

Each heuristic is a pure strategy ``(soup, source_url) -> PageExtraction``.
``extract_contacts`` runs every strategy over the same parsed document and
merges the partial results in order, so later strategies only add what the
earlier ones missed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from urllib.parse import unquote

from bs4 import (
    BeautifulSoup,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)

from .logging_utils import get_logger
from .models import Contact, PageExtraction
from .scoring import is_named_contact
from .validation import EMAIL_PATTERN, is_skipped_email, is_valid_email

Strategy = Callable[[BeautifulSoup, str], PageExtraction]

NAME_ATTRS = ("data-staff-name", "data-name")
TITLE_ATTRS = ("data-staff-title", "data-title")
DEPARTMENT_ATTRS = ("data-department", "data-dept")
EMAIL_ATTRS = ("data-email", "data-mail")

SECTION_KEYWORDS = (
    "staff",
    "team",
    "employee",
    "member",
    "contact",
    "about",
    "manager",
    "director",
    "sales",
    "service",
    "parts",
    "finance",
    "personnel",
    "crew",
)
CONTACT_SECTION_KEYWORDS = ("contact", "staff", "team", "about")


def _substring_selector(keywords: Sequence[str]) -> str:
    parts = [f'[class*="{word}"]' for word in keywords]
    parts.extend(f'[id*="{word}"]' for word in keywords)
    return ", ".join(parts)


STRUCTURED_SECTION_SELECTOR = _substring_selector(SECTION_KEYWORDS) + ", footer"
CONTACT_SECTION_SELECTOR = _substring_selector(CONTACT_SECTION_KEYWORDS)
NAMED_HOLDER_SELECTOR = ", ".join(f"[{attr}]" for attr in NAME_ATTRS)
DATA_EMAIL_SELECTOR = ", ".join(f"[{attr}]" for attr in EMAIL_ATTRS)
CTA_SELECTOR = 'button, .button, [class*="btn"]'
CTA_WORDS = ("email", "contact", "call", "reach")

PHONE_PATTERN = re.compile(r"(?<!\d)\(?\d{3}\)?[\s.-]{0,3}\d{3}[\s.-]{0,3}\d{4}(?!\d)")

_AT_TOKEN = r"(?:\s*[\[\(\{]\s*at\s*[\]\)\}]\s*|\s+at\s+)"
_DOT_TOKEN = r"(?:\s*[\[\(\{]\s*dot\s*[\]\)\}]\s*|\s+dot\s+)"
OBFUSCATED_PATTERN = re.compile(
    r"(?<![A-Za-z0-9._-])[A-Za-z0-9._-]+"
    + _AT_TOKEN
    + r"[A-Za-z0-9-]+(?:(?:"
    + _DOT_TOKEN
    + r"|\.)[A-Za-z0-9-]+)*(?:"
    + _DOT_TOKEN
    + r"|\.)[A-Za-z]{2,}\b",
    re.IGNORECASE,
)
_AT_RE = re.compile(_AT_TOKEN, re.IGNORECASE)
_DOT_RE = re.compile(_DOT_TOKEN, re.IGNORECASE)
_BRACKETED_AT_RE = re.compile(r"[\[\(\{]\s*at\s*[\]\)\}]", re.IGNORECASE)

_HIDDEN_TAGS = frozenset({"script", "style", "noscript", "template"})
_INLINE_TAGS = frozenset(
    {"a", "abbr", "b", "bdi", "code", "em", "font", "i"}
    | {"small", "span", "strong", "sub", "sup", "u"}
)


def parse_html(html: str) -> BeautifulSoup:
    """Parse a document with the stdlib-backed parser."""
    return BeautifulSoup(html or "", "html.parser")


def _accept(candidate: str) -> bool:
    return is_valid_email(candidate) and not is_skipped_email(candidate)


def extract_emails(text: str) -> list[str]:
    """Return valid, non-skipped emails in first-seen order (exact-match dedupe)."""
    found: list[str] = []
    for match in EMAIL_PATTERN.finditer(text or ""):
        email = match.group(0)
        if _accept(email) and email not in found:
            found.append(email)
    return found


def deobfuscate_email(text: str) -> str:
    """Rewrite ``sales [at] dealer [dot] com`` style text to ``sales@dealer.com``.

    Text without at/dot tokens comes back unchanged, so clean addresses pass
    through untouched and applying this twice is the same as applying it once.
    """
    return _DOT_RE.sub(".", _AT_RE.sub("@", text.strip()))


def _collect_text(node: Tag, parts: list[str]) -> None:
    for child in node.children:
        if isinstance(child, (Comment, Declaration, Doctype, ProcessingInstruction)):
            continue
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag) and child.name not in _HIDDEN_TAGS:
            if child.name in _INLINE_TAGS:
                _collect_text(child, parts)
            else:
                parts.append(" ")
                _collect_text(child, parts)
                parts.append(" ")


def visible_text(node: Tag) -> str:
    """Text content outside script/style blocks and comments.

    Inline elements join without a separator so ``sales@<b>dealer</b>.com``
    reads as one address; block elements are separated by a space.
    """
    parts: list[str] = []
    _collect_text(node, parts)
    return "".join(parts)


def _attr(tag: Tag, names: Sequence[str]) -> str:
    for name in names:
        value = tag.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value and str(value).strip():
            return " ".join(str(value).split())
    return ""


def _mailto_addresses(href: str) -> list[str]:
    value = href.strip()
    if not value.lower().startswith("mailto:"):
        return []
    value = value[len("mailto:") :].split("?", maxsplit=1)[0]
    return [unquote(part).strip() for part in value.split(",") if part.strip()]


def _nearby_phone(anchor: Tag) -> str:
    context = anchor.parent
    if context is not None and context.parent is not None:
        context = context.parent
    if context is None:
        return ""
    match = PHONE_PATTERN.search(context.get_text(" "))
    return match.group(0).strip() if match else ""


def _contact_from(
    element: Tag, *, name: str, email: str, source_url: str, phone: str = ""
) -> Contact | None:
    cleaned = " ".join(name.split())
    if not is_named_contact(cleaned):
        return None
    return Contact(
        name=cleaned,
        email=email,
        source=source_url,
        title=_attr(element, TITLE_ATTRS),
        phone=phone,
        department=_attr(element, DEPARTMENT_ATTRS),
    )


def extract_mailto_links(soup: BeautifulSoup, source_url: str) -> PageExtraction:
    """Mailto anchors, with name/title/department from data attributes and a nearby phone."""
    result = PageExtraction()
    for anchor in soup.find_all("a", href=True):
        for email in _mailto_addresses(str(anchor["href"])):
            if not _accept(email):
                continue
            result.add_email(email)
            name = _attr(anchor, NAME_ATTRS) or anchor.get_text(" ", strip=True)
            contact = _contact_from(
                anchor,
                name=name,
                email=email,
                source_url=source_url,
                phone=_nearby_phone(anchor),
            )
            if contact is not None:
                result.add_contact(contact)
    return result


def extract_structured_sections(soup: BeautifulSoup, source_url: str) -> PageExtraction:
    """Staff-like sections; pairs data-name holders with the emails inside them."""
    result = PageExtraction()
    for section in soup.select(STRUCTURED_SECTION_SELECTOR):
        section_emails = extract_emails(visible_text(section))
        if not section_emails:
            continue
        for email in section_emails:
            result.add_email(email)

        holders = section.select(NAMED_HOLDER_SELECTOR)
        if _attr(section, NAME_ATTRS):
            holders.insert(0, section)
        for holder in holders:
            holder_emails = extract_emails(visible_text(holder))
            if not holder_emails and len(holders) == 1 and len(section_emails) == 1:
                holder_emails = section_emails
            for email in holder_emails:
                contact = _contact_from(
                    holder,
                    name=_attr(holder, NAME_ATTRS),
                    email=email,
                    source_url=source_url,
                )
                if contact is not None:
                    result.add_contact(contact)
    return result


def extract_data_attributes(soup: BeautifulSoup, source_url: str) -> PageExtraction:
    """Elements exposing ``data-email``/``data-mail`` directly."""
    result = PageExtraction()
    for element in soup.select(DATA_EMAIL_SELECTOR):
        raw = _attr(element, EMAIL_ATTRS)
        email = (_mailto_addresses(raw) or [raw])[0]
        if not _accept(email):
            continue
        result.add_email(email)
        contact = _contact_from(
            element,
            name=_attr(element, NAME_ATTRS),
            email=email,
            source_url=source_url,
            phone=_attr(element, ("data-phone",)),
        )
        if contact is not None:
            result.add_contact(contact)
    return result


def extract_contact_sections(soup: BeautifulSoup, source_url: str) -> PageExtraction:
    """Broad free-text pass over contact/staff/team/about sections."""
    result = PageExtraction()
    for section in soup.select(CONTACT_SECTION_SELECTOR):
        for email in extract_emails(visible_text(section)):
            result.add_email(email)
    return result


def _document_root(soup: BeautifulSoup) -> Tag:
    return soup.body or soup


def extract_document_text(soup: BeautifulSoup, source_url: str) -> PageExtraction:
    """Last-resort regex over all visible text."""
    return PageExtraction(emails=extract_emails(visible_text(_document_root(soup))))


def extract_obfuscated(soup: BeautifulSoup, source_url: str) -> PageExtraction:
    """Decode ``name [at] domain [dot] com`` spellings."""
    result = PageExtraction()
    for match in OBFUSCATED_PATTERN.finditer(visible_text(_document_root(soup))):
        raw = match.group(0)
        if not (_BRACKETED_AT_RE.search(raw) or _DOT_RE.search(raw)):
            continue
        email = deobfuscate_email(raw)
        if _accept(email):
            get_logger().debug("Deobfuscated %r -> %s on %s", raw, email, source_url)
            result.add_email(email)
    return result


def extract_cta_buttons(soup: BeautifulSoup, source_url: str) -> PageExtraction:
    """Email/contact/call buttons carrying a data-email or a nested mailto link."""
    result = PageExtraction()
    for button in soup.select(CTA_SELECTOR):
        label = button.get_text(" ", strip=True).lower()
        if not any(word in label for word in CTA_WORDS):
            continue
        candidates = _mailto_addresses(_attr(button, ("data-email",))) or [
            _attr(button, ("data-email",))
        ]
        for anchor in button.find_all("a", href=True):
            candidates.extend(_mailto_addresses(str(anchor["href"])))
        for email in candidates:
            if email and _accept(email):
                result.add_email(email)
    return result


EXTRACTION_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("mailto", extract_mailto_links),
    ("sections", extract_structured_sections),
    ("data-attributes", extract_data_attributes),
    ("contact-sections", extract_contact_sections),
    ("document", extract_document_text),
    ("obfuscated", extract_obfuscated),
    ("cta-buttons", extract_cta_buttons),
)


def extract_contacts(
    document: str | BeautifulSoup,
    source_url: str,
    accumulator: list[Contact] | None = None,
    *,
    strategies: Sequence[tuple[str, Strategy]] = EXTRACTION_STRATEGIES,
    logger: logging.Logger | None = None,
) -> PageExtraction:
    """Run every strategy over a document and merge their findings.

    Contacts produced by this call are also appended to ``accumulator`` when
    one is supplied, which lets callers aggregate across pages without the
    extractor holding state.
    """
    log = logger or get_logger()
    soup = document if isinstance(document, BeautifulSoup) else parse_html(document)
    result = PageExtraction()
    for name, strategy in strategies:
        try:
            partial = strategy(soup, source_url)
        except Exception as exc:
            log.debug("Extraction strategy %s failed on %s: %s", name, source_url, exc)
            continue
        result.merge(partial)
    if accumulator is not None:
        accumulator.extend(result.contacts)
    return result
