"""Contact quality signals and the early-stop rule."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Contact

# Link captions that are not a person's name.
GENERIC_NAME_LABELS = frozenset(
    {
        "email me",
        "email us",
        "email",
        "e-mail",
        "send email",
        "send an email",
        "contact",
        "contact us",
        "contact me",
        "click here",
        "mail",
    }
)


def is_named_contact(name: str) -> bool:
    """Return True when name looks like a person rather than a caption."""
    cleaned = " ".join((name or "").split())
    if len(cleaned) <= 2:
        return False
    if "@" in cleaned:
        return False
    return cleaned.lower() not in GENERIC_NAME_LABELS


def count_named_contacts(contacts: Iterable[Contact]) -> int:
    return sum(1 for contact in contacts if is_named_contact(contact.name))


def should_stop_early(
    page_named_contacts: int,
    total_emails: int,
    *,
    contact_threshold: int = 3,
    email_threshold: int = 5,
) -> bool:
    """Stop visiting a domain once one page is a staff directory or enough emails are known."""
    return page_named_contacts >= contact_threshold or total_emails >= email_threshold
