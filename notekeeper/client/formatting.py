"""Display helpers for note lists."""

import re
from datetime import datetime, timezone

from notekeeper.backend.core.utils import utc_now
from notekeeper.rendering.sanitize import html_to_text

EMPTY_PREVIEW = "No content..."
DEFAULT_PREVIEW_LENGTH = 100

_TAG_RE = re.compile(r"<[a-zA-Z/][^>]*>")


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_relative_date(value: datetime, now: datetime | None = None) -> str:
    """
    Calendar-day distance from now.

    Returns "Today", "Yesterday", "N days ago" within a week, otherwise
    the ISO date.
    """
    value = _naive_utc(value)
    days = (_naive_utc(now or utc_now()).date() - value.date()).days
    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return value.date().isoformat()


def note_preview(content: str | None, length: int = DEFAULT_PREVIEW_LENGTH) -> str:
    """First length characters of the note as plain text."""
    if not content:
        return EMPTY_PREVIEW
    text = html_to_text(content) if _TAG_RE.search(content) else content
    text = " ".join(text.split())
    if not text:
        return EMPTY_PREVIEW
    if len(text) > length:
        return text[:length] + "..."
    return text
