"""
Canonical concert normalisation.

Small pure helpers shared by every provider adapter, plus normalize(), which
maps one raw provider record to a Concert through that provider's mapping.

Fallback rules:
  - location joins whatever geographic parts exist ("City, Region, Country")
    and is "TBA" when none do; venue name is "TBA" when absent
  - conductor/orchestra/soloists/program are None when absent, never ""
  - tags always start with DEFAULT_TAGS; extra labels are lower-cased,
    whitespace becomes "-", duplicates are dropped
  - external_event_id is "{source}_{provider id}"
"""

import re
from datetime import date, datetime, time
from typing import Any, Iterable, Optional

from bs4 import BeautifulSoup
from dateutil import parser as dateparser

from concertsync.errors import ValidationError
from concertsync.models import DEFAULT_TAGS, Concert

TBA = "TBA"

_WHITESPACE = re.compile(r"\s+")
_MARKUP = re.compile(r"<[a-zA-Z/!][^>]*>")


def external_event_id(source: str, native_id: Any) -> str:
    if native_id is None or str(native_id).strip() == "":
        raise ValidationError("record has no provider id", provider=source)
    return f"{source}_{str(native_id).strip()}"


def optional_text(value: Any) -> Optional[str]:
    """Strip a value to text, mapping None/blank to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def plain_text(value: Any, max_length: Optional[int] = None) -> Optional[str]:
    """Like optional_text(), but drops HTML markup and collapses whitespace."""
    text = optional_text(value)
    if text is None:
        return None
    if _MARKUP.search(text):
        text = BeautifulSoup(text, "lxml").get_text(" ", strip=True)
    text = _WHITESPACE.sub(" ", text).strip()
    if max_length is not None:
        text = text[:max_length].rstrip()
    return text or None


def join_location(*parts: Any) -> str:
    joined = ", ".join(p for p in (optional_text(part) for part in parts) if p)
    return joined or TBA


def venue_name(value: Any) -> str:
    return optional_text(value) or TBA


def join_names(names: Optional[Iterable[Any]]) -> Optional[str]:
    if not names:
        return None
    if isinstance(names, str):
        return optional_text(names)
    return optional_text(", ".join(n for n in (optional_text(x) for x in names) if n))


def tag_label(label: Any) -> Optional[str]:
    text = optional_text(label)
    if text is None:
        return None
    return _WHITESPACE.sub("-", text.lower())


def build_tags(*labels: Any) -> list[str]:
    tags = list(DEFAULT_TAGS)
    for label in labels:
        tag = tag_label(label)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def parse_date(value: Any, source: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = optional_text(value)
    if text is None:
        raise ValidationError("record has no date", provider=source)
    try:
        return dateparser.isoparse(text).date()
    except (ValueError, OverflowError) as exc:
        raise ValidationError(f"unparseable date {text!r}", provider=source) from exc


def parse_time(value: Any) -> Optional[time]:
    """Parse "19:30", "19:30:00" or "7:30pm"; None when absent or unreadable."""
    text = optional_text(value)
    if text is None:
        return None
    try:
        return dateparser.parse(text, default=datetime(2000, 1, 1)).time()
    except (ValueError, OverflowError):
        return None


def split_datetime(value: Any, source: str) -> tuple[date, Optional[time]]:
    """
    Split a combined date-time ("2024-03-15T19:30:00", with or without offset)
    into the provider's local date and time. A bare date or a midnight time
    yields no start time.
    """
    text = optional_text(value)
    if text is None:
        raise ValidationError("record has no date", provider=source)
    try:
        dt = dateparser.isoparse(text)
    except (ValueError, OverflowError) as exc:
        raise ValidationError(f"unparseable date-time {text!r}", provider=source) from exc
    if "T" not in text and " " not in text:
        return dt.date(), None
    start = dt.time().replace(tzinfo=None)
    return dt.date(), start if (start.hour or start.minute) else None


def require_title(value: Any, source: str) -> str:
    title = optional_text(value)
    if title is None:
        raise ValidationError("record has no title", provider=source)
    return title


def normalize(source: str, raw: dict) -> Concert:
    """Map one raw record from `source` to a canonical Concert."""
    from concertsync.providers import PROVIDERS

    try:
        provider_cls = PROVIDERS[source]
    except KeyError:
        raise ValidationError(f"unknown provider '{source}'") from None
    return provider_cls({}).to_concert(raw)
