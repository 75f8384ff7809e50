"""
Eventbrite adapter.

Endpoint: GET https://www.eventbriteapi.com/v3/events/search/
  - Auth: Authorization: Bearer <EVENTBRITE_TOKEN>
  - q is a keyword OR-expression; categories=103 is "Music"
  - page_size is capped at 50 by the API; further pages are requested with
    page=N while pagination.has_more_items is true and the limit isn't met
  - expand=venue,ticket_availability,category,subcategory,organizer inlines
    the related objects used below

Eventbrite has no classical category, so results are additionally filtered on
their name + description text.
"""

from typing import Optional

from concertsync import normalize as norm
from concertsync.models import EVENTBRITE, Concert, SyncRequest
from concertsync.providers.base import BaseProvider

_MUSIC_CATEGORY = "103"
_MAX_PAGE_SIZE = 50
_MAX_PAGES = 10
_MAX_PROGRAM_LENGTH = 500

SEARCH_KEYWORDS = [
    "classical", "orchestra", "symphony", "opera", "chamber",
    "philharmonic", "concert", "recital", "piano", "violin",
    "cello", "baroque", "choir", "conservatory", "quartet",
]

CLASSICAL_KEYWORDS = [
    "classical", "orchestra", "symphony", "philharmonic", "opera",
    "chamber", "quartet", "trio", "quintet", "concerto", "sonata",
    "baroque", "romantic", "contemporary", "piano", "violin",
    "cello", "viola", "flute", "oboe", "clarinet", "conductor",
    "conservatory", "recital", "masterclass", "choir", "choral",
]

# Text keyword -> tag
_CONTENT_TAGS = {
    "symphony": "symphony",
    "opera": "opera",
    "chamber": "chamber-music",
    "piano": "piano",
    "violin": "violin",
    "orchestra": "orchestra",
    "recital": "recital",
    "quartet": "quartet",
}


def _text(value) -> str:
    """Eventbrite wraps text as {"text": ..., "html": ...}; anything else counts as absent."""
    if isinstance(value, dict):
        value = value.get("text")
    return value if isinstance(value, str) else ""


def _event_text(raw: dict) -> str:
    return f"{_text(raw.get('name'))} {_text(raw.get('description'))}".lower()


def is_classical(raw: dict) -> bool:
    if not isinstance(raw, dict):
        return False
    text = _event_text(raw)
    return any(keyword in text for keyword in CLASSICAL_KEYWORDS)


def _price_range(raw: dict) -> Optional[str]:
    availability = raw.get("ticket_availability") or {}
    low = (availability.get("minimum_ticket_price") or {}).get("display")
    high = (availability.get("maximum_ticket_price") or {}).get("display")
    if low and high and low != high:
        return f"{low} - {high}"
    if low:
        return f"From {low}"
    return None


class EventbriteProvider(BaseProvider):
    source = EVENTBRITE
    display_name = "Eventbrite"
    base_url = "https://www.eventbriteapi.com/v3/events/search/"
    credential_key = "eventbrite_token"
    default_limit = 100

    def _params(self, request: SyncRequest, limit: int) -> dict:
        keywords = request.keywords or SEARCH_KEYWORDS
        params = {
            "q": " OR ".join(keywords),
            "categories": _MUSIC_CATEGORY,
            "sort_by": "date",
            "expand": "venue,ticket_availability,category,subcategory,organizer",
            "page_size": str(min(limit, _MAX_PAGE_SIZE)),
        }
        if request.location:
            params["location.address"] = request.location
            params["location.within"] = "50km"
        if request.date_from:
            params["start_date.range_start"] = f"{request.date_from.isoformat()}T00:00:00"
        if request.date_to:
            params["start_date.range_end"] = f"{request.date_to.isoformat()}T23:59:59"
        return params

    def fetch_raw(self, request: SyncRequest, limit: int) -> list[dict]:
        if limit == 0:
            return []

        params = self._params(request, limit)
        headers = {"Authorization": f"Bearer {self.credential}"}
        records: list[dict] = []
        page = 1
        while True:
            data = self.get_json(self.base_url, params={**params, "page": str(page)}, headers=headers)
            events = data.get("events") or []
            records.extend(e for e in events if is_classical(e))
            pagination = data.get("pagination") or {}
            if len(records) >= limit or not events or not pagination.get("has_more_items") or page >= _MAX_PAGES:
                break
            page += 1
        return records[:limit]

    def to_concert(self, raw: dict) -> Concert:
        venue = raw.get("venue") or {}
        address = venue.get("address") or {}
        concert_date, start_time = norm.split_datetime((raw.get("start") or {}).get("local"), self.source)

        text = _event_text(raw)
        content_tags = [tag for keyword, tag in _CONTENT_TAGS.items() if keyword in text]

        return Concert(
            title=norm.require_title((raw.get("name") or {}).get("text"), self.source),
            venue=norm.venue_name(venue.get("name")),
            location=norm.join_location(address.get("city"), address.get("region"), address.get("country")),
            concert_date=concert_date,
            start_time=start_time,
            orchestra=norm.optional_text((raw.get("organizer") or {}).get("name")),
            program=norm.plain_text((raw.get("description") or {}).get("text"), max_length=_MAX_PROGRAM_LENGTH),
            ticket_url=norm.optional_text(raw.get("url")),
            price_range=_price_range(raw),
            source=self.source,
            external_event_id=norm.external_event_id(self.source, raw.get("id")),
            tags=norm.build_tags(
                (raw.get("category") or {}).get("name"),
                (raw.get("subcategory") or {}).get("name"),
                *content_tags,
            ),
        )
