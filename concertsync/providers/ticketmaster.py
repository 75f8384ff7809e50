"""
TicketMaster Discovery API adapter.

Endpoint: GET https://app.ticketmaster.com/discovery/v2/events.json
  - apikey=<TICKETMASTER_API_KEY>
  - classificationName=Music plus a classical keyword OR-expression narrows
    results; TicketMaster has no dedicated classical segment
  - city, startDateTime/endDateTime (ISO 8601 with Z suffix)
  - size is capped at 200 per page; page=N walks further pages while
    page.number + 1 < page.totalPages and the limit isn't met, up to
    _MAX_PAGES pages

Each event carries dates.start.localDate / localTime separately, and
_embedded.venues[0] / _embedded.attractions[0] for venue and performer.
"""

from typing import Optional

from concertsync import normalize as norm
from concertsync.models import TICKETMASTER, Concert, SyncRequest
from concertsync.providers.base import BaseProvider

_MAX_PAGE_SIZE = 200
_MAX_PAGES = 5
CLASSICAL_KEYWORD = "classical OR orchestra OR symphony OR opera OR chamber OR philharmonic"


def _amount(value) -> Optional[float]:
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _price_range(raw: dict) -> Optional[str]:
    ranges = raw.get("priceRanges") or []
    if not ranges or not isinstance(ranges[0], dict):
        return None
    pr = ranges[0]
    low, high, currency = _amount(pr.get("min")), _amount(pr.get("max")), pr.get("currency") or ""
    if low is None and high is None:
        return None
    if high is None or low == high:
        amount = f"{low if low is not None else high:g}"
    elif low is None:
        amount = f"{high:g}"
    else:
        amount = f"{low:g}-{high:g}"
    return f"{currency} {amount}".strip()


class TicketMasterProvider(BaseProvider):
    source = TICKETMASTER
    display_name = "TicketMaster"
    base_url = "https://app.ticketmaster.com/discovery/v2/events.json"
    credential_key = "ticketmaster_api_key"
    default_limit = 100

    def _params(self, request: SyncRequest, limit: int) -> dict:
        params = {
            "apikey": self.credential,
            "size": str(min(limit, _MAX_PAGE_SIZE)),
            "classificationName": "Music",
            "keyword": CLASSICAL_KEYWORD,
            "sort": "date,asc",
        }
        if request.location:
            params["city"] = request.location
        if request.date_from:
            params["startDateTime"] = f"{request.date_from.isoformat()}T00:00:00Z"
        if request.date_to:
            params["endDateTime"] = f"{request.date_to.isoformat()}T23:59:59Z"
        return params

    def fetch_raw(self, request: SyncRequest, limit: int) -> list[dict]:
        if limit == 0:
            return []

        params = self._params(request, limit)
        records: list[dict] = []
        page = 0
        while True:
            data = self.get_json(self.base_url, params={**params, "page": str(page)})
            events = (data.get("_embedded") or {}).get("events") or []
            records.extend(events)
            page_info = data.get("page") or {}
            total_pages = int(page_info.get("totalPages", 0))
            if len(records) >= limit or not events or page + 1 >= min(total_pages, _MAX_PAGES):
                break
            page += 1
        return records[:limit]

    def to_concert(self, raw: dict) -> Concert:
        embedded = raw.get("_embedded") or {}
        venue = (embedded.get("venues") or [{}])[0]
        attraction = (embedded.get("attractions") or [{}])[0]
        classification = (raw.get("classifications") or [{}])[0]
        start = (raw.get("dates") or {}).get("start") or {}

        return Concert(
            title=norm.require_title(raw.get("name"), self.source),
            venue=norm.venue_name(venue.get("name")),
            location=norm.join_location(
                (venue.get("city") or {}).get("name"),
                (venue.get("state") or {}).get("name"),
                (venue.get("country") or {}).get("name"),
            ),
            concert_date=norm.parse_date(start.get("localDate"), self.source),
            start_time=norm.parse_time(start.get("localTime")),
            orchestra=norm.optional_text(attraction.get("name")),
            program=norm.plain_text(raw.get("info")),
            ticket_url=norm.optional_text(raw.get("url")),
            price_range=_price_range(raw),
            source=self.source,
            external_event_id=norm.external_event_id(self.source, raw.get("id")),
            tags=norm.build_tags(
                (classification.get("genre") or {}).get("name"),
                (classification.get("subGenre") or {}).get("name"),
            ),
        )
