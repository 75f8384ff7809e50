"""
Bachtrack adapter.

Endpoint: GET https://api.bachtrack.com/events
  - Query: location, dateFrom, dateTo (YYYY-MM-DD), limit, format=json
  - Auth:  Authorization: Bearer <BACHTRACK_API_KEY>

Response: {"events": [...]} where each event looks like
  {
    "id": "12345",
    "name": "Mahler 5",
    "venue": {"name": "Symphony Hall", "location": "Boston, MA"},
    "date": "2024-03-15",
    "time": "19:30",
    "performers": {"orchestra": "...", "conductor": "...", "soloists": ["..."]},
    "programme": "Mahler: Symphony no. 5",
    "ticketUrl": "https://...",
    "priceRange": "$35-$150",
    "category": "Orchestral"
  }

Bachtrack lists classical music only, so no relevance filter is applied.
"""

from concertsync import normalize as norm
from concertsync.models import BACHTRACK, Concert, SyncRequest
from concertsync.providers.base import BaseProvider


class BachtrackProvider(BaseProvider):
    source = BACHTRACK
    display_name = "Bachtrack"
    base_url = "https://api.bachtrack.com/events"
    credential_key = "bachtrack_api_key"
    default_limit = 50

    def fetch_raw(self, request: SyncRequest, limit: int) -> list[dict]:
        params = {"limit": str(limit), "format": "json"}
        if request.location:
            params["location"] = request.location
        if request.date_from:
            params["dateFrom"] = request.date_from.isoformat()
        if request.date_to:
            params["dateTo"] = request.date_to.isoformat()

        data = self.get_json(
            self.base_url,
            params=params,
            headers={"Authorization": f"Bearer {self.credential}"},
        )
        return list(data.get("events") or [])[:limit]

    def to_concert(self, raw: dict) -> Concert:
        venue = raw.get("venue") or {}
        performers = raw.get("performers") or {}
        return Concert(
            title=norm.require_title(raw.get("name"), self.source),
            venue=norm.venue_name(venue.get("name")),
            location=norm.join_location(venue.get("location")),
            concert_date=norm.parse_date(raw.get("date"), self.source),
            start_time=norm.parse_time(raw.get("time")),
            orchestra=norm.optional_text(performers.get("orchestra")),
            conductor=norm.optional_text(performers.get("conductor")),
            soloists=norm.join_names(performers.get("soloists")),
            program=norm.plain_text(raw.get("programme")),
            ticket_url=norm.optional_text(raw.get("ticketUrl")),
            price_range=norm.optional_text(raw.get("priceRange")),
            source=self.source,
            external_event_id=norm.external_event_id(self.source, raw.get("id")),
            tags=norm.build_tags(raw.get("category")),
        )
