"""
Bandsintown adapter.

Endpoint: GET https://rest.bandsintown.com/artists/<artist>/events?app_id=<id>
  - One request per artist; the API has no location or keyword search, so a
    request without artists returns no records (not an error).
  - Response is a JSON list of events:
      {
        "id": "1012345",
        "title": "",
        "datetime": "2024-03-15T19:30:00",
        "venue": {"name": "...", "city": "...", "region": "...", "country": "..."},
        "artist": {"name": "..."},        # only with extended data
        "lineup": ["..."],
        "url": "https://www.bandsintown.com/e/1012345",
        "description": "..."
      }

Location and date filtering happen locally. A failing or unknown artist is
logged and skipped; the provider only fails when no artist request succeeded.
"""

from urllib.parse import quote

from concertsync import normalize as norm
from concertsync.errors import ProviderError, ValidationError
from concertsync.log import get_logger
from concertsync.models import BANDSINTOWN, Concert, SyncRequest
from concertsync.providers.base import BaseProvider

log = get_logger(__name__)

_ARTIST_KEY = "_queried_artist"


def _matches_location(raw: dict, location: str) -> bool:
    venue = raw.get("venue")
    if not isinstance(venue, dict):
        return False
    needle = location.lower()
    return any(
        isinstance(venue.get(field), str) and needle in venue[field].lower()
        for field in ("city", "region")
    )


def _in_date_range(raw: dict, request: SyncRequest) -> bool:
    try:
        event_date, _ = norm.split_datetime(raw.get("datetime"), BANDSINTOWN)
    except ValidationError:
        # Undated records are dropped later by to_concert()
        return True
    if request.date_from and event_date < request.date_from:
        return False
    if request.date_to and event_date > request.date_to:
        return False
    return True


class BandsintownProvider(BaseProvider):
    source = BANDSINTOWN
    display_name = "Bandsintown"
    base_url = "https://rest.bandsintown.com"
    credential_key = "bandsintown_app_id"
    default_limit = 50

    def fetch_raw(self, request: SyncRequest, limit: int) -> list[dict]:
        if not request.artists:
            log.info("no_artists_requested", provider=self.source)
            return []

        records: list[dict] = []
        failures: list[str] = []
        for artist in request.artists:
            if len(records) >= limit:
                break
            url = f"{self.base_url.rstrip('/')}/artists/{quote(artist, safe='')}/events"
            try:
                data = self.get_json(url, params={"app_id": self.credential})
            except ProviderError as exc:
                failures.append(artist)
                log.warning("artist_fetch_failed", provider=self.source, artist=artist, error=exc.message)
                continue
            if not isinstance(data, list):
                # An unknown artist comes back as {"errorMessage": ...}
                failures.append(artist)
                error = data.get("errorMessage") if isinstance(data, dict) else None
                log.warning("artist_unexpected_payload", provider=self.source, artist=artist, error=error)
                continue

            for raw in data:
                if not isinstance(raw, dict):
                    log.warning("record_dropped", provider=self.source, reason="event is not an object")
                    continue
                raw.setdefault(_ARTIST_KEY, artist)
                if request.location and not _matches_location(raw, request.location):
                    continue
                if not _in_date_range(raw, request):
                    continue
                records.append(raw)

        if failures and len(failures) == len(request.artists):
            raise ProviderError(
                f"all {len(failures)} artist requests failed", provider=self.source
            )
        return records[:limit]

    def to_concert(self, raw: dict) -> Concert:
        venue = raw.get("venue") or {}
        artist_name = (
            norm.optional_text((raw.get("artist") or {}).get("name"))
            or norm.optional_text((raw.get("lineup") or [None])[0])
            or norm.optional_text(raw.get(_ARTIST_KEY))
        )
        concert_date, start_time = norm.split_datetime(raw.get("datetime"), self.source)
        title = norm.optional_text(raw.get("title"))
        if title is None and artist_name:
            title = f"{artist_name} Concert"

        return Concert(
            title=norm.require_title(title, self.source),
            venue=norm.venue_name(venue.get("name")),
            location=norm.join_location(venue.get("city"), venue.get("region"), venue.get("country")),
            concert_date=concert_date,
            start_time=start_time,
            orchestra=artist_name,
            program=norm.plain_text(raw.get("description")),
            ticket_url=norm.optional_text(raw.get("url")),
            source=self.source,
            external_event_id=norm.external_event_id(self.source, raw.get("id")),
            tags=norm.build_tags(),
        )
