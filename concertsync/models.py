from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from typing import Optional

BACHTRACK = "bachtrack"
BANDSINTOWN = "bandsintown"
EVENTBRITE = "eventbrite"
TICKETMASTER = "ticketmaster"
USER = "user"

PROVIDER_SOURCES = (BACHTRACK, BANDSINTOWN, EVENTBRITE, TICKETMASTER)

DEFAULT_TAGS = ("concert", "live-music")


@dataclass
class Concert:
    title: str
    venue: str
    location: str           # Free text, e.g. "Boston, MA, United States" or "TBA"
    concert_date: date
    source: str             # One of PROVIDER_SOURCES or USER
    external_event_id: Optional[str] = None   # "{source}_{provider id}", None for user rows
    start_time: Optional[time] = None
    orchestra: Optional[str] = None
    conductor: Optional[str] = None
    soloists: Optional[str] = None      # Comma-joined
    program: Optional[str] = None
    ticket_url: Optional[str] = None
    price_range: Optional[str] = None   # Display string, e.g. "USD 25-90", "From $15.00"
    tags: list[str] = field(default_factory=lambda: list(DEFAULT_TAGS))
    # Populated by DB layer
    id: Optional[int] = field(default=None, repr=False)
    created_at: Optional[datetime] = field(default=None, repr=False)
    updated_at: Optional[datetime] = field(default=None, repr=False)


@dataclass
class SyncRequest:
    location: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    limit: Optional[int] = None         # Per-provider cap; None means the provider default
    artists: list[str] = field(default_factory=list)    # Bandsintown only
    keywords: list[str] = field(default_factory=list)   # Eventbrite only


@dataclass
class ProviderOutcome:
    provider: str
    success: bool
    synced_count: int = 0
    fetched_count: int = 0
    dropped_count: int = 0
    error: Optional[str] = None


@dataclass
class SyncResult:
    success: bool
    synced_count: int
    message: str
    results: list[ProviderOutcome] = field(default_factory=list)

    @property
    def failed_providers(self) -> list[str]:
        return [r.provider for r in self.results if not r.success]

    def to_dict(self) -> dict:
        """Serialise to the {success, syncedCount, message} shape callers consume."""
        return {
            "success": self.success,
            "syncedCount": self.synced_count,
            "message": self.message,
            "results": [asdict(r) for r in self.results],
        }


@dataclass
class SweepResult:
    deleted_count: int
    cutoff: date
