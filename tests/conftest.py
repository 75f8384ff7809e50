import logging
from datetime import date

import pytest
import structlog

import concertsync.db as db_module
from concertsync.models import Concert

BACHTRACK_URL = "https://api.bachtrack.com/events"
BANDSINTOWN_URL = "https://rest.bandsintown.com/artists/{artist}/events"
EVENTBRITE_URL = "https://www.eventbriteapi.com/v3/events/search/"
TICKETMASTER_URL = "https://app.ticketmaster.com/discovery/v2/events.json"


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() so one test's stderr capture can't leak into the next."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    urllib3_level = logging.getLogger("urllib3").level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("urllib3").setLevel(urllib3_level)


@pytest.fixture
def conn(tmp_path):
    connection = db_module.connect(tmp_path / "concerts.db")
    yield connection
    connection.close()


@pytest.fixture
def cfg():
    return {
        "secrets": {
            "bachtrack_api_key": "bt-key",
            "bandsintown_app_id": "bit-app",
            "eventbrite_token": "eb-token",
            "ticketmaster_api_key": "tm-key",
        },
        "sync": {"artists": ["LSO"]},
    }


def make_concert(**overrides) -> Concert:
    fields = {
        "title": "Mahler 5",
        "venue": "Symphony Hall",
        "location": "Boston, MA",
        "concert_date": date(2024, 3, 15),
        "source": "ticketmaster",
        "external_event_id": "ticketmaster_1",
    }
    fields.update(overrides)
    return Concert(**fields)


def bachtrack_event(event_id="12345", **overrides) -> dict:
    event = {
        "id": event_id,
        "name": "Mahler: Symphony no. 5",
        "venue": {"name": "Symphony Hall", "location": "Boston, MA, United States"},
        "date": "2024-03-15",
        "time": "19:30",
        "performers": {
            "orchestra": "Boston Symphony Orchestra",
            "conductor": "Andris Nelsons",
            "soloists": ["Yuja Wang", "Leonidas Kavakos"],
        },
        "programme": "Mahler: Symphony no. 5",
        "ticketUrl": "https://bachtrack.com/concert-event/12345",
        "priceRange": "$35-$150",
    }
    event.update(overrides)
    return event


def bandsintown_event(event_id="1001", **overrides) -> dict:
    event = {
        "id": event_id,
        "title": "",
        "datetime": "2024-03-15T19:30:00",
        "venue": {"name": "Barbican Hall", "city": "London", "region": "England", "country": "United Kingdom"},
        "lineup": ["London Symphony Orchestra"],
        "url": f"https://www.bandsintown.com/e/{event_id}",
        "description": "",
    }
    event.update(overrides)
    return event


def eventbrite_event(event_id="eb1", **overrides) -> dict:
    event = {
        "id": event_id,
        "name": {"text": "Chamber Music by Candlelight"},
        "description": {"text": "A string quartet plays Haydn and Ravel."},
        "start": {"local": "2024-03-10T19:00:00"},
        "url": f"https://www.eventbrite.com/e/{event_id}",
        "venue": {
            "name": "St Martin-in-the-Fields",
            "address": {"city": "London", "region": "Greater London", "country": "GB"},
        },
        "organizer": {"name": "Candlelight Concerts"},
        "ticket_availability": {
            "minimum_ticket_price": {"display": "£20.00"},
            "maximum_ticket_price": {"display": "£45.00"},
        },
        "category": {"name": "Music"},
        "subcategory": {"name": "Classical"},
    }
    event.update(overrides)
    return event


def ticketmaster_event(event_id="tm1", venue=True, **overrides) -> dict:
    event = {
        "id": event_id,
        "name": "New York Philharmonic: Beethoven 9",
        "url": f"https://www.ticketmaster.com/event/{event_id}",
        "info": "Beethoven: Symphony No. 9",
        "dates": {"start": {"localDate": "2024-03-12", "localTime": "19:30:00"}},
        "priceRanges": [{"min": 45.0, "max": 180.0, "currency": "USD"}],
        "classifications": [
            {"segment": {"name": "Music"}, "genre": {"name": "Classical"}, "subGenre": {"name": "Symphonic"}}
        ],
        "_embedded": {
            "attractions": [{"name": "New York Philharmonic"}],
        },
    }
    if venue:
        event["_embedded"]["venues"] = [{
            "name": "David Geffen Hall",
            "city": {"name": "New York"},
            "state": {"name": "New York"},
            "country": {"name": "United States Of America"},
        }]
    event.update(overrides)
    return event


def ticketmaster_page(events, number=0, total_pages=1) -> dict:
    return {
        "_embedded": {"events": events},
        "page": {"size": len(events), "totalElements": len(events), "totalPages": total_pages, "number": number},
    }
