from datetime import date, time

import pytest

from concertsync import normalize as norm
from concertsync.errors import ValidationError

from conftest import bachtrack_event, bandsintown_event, ticketmaster_event


def test_external_event_id_is_stable():
    ids = {norm.external_event_id("bachtrack", "12345") for _ in range(5)}
    assert ids == {"bachtrack_12345"}
    assert norm.external_event_id("ticketmaster", 987) == "ticketmaster_987"


def test_external_event_id_requires_native_id():
    with pytest.raises(ValidationError):
        norm.external_event_id("eventbrite", None)
    with pytest.raises(ValidationError):
        norm.external_event_id("eventbrite", "  ")


def test_join_location_skips_missing_parts_and_falls_back_to_tba():
    assert norm.join_location("Boston", "MA", "United States") == "Boston, MA, United States"
    assert norm.join_location("Vienna", None, "Austria") == "Vienna, Austria"
    assert norm.join_location(None, "", "  ") == "TBA"


def test_optional_fields_never_become_empty_strings():
    assert norm.optional_text("") is None
    assert norm.optional_text("   ") is None
    assert norm.optional_text(None) is None
    assert norm.join_names([]) is None
    assert norm.join_names(["Yuja Wang", "", "Leonidas Kavakos"]) == "Yuja Wang, Leonidas Kavakos"


def test_plain_text_strips_markup_and_truncates():
    assert norm.plain_text("<p>Brahms <b>Requiem</b></p>") == "Brahms Requiem"
    assert norm.plain_text("Bach   cantatas\n and motets") == "Bach cantatas and motets"
    assert norm.plain_text("x" * 600, max_length=500) == "x" * 500
    assert norm.plain_text("<br/>") is None


def test_build_tags_seeds_defaults_and_slugifies_labels():
    assert norm.build_tags() == ["concert", "live-music"]
    assert norm.build_tags("Classical", "Chamber Music", None, "classical") == [
        "concert", "live-music", "classical", "chamber-music",
    ]


def test_split_datetime_extracts_local_time():
    assert norm.split_datetime("2024-03-15T19:30:00", "bandsintown") == (date(2024, 3, 15), time(19, 30))
    assert norm.split_datetime("2024-03-15T19:30:00-04:00", "bandsintown") == (date(2024, 3, 15), time(19, 30))


def test_split_datetime_without_time_component():
    assert norm.split_datetime("2024-03-15", "bandsintown") == (date(2024, 3, 15), None)
    assert norm.split_datetime("2024-03-15T00:00:00", "bandsintown") == (date(2024, 3, 15), None)


def test_split_datetime_requires_a_date():
    with pytest.raises(ValidationError):
        norm.split_datetime(None, "eventbrite")
    with pytest.raises(ValidationError):
        norm.split_datetime("soon", "eventbrite")


def test_parse_time_formats():
    assert norm.parse_time("19:30") == time(19, 30)
    assert norm.parse_time("19:30:00") == time(19, 30)
    assert norm.parse_time("7:30pm") == time(19, 30)
    assert norm.parse_time(None) is None
    assert norm.parse_time("whenever") is None


def test_normalize_dispatches_by_source():
    concert = norm.normalize("bachtrack", bachtrack_event("12345"))
    assert concert.external_event_id == "bachtrack_12345"
    assert concert.source == "bachtrack"

    concert = norm.normalize("ticketmaster", ticketmaster_event("abc"))
    assert concert.external_event_id == "ticketmaster_abc"

    concert = norm.normalize("bandsintown", bandsintown_event("77"))
    assert concert.external_event_id == "bandsintown_77"


def test_normalize_rejects_unknown_source():
    with pytest.raises(ValidationError):
        norm.normalize("songkick", {"id": "1"})
