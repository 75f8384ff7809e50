from datetime import date, timedelta

import pytest

import concertsync.db as db_module
from concertsync.errors import StorageError
from concertsync.sweep import retention_cutoff, sweep

from conftest import make_concert

TODAY = date(2024, 6, 30)


def test_concert_exactly_at_retention_boundary_is_kept(conn):
    boundary = TODAY - timedelta(days=30)
    db_module.upsert_concerts(conn, [make_concert(concert_date=boundary)])

    result = sweep(conn, 30, today=TODAY)

    assert result.deleted_count == 0
    assert result.cutoff == boundary
    assert db_module.count_concerts(conn) == 1


def test_concert_one_day_past_boundary_is_deleted(conn):
    db_module.upsert_concerts(conn, [make_concert(concert_date=TODAY - timedelta(days=31))])

    result = sweep(conn, 30, today=TODAY)

    assert result.deleted_count == 1
    assert db_module.count_concerts(conn) == 0


def test_sweep_covers_every_provider_but_keeps_user_concerts(conn):
    old = TODAY - timedelta(days=90)
    db_module.upsert_concerts(conn, [
        make_concert(source="bachtrack", external_event_id="bachtrack_1", concert_date=old),
        make_concert(source="eventbrite", external_event_id="eventbrite_1", concert_date=old),
        make_concert(source="ticketmaster", external_event_id="ticketmaster_1", concert_date=TODAY),
    ])
    db_module.add_user_concert(conn, make_concert(source="user", concert_date=old))

    result = sweep(conn, 30, today=TODAY)

    assert result.deleted_count == 2
    assert db_module.count_concerts(conn) == 2
    assert db_module.count_concerts(conn, source="user") == 1


def test_retention_cutoff():
    assert retention_cutoff(0, today=TODAY) == TODAY
    assert retention_cutoff(7, today=TODAY) == date(2024, 6, 23)


def test_negative_retention_rejected(conn):
    with pytest.raises(ValueError):
        sweep(conn, -1, today=TODAY)


def test_sweep_failure_raises_storage_error(conn):
    conn.execute("DROP TABLE concerts")

    with pytest.raises(StorageError):
        sweep(conn, 30, today=TODAY)
