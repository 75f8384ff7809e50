import sqlite3
from datetime import date, timedelta
from typing import Optional

import concertsync.db as db_module
from concertsync.log import get_logger
from concertsync.models import SweepResult

log = get_logger(__name__)


def retention_cutoff(retention_days: int, today: Optional[date] = None) -> date:
    """Oldest concert_date that is still kept."""
    return (today or date.today()) - timedelta(days=retention_days)


def sweep(conn: sqlite3.Connection, retention_days: int, today: Optional[date] = None) -> SweepResult:
    """
    Delete provider concerts dated more than `retention_days` before today.

    A concert exactly `retention_days` old is kept. User-authored concerts are
    never swept. Raises StorageError if the delete fails.
    """
    if retention_days < 0:
        raise ValueError("retention_days must be >= 0")
    cutoff = retention_cutoff(retention_days, today)
    deleted = db_module.delete_concerts_before(conn, cutoff)
    log.info("retention_sweep", cutoff=cutoff.isoformat(), deleted=deleted)
    return SweepResult(deleted_count=deleted, cutoff=cutoff)
