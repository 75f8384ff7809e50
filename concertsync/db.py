import json
import sqlite3
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

from concertsync.errors import StorageError
from concertsync.log import get_logger
from concertsync.models import USER, Concert

log = get_logger(__name__)

# Columns a provider sync owns; all of them are replaced on conflict
_SYNCED_COLUMNS = (
    "title", "venue", "location", "concert_date", "start_time", "orchestra",
    "conductor", "soloists", "program", "ticket_url", "price_range", "tags", "source",
)

_SELECT_COLUMNS = "id, external_event_id, created_at, updated_at, " + ", ".join(_SYNCED_COLUMNS)


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    _create_schema(conn)
    return conn


def _create_schema(conn: sqlite3.Connection) -> None:
    # SQLite treats NULLs as distinct, so user rows (no external id) never collide
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS concerts (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            external_event_id TEXT UNIQUE,
            title             TEXT NOT NULL,
            venue             TEXT NOT NULL,
            location          TEXT NOT NULL,
            concert_date      TEXT NOT NULL,
            start_time        TEXT,
            orchestra         TEXT,
            conductor         TEXT,
            soloists          TEXT,
            program           TEXT,
            ticket_url        TEXT,
            price_range       TEXT,
            tags              TEXT NOT NULL DEFAULT '[]',
            source            TEXT NOT NULL,
            created_at        TEXT NOT NULL,
            updated_at        TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS concerts_date_idx ON concerts (concert_date);
    """)
    conn.commit()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _concert_params(concert: Concert, now: str) -> dict:
    return {
        "external_event_id": concert.external_event_id,
        "title":        concert.title,
        "venue":        concert.venue,
        "location":     concert.location,
        "concert_date": concert.concert_date.isoformat(),
        "start_time":   concert.start_time.isoformat() if concert.start_time else None,
        "orchestra":    concert.orchestra,
        "conductor":    concert.conductor,
        "soloists":     concert.soloists,
        "program":      concert.program,
        "ticket_url":   concert.ticket_url,
        "price_range":  concert.price_range,
        "tags":         json.dumps(list(concert.tags)),
        "source":       concert.source,
        "created_at":   now,
        "updated_at":   now,
    }


# --- Upsert engine ---

_UPSERT_SQL = """
    INSERT INTO concerts (external_event_id, {columns}, created_at, updated_at)
    VALUES (:external_event_id, {placeholders}, :created_at, :updated_at)
    ON CONFLICT(external_event_id) DO UPDATE SET
        {assignments},
        updated_at = excluded.updated_at
""".format(
    columns=", ".join(_SYNCED_COLUMNS),
    placeholders=", ".join(f":{c}" for c in _SYNCED_COLUMNS),
    assignments=",\n        ".join(f"{c} = excluded.{c}" for c in _SYNCED_COLUMNS),
)


def upsert_concerts(conn: sqlite3.Connection, concerts: Iterable[Concert]) -> int:
    """
    Insert or fully replace provider concerts keyed on external_event_id.

    Every synced column is overwritten on conflict (no field merge); only id
    and created_at survive. Records without an external id or with
    source='user' are skipped. Within one batch the last record for a key
    wins. The batch is one transaction: on failure nothing is written and
    StorageError is raised.

    Returns the number of distinct rows written.
    """
    batch: dict[str, Concert] = {}
    skipped = 0
    for concert in concerts:
        if not concert.external_event_id or concert.source == USER:
            skipped += 1
            continue
        batch[concert.external_event_id] = concert
    if skipped:
        log.warning("upsert_skipped_records", count=skipped, reason="no external id or user-authored")
    if not batch:
        return 0

    now = _now()
    try:
        with conn:
            conn.executemany(_UPSERT_SQL, [_concert_params(c, now) for c in batch.values()])
    except sqlite3.Error as exc:
        raise StorageError(f"concert upsert failed: {exc}") from exc

    log.info("concerts_upserted", count=len(batch))
    return len(batch)


# --- User-authored concerts ---

def add_user_concert(conn: sqlite3.Connection, concert: Concert) -> int:
    """Insert a user-authored concert (never keyed, never synced). Returns its id."""
    params = _concert_params(concert, _now())
    params["source"] = USER
    params["external_event_id"] = None
    try:
        with conn:
            cursor = conn.execute(
                f"""
                INSERT INTO concerts (external_event_id, {", ".join(_SYNCED_COLUMNS)}, created_at, updated_at)
                VALUES (:external_event_id, {", ".join(f":{c}" for c in _SYNCED_COLUMNS)}, :created_at, :updated_at)
                """,
                params,
            )
    except sqlite3.Error as exc:
        raise StorageError(f"concert insert failed: {exc}") from exc
    return cursor.lastrowid


def update_concert_tags(conn: sqlite3.Connection, concert_id: int, tags: list[str]) -> None:
    try:
        with conn:
            cursor = conn.execute(
                "UPDATE concerts SET tags = ?, updated_at = ? WHERE id = ?",
                (json.dumps(tags), _now(), concert_id),
            )
    except sqlite3.Error as exc:
        raise StorageError(f"tag update failed: {exc}") from exc
    if cursor.rowcount == 0:
        raise StorageError(f"no concert with id {concert_id}")


# --- Deletes ---

def delete_concerts_before(
    conn: sqlite3.Connection,
    cutoff: date,
    exclude_sources: tuple[str, ...] = (USER,),
) -> int:
    """Delete concerts dated strictly before `cutoff`, except those from `exclude_sources`."""
    sql = "DELETE FROM concerts WHERE concert_date < ?"
    if exclude_sources:
        sql += f" AND source NOT IN ({', '.join('?' for _ in exclude_sources)})"
    try:
        with conn:
            cursor = conn.execute(sql, (cutoff.isoformat(), *exclude_sources))
    except sqlite3.Error as exc:
        raise StorageError(f"concert delete failed: {exc}") from exc
    return cursor.rowcount


# --- Queries ---

def get_concert(conn: sqlite3.Connection, concert_id: int) -> Optional[Concert]:
    row = conn.execute(f"SELECT {_SELECT_COLUMNS} FROM concerts WHERE id = ?", (concert_id,)).fetchone()
    return _row_to_concert(row) if row else None


def get_concert_by_external_id(conn: sqlite3.Connection, external_event_id: str) -> Optional[Concert]:
    row = conn.execute(
        f"SELECT {_SELECT_COLUMNS} FROM concerts WHERE external_event_id = ?",
        (external_event_id,),
    ).fetchone()
    return _row_to_concert(row) if row else None


def get_concerts_by_source(conn: sqlite3.Connection, source: str) -> list[Concert]:
    rows = conn.execute(
        f"SELECT {_SELECT_COLUMNS} FROM concerts WHERE source = ? ORDER BY concert_date, start_time",
        (source,),
    ).fetchall()
    return [_row_to_concert(r) for r in rows]


def count_concerts(conn: sqlite3.Connection, source: Optional[str] = None) -> int:
    if source is None:
        return conn.execute("SELECT COUNT(*) FROM concerts").fetchone()[0]
    return conn.execute("SELECT COUNT(*) FROM concerts WHERE source = ?", (source,)).fetchone()[0]


def get_upcoming_concerts(
    conn: sqlite3.Connection,
    from_date: Optional[date] = None,
    days_ahead: int = 90,
) -> list[Concert]:
    start = from_date or date.today()
    end = start + timedelta(days=days_ahead)
    rows = conn.execute(
        f"""
        SELECT {_SELECT_COLUMNS}
        FROM concerts
        WHERE concert_date >= ? AND concert_date <= ?
        ORDER BY concert_date, start_time
        """,
        (start.isoformat(), end.isoformat()),
    ).fetchall()
    return [_row_to_concert(r) for r in rows]


def _row_to_concert(row: sqlite3.Row) -> Concert:
    return Concert(
        id=row["id"],
        external_event_id=row["external_event_id"],
        title=row["title"],
        venue=row["venue"],
        location=row["location"],
        concert_date=date.fromisoformat(row["concert_date"]),
        start_time=time.fromisoformat(row["start_time"]) if row["start_time"] else None,
        orchestra=row["orchestra"],
        conductor=row["conductor"],
        soloists=row["soloists"],
        program=row["program"],
        ticket_url=row["ticket_url"],
        price_range=row["price_range"],
        tags=json.loads(row["tags"]),
        source=row["source"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )
