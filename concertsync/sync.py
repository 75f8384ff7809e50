"""
Multi-provider sync orchestration.

run_sync() fetches from each requested provider concurrently (network I/O
only, no shared state), then upserts each provider's concerts one provider
at a time on the caller's connection. A provider that fails (credential
missing, HTTP error, timeout, malformed payload, storage error) is reported
in the result and never stops the others. The result is successful unless
every requested provider failed.

Two overlapping syncs of the same provider both write the same
external_event_ids; the store applies last-write-wins and no locking is done.
"""

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Optional, Sequence

from dateutil.relativedelta import relativedelta

import concertsync.config as cfg_module
import concertsync.db as db_module
from concertsync.errors import ConcertSyncError, StorageError
from concertsync.log import get_logger
from concertsync.models import (
    BACHTRACK,
    BANDSINTOWN,
    EVENTBRITE,
    PROVIDER_SOURCES,
    TICKETMASTER,
    Concert,
    ProviderOutcome,
    SyncRequest,
    SyncResult,
)
from concertsync.providers import PROVIDERS, BaseProvider, build_provider
from concertsync.sweep import sweep

log = get_logger(__name__)

ProviderFactory = Callable[[str, dict], BaseProvider]


def _fetch(provider: BaseProvider, request: SyncRequest) -> list[Concert]:
    return provider.fetch(request)


def run_sync(
    conn: sqlite3.Connection,
    providers: Sequence[str],
    request: SyncRequest,
    cfg: Optional[dict] = None,
    provider_factory: ProviderFactory = build_provider,
) -> SyncResult:
    cfg = cfg or {}
    names = list(dict.fromkeys(providers))
    outcomes: dict[str, ProviderOutcome] = {}
    instances: dict[str, BaseProvider] = {}

    for name in names:
        if name not in PROVIDERS:
            outcomes[name] = ProviderOutcome(provider=name, success=False, error=f"unknown provider '{name}'")
            continue
        instances[name] = provider_factory(name, cfg)

    log.info(
        "sync_started",
        providers=names,
        location=request.location,
        date_from=request.date_from.isoformat() if request.date_from else None,
        date_to=request.date_to.isoformat() if request.date_to else None,
        limit=request.limit,
    )

    with ThreadPoolExecutor(max_workers=max(len(instances), 1)) as pool:
        futures = {name: pool.submit(_fetch, provider, request) for name, provider in instances.items()}

        # Upserts stay on this thread; sqlite3 connections are not shared across threads
        for name, future in futures.items():
            provider = instances[name]
            try:
                concerts = future.result()
            except ConcertSyncError as exc:
                log.error("provider_failed", provider=name, error=str(exc))
                outcomes[name] = ProviderOutcome(provider=name, success=False, error=exc.message)
                continue

            outcome = ProviderOutcome(
                provider=name,
                success=True,
                fetched_count=provider.last_fetched,
                dropped_count=provider.last_dropped,
            )
            try:
                outcome.synced_count = db_module.upsert_concerts(conn, concerts)
            except StorageError as exc:
                log.error("provider_store_failed", provider=name, error=str(exc))
                outcome.success = False
                outcome.error = exc.message
            outcomes[name] = outcome

    results = [outcomes[name] for name in names]
    result = _summarise(results)
    log.info("sync_finished", success=result.success, synced=result.synced_count, failed=result.failed_providers)
    return result


def _display(name: str) -> str:
    provider_cls = PROVIDERS.get(name)
    return provider_cls.display_name if provider_cls else name


def _summarise(results: list[ProviderOutcome]) -> SyncResult:
    succeeded = [r for r in results if r.success]
    failed = [r for r in results if not r.success]
    total = sum(r.synced_count for r in succeeded)
    failures = "; ".join(f"{_display(r.provider)} ({r.error})" for r in failed)

    if not results:
        return SyncResult(success=False, synced_count=0, message="No providers requested", results=results)

    if not succeeded:
        message = f"Sync failed for all providers, check configuration: {failures}"
        return SyncResult(success=False, synced_count=0, message=message, results=results)

    sources = ", ".join(_display(r.provider) for r in succeeded)
    message = f"Successfully synced {total} concerts from {sources}"
    if failed:
        message += f". Failed: {failures}"
    return SyncResult(success=True, synced_count=total, message=message, results=results)


# --- Single-provider entry points ---

def sync_bachtrack(
    conn: sqlite3.Connection,
    cfg: dict,
    location: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
) -> SyncResult:
    request = SyncRequest(location=location, date_from=date_from, date_to=date_to, limit=limit)
    return run_sync(conn, [BACHTRACK], request, cfg)


def sync_bandsintown(
    conn: sqlite3.Connection,
    cfg: dict,
    artists: Sequence[str],
    location: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
) -> SyncResult:
    request = SyncRequest(
        location=location, date_from=date_from, date_to=date_to, limit=limit, artists=list(artists)
    )
    return run_sync(conn, [BANDSINTOWN], request, cfg)


def sync_eventbrite(
    conn: sqlite3.Connection,
    cfg: dict,
    location: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 100,
    keywords: Sequence[str] = (),
) -> SyncResult:
    request = SyncRequest(
        location=location, date_from=date_from, date_to=date_to, limit=limit, keywords=list(keywords)
    )
    return run_sync(conn, [EVENTBRITE], request, cfg)


def sync_ticketmaster(
    conn: sqlite3.Connection,
    cfg: dict,
    location: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 100,
) -> SyncResult:
    request = SyncRequest(location=location, date_from=date_from, date_to=date_to, limit=limit)
    return run_sync(conn, [TICKETMASTER], request, cfg)


# --- Scheduled run ---

def run_daily_sync(
    conn: sqlite3.Connection,
    cfg: dict,
    today: Optional[date] = None,
    provider_factory: ProviderFactory = build_provider,
) -> SyncResult:
    """
    Sweep the retention window, then sync every enabled provider for
    today .. today + window_months with the curated Bandsintown artist list.
    A failed sweep is logged and the sync still runs.
    """
    settings = cfg_module.get_sync_settings(cfg)
    today = today or date.today()

    try:
        sweep(conn, settings["retention_days"], today=today)
    except StorageError as exc:
        log.error("retention_sweep_failed", error=str(exc))

    request = SyncRequest(
        date_from=today,
        date_to=today + relativedelta(months=settings["window_months"]),
        limit=settings["daily_limit"],
        artists=settings["artists"],
    )
    providers = cfg_module.get_enabled_providers(cfg, PROVIDER_SOURCES)
    return run_sync(conn, providers, request, cfg, provider_factory=provider_factory)
