import argparse
import sys
from datetime import date
from pathlib import Path

from concertsync import __version__
import concertsync.config as cfg_module
import concertsync.db as db_module
from concertsync.errors import ConcertSyncError
from concertsync.log import configure_logging
from concertsync.models import PROVIDER_SOURCES, SyncRequest, SyncResult
from concertsync.sweep import sweep
from concertsync.sync import run_daily_sync, run_sync
from concertsync.tagging import OpenAITagGenerator, enhance_concert_tags


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got '{value}'") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {number}")
    return number


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got '{value}'") from None


def _print_result(result: SyncResult) -> None:
    for outcome in result.results:
        if outcome.success:
            line = f"  {outcome.provider}: {outcome.synced_count} concerts saved."
            if outcome.dropped_count:
                line += f" ({outcome.dropped_count} invalid records dropped)"
            print(line)
        else:
            print(f"  {outcome.provider}: FAILED ({outcome.error})")
    print(result.message)


def _sync(args, cfg, conn) -> int:
    providers = args.provider or cfg_module.get_enabled_providers(cfg, PROVIDER_SOURCES)
    if not providers:
        print("No enabled providers found. Check your config.toml [providers] section.")
        return 1

    request = SyncRequest(
        location=args.location,
        date_from=args.date_from,
        date_to=args.date_to,
        limit=args.limit,
        artists=args.artist or [],
        keywords=args.keyword or [],
    )
    print(f"Syncing from {', '.join(providers)} ...")
    result = run_sync(conn, providers, request, cfg)
    _print_result(result)
    return 0 if result.success else 1


def _daily(args, cfg, conn) -> int:
    print("Running daily sync ...")
    result = run_daily_sync(conn, cfg)
    _print_result(result)
    return 0 if result.success else 1


def _sweep(args, cfg, conn) -> int:
    retention_days = args.retention_days
    if retention_days is None:
        retention_days = cfg_module.get_sync_settings(cfg)["retention_days"]
    result = sweep(conn, retention_days)
    print(f"Removed {result.deleted_count} concerts dated before {result.cutoff.isoformat()}.")
    return 0


def _upcoming(args, cfg, conn) -> int:
    concerts = db_module.get_upcoming_concerts(conn, days_ahead=args.days)
    for c in concerts:
        when = c.concert_date.isoformat()
        if c.start_time:
            when += " " + c.start_time.strftime("%H:%M")
        print(f"{when}  {c.title} @ {c.venue}, {c.location} [{c.source}]")
    print(f"{len(concerts)} upcoming concerts.")
    return 0


def _tag(args, cfg, conn) -> int:
    settings = cfg_module.get_tagging_settings(cfg)
    api_key = cfg_module.get_secret(cfg, "openai_api_key")
    generator = None
    if api_key:
        generator = OpenAITagGenerator(api_key, model=settings["model"], timeout=settings["timeout"])
    else:
        print("OPENAI_API_KEY not set; using fallback tags.")
    tags = enhance_concert_tags(conn, args.concert_id, generator, max_tags=settings["max_tags"])
    print(f"Tags for concert {args.concert_id}: {', '.join(tags)}")
    return 0


def _add_request_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--provider", action="append", choices=PROVIDER_SOURCES, metavar="NAME",
        help=f"Provider to sync from, repeatable ({', '.join(PROVIDER_SOURCES)}; default: all enabled)",
    )
    parser.add_argument("--location", help="City or region to search")
    parser.add_argument("--from", dest="date_from", type=_iso_date, metavar="YYYY-MM-DD")
    parser.add_argument("--to", dest="date_to", type=_iso_date, metavar="YYYY-MM-DD")
    parser.add_argument("--limit", type=int, help="Per-provider record cap (default: provider default)")
    parser.add_argument("--artist", action="append", help="Bandsintown artist, repeatable")
    parser.add_argument("--keyword", action="append", help="Eventbrite search keyword, repeatable")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="concertsync",
        description="Classical concert ingestion from Bachtrack, Bandsintown, Eventbrite and TicketMaster",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", default="config.toml", metavar="PATH",
        help="Path to config.toml (default: config.toml)",
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sp_sync = subparsers.add_parser("sync", help="Sync concerts from one or more providers")
    _add_request_args(sp_sync)

    subparsers.add_parser("daily", help="Sweep old concerts, then sync all enabled providers")

    sp_sweep = subparsers.add_parser("sweep", help="Delete past concerts beyond the retention window")
    sp_sweep.add_argument("--retention-days", type=_non_negative_int, metavar="N")

    sp_upcoming = subparsers.add_parser("upcoming", help="List stored upcoming concerts")
    sp_upcoming.add_argument("--days", type=int, default=90, metavar="N")

    sp_tag = subparsers.add_parser("tag", help="Generate AI tags for a stored concert")
    sp_tag.add_argument("concert_id", type=int, metavar="ID")

    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_output=args.json_logs)
    cfg = cfg_module.load(Path(args.config))
    conn = db_module.connect(cfg_module.get_database_path(cfg))

    commands = {
        "sync": _sync,
        "daily": _daily,
        "sweep": _sweep,
        "upcoming": _upcoming,
        "tag": _tag,
    }
    try:
        return commands[args.command](args, cfg, conn)
    except ConcertSyncError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
