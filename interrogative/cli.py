"""Module cli: command deck for the scanner state layer."""
#
# PURPOSE:
# Drives an AppSession from the terminal against the SQLite snapshot
# database in the configured data directory. Handy for demos and for poking
# at persisted state without the mobile UI.
#
# USAGE:
#   interrogative scan --file invoice.pdf
#   interrogative scan --url https://bit.ly/x --seed 7
#   interrogative stats | history | notifications [--mark-all-read]
#   interrogative reports --severity Critical --sort popular
#   interrogative reset
#

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from interrogative import __version__
from interrogative.base.config import AppConfig, get_config, set_config, setup_logging
from interrogative.base.errors import ScannerError
from interrogative.base.session import AppSession
from interrogative.base.validation import is_supported_file_type, is_valid_url
from interrogative.data.db import SnapshotDatabase
from interrogative.data.models import ScanRecord, Severity, SortKey
from interrogative.engine.classifier import RandomClassifier

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    "safe": "✅",
    "threat": "⚠️",
    "warning": "🟡",
    "cancelled": "⏹",
}


def _format_record(record: ScanRecord) -> str:
    icon = STATUS_ICONS.get(record.status.value, "•")
    when = record.timestamp.strftime("%Y-%m-%d %H:%M")
    extra = f" [{record.threat_type}]" if record.threat_type else ""
    return f"{icon} {when}  {record.scan_type.value:<4} {record.status.value:<9} {record.target}{extra}"


async def run_scan(session: AppSession, args) -> int:
    if args.url:
        if not is_valid_url(args.url):
            print(f"❌ Not an http(s) URL: {args.url}")
            return 2
    elif not is_supported_file_type(args.file):
        logger.warning(f"[CLI] {args.file} has an unsupported extension; scanning anyway")

    target = args.url or args.file
    print(f"🎯 Scanning {target} ...")

    def show_progress(state) -> None:
        if state.is_scanning:
            print(f"   {state.scan_progress:>3}%  {state.scan_phase}")

    progress = session.scans.subscribe(show_progress)
    try:
        if args.url:
            record = await session.scan_url(args.url)
        else:
            record = await session.scan_file(args.file, file_size=args.size)
    finally:
        progress()

    if record is None:
        print("❌ Another scan is already running")
        return 1
    print(_format_record(record))
    if record.details:
        print(f"   {record.details}")
    return 0


async def run_stats(session: AppSession, args) -> int:
    stats = session.scans.get_stats()
    print(f"Total scans:      {stats.total_scans}")
    print(f"Threats detected: {stats.threats_detected}")
    print(f"Safe scans:       {stats.safe_scans}")
    print(f"Pending:          {stats.pending_scans}")
    print(f"Today / week / month: {stats.today_scans} / {stats.weekly_scans} / {stats.monthly_scans}")
    if stats.last_scan_time:
        print(f"Last scan:        {stats.last_scan_time.isoformat(timespec='seconds')}")
    return 0


async def run_history(session: AppSession, args) -> int:
    scans = session.scans.recent_scans
    if not scans:
        print("No scans yet.")
    for record in scans:
        print(_format_record(record))
    return 0


async def run_notifications(session: AppSession, args) -> int:
    if args.mark_all_read:
        flipped = session.notifications.mark_all_as_read()
        print(f"Marked {flipped} notification(s) as read.")
    for n in session.notifications.notifications:
        marker = " " if n.is_read else "●"
        print(f"{marker} [{n.type.value:<7}] {n.title}: {n.message}")
    print(f"{session.notifications.get_unread_count()} unread")
    return 0


async def run_reports(session: AppSession, args) -> int:
    if args.trending:
        reports = session.community.get_trending_reports()
    else:
        reports = session.community.get_filtered_reports(
            query=args.query, severity=args.severity, sort_by=args.sort,
        )
    if not reports:
        print("No matching reports.")
    for r in reports:
        badge = "✔" if r.verified else " "
        print(f"{badge} {r.severity.value:<8} {r.score:>+4}  {r.title}  ({r.threat_type.value}, {r.reported_by})")
    return 0


async def run_reset(session: AppSession, args) -> int:
    session.reset_all()
    print("Scan statistics, history and notifications cleared.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="interrogative", description="Interrogative Scanner Command Deck")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", help="Directory holding the snapshot database")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan Command
    scan_parser = subparsers.add_parser("scan", help="Run a simulated scan")
    target = scan_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--file", help="File name to scan")
    target.add_argument("--url", help="URL to scan")
    scan_parser.add_argument("--size", type=int, help="File size in bytes")
    scan_parser.add_argument("--seed", type=int, help="Seed for reproducible verdicts")
    scan_parser.add_argument("--fast", action="store_true", help="Skip phase delays")
    scan_parser.set_defaults(func=run_scan)

    subparsers.add_parser("stats", help="Show scan statistics").set_defaults(func=run_stats)
    subparsers.add_parser("history", help="List recent scans").set_defaults(func=run_history)

    notif_parser = subparsers.add_parser("notifications", help="List notifications")
    notif_parser.add_argument("--mark-all-read", action="store_true", help="Mark everything read first")
    notif_parser.set_defaults(func=run_notifications)

    reports_parser = subparsers.add_parser("reports", help="Browse community threat reports")
    reports_parser.add_argument("--query", help="Free-text search over title, description and tags")
    reports_parser.add_argument("--severity", choices=[s.value for s in Severity])
    reports_parser.add_argument("--sort", choices=[k.value for k in SortKey], default=SortKey.RECENT.value)
    reports_parser.add_argument("--trending", action="store_true", help="Most popular reports of the last week")
    reports_parser.set_defaults(func=run_reports)

    subparsers.add_parser("reset", help="Clear scan statistics, history and notifications").set_defaults(func=run_reset)
    return parser


def _resolve_config(args) -> AppConfig:
    config = get_config()
    if args.data_dir:
        storage = dataclasses.replace(config.storage, base_dir=Path(args.data_dir).expanduser())
        config = dataclasses.replace(config, storage=storage)
    if getattr(args, "fast", False):
        config = dataclasses.replace(config, scan=dataclasses.replace(config.scan, phase_time_scale=0.0))
    set_config(config)
    return config


async def _dispatch(args, config: AppConfig) -> int:
    config.ensure_dirs()
    session = AppSession(
        config=config,
        persistence=SnapshotDatabase(str(config.storage.db_path)),
        classifier=RandomClassifier(getattr(args, "seed", None)),
    )
    try:
        await session.start()
        return await args.func(session, args)
    finally:
        await session.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    config = _resolve_config(args)
    setup_logging(config)
    try:
        return asyncio.run(_dispatch(args, config))
    except ScannerError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        logger.debug(e.to_json())
        return 1


if __name__ == "__main__":
    sys.exit(main())
