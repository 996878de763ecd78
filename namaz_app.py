#!/usr/bin/env python3
"""
Namaz Tracker command line
Shows today's prayer windows and lets you:
  - mark each of the five prayers done for today
  - record missed (qaza) prayers and complete or remove them later
  - set or clear a manual location
"""

import argparse
import datetime
import logging
import sys

import pytz

from namaz import location, settings
from namaz.clock import Clock
from namaz.engine import Engine
from namaz.errors import StorageError
from namaz.prayer_times import PRAYER_KEYS, format_time
from namaz.storage import JsonStore


def setup_logging(verbose: bool = False) -> None:
    """Setup stderr logging for the command line"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def timezone_name(value: str) -> str:
    if value not in pytz.all_timezones_set:
        raise argparse.ArgumentTypeError(f"unknown timezone: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="namaz", description="Daily prayer and qaza tracker")
    parser.add_argument("-v", "--verbose", action="store_true", help="show debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("today", help="show today's prayer times and status")

    for name, text in (("done", "mark a prayer done today"), ("undo", "unmark a prayer for today")):
        p = sub.add_parser(name, help=text)
        p.add_argument("prayer", choices=PRAYER_KEYS)

    p = sub.add_parser("missed", help="record a missed prayer")
    p.add_argument("prayer", choices=PRAYER_KEYS)
    p.add_argument("--date", type=datetime.date.fromisoformat, help="date missed (YYYY-MM-DD)")

    p = sub.add_parser("qaza", help="list qaza prayers")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--pending", action="store_true")
    group.add_argument("--completed", action="store_true")

    for name, text in (("complete", "mark a qaza prayer completed"), ("remove", "delete a qaza prayer")):
        p = sub.add_parser(name, help=text)
        p.add_argument("id")

    p = sub.add_parser("location", help="set or clear a manual location")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--set", nargs=2, type=float, metavar=("LAT", "LON"))
    group.add_argument("--clear", action="store_true")
    p.add_argument("--city", default="Manual")
    p.add_argument("--timezone", type=timezone_name, help="IANA zone, required with --set (e.g. Asia/Riyadh)")
    return parser


def build_engine(config: dict) -> Engine:
    def locate():
        return location.locate(
            allow=config["allow_location"],
            timeout=config["geolocation_timeout"],
        )

    calc_config = settings.calculation_config(config)
    # Manual location fixes the calendar day; detected locations use local time
    manual = location.load_manual_location()
    clock_zone = calc_config.timezone
    if not clock_zone and manual and manual.get("timezone") in pytz.all_timezones_set:
        clock_zone = manual["timezone"]
    return Engine(
        store=JsonStore(settings.data_dir(config)),
        clock=Clock(clock_zone),
        locate=locate,
        config=calc_config,
    )


def print_today(engine: Engine) -> None:
    if engine.error_message:
        print(f"⚠ {engine.error_message}")
    loc = engine.location
    if loc:
        print(f"📍 {loc.get('city', '')} ({loc['lat']:.4f}, {loc['lon']:.4f})")
    for prayer in engine.prayers():
        mark = "✔" if prayer["observed"] else " "
        name = prayer["definition"].name
        print(f" [{mark}] {name:<8} {format_time(prayer['start'])} - {format_time(prayer['end'])}")
    print(f"Qaza pending: {len(engine.pending_qaza())}")


def print_qaza(entries) -> None:
    if not entries:
        print("No qaza prayers.")
        return
    for entry in entries:
        state = "Done" if entry.completed else "Qaza"
        name = entry.prayer.get("name", entry.prayer_key)
        print(f"{entry.id:<24} {name:<8} {entry.date_missed.isoformat()}  {state}")


def run(args, engine: Engine) -> int:
    command = args.command or "today"
    if command == "today":
        print_today(engine)
    elif command in ("done", "undo"):
        engine.set_observed(args.prayer, command == "done")
        print_today(engine)
    elif command == "missed":
        entry = engine.mark_missed(args.prayer, args.date)
        if entry is None:
            print(f"{args.prayer} is already pending qaza for that date.")
        else:
            print(f"Added qaza {entry.id}")
    elif command == "qaza":
        if args.pending:
            print_qaza(engine.pending_qaza())
        elif args.completed:
            print_qaza(engine.completed_qaza())
        else:
            print_qaza(engine.qaza_entries())
    elif command == "complete":
        if not engine.complete_qaza(args.id):
            print(f"No pending qaza with id {args.id}")
            return 1
        print(f"Completed {args.id}")
    elif command == "remove":
        if not engine.remove_qaza(args.id):
            print(f"No qaza with id {args.id}")
            return 1
        print(f"Removed {args.id}")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "location":
        if args.clear:
            location.clear_manual_location()
            print("Manual location cleared.")
        else:
            if not args.timezone:
                parser.error("--timezone is required with --set")
            lat, lon = args.set
            location.save_manual_location({
                "city": args.city, "region": "", "country": "",
                "lat": lat, "lon": lon, "timezone": args.timezone,
            })
            print(f"Manual location saved: {lat}, {lon}")
        return 0

    config = settings.load_settings()
    try:
        engine = build_engine(config)
    except ValueError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 2
    try:
        engine.activate(wait=True)
        return run(args, engine)
    except StorageError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
