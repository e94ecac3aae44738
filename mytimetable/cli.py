"""
CLI (Command Line Interface).

Quick terminal commands, e.g.:

    mytimetable import <file.ics | https://...>
    mytimetable day [2025-02-03]
    mytimetable week [2025-02-03]
    mytimetable slots [2025-02-03]
    mytimetable matrix [A|B] [--no-breaks] [--no-duties]
    mytimetable term [2025-02-03]
    mytimetable mapping preview --shift 5 --flip
    mytimetable mapping apply --shift 5 --flip
    mytimetable terms set 2025 1 2025-01-28 --end 2025-04-11 --week1 A
    mytimetable exclude 2025-03-10
    mytimetable override 2025-02-10 B
    mytimetable export 2025-02-03 2025-02-14 out.ics

All state lives in the data directory (see mytimetable.storage).
"""

from __future__ import annotations

import argparse
import logging
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfoNotFoundError

import requests
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mytimetable.cycle import day_label_for_date
from mytimetable.errors import TimetableError
from mytimetable.export_ics import export_events_to_ics
from mytimetable.fetch import is_url, read_feed_source
from mytimetable.generate import (
    SlotEntry,
    generate_for_date,
    generate_range,
    labels_for_set,
    matrix_for_set,
    slots_for_date,
    week_grid,
)
from mytimetable.importer import apply_template_mapping, import_feed
from mytimetable.mapping import mapping_preview
from mytimetable.model import AssignmentKind, RollingSettings, WeekSet
from mytimetable.settings import add_excluded_date, add_override, remove_excluded_date, set_term
from mytimetable.storage import Store
from mytimetable.termweek import format_term_week, resolve_term_week
from mytimetable.timeutil import get_zone, monday_of, parse_day_key, to_local

console = Console()


def _store(args: argparse.Namespace) -> Store:
    if getattr(args, "data_dir", None):
        return Store(Path(args.data_dir))
    return Store.default()


def _today(settings: RollingSettings) -> date:
    return datetime.now(get_zone(settings.timezone)).date()


def _date_arg(raw: str | None, settings: RollingSettings) -> date | None:
    """
    Parse an optional 'YYYY-MM-DD' argument (default: today in the school timezone).
    Prints a message and returns None if invalid.
    """
    if not raw:
        return _today(settings)
    try:
        return parse_day_key(raw)
    except ValueError:
        console.print(f"Invalid date: {raw!r} (expected YYYY-MM-DD)")
        return None


def _hhmm(dt: datetime, settings: RollingSettings) -> str:
    return to_local(dt, settings.timezone).strftime("%H:%M")


def _cell(entry: SlotEntry | None) -> str:
    """
    Render one slot entry as table cell text (feed text escaped for rich markup).
    """
    if entry is None:
        return "–"
    if entry.assignment is None:
        return ""
    if entry.kind is AssignmentKind.FREE:
        return "Free"

    head = escape(entry.title)
    if entry.code:
        head += f" ({escape(entry.code)})"
    details: list[str] = []
    if entry.room:
        details.append(f"Room {escape(entry.room)}")
    if entry.period_code:
        details.append(escape(entry.period_code))
    details.append(entry.kind.value)
    return f"{head}\n[dim]{' · '.join(details)}[/dim]"


def _week_set_arg(raw: str | None, settings: RollingSettings) -> WeekSet:
    """
    Explicit A/B, else the set of today (A when today is not a school day).
    """
    if raw:
        return WeekSet(raw)
    label = day_label_for_date(_today(settings), settings)
    return label.week_set if label is not None else WeekSet.A


def _cmd_import(args: argparse.Namespace, store: Store) -> int:
    """
    Import a feed (file or URL), rebuild template and slot assignments.
    """
    source = (args.source or "").strip()
    if not source:
        console.print("Please provide a feed file or URL.")
        return 1

    text = read_feed_source(source)
    name = args.name or (source if is_url(source) else Path(source).name)
    result = import_feed(text, name, store)

    console.print(f"Imported {result.count} events from {escape(name)} (batch {result.batch_id})")
    console.print(f"Anchor Monday: {result.anchor_monday}")
    console.print(f"Cycle dates : {', '.join(result.cycle_dates)}")
    console.print(f"Template    : {result.template_count} events, {result.assignment_count} slot assignments")
    return 0


def _cmd_day(args: argparse.Namespace, store: Store) -> int:
    """
    Show the generated events of one date.
    """
    settings = store.load_settings()
    day = _date_arg(args.date, settings)
    if day is None:
        return 1

    generation = store.load_generation()
    if generation is None:
        console.print("No template yet. Run 'mytimetable import <feed>' first.")
        return 1

    label = day_label_for_date(day, settings)
    if label is None:
        console.print(f"{day.isoformat()} ({day.strftime('%A')}): no school day")
        return 0

    events = generate_for_date(day, settings, generation.template_events)
    table = Table(title=f"{day.strftime('%A %d %b %Y')} – {label.value}", box=box.SIMPLE)
    table.add_column("Time")
    table.add_column("Period")
    table.add_column("Code")
    table.add_column("Title")
    table.add_column("Room")
    for ev in events:
        table.add_row(
            f"{_hhmm(ev.start_utc, settings)}–{_hhmm(ev.end_utc, settings)}",
            escape(ev.period_code or ""),
            escape(ev.code or ""),
            escape(ev.title),
            escape(ev.room or ""),
        )
    console.print(table)
    return 0


def _cmd_week(args: argparse.Namespace, store: Store) -> int:
    """
    Show the slot grid (slots x Monday..Friday) of the week containing the date.
    """
    settings = store.load_settings()
    day = _date_arg(args.date, settings)
    if day is None:
        return 1

    generation = store.load_generation()
    if generation is None:
        console.print("No template yet. Run 'mytimetable import <feed>' first.")
        return 1

    days, rows = week_grid(day, settings, generation.template_events, generation.assignments)
    title = f"Week of {monday_of(day).isoformat()}"
    if settings.has_term_config:
        title += f" – {format_term_week(resolve_term_week(day, settings.term_years))}"

    table = Table(title=title, box=box.SIMPLE, show_lines=True)
    table.add_column("Slot")
    for d, label in days:
        table.add_column(f"{d.strftime('%a %d %b')}\n{label.value if label else '–'}")
    for row in rows:
        table.add_row(row.label, *(_cell(c) for c in row.cells))
    console.print(table)
    return 0


def _cmd_matrix(args: argparse.Namespace, store: Store) -> int:
    """
    Show the fortnight template of one week set (A or B) as slots x weekdays.
    """
    settings = store.load_settings()
    generation = store.load_generation()
    if generation is None or not generation.template_events:
        console.print("No template yet. Run 'mytimetable import <feed>' first.")
        return 1

    week_set = _week_set_arg(args.set, settings)
    rows = matrix_for_set(
        week_set,
        generation.template_events,
        generation.assignments,
        show_breaks=not args.no_breaks,
        show_duties=not args.no_duties,
    )

    table = Table(title=f"Week {week_set.value} template", box=box.SIMPLE, show_lines=True)
    table.add_column("Slot")
    for label in labels_for_set(week_set):
        table.add_column(label.value)
    for row in rows:
        table.add_row(row.label, *(_cell(c) for c in row.cells))
    console.print(table)
    return 0


def _cmd_slots(args: argparse.Namespace, store: Store) -> int:
    """
    Show the slot view (before school .. after school) of one date.
    """
    settings = store.load_settings()
    day = _date_arg(args.date, settings)
    if day is None:
        return 1

    generation = store.load_generation()
    if generation is None:
        console.print("No template yet. Run 'mytimetable import <feed>' first.")
        return 1

    entries = slots_for_date(day, settings, generation.template_events, generation.assignments)
    if not entries:
        console.print(f"{day.isoformat()}: no school day")
        return 0

    table = Table(title=f"Slots for {day.isoformat()}", box=box.SIMPLE)
    table.add_column("Slot")
    table.add_column("Kind")
    table.add_column("Title")
    table.add_column("Code")
    table.add_column("Room")
    for entry in entries:
        table.add_row(
            entry.label,
            entry.kind.value,
            escape(entry.title),
            escape(entry.code or ""),
            escape(entry.room or ""),
        )
    console.print(table)
    return 0


def _cmd_term(args: argparse.Namespace, store: Store) -> int:
    settings = store.load_settings()
    day = _date_arg(args.date, settings)
    if day is None:
        return 1

    if not settings.has_term_config:
        console.print("No term dates configured. Use 'mytimetable terms set ...'.")
        return 0

    tw = resolve_term_week(day, settings.term_years)
    console.print(f"{day.isoformat()}: {format_term_week(tw)}")
    return 0


def _cmd_mapping(args: argparse.Namespace, store: Store) -> int:
    """
    Preview or apply a shift/flip correction of the template's day labels.
    """
    if args.action == "apply":
        meta = apply_template_mapping(store, args.shift, args.flip)
        console.print(f"Applied mapping: shift={meta.shift} flipped={meta.flipped}")
        return 0

    generation = store.load_generation()
    if generation is None:
        console.print("No template metadata found. Import a feed first.")
        return 1

    table = Table(title=f"Mapping preview (shift={args.shift}, flip={args.flip})", box=box.SIMPLE)
    table.add_column("Date")
    table.add_column("Current")
    table.add_column("Proposed")
    current = dict(mapping_preview(generation.meta, generation.meta.shift, generation.meta.flipped))
    for d, label in mapping_preview(generation.meta, args.shift, args.flip):
        table.add_row(d.strftime("%a %d %b %Y"), current[d].value, label.value)
    console.print(table)
    return 0


def _cmd_terms_set(args: argparse.Namespace, store: Store) -> int:
    settings = store.load_settings()
    try:
        start = parse_day_key(args.start)
        end = parse_day_key(args.end) if args.end else None
    except ValueError:
        console.print("Invalid date (expected YYYY-MM-DD).")
        return 1

    week1 = WeekSet(args.week1) if args.week1 else None
    store.save_settings(set_term(settings, args.year, args.term, start, end, week1))
    console.print(f"Saved {args.year} term {args.term}: {start.isoformat()} – {end.isoformat() if end else 'open'}")
    return 0


def _cmd_exclude(args: argparse.Namespace, store: Store) -> int:
    settings = store.load_settings()
    try:
        day = parse_day_key(args.date)
    except ValueError:
        console.print(f"Invalid date: {args.date!r}")
        return 1

    if args.remove:
        store.save_settings(remove_excluded_date(settings, day))
        console.print(f"No longer excluded: {day.isoformat()}")
    else:
        store.save_settings(add_excluded_date(settings, day))
        console.print(f"Excluded: {day.isoformat()}")
    return 0


def _cmd_override(args: argparse.Namespace, store: Store) -> int:
    settings = store.load_settings()
    try:
        day = parse_day_key(args.date)
    except ValueError:
        console.print(f"Invalid date: {args.date!r}")
        return 1

    store.save_settings(add_override(settings, day, WeekSet(args.set)))
    console.print(f"From {day.isoformat()} the week is {args.set}")
    return 0


def _cmd_export(args: argparse.Namespace, store: Store) -> int:
    """
    Export projected events of a date range into an iCalendar (.ics) file.
    """
    settings = store.load_settings()
    try:
        start = parse_day_key(args.start)
        end = parse_day_key(args.end)
    except ValueError:
        console.print("Invalid date (expected YYYY-MM-DD).")
        return 1
    if end < start:
        console.print("End date must not be before start date.")
        return 1

    generation = store.load_generation()
    if generation is None:
        console.print("No template yet. Run 'mytimetable import <feed>' first.")
        return 1

    events = generate_range(start, end, settings, generation.template_events)
    if not events:
        console.print("No school days in range, nothing to export.")
        return 0

    n = export_events_to_ics(events, args.out)
    console.print(f"Exported {n} events to: {args.out}")
    return 0


def _shift(raw: str) -> int:
    value = int(raw)
    if not 0 <= value <= 9:
        raise argparse.ArgumentTypeError("shift must be between 0 and 9")
    return value


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="mytimetable", description="MyTimetable CLI")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory holding settings and template")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Import a calendar feed and rebuild the template")
    p_import.add_argument("source", type=str, help="Path to .ics file or feed URL")
    p_import.add_argument("--name", type=str, default=None, help="Name recorded for this import")

    for name, help_text in (
        ("day", "Show generated events of a date"),
        ("week", "Show the slot grid of a week"),
        ("slots", "Show the slot view of a date"),
        ("term", "Show term/week/set of a date"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("date", nargs="?", default=None, help="YYYY-MM-DD (default: today)")

    p_matrix = sub.add_parser("matrix", help="Show the Week A or Week B template as a slot grid")
    p_matrix.add_argument("set", nargs="?", choices=("A", "B"), default=None, help="Week set (default: this week)")
    p_matrix.add_argument("--no-breaks", action="store_true", help="Hide recess and lunch")
    p_matrix.add_argument("--no-duties", action="store_true", help="Hide duties")

    p_mapping = sub.add_parser("mapping", help="Preview or apply a shift/flip correction")
    p_mapping.add_argument("action", choices=("preview", "apply"))
    p_mapping.add_argument("--shift", type=_shift, default=0, help="Rotation 0..9")
    p_mapping.add_argument("--flip", action="store_true", help="Swap A and B weeks")

    p_terms = sub.add_parser("terms", help="Edit term dates")
    terms_sub = p_terms.add_subparsers(dest="terms_command", required=True)
    p_set = terms_sub.add_parser("set", help="Set start (and optional end) of a term")
    p_set.add_argument("year", type=int)
    p_set.add_argument("term", type=int, choices=(1, 2, 3, 4))
    p_set.add_argument("start", type=str, help="YYYY-MM-DD")
    p_set.add_argument("--end", type=str, default=None, help="YYYY-MM-DD")
    p_set.add_argument("--week1", choices=("A", "B"), default=None, help="Set of week 1")

    p_exclude = sub.add_parser("exclude", help="Exclude a date (pupil-free day etc.)")
    p_exclude.add_argument("date", type=str, help="YYYY-MM-DD")
    p_exclude.add_argument("--remove", action="store_true", help="Remove the exclusion instead")

    p_override = sub.add_parser("override", help="Force the A/B set from a date on (no term config)")
    p_override.add_argument("date", type=str, help="YYYY-MM-DD")
    p_override.add_argument("set", choices=("A", "B"))

    p_export = sub.add_parser("export", help="Export projected events to .ics")
    p_export.add_argument("start", type=str, help="YYYY-MM-DD")
    p_export.add_argument("end", type=str, help="YYYY-MM-DD")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")

    return parser


COMMANDS = {
    "import": _cmd_import,
    "day": _cmd_day,
    "week": _cmd_week,
    "slots": _cmd_slots,
    "matrix": _cmd_matrix,
    "term": _cmd_term,
    "mapping": _cmd_mapping,
    "terms": _cmd_terms_set,
    "exclude": _cmd_exclude,
    "override": _cmd_override,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args, _store(args))
    except TimetableError as exc:
        console.print(f"Error: {escape(str(exc))}")
        raise SystemExit(1)
    except ZoneInfoNotFoundError as exc:
        console.print(f"Unknown timezone in settings: {escape(str(exc))}")
        raise SystemExit(1)
    except UnicodeDecodeError as exc:
        console.print(f"Feed is not UTF-8 text: {escape(str(exc))}")
        raise SystemExit(1)
    except requests.RequestException as exc:
        console.print(f"Download failed: {escape(str(exc))}")
        raise SystemExit(1)
    except OSError as exc:
        console.print(f"File error: {escape(str(exc))}")
        raise SystemExit(1)

    raise SystemExit(code)
