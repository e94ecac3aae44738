"""
Parsing (calendar feed text -> BaseEvent objects).

- Reads an iCalendar feed as exported by the school system (Sentral/Edval style)
- Turns EACH VEVENT into at most ONE BaseEvent
- Classifies every event as class, duty or break

Important rules:
- A feed that is not a calendar document fails the whole import (FeedParseError)
- A single event without a resolvable start AND end is skipped, not fatal
- Ids must be stable: parsing the same content twice yields the same ids
"""

from __future__ import annotations

import argparse
import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from icalendar import Calendar, Event

from mytimetable.errors import FeedParseError
from mytimetable.model import BaseEvent, Category
from mytimetable.timeutil import get_zone

logger = logging.getLogger(__name__)


# Longest "(CODE)" suffix still treated as a class code
MAX_SUFFIX_CODE_LENGTH = 24

_PERIOD_RE = re.compile(r"Period:\s*([^\r\n]+)", re.IGNORECASE)
_ROOM_RE = re.compile(r"Room:\s*([^\r\n]+)", re.IGNORECASE)
_LOCATION_RE = re.compile(r"Location:\s*([^\r\n]+)", re.IGNORECASE)
_SUFFIX_CODE_RE = re.compile(r"^(.*?)\s*\(([^()]+)\)\s*$")
_BREAK_PERIOD_RE = re.compile(r"^[RL]\d+", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def hash_string(text: str) -> str:
    """
    Stable lightweight hash (32-bit FNV-1a, hex) for ids and change detection.

    Not cryptographic: a collision only hides a change, it never corrupts data.
    """
    h = 0x811C9DC5
    for ch in text:
        h ^= ord(ch)
        h = (h * 0x01000193) & 0xFFFFFFFF
    return format(h, "x")


def first_line(text: str) -> str:
    lines = text.splitlines()
    return lines[0].strip() if lines else ""


def split_summary(summary: str) -> tuple[str | None, str]:
    """
    Split a summary into (code, title).

    Supports both:
        CODE: Title
        Title (CODE)
    """
    idx = summary.find(":")
    if idx != -1:
        left = summary[:idx].strip()
        right = summary[idx + 1 :].strip()
        return (left or None), (right or summary.strip())

    m = _SUFFIX_CODE_RE.match(summary)
    if m:
        code = m.group(2).strip()
        if code and len(code) <= MAX_SUFFIX_CODE_LENGTH:
            title = m.group(1).strip()
            return code, (title or summary.strip())

    return None, summary.strip()


def extract_period_code(description: str | None) -> str | None:
    if not description:
        return None
    m = _PERIOD_RE.search(description)
    return m.group(1).strip() if m else None


def extract_room(location: str | None, description: str | None = None) -> str | None:
    """
    Prefer the LOCATION field (which may itself contain 'Room: X'),
    then fall back to 'Room:'/'Location:' markers in the description.
    """
    if location and location.strip():
        m = _ROOM_RE.search(location)
        if not m:
            return location.strip()
        return m.group(1).strip() or None

    if description:
        for pattern in (_ROOM_RE, _LOCATION_RE):
            m = pattern.search(description)
            if m and m.group(1).strip():
                return m.group(1).strip()

    return None


def infer_category(raw_summary: str, period_code: str | None) -> Category:
    if raw_summary.strip().startswith("Duty."):
        return Category.DUTY
    if period_code and _BREAK_PERIOD_RE.match(period_code.strip()):
        return Category.BREAK
    return Category.CLASS


def derive_event_id(
    uid: str | None,
    start_utc: datetime,
    end_utc: datetime,
    summary: str,
    room: str | None,
) -> str:
    if uid:
        return uid
    start_ms = int(start_utc.timestamp() * 1000)
    end_ms = int(end_utc.timestamp() * 1000)
    return hash_string(f"{start_ms}|{end_ms}|{summary}|{room or ''}")


# ---------------------------------------------------------------------------
# iCalendar components
# ---------------------------------------------------------------------------


def _read_calendar(feed_text: str) -> Calendar:
    """
    Parse the feed into a VCALENDAR component.

    Raises FeedParseError for anything that is not one complete calendar.
    """
    text = (feed_text or "").lstrip("\ufeff")
    try:
        cal = Calendar.from_ical(text)
    except ValueError as exc:
        raise FeedParseError(f"Feed is not a valid calendar document: {exc}") from exc
    if cal.name != "VCALENDAR":
        raise FeedParseError(f"Feed contains {cal.name}, expected VCALENDAR")
    return cal


def _text(component: Event, name: str) -> str | None:
    value = component.get(name)
    if value is None:
        return None
    # repeated properties come back as a list; first occurrence wins
    if isinstance(value, list):
        value = value[0] if value else None
    return None if value is None else str(value)


def _decoded(component: Event, name: str) -> Any:
    try:
        value = component.decoded(name)
    except KeyError:
        return None
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _as_utc(value: Any, default_zone: ZoneInfo) -> datetime | None:
    """
    DTSTART/DTEND value -> aware UTC datetime.

    DATE values are local midnight; floating times (and unknown TZIDs) use
    the default zone.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=default_zone)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time(0, 0), tzinfo=default_zone).astimezone(timezone.utc)
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_vevent(component: Event, batch_id: str, default_zone: ZoneInfo) -> BaseEvent | None:
    """
    Parse exactly one VEVENT into one BaseEvent.
    """
    start = _as_utc(_decoded(component, "DTSTART"), default_zone)
    end = _as_utc(_decoded(component, "DTEND"), default_zone)
    if end is None and start is not None:
        duration = _decoded(component, "DURATION")
        if isinstance(duration, timedelta):
            end = start + duration

    if start is None or end is None:
        return None

    uid = (_text(component, "UID") or "").strip() or None
    raw_summary = first_line(_text(component, "SUMMARY") or "")
    description = _text(component, "DESCRIPTION")

    period_code = extract_period_code(description)
    room = extract_room(_text(component, "LOCATION"), description)
    code, title = split_summary(raw_summary)

    return BaseEvent(
        id=derive_event_id(uid, start, end, raw_summary, room),
        source_uid=uid,
        start_utc=start,
        end_utc=end,
        raw_summary=raw_summary,
        code=code,
        title=title,
        room=room,
        period_code=period_code,
        category=infer_category(raw_summary, period_code),
        content_hash=hash_string(component.to_ical().decode("utf-8")),
        active=True,
        last_seen_batch_id=batch_id,
    )


def parse_feed(feed_text: str, batch_id: str, tz: str | ZoneInfo | None = None) -> list[BaseEvent]:
    """
    Parse a whole calendar feed into BaseEvents (feed order).

    Raises FeedParseError if the text is not a calendar document.
    """
    default_zone = get_zone(tz)
    cal = _read_calendar(feed_text)

    events: list[BaseEvent] = []
    skipped = 0
    for component in cal.walk("VEVENT"):
        event = parse_vevent(component, batch_id, default_zone)
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        logger.debug("Skipped %d feed events without start/end", skipped)
    logger.info("Parsed %d events from feed (batch %s)", len(events), batch_id)
    return events


# ---------------------------------------------------------------------------
# CLI connection
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mytimetable.parse", description="Parse a calendar feed and list its events")
    p.add_argument("feed", type=Path, help="Path to an .ics file")
    p.add_argument("--tz", type=str, default=None, help="School timezone (default Australia/Sydney)")
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    text = args.feed.read_text(encoding="utf-8")
    for ev in parse_feed(text, batch_id="debug", tz=args.tz):
        print(f"{ev.start_utc.isoformat()} {ev.category.value:<5} {ev.period_code or '-':<6} {ev.raw_summary}")


if __name__ == "__main__":
    main()
