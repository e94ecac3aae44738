"""
iCalendar (.ics) export.

We convert projected (generated) events into a calendar file that can be
imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from mytimetable.model import GeneratedEvent


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_utc(dt: datetime) -> str:
    """
    Convert an aware datetime to ICS UTC form 'YYYYMMDDTHHMMSSZ'.
    """
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _summary(ev: GeneratedEvent) -> str:
    if ev.code and ev.title and ev.code != ev.title:
        return f"{ev.code}: {ev.title}"
    return ev.title or ev.code or "Timetable event"


def export_events_to_ics(events: Iterable[GeneratedEvent], out_path: str | Path) -> int:
    """
    Export generated events to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//MyTimetable//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for ev in events:
        if ev.end_utc <= ev.start_utc:
            continue

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(ev.id)}@mytimetable")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{_dt_utc(ev.start_utc)}")
        lines.append(f"DTEND:{_dt_utc(ev.end_utc)}")
        lines.append(f"SUMMARY:{_ics_escape(_summary(ev))}")
        if ev.room:
            lines.append(f"LOCATION:{_ics_escape(ev.room)}")
        if ev.period_code:
            lines.append(f"DESCRIPTION:{_ics_escape('Period: ' + ev.period_code)}")
        lines.append(f"CATEGORIES:{ev.category.value.upper()}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF; bytes so the platform does not translate newlines
    out.write_bytes(("\r\n".join(lines) + "\r\n").encode("utf-8"))
    return count
