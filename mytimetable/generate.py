"""
Daily projection: place the template of one day label onto a real date.

Nothing here is stored; results are recomputed for every request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from mytimetable.cycle import day_label_for_date
from mytimetable.model import (
    AssignmentKind,
    CycleTemplateEvent,
    DayLabel,
    GeneratedEvent,
    RollingSettings,
    SlotAssignment,
    SlotId,
    WeekSet,
)
from mytimetable.slots import SLOT_DEFS
from mytimetable.timeutil import local_instant, monday_of, parse_day_key


@dataclass(frozen=True)
class SlotEntry:
    """
    One row of the slot view of a day; kind is FREE when the slot is empty.
    """

    slot_id: SlotId
    label: str
    kind: AssignmentKind
    assignment: SlotAssignment | None = None
    template_event: CycleTemplateEvent | None = None

    @property
    def is_manual(self) -> bool:
        return bool(self.assignment and self.assignment.manual_title)

    # manual fields of the assignment win over the template event
    @property
    def title(self) -> str:
        if self.is_manual:
            return self.assignment.manual_title
        return self.template_event.title if self.template_event else ""

    @property
    def code(self) -> str | None:
        if self.is_manual:
            return self.assignment.manual_code
        return self.template_event.code if self.template_event else None

    @property
    def room(self) -> str | None:
        if self.is_manual:
            return self.assignment.manual_room
        return self.template_event.room if self.template_event else None

    @property
    def period_code(self) -> str | None:
        if self.is_manual or self.template_event is None:
            return None
        return self.template_event.period_code


@dataclass(frozen=True)
class MatrixRow:
    """
    One slot across several days; a cell is None where the day has no school.
    """

    slot_id: SlotId
    label: str
    cells: tuple[SlotEntry | None, ...]


def generate_for_date(
    local_date_key: str | date,
    settings: RollingSettings,
    template_events: Iterable[CycleTemplateEvent],
    tz: str | ZoneInfo | None = None,
) -> list[GeneratedEvent]:
    """
    Instantiate the template events of the date's day label as absolute events.

    Returns [] for days that are not school days.
    """
    day = parse_day_key(local_date_key)
    label = day_label_for_date(day, settings)
    if label is None:
        return []

    zone = tz or settings.timezone
    day_key = day.isoformat()
    todays = sorted((e for e in template_events if e.day_label is label), key=lambda e: e.start_minutes)

    return [
        GeneratedEvent(
            id=f"{day_key}-{e.id}",
            start_utc=local_instant(day, e.start_minutes, zone),
            end_utc=local_instant(day, e.end_minutes, zone),
            period_code=e.period_code,
            category=e.category,
            code=e.code,
            title=e.title,
            room=e.room,
        )
        for e in todays
    ]


def generate_range(
    start: str | date,
    end: str | date,
    settings: RollingSettings,
    template_events: Iterable[CycleTemplateEvent],
    tz: str | ZoneInfo | None = None,
) -> list[GeneratedEvent]:
    """
    Project every date of [start, end] (inclusive), in date order.
    """
    first = parse_day_key(start)
    last = parse_day_key(end)
    events = list(template_events)

    out: list[GeneratedEvent] = []
    cur = first
    while cur <= last:
        out.extend(generate_for_date(cur, settings, events, tz))
        cur += timedelta(days=1)
    return out


def slots_for_label(
    label: DayLabel,
    template_events: Iterable[CycleTemplateEvent],
    assignments: Iterable[SlotAssignment],
) -> list[SlotEntry]:
    template_by_id: dict[str, CycleTemplateEvent] = {e.id: e for e in template_events}
    by_slot: dict[SlotId, SlotAssignment] = {a.slot_id: a for a in assignments if a.day_label is label}

    out: list[SlotEntry] = []
    for slot_id, slot_label in SLOT_DEFS:
        a = by_slot.get(slot_id)
        if a is None:
            out.append(SlotEntry(slot_id=slot_id, label=slot_label, kind=AssignmentKind.FREE))
            continue
        te = template_by_id.get(a.source_template_event_id) if a.source_template_event_id else None
        out.append(SlotEntry(slot_id=slot_id, label=slot_label, kind=a.kind, assignment=a, template_event=te))
    return out


def slots_for_date(
    local_date_key: str | date,
    settings: RollingSettings,
    template_events: Iterable[CycleTemplateEvent],
    assignments: Iterable[SlotAssignment],
) -> list[SlotEntry]:
    """
    Slot view of a date: every slot in day order, blank where nothing is assigned.
    Returns [] for days that are not school days.
    """
    label = day_label_for_date(parse_day_key(local_date_key), settings)
    if label is None:
        return []
    return slots_for_label(label, template_events, assignments)


def labels_for_set(week_set: WeekSet | str) -> tuple[DayLabel, ...]:
    ws = WeekSet(week_set)
    return tuple(DayLabel.from_parts(i, ws) for i in range(5))


def _rows(columns: list[list[SlotEntry] | None]) -> list[MatrixRow]:
    rows: list[MatrixRow] = []
    for i, (slot_id, slot_label) in enumerate(SLOT_DEFS):
        cells = tuple(col[i] if col is not None else None for col in columns)
        rows.append(MatrixRow(slot_id=slot_id, label=slot_label, cells=cells))
    return rows


def matrix_for_set(
    week_set: WeekSet | str,
    template_events: Iterable[CycleTemplateEvent],
    assignments: Iterable[SlotAssignment],
    show_breaks: bool = True,
    show_duties: bool = True,
) -> list[MatrixRow]:
    """
    Fortnight matrix for one week set: a row per slot, a cell per weekday (Mon..Fri).

    Hidden breaks/duties are shown as blank cells.
    """
    hidden: set[AssignmentKind] = set()
    if not show_breaks:
        hidden.add(AssignmentKind.BREAK)
    if not show_duties:
        hidden.add(AssignmentKind.DUTY)

    events = list(template_events)
    visible = [a for a in assignments if a.kind not in hidden]
    return _rows([slots_for_label(label, events, visible) for label in labels_for_set(week_set)])


def week_grid(
    local_date_key: str | date,
    settings: RollingSettings,
    template_events: Iterable[CycleTemplateEvent],
    assignments: Iterable[SlotAssignment],
) -> tuple[list[tuple[date, DayLabel | None]], list[MatrixRow]]:
    """
    Slots x weekdays for the Monday..Friday week containing the date.

    Returns the day columns (date, day label) and one row per slot.
    """
    monday = monday_of(parse_day_key(local_date_key))
    events = list(template_events)
    assigned = list(assignments)

    days: list[tuple[date, DayLabel | None]] = []
    columns: list[list[SlotEntry] | None] = []
    for i in range(5):
        d = monday + timedelta(days=i)
        label = day_label_for_date(d, settings)
        days.append((d, label))
        columns.append(slots_for_label(label, events, assigned) if label is not None else None)
    return days, _rows(columns)
