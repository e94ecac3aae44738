"""
Central data model definitions used across the project.

This module defines the canonical structure of the timetable objects so that:
- all modules share the same field names
- the small closed domains (category, week set, day label, slot) are enums,
  not free-form strings
- data structures can be written to and read back from JSON in one place
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Closed enumerations
# ---------------------------------------------------------------------------


class Category(str, Enum):
    CLASS = "class"
    DUTY = "duty"
    BREAK = "break"


class WeekSet(str, Enum):
    A = "A"
    B = "B"

    def other(self) -> "WeekSet":
        return WeekSet.B if self is WeekSet.A else WeekSet.A


WEEKDAY_NAMES: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri")


class DayLabel(str, Enum):
    """
    One of the 10 logical days of the fortnight.

    Definition order is the canonical order MonA..FriA, MonB..FriB.
    A day label is not a date: it needs term config or an anchor to be placed.
    """

    MON_A = "MonA"
    TUE_A = "TueA"
    WED_A = "WedA"
    THU_A = "ThuA"
    FRI_A = "FriA"
    MON_B = "MonB"
    TUE_B = "TueB"
    WED_B = "WedB"
    THU_B = "ThuB"
    FRI_B = "FriB"

    @classmethod
    def from_parts(cls, weekday_index: int, week_set: WeekSet) -> "DayLabel":
        # weekday_index: Mon=0 .. Fri=4
        return cls(f"{WEEKDAY_NAMES[weekday_index]}{WeekSet(week_set).value}")

    @property
    def weekday_index(self) -> int:
        return WEEKDAY_NAMES.index(self.value[:3])

    @property
    def week_set(self) -> WeekSet:
        return WeekSet(self.value[3])

    def flipped(self) -> "DayLabel":
        return DayLabel.from_parts(self.weekday_index, self.week_set.other())


CANONICAL_LABELS: tuple[DayLabel, ...] = tuple(DayLabel)


class SlotId(str, Enum):
    BEFORE = "before"
    RC = "rc"
    P1 = "p1"
    P2 = "p2"
    R1 = "r1"
    R2 = "r2"
    P3 = "p3"
    P4 = "p4"
    L1 = "l1"
    L2 = "l2"
    P5 = "p5"
    P6 = "p6"
    AFTER = "after"


class AssignmentKind(str, Enum):
    CLASS = "class"
    DUTY = "duty"
    BREAK = "break"
    FREE = "free"


# ---------------------------------------------------------------------------
# Small JSON helpers
# ---------------------------------------------------------------------------


def _date_or_none(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _term_map(raw: Any) -> dict[int, date]:
    """
    Accepts {"t1": "2025-01-28", ...} (the stored shape) and keeps valid dates.
    """
    out: dict[int, date] = {}
    if not isinstance(raw, dict):
        return out
    for key, value in raw.items():
        term = int(str(key).lstrip("tT"))
        d = _date_or_none(value)
        if d is not None and 1 <= term <= 4:
            out[term] = d
    return out


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class BaseEvent:
    """
    One event as imported from the calendar feed.

    The id is the feed UID when present, else a hash of (start, end, summary, room),
    so re-importing the same feed content yields the same ids.
    """

    id: str
    source_uid: str | None
    start_utc: datetime
    end_utc: datetime
    raw_summary: str
    code: str | None
    title: str
    room: str | None
    period_code: str | None
    category: Category
    content_hash: str
    active: bool
    last_seen_batch_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_uid": self.source_uid,
            "start_utc": self.start_utc.isoformat(),
            "end_utc": self.end_utc.isoformat(),
            "raw_summary": self.raw_summary,
            "code": self.code,
            "title": self.title,
            "room": self.room,
            "period_code": self.period_code,
            "category": self.category.value,
            "content_hash": self.content_hash,
            "active": self.active,
            "last_seen_batch_id": self.last_seen_batch_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BaseEvent":
        return cls(
            id=str(data["id"]),
            source_uid=data.get("source_uid"),
            start_utc=datetime.fromisoformat(data["start_utc"]),
            end_utc=datetime.fromisoformat(data["end_utc"]),
            raw_summary=data.get("raw_summary", ""),
            code=data.get("code"),
            title=data.get("title", ""),
            room=data.get("room"),
            period_code=data.get("period_code"),
            category=Category(data.get("category", "class")),
            content_hash=data.get("content_hash", ""),
            active=bool(data.get("active", True)),
            last_seen_batch_id=str(data.get("last_seen_batch_id", "")),
        )


@dataclass(frozen=True)
class CycleTemplateEvent:
    """
    One event of the fortnight template.

    start_minutes/end_minutes are minutes since local midnight; they only become
    instants once projected onto a real date.
    """

    id: str
    day_label: DayLabel
    start_minutes: int
    end_minutes: int
    period_code: str | None
    category: Category
    code: str | None
    title: str
    room: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "day_label": self.day_label.value,
            "start_minutes": self.start_minutes,
            "end_minutes": self.end_minutes,
            "period_code": self.period_code,
            "category": self.category.value,
            "code": self.code,
            "title": self.title,
            "room": self.room,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CycleTemplateEvent":
        return cls(
            id=str(data["id"]),
            day_label=DayLabel(data["day_label"]),
            start_minutes=int(data["start_minutes"]),
            end_minutes=int(data["end_minutes"]),
            period_code=data.get("period_code"),
            category=Category(data.get("category", "class")),
            code=data.get("code"),
            title=data.get("title", ""),
            room=data.get("room"),
        )


@dataclass(frozen=True)
class TemplateMeta:
    """
    Describes where the template was anchored and which correction is applied.
    """

    anchor_monday: date
    cycle_dates: tuple[date, ...]
    shift: int
    flipped: bool
    built_at: datetime

    def __post_init__(self) -> None:
        if len(self.cycle_dates) != 10:
            raise ValueError(f"cycle_dates must hold 10 dates, got {len(self.cycle_dates)}")
        if self.cycle_dates[0] != self.anchor_monday:
            raise ValueError("cycle_dates must begin at anchor_monday")
        for a, b in zip(self.cycle_dates, self.cycle_dates[1:]):
            if not a < b:
                raise ValueError("cycle_dates must be strictly increasing")
        if not 0 <= self.shift < 10:
            raise ValueError(f"shift must be in 0..9, got {self.shift}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "anchor_monday": self.anchor_monday.isoformat(),
            "cycle_dates": [d.isoformat() for d in self.cycle_dates],
            "shift": self.shift,
            "flipped": self.flipped,
            "built_at": self.built_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TemplateMeta":
        return cls(
            anchor_monday=date.fromisoformat(data["anchor_monday"]),
            cycle_dates=tuple(date.fromisoformat(d) for d in data["cycle_dates"]),
            shift=int(data.get("shift", 0)),
            flipped=bool(data.get("flipped", False)),
            built_at=datetime.fromisoformat(data["built_at"]),
        )


@dataclass
class TermYear:
    """
    Term dates of one school year. Keys of the maps are term numbers 1..4.

    A term without an end date is open-ended.
    """

    year: int
    starts: dict[int, date] = field(default_factory=dict)
    ends: dict[int, date] = field(default_factory=dict)
    week1_sets: dict[int, WeekSet] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "starts": {f"t{t}": d.isoformat() for t, d in sorted(self.starts.items())},
            "ends": {f"t{t}": d.isoformat() for t, d in sorted(self.ends.items())},
            "week1_sets": {f"t{t}": s.value for t, s in sorted(self.week1_sets.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TermYear":
        sets: dict[int, WeekSet] = {}
        raw_sets = data.get("week1_sets") or {}
        if isinstance(raw_sets, dict):
            for key, value in raw_sets.items():
                if value in ("A", "B"):
                    sets[int(str(key).lstrip("tT"))] = WeekSet(value)
        return cls(
            year=int(data["year"]),
            starts=_term_map(data.get("starts")),
            ends=_term_map(data.get("ends")),
            week1_sets=sets,
        )


@dataclass(frozen=True)
class TermWeek:
    year: int
    term: int
    week: int
    week_set: WeekSet


@dataclass(frozen=True)
class SetOverride:
    """From this date on, the week set is forced to week_set."""

    date: date
    week_set: WeekSet


@dataclass
class RollingSettings:
    """
    Everything the day-label resolution needs to know about one user.

    cycle_start_date is the legacy anchor: that date is MonA.
    """

    cycle_start_date: date = date(2026, 1, 1)
    excluded_dates: set[date] = field(default_factory=set)
    overrides: list[SetOverride] = field(default_factory=list)
    term_years: list[TermYear] = field(default_factory=list)
    timezone: str = "Australia/Sydney"

    @property
    def has_term_config(self) -> bool:
        return any(ty.starts for ty in self.term_years)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_start_date": self.cycle_start_date.isoformat(),
            "excluded_dates": sorted(d.isoformat() for d in self.excluded_dates),
            "overrides": [
                {"date": o.date.isoformat(), "set": o.week_set.value}
                for o in sorted(self.overrides, key=lambda o: o.date)
            ],
            "term_years": [ty.to_dict() for ty in sorted(self.term_years, key=lambda t: t.year)],
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollingSettings":
        defaults = cls()
        overrides = [
            SetOverride(date=date.fromisoformat(o["date"]), week_set=WeekSet(o["set"]))
            for o in data.get("overrides") or []
        ]
        return cls(
            cycle_start_date=_date_or_none(data.get("cycle_start_date")) or defaults.cycle_start_date,
            excluded_dates={date.fromisoformat(d) for d in data.get("excluded_dates") or []},
            overrides=overrides,
            term_years=[TermYear.from_dict(ty) for ty in data.get("term_years") or []],
            timezone=str(data.get("timezone") or defaults.timezone),
        )


@dataclass(frozen=True)
class SlotAssignment:
    """
    The single winning occupant of one (day label, slot) pair.
    """

    day_label: DayLabel
    slot_id: SlotId
    kind: AssignmentKind
    source_template_event_id: str | None = None
    manual_title: str | None = None
    manual_code: str | None = None
    manual_room: str | None = None

    @property
    def key(self) -> str:
        return f"{self.day_label.value}::{self.slot_id.value}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "day_label": self.day_label.value,
            "slot_id": self.slot_id.value,
            "kind": self.kind.value,
            "source_template_event_id": self.source_template_event_id,
            "manual_title": self.manual_title,
            "manual_code": self.manual_code,
            "manual_room": self.manual_room,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SlotAssignment":
        return cls(
            day_label=DayLabel(data["day_label"]),
            slot_id=SlotId(data["slot_id"]),
            kind=AssignmentKind(data.get("kind", "free")),
            source_template_event_id=data.get("source_template_event_id"),
            manual_title=data.get("manual_title"),
            manual_code=data.get("manual_code"),
            manual_room=data.get("manual_room"),
        )


@dataclass(frozen=True)
class GeneratedEvent:
    """
    A template event placed on one real date. Never stored.
    """

    id: str
    start_utc: datetime
    end_utc: datetime
    period_code: str | None
    category: Category
    code: str | None
    title: str
    room: str | None
