"""
Cycle template building (parsed feed events -> fortnight template).

Rules:
- only events whose LOCAL start is Mon..Fri are used
- the earliest Monday in the data is the anchor and is always MonA here;
  a wrong anchor is fixed later by the mapping correction, never re-guessed
- 10 consecutive school dates from the anchor make up the cycle
- the result is computed completely before it is returned, so a failed build
  never replaces an existing template
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable
from zoneinfo import ZoneInfo

from mytimetable.errors import TemplateBuildError
from mytimetable.model import (
    CANONICAL_LABELS,
    BaseEvent,
    Category,
    CycleTemplateEvent,
    DayLabel,
    TemplateMeta,
)
from mytimetable.parse import hash_string
from mytimetable.timeutil import get_zone, minutes_since_midnight

logger = logging.getLogger(__name__)

CYCLE_LENGTH = 10


@dataclass(frozen=True)
class TemplateBuild:
    template_events: tuple[CycleTemplateEvent, ...]
    meta: TemplateMeta


@dataclass(frozen=True)
class _LocalEvent:
    day: date
    start_minutes: int
    end_minutes: int
    period_code: str | None
    category: Category
    code: str | None
    title: str
    room: str | None


def day_label_for_position(i: int) -> DayLabel:
    # 0..4 -> MonA..FriA, 5..9 -> MonB..FriB
    return CANONICAL_LABELS[i % CYCLE_LENGTH]


def template_event_id(
    label: DayLabel,
    period_code: str | None,
    start_minutes: int,
    end_minutes: int,
    code: str | None,
    title: str,
    room: str | None,
    category: Category,
) -> str:
    """
    '<label>-<hash>': the hash covers everything except the label, so the
    mapping correction can swap the prefix and keep the rest stable.
    """
    parts = [period_code, start_minutes, end_minutes, code, title, room, category.value]
    digest = hash_string("|".join("" if p is None else str(p) for p in parts))
    return f"{label.value}-{digest}"


def _localise(events: Iterable[BaseEvent], zone: ZoneInfo) -> list[_LocalEvent]:
    out: list[_LocalEvent] = []
    for ev in events:
        start_local = ev.start_utc.astimezone(zone)
        end_local = ev.end_utc.astimezone(zone)
        if start_local.weekday() >= 5:
            continue
        out.append(
            _LocalEvent(
                day=start_local.date(),
                start_minutes=minutes_since_midnight(start_local),
                end_minutes=minutes_since_midnight(end_local),
                period_code=ev.period_code,
                category=ev.category,
                code=ev.code,
                title=ev.title,
                room=ev.room,
            )
        )
    return out


def find_cycle_dates(days: Iterable[date]) -> list[date]:
    """
    Return the 10 school dates of the cycle, starting at the earliest Monday.

    Raises TemplateBuildError if there is no Monday or fewer than 10 dates remain.
    """
    all_days = sorted(set(days))
    mondays = [d for d in all_days if d.weekday() == 0]
    if not mondays:
        raise TemplateBuildError("No Monday found in feed to anchor MonA.")

    anchor_idx = all_days.index(mondays[0])
    cycle: list[date] = []
    for d in all_days[anchor_idx:]:
        if d.weekday() < 5:
            cycle.append(d)
        if len(cycle) == CYCLE_LENGTH:
            break

    if len(cycle) < CYCLE_LENGTH:
        raise TemplateBuildError(
            f"Need at least {CYCLE_LENGTH} consecutive school dates from first Monday; found {len(cycle)}."
        )
    return cycle


def build_template(
    events: Iterable[BaseEvent],
    tz: str | ZoneInfo | None = None,
    built_at: datetime | None = None,
) -> TemplateBuild:
    """
    Build the fortnight template from parsed feed events.

    Inactive (tombstoned) events are ignored.
    """
    zone = get_zone(tz)
    local_events = _localise((ev for ev in events if ev.active), zone)
    if not local_events:
        raise TemplateBuildError("No weekday events found in feed.")

    by_day: dict[date, list[_LocalEvent]] = defaultdict(list)
    for le in local_events:
        by_day[le.day].append(le)

    cycle_dates = find_cycle_dates(by_day.keys())

    template_events: list[CycleTemplateEvent] = []
    for i, day in enumerate(cycle_dates):
        label = day_label_for_position(i)
        day_events = sorted(by_day[day], key=lambda e: (e.start_minutes, e.period_code or ""))
        for e in day_events:
            template_events.append(
                CycleTemplateEvent(
                    id=template_event_id(
                        label, e.period_code, e.start_minutes, e.end_minutes, e.code, e.title, e.room, e.category
                    ),
                    day_label=label,
                    start_minutes=e.start_minutes,
                    end_minutes=e.end_minutes,
                    period_code=e.period_code,
                    category=e.category,
                    code=e.code,
                    title=e.title,
                    room=e.room,
                )
            )

    meta = TemplateMeta(
        anchor_monday=cycle_dates[0],
        cycle_dates=tuple(cycle_dates),
        shift=0,
        flipped=False,
        built_at=built_at or datetime.now(timezone.utc),
    )

    logger.info(
        "Built template: anchor %s, %d events over %s..%s",
        meta.anchor_monday.isoformat(),
        len(template_events),
        cycle_dates[0].isoformat(),
        cycle_dates[-1].isoformat(),
    )
    return TemplateBuild(template_events=tuple(template_events), meta=meta)
