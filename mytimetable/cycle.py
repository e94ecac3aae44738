"""
Day-label resolution: which of the 10 logical days (MonA..FriB) a real date is.

Two schemes exist:
- term based (preferred whenever ANY term start is configured)
- legacy anchor + overrides (cycle_start_date is MonA, an override forces
  the A/B set from its date on); kept for configurations without terms
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from mytimetable.model import DayLabel, RollingSettings, SetOverride, WeekSet
from mytimetable.termweek import resolve_term_week
from mytimetable.timeutil import is_weekend, parse_day_key


def count_school_days(start: date, end: date, excluded: set) -> int:
    """
    Count weekdays in [start, end] (inclusive) that are not excluded.
    """
    if end < start:
        return 0
    count = 0
    cur = start
    while cur <= end:
        if not is_weekend(cur) and cur not in excluded:
            count += 1
        cur += timedelta(days=1)
    return count


def latest_override(target: date, overrides: Iterable[SetOverride]) -> SetOverride | None:
    best: SetOverride | None = None
    for o in overrides:
        if o.date <= target and (best is None or o.date > best.date):
            best = o
    return best


def _legacy_day_label(target: date, settings: RollingSettings) -> DayLabel | None:
    excluded = settings.excluded_dates
    ov = latest_override(target, settings.overrides)
    anchor = ov.date if ov is not None else settings.cycle_start_date
    anchor_set = ov.week_set if ov is not None else WeekSet.A

    if target < anchor or is_weekend(anchor):
        return None

    anchor_idx = anchor.weekday()  # Mon=0 .. Fri=4
    # zero-based school-day offset of target from anchor
    offset = count_school_days(anchor, target, excluded) - 1

    weekday_idx = (anchor_idx + offset) % 5
    week_blocks = (anchor_idx + offset) // 5
    week_set = anchor_set if week_blocks % 2 == 0 else anchor_set.other()
    return DayLabel.from_parts(weekday_idx, week_set)


def day_label_for_date(target: date | str, settings: RollingSettings) -> DayLabel | None:
    """
    Resolve the DayLabel of a date, or None if it is not a school day
    (weekend, excluded date, holiday between terms).
    """
    day = parse_day_key(target)
    if is_weekend(day) or day in settings.excluded_dates:
        return None

    if settings.has_term_config:
        tw = resolve_term_week(day, settings.term_years)
        if tw is None:
            return None
        return DayLabel.from_parts(day.weekday(), tw.week_set)

    return _legacy_day_label(day, settings)
