"""
Editing helpers for RollingSettings.

All helpers return a new settings object; the caller decides when to save.
"""

from __future__ import annotations

import copy
from datetime import date

from mytimetable.model import RollingSettings, SetOverride, TermYear, WeekSet


def merge_settings(current: RollingSettings, update: RollingSettings) -> RollingSettings:
    """
    Merge an update into the current settings.

    Scalar fields come from the update. Term years are merged by year and,
    inside a year, term by term, so an update that only carries term 2 does
    not drop terms 1, 3 and 4.
    """
    years: dict[int, TermYear] = {ty.year: copy.deepcopy(ty) for ty in current.term_years}
    for ty in update.term_years:
        base = years.get(ty.year)
        if base is None:
            years[ty.year] = copy.deepcopy(ty)
            continue
        base.starts.update(ty.starts)
        base.ends.update(ty.ends)
        base.week1_sets.update(ty.week1_sets)

    return RollingSettings(
        cycle_start_date=update.cycle_start_date,
        excluded_dates=set(update.excluded_dates),
        overrides=list(update.overrides),
        term_years=[years[y] for y in sorted(years)],
        timezone=update.timezone,
    )


def set_term(
    settings: RollingSettings,
    year: int,
    term: int,
    start: date,
    end: date | None = None,
    week1_set: WeekSet | None = None,
) -> RollingSettings:
    if term not in (1, 2, 3, 4):
        raise ValueError(f"Term must be 1..4, got {term}")
    if end is not None and end < start:
        raise ValueError("Term end must not be before term start")

    ty = TermYear(year=year, starts={term: start})
    if end is not None:
        ty.ends[term] = end
    if week1_set is not None:
        ty.week1_sets[term] = WeekSet(week1_set)

    update = copy.deepcopy(settings)
    update.term_years = [ty]
    return merge_settings(settings, update)


def add_excluded_date(settings: RollingSettings, day: date) -> RollingSettings:
    out = copy.deepcopy(settings)
    out.excluded_dates.add(day)
    return out


def remove_excluded_date(settings: RollingSettings, day: date) -> RollingSettings:
    out = copy.deepcopy(settings)
    out.excluded_dates.discard(day)
    return out


def add_override(settings: RollingSettings, day: date, week_set: WeekSet) -> RollingSettings:
    """
    Force the week set from `day` on (legacy scheme). Replaces an override on the same date.
    """
    out = copy.deepcopy(settings)
    out.overrides = [o for o in out.overrides if o.date != day]
    out.overrides.append(SetOverride(date=day, week_set=WeekSet(week_set)))
    out.overrides.sort(key=lambda o: o.date)
    return out
