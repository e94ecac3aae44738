"""
Term / week / A-B set resolution for real dates.

Week 1 starts on the Monday of the week containing the term start date,
so a term starting on a Tuesday still has that Tuesday in week 1.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from mytimetable.model import TermWeek, TermYear, WeekSet
from mytimetable.timeutil import monday_of


def _candidate_terms(term_years: Iterable[TermYear]) -> Iterable[tuple[date, date | None, int, TermYear]]:
    for ty in term_years:
        for term in (1, 2, 3, 4):
            start = ty.starts.get(term)
            if start is None:
                continue
            yield start, ty.ends.get(term), term, ty


def resolve_term_week(day: date, term_years: Iterable[TermYear]) -> TermWeek | None:
    """
    Resolve (year, term, week, set) for a date, or None on a holiday.

    Of all terms that contain the date, the latest-starting one wins; this keeps
    overlapping (misconfigured) years deterministic.
    """
    best: tuple[date, int, TermYear] | None = None
    for start, end, term, ty in _candidate_terms(term_years):
        if start > day:
            continue
        if end is not None and end < day:
            continue
        if best is None or start > best[0]:
            best = (start, term, ty)

    if best is None:
        return None

    start, term, ty = best
    week = max(1, (day - monday_of(start)).days // 7 + 1)

    week1_set = ty.week1_sets.get(term, WeekSet.A)
    week_set = week1_set if (week - 1) % 2 == 0 else week1_set.other()

    return TermWeek(year=ty.year, term=term, week=week, week_set=week_set)


def format_term_week(tw: TermWeek | None) -> str:
    if tw is None:
        return "Holidays"
    return f"T{tw.term} W{tw.week} ({tw.week_set.value})"
