"""
Tests for building the fortnight template from parsed feed events.
"""

import unittest
from datetime import date

from feed_samples import calendar, day_events, school_days, two_week_feed, vevent

from mytimetable.errors import TemplateBuildError
from mytimetable.model import DayLabel
from mytimetable.parse import parse_feed
from mytimetable.template import build_template, find_cycle_dates


def _build(text: str):
    return build_template(parse_feed(text, "b"))


class TestBuildTemplate(unittest.TestCase):
    def test_two_week_feed(self) -> None:
        build = _build(two_week_feed())

        self.assertEqual(build.meta.anchor_monday, date(2025, 2, 3))
        self.assertEqual(len(build.meta.cycle_dates), 10)
        self.assertEqual(build.meta.cycle_dates[5], date(2025, 2, 10))
        self.assertEqual(build.meta.cycle_dates[-1], date(2025, 2, 14))
        self.assertEqual(build.meta.shift, 0)
        self.assertFalse(build.meta.flipped)
        self.assertEqual(len(build.template_events), 32)

        labels = {e.day_label for e in build.template_events}
        self.assertEqual(labels, set(DayLabel))

    def test_first_date_is_mon_a_and_sixth_is_mon_b(self) -> None:
        build = _build(two_week_feed())
        first = [e for e in build.template_events if e.code == "SCI0"]
        sixth = [e for e in build.template_events if e.code == "SCI5"]
        self.assertEqual(first[0].day_label, DayLabel.MON_A)
        self.assertEqual(sixth[0].day_label, DayLabel.MON_B)

    def test_local_times_are_minutes_since_midnight(self) -> None:
        build = _build(two_week_feed())
        science = next(e for e in build.template_events if e.code == "SCI0")
        self.assertEqual(science.start_minutes, 8 * 60 + 50)
        self.assertEqual(science.end_minutes, 9 * 60 + 50)
        self.assertEqual(science.room, "S01")

    def test_events_sorted_within_day(self) -> None:
        build = _build(two_week_feed())
        mon_a = [e for e in build.template_events if e.day_label is DayLabel.MON_A]
        self.assertEqual([e.start_minutes for e in mon_a], sorted(e.start_minutes for e in mon_a))

    def test_ids_are_stable_and_label_prefixed(self) -> None:
        a = _build(two_week_feed())
        b = _build(two_week_feed())
        self.assertEqual([e.id for e in a.template_events], [e.id for e in b.template_events])
        for e in a.template_events:
            self.assertTrue(e.id.startswith(e.day_label.value + "-"))

    def test_anchor_is_first_monday_even_if_feed_starts_midweek(self) -> None:
        days = school_days(date(2025, 2, 5), 13)  # Wed 5 Feb .. Fri 21 Feb
        events = []
        for i, d in enumerate(days):
            events.extend(day_events(d, i))
        build = _build(calendar(events))
        self.assertEqual(build.meta.anchor_monday, date(2025, 2, 10))
        self.assertEqual(build.meta.cycle_dates[-1], date(2025, 2, 21))
        self.assertNotIn(date(2025, 2, 5), build.meta.cycle_dates)

    def test_weekend_events_are_ignored(self) -> None:
        events = []
        for i, d in enumerate(school_days(date(2025, 2, 3), 10)):
            events.extend(day_events(d, i))
        events.append(vevent(date(2025, 2, 8), "10:00", "12:00", "Saturday sport"))
        build = _build(calendar(events))
        self.assertEqual(len(build.template_events), 32)
        self.assertNotIn(date(2025, 2, 8), build.meta.cycle_dates)

    def test_inactive_events_are_ignored(self) -> None:
        events = parse_feed(two_week_feed(), "b")
        events[0].active = False
        build = build_template(events)
        self.assertEqual(len(build.template_events), 31)

    def test_no_weekday_events(self) -> None:
        text = calendar([vevent(date(2025, 2, 8), "10:00", "11:00", "Saturday sport")])
        with self.assertRaises(TemplateBuildError):
            _build(text)

    def test_no_monday(self) -> None:
        events = [vevent(date(2025, 2, 4), "09:00", "10:00", "Tue only")]
        with self.assertRaises(TemplateBuildError):
            _build(calendar(events))

    def test_fewer_than_ten_school_dates(self) -> None:
        events = []
        for i, d in enumerate(school_days(date(2025, 2, 3), 9)):
            events.extend(day_events(d, i))
        with self.assertRaises(TemplateBuildError):
            _build(calendar(events))

    def test_find_cycle_dates_skips_gaps(self) -> None:
        # a pupil-free Wednesday is simply absent from the data
        days = [d for d in school_days(date(2025, 2, 3), 11) if d != date(2025, 2, 5)]
        cycle = find_cycle_dates(days)
        self.assertEqual(len(cycle), 10)
        self.assertEqual(cycle[2], date(2025, 2, 6))
        self.assertEqual(cycle[-1], date(2025, 2, 17))


if __name__ == "__main__":
    unittest.main()
