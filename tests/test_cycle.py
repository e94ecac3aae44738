"""
Unit tests for day-label resolution (term based and legacy anchor based).
"""

import unittest
from datetime import date, timedelta

from mytimetable.cycle import count_school_days, day_label_for_date
from mytimetable.model import DayLabel, RollingSettings, SetOverride, TermYear, WeekSet


def _legacy(**kwargs) -> RollingSettings:
    return RollingSettings(cycle_start_date=date(2025, 2, 3), **kwargs)


def _with_terms(**kwargs) -> RollingSettings:
    ty = TermYear(year=2025, starts={1: date(2025, 1, 28)}, ends={1: date(2025, 4, 11)}, week1_sets={1: WeekSet.A})
    return RollingSettings(term_years=[ty], **kwargs)


class TestWeekends(unittest.TestCase):
    def test_weekends_are_never_school_days(self) -> None:
        saturday = date(2025, 2, 1)
        for settings in (_legacy(), _with_terms(), RollingSettings()):
            for i in range(0, 70, 7):
                self.assertIsNone(day_label_for_date(saturday + timedelta(days=i), settings))
                self.assertIsNone(day_label_for_date(saturday + timedelta(days=i + 1), settings))


class TestTermBased(unittest.TestCase):
    def test_labels_follow_term_weeks(self) -> None:
        s = _with_terms()
        self.assertEqual(day_label_for_date(date(2025, 1, 28), s), DayLabel.TUE_A)
        self.assertEqual(day_label_for_date(date(2025, 2, 3), s), DayLabel.MON_B)
        self.assertEqual(day_label_for_date("2025-02-14", s), DayLabel.FRI_A)

    def test_holiday_is_none(self) -> None:
        self.assertIsNone(day_label_for_date(date(2025, 4, 14), _with_terms()))

    def test_excluded_date_is_none(self) -> None:
        s = _with_terms(excluded_dates={date(2025, 2, 4)})
        self.assertIsNone(day_label_for_date(date(2025, 2, 4), s))
        # exclusions do not shift term-based labels
        self.assertEqual(day_label_for_date(date(2025, 2, 5), s), DayLabel.WED_B)

    def test_term_config_wins_over_overrides(self) -> None:
        s = _with_terms(overrides=[SetOverride(date(2025, 2, 3), WeekSet.A)])
        self.assertEqual(day_label_for_date(date(2025, 2, 3), s), DayLabel.MON_B)


class TestLegacy(unittest.TestCase):
    def test_anchor_is_mon_a(self) -> None:
        s = _legacy()
        self.assertEqual(day_label_for_date(date(2025, 2, 3), s), DayLabel.MON_A)
        self.assertEqual(day_label_for_date(date(2025, 2, 7), s), DayLabel.FRI_A)
        self.assertEqual(day_label_for_date(date(2025, 2, 10), s), DayLabel.MON_B)
        self.assertEqual(day_label_for_date(date(2025, 2, 14), s), DayLabel.FRI_B)
        self.assertEqual(day_label_for_date(date(2025, 2, 17), s), DayLabel.MON_A)
        self.assertEqual(day_label_for_date(date(2025, 2, 24), s), DayLabel.MON_B)

    def test_before_anchor_is_none(self) -> None:
        self.assertIsNone(day_label_for_date(date(2025, 1, 31), _legacy()))

    def test_excluded_dates_shift_the_cycle(self) -> None:
        s = _legacy(excluded_dates={date(2025, 2, 5)})
        self.assertIsNone(day_label_for_date(date(2025, 2, 5), s))
        self.assertEqual(day_label_for_date(date(2025, 2, 6), s), DayLabel.WED_A)
        self.assertEqual(day_label_for_date(date(2025, 2, 10), s), DayLabel.FRI_A)

    def test_override_forces_set(self) -> None:
        s = _legacy(overrides=[SetOverride(date(2025, 2, 17), WeekSet.B), SetOverride(date(2025, 2, 10), WeekSet.A)])
        self.assertEqual(day_label_for_date(date(2025, 2, 12), s), DayLabel.WED_A)
        self.assertEqual(day_label_for_date(date(2025, 2, 17), s), DayLabel.MON_B)
        self.assertEqual(day_label_for_date(date(2025, 2, 24), s), DayLabel.MON_A)

    def test_midweek_override_keeps_weekday(self) -> None:
        s = _legacy(overrides=[SetOverride(date(2025, 2, 12), WeekSet.B)])
        self.assertEqual(day_label_for_date(date(2025, 2, 12), s), DayLabel.WED_B)
        self.assertEqual(day_label_for_date(date(2025, 2, 14), s), DayLabel.FRI_B)
        self.assertEqual(day_label_for_date(date(2025, 2, 17), s), DayLabel.MON_A)


class TestCountSchoolDays(unittest.TestCase):
    def test_counts_inclusive_without_weekends_and_exclusions(self) -> None:
        self.assertEqual(count_school_days(date(2025, 2, 3), date(2025, 2, 9), set()), 5)
        self.assertEqual(count_school_days(date(2025, 2, 3), date(2025, 2, 10), {date(2025, 2, 4)}), 5)
        self.assertEqual(count_school_days(date(2025, 2, 10), date(2025, 2, 3), set()), 0)


if __name__ == "__main__":
    unittest.main()
