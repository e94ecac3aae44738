"""
Unit tests for local storage.

Storage contract:
- Missing/invalid files -> defaults (settings) or None (generation)
- A generation is written as a whole and read back unchanged
"""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from feed_samples import two_week_feed

from mytimetable.model import RollingSettings, SetOverride, TermYear, WeekSet
from mytimetable.parse import parse_feed
from mytimetable.slots import build_slot_assignments
from mytimetable.storage import (
    Generation,
    Store,
    load_base_events,
    load_generation,
    load_settings,
    save_base_events,
    save_generation,
    save_settings,
)
from mytimetable.template import build_template


class TestSettingsStorage(unittest.TestCase):
    def test_load_missing_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            settings = load_settings(Path(d) / "missing.json")
            self.assertEqual(settings.cycle_start_date, date(2026, 1, 1))
            self.assertEqual(settings.timezone, "Australia/Sydney")
            self.assertFalse(settings.has_term_config)

    def test_load_corrupt_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "settings.json"
            p.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_settings(p), RollingSettings())

    def test_save_and_load_roundtrip(self) -> None:
        settings = RollingSettings(
            cycle_start_date=date(2025, 2, 3),
            excluded_dates={date(2025, 3, 10)},
            overrides=[SetOverride(date(2025, 4, 28), WeekSet.B)],
            term_years=[
                TermYear(
                    year=2025,
                    starts={1: date(2025, 1, 28)},
                    ends={1: date(2025, 4, 11)},
                    week1_sets={1: WeekSet.B},
                )
            ],
        )
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "settings.json"
            save_settings(settings, p)
            self.assertEqual(load_settings(p), settings)

            data = json.loads(p.read_text(encoding="utf-8"))
            self.assertEqual(data["term_years"][0]["starts"], {"t1": "2025-01-28"})


class TestGenerationStorage(unittest.TestCase):
    def _generation(self) -> Generation:
        build = build_template(parse_feed(two_week_feed(), "b"))
        return Generation(build.template_events, build.meta, tuple(build_slot_assignments(build.template_events)))

    def test_missing_generation_is_none(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            self.assertIsNone(load_generation(Path(d) / "generation.json"))

    def test_roundtrip(self) -> None:
        gen = self._generation()
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "generation.json"
            save_generation(gen, p)
            self.assertEqual(load_generation(p), gen)
            # no temp files left behind
            self.assertEqual([x.name for x in Path(d).iterdir()], ["generation.json"])

    def test_corrupt_generation_is_none(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "generation.json"
            p.write_text(json.dumps({"meta": {"anchor_monday": "2025-02-03"}}), encoding="utf-8")
            self.assertIsNone(load_generation(p))

    def test_base_events_roundtrip(self) -> None:
        events = parse_feed(two_week_feed(), "b")
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "base_events.json"
            save_base_events(events, p)
            self.assertEqual(load_base_events(p), events)

    def test_store_uses_its_directory(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = Store(Path(d) / "user1")
            store.append_import({"batch_id": "1"})
            store.append_import({"batch_id": "2"})
            self.assertEqual([r["batch_id"] for r in store.load_imports()], ["1", "2"])
            self.assertTrue((Path(d) / "user1" / "imports.json").exists())


if __name__ == "__main__":
    unittest.main()
