"""
Tests for CLI entry points.

Every test points the CLI at a temporary data directory
(to avoid touching real user data during tests).
"""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from feed_samples import calendar, school_days, two_week_feed, vevent

from mytimetable.cli import main
from mytimetable.storage import Store


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.feed = self.dir / "timetable.ics"
        self.feed.write_text(two_week_feed(), encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> int:
        with self.assertRaises(SystemExit) as ctx:
            main(["--data-dir", str(self.dir / "data"), *argv])
        return ctx.exception.code

    def test_import_then_day(self) -> None:
        self.assertEqual(self._run("import", str(self.feed)), 0)
        self.assertEqual(self._run("override", "2025-02-03", "A"), 0)
        self.assertEqual(self._run("day", "2025-02-10"), 0)
        self.assertEqual(self._run("slots", "2025-02-10"), 0)
        self.assertEqual(self._run("week", "2025-02-10"), 0)

    def test_mapping_apply_without_template_fails(self) -> None:
        self.assertEqual(self._run("mapping", "apply", "--shift", "1"), 1)

    def test_mapping_preview_and_apply(self) -> None:
        self._run("import", str(self.feed))
        self.assertEqual(self._run("mapping", "preview", "--shift", "5"), 0)
        self.assertEqual(self._run("mapping", "apply", "--flip"), 0)
        gen = Store(self.dir / "data").load_generation()
        assert gen is not None
        self.assertTrue(gen.meta.flipped)

    def test_invalid_date_exits_nonzero(self) -> None:
        self.assertEqual(self._run("day", "2025-13-40"), 1)

    def test_bad_feed_exits_nonzero(self) -> None:
        bad = self.dir / "bad.ics"
        bad.write_text("hello", encoding="utf-8")
        self.assertEqual(self._run("import", str(bad)), 1)

    def test_terms_set_and_term(self) -> None:
        self.assertEqual(self._run("terms", "set", "2025", "1", "2025-01-28", "--end", "2025-04-11"), 0)
        settings = Store(self.dir / "data").load_settings()
        self.assertTrue(settings.has_term_config)
        self.assertEqual(self._run("term", "2025-02-03"), 0)

    def test_export(self) -> None:
        self._run("import", str(self.feed))
        self._run("override", "2025-02-03", "A")
        out = self.dir / "out.ics"
        self.assertEqual(self._run("export", "2025-02-03", "2025-02-14", str(out)), 0)
        self.assertEqual(out.read_text(encoding="utf-8").count("BEGIN:VEVENT"), 32)


    def test_week_and_matrix(self) -> None:
        self._run("import", str(self.feed))
        self._run("override", "2025-02-03", "A")
        self.assertEqual(self._run("week", "2025-02-12"), 0)
        self.assertEqual(self._run("matrix", "A"), 0)
        self.assertEqual(self._run("matrix", "B", "--no-breaks", "--no-duties"), 0)
        self.assertEqual(self._run("matrix"), 0)

    def test_matrix_without_template_fails(self) -> None:
        self.assertEqual(self._run("matrix", "A"), 1)

    def test_bracketed_feed_text_is_printed_literally(self) -> None:
        events = [
            vevent(d, "08:50", "09:50", "Science [Yr7] [/b]", period="1", location="[/i] Lab")
            for d in school_days(date(2025, 2, 3), 10)
        ]
        feed = self.dir / "brackets.ics"
        feed.write_text(calendar(events), encoding="utf-8")

        self.assertEqual(self._run("import", str(feed), "--name", "[red]term 1"), 0)
        self._run("override", "2025-02-03", "A")
        for command in ("day", "slots", "week"):
            self.assertEqual(self._run(command, "2025-02-03"), 0, command)
        self.assertEqual(self._run("matrix", "A"), 0)

    def test_unknown_timezone_exits_nonzero(self) -> None:
        data = self.dir / "data"
        data.mkdir()
        (data / "settings.json").write_text(json.dumps({"timezone": "Mars/Olympus"}), encoding="utf-8")
        self.assertEqual(self._run("day"), 1)

    def test_non_utf8_feed_exits_nonzero(self) -> None:
        bad = self.dir / "latin1.ics"
        bad.write_bytes(b"BEGIN:VCALENDAR\r\nSUMMARY:Caf\xe9\r\nEND:VCALENDAR\r\n")
        self.assertEqual(self._run("import", str(bad)), 1)

if __name__ == "__main__":
    unittest.main()
