import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from mytimetable.export_ics import export_events_to_ics
from mytimetable.model import Category, GeneratedEvent
from mytimetable.parse import parse_feed


class TestExportICS(unittest.TestCase):
    def test_export_creates_file_and_contains_calendar(self) -> None:
        events = [
            GeneratedEvent(
                id="2025-02-03-MonA-1a2b",
                start_utc=datetime(2025, 2, 2, 21, 50, tzinfo=timezone.utc),
                end_utc=datetime(2025, 2, 2, 22, 50, tzinfo=timezone.utc),
                period_code="1",
                category=Category.CLASS,
                code="7SCI1",
                title="Science, Year 7",
                room="S01",
            ),
            # zero-length events are left out
            GeneratedEvent(
                id="2025-02-03-MonA-ffff",
                start_utc=datetime(2025, 2, 2, 23, 0, tzinfo=timezone.utc),
                end_utc=datetime(2025, 2, 2, 23, 0, tzinfo=timezone.utc),
                period_code=None,
                category=Category.DUTY,
                code=None,
                title="Duty. Gate",
                room=None,
            ),
        ]

        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            n = export_events_to_ics(events, out)
            self.assertEqual(n, 1)
            text = out.read_text(encoding="utf-8")
            self.assertIn("BEGIN:VCALENDAR", text)
            self.assertIn("BEGIN:VEVENT", text)
            self.assertIn("DTSTART:20250202T215000Z", text)
            self.assertIn("SUMMARY:7SCI1: Science\\, Year 7", text)
            self.assertIn("LOCATION:S01", text)
            self.assertIn("UID:2025-02-03-MonA-1a2b@mytimetable", text)
            data = out.read_bytes()
            self.assertTrue(data.endswith(b"END:VCALENDAR\r\n"))
            self.assertEqual(data.count(b"\n"), data.count(b"\r\n"))
            self.assertNotIn(b"\r\r\n", data)

            (parsed,) = parse_feed(data.decode("utf-8"), "check")
            self.assertEqual(parsed.code, "7SCI1")
            self.assertEqual(parsed.title, "Science, Year 7")
            self.assertEqual(parsed.period_code, "1")
            self.assertEqual(parsed.start_utc, events[0].start_utc)


if __name__ == "__main__":
    unittest.main()
