import unittest
from datetime import date, datetime, timezone

from booking_availability import (
    DateRange,
    build_point_calendar,
    build_room_calendar,
    check_out_selectable,
    datetime_to_nanos,
)
from booking_availability.calendar_days import MAX_CALENDAR_DAYS


class TestRoomCalendar(unittest.TestCase):
    def test_statuses_follow_past_then_blocked(self) -> None:
        blocked = [DateRange(date(2024, 6, 10), date(2024, 6, 15))]
        cells = build_room_calendar(date(2024, 6, 8), 8, blocked, today=date(2024, 6, 9))

        statuses = {cell.day.isoformat(): cell.status for cell in cells}
        self.assertEqual(statuses["2024-06-08"], "past")
        self.assertEqual(statuses["2024-06-09"], "available")
        self.assertEqual(statuses["2024-06-10"], "blocked")
        self.assertEqual(statuses["2024-06-14"], "blocked")
        self.assertEqual(statuses["2024-06-15"], "available")
        self.assertEqual(len(cells), 8)
        self.assertFalse(cells[0].selectable)
        self.assertTrue(cells[1].selectable)

    def test_invalid_window_raises(self) -> None:
        with self.assertRaises(ValueError):
            build_room_calendar(date(2024, 6, 1), 0, [], today=date(2024, 6, 1))
        with self.assertRaises(ValueError):
            build_room_calendar(date(2024, 6, 1), MAX_CALENDAR_DAYS + 1, [], today=date(2024, 6, 1))


class TestPointCalendar(unittest.TestCase):
    def test_blocked_instants_disable_their_day(self) -> None:
        pickup = datetime_to_nanos(datetime(2024, 6, 3, 17, 0, tzinfo=timezone.utc))
        cells = build_point_calendar(date(2024, 6, 1), 5, [pickup], today=date(2024, 6, 1))

        self.assertEqual([cell.status for cell in cells], ["available", "available", "blocked", "available", "available"])
        self.assertEqual(cells[2].to_dict(), {"date": "2024-06-03", "status": "blocked"})


class TestCheckOutSelectable(unittest.TestCase):
    def test_check_out_must_follow_check_in(self) -> None:
        self.assertFalse(check_out_selectable(None, date(2024, 6, 2)))
        self.assertFalse(check_out_selectable(date(2024, 6, 2), date(2024, 6, 2)))
        self.assertTrue(check_out_selectable(date(2024, 6, 2), datetime(2024, 6, 3, 1, 0)))


if __name__ == "__main__":
    unittest.main()
