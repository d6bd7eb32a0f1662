import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

import yaml

from booking_availability import BlockedDataYamlRepository, datetime_to_nanos
from booking_availability.web_app import create_app

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
IST = timezone(timedelta(hours=5, minutes=30))


def _nanos(year: int, month: int, day: int, hour: int = 0) -> int:
    return datetime_to_nanos(datetime(year, month, day, hour, tzinfo=timezone.utc))


class TestRoomEndpoints(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._temp_dir.name) / "data"
        self.app = create_app(self.data_dir, now_provider=lambda: NOW)
        self.client = self.app.test_client()

        response = self.client.post(
            "/api/admin/rooms/Deluxe/availability",
            json={"date_ranges": [{"check_in": "2024-06-10", "check_out": "2024-06-15"}]},
        )
        self.assertEqual(response.status_code, 200)

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def test_availability_lists_blocked_dates(self) -> None:
        response = self.client.get("/api/rooms/Deluxe/availability")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(
            payload["blocked_dates"],
            ["2024-06-10", "2024-06-11", "2024-06-12", "2024-06-13", "2024-06-14"],
        )
        self.assertEqual(payload["blocked_ranges"], [{"check_in": "2024-06-10", "check_out": "2024-06-15"}])
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")

    def test_list_rooms(self) -> None:
        payload = self.client.get("/api/rooms").get_json()
        self.assertTrue(payload["ok"])
        self.assertEqual([room["room_type"] for room in payload["rooms"]], ["Deluxe"])

    def test_check_adjacent_range_is_available(self) -> None:
        response = self.client.post(
            "/api/rooms/Deluxe/check",
            json={"check_in": "2024-06-15", "check_out": "2024-06-20"},
        )

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertTrue(payload["available"])
        self.assertEqual(payload["nights"], 5)

    def test_check_overlapping_range_is_unavailable(self) -> None:
        response = self.client.post(
            "/api/rooms/Deluxe/check",
            json={"check_in": _nanos(2024, 6, 14, 14), "check_out": _nanos(2024, 6, 16, 11)},
        )

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.get_json()["available"])

    def test_check_is_logged(self) -> None:
        self.client.post("/api/rooms/Deluxe/check", json={"check_in": "2024-06-15", "check_out": "2024-06-16"})

        events = BlockedDataYamlRepository(self.data_dir).get_events()
        checked = [event for event in events if event["event_type"] == "BOOKING_CHECKED"]
        self.assertEqual(len(checked), 1)
        self.assertEqual(checked[0]["payload"]["kind"], "hotel")
        self.assertTrue(checked[0]["payload"]["available"])

    def test_check_rejects_invalid_ranges(self) -> None:
        same_day = self.client.post("/api/rooms/Deluxe/check", json={"check_in": "2024-06-20", "check_out": "2024-06-20"})
        self.assertEqual(same_day.status_code, 400)
        self.assertFalse(same_day.get_json()["ok"])

        past = self.client.post("/api/rooms/Deluxe/check", json={"check_in": "2024-05-20", "check_out": "2024-05-22"})
        self.assertEqual(past.status_code, 400)

        missing = self.client.post("/api/rooms/Deluxe/check", json={"check_in": "2024-06-20"})
        self.assertEqual(missing.status_code, 400)

        garbage = self.client.post("/api/rooms/Deluxe/check", json={"check_in": "soon", "check_out": "later"})
        self.assertEqual(garbage.status_code, 400)

    def test_calendar_marks_blocked_days(self) -> None:
        response = self.client.get("/api/rooms/Deluxe/calendar?start=2024-06-09&days=7")

        self.assertEqual(response.status_code, 200)
        statuses = [cell["status"] for cell in response.get_json()["days"]]
        self.assertEqual(statuses, ["available", "blocked", "blocked", "blocked", "blocked", "blocked", "available"])

    def test_calendar_defaults_to_today(self) -> None:
        payload = self.client.get("/api/rooms/Deluxe/calendar").get_json()
        self.assertEqual(payload["days"][0]["date"], "2024-06-01")
        self.assertEqual(len(payload["days"]), 30)

    def test_calendar_rejects_bad_window(self) -> None:
        self.assertEqual(self.client.get("/api/rooms/Deluxe/calendar?days=abc").status_code, 400)
        self.assertEqual(self.client.get("/api/rooms/Deluxe/calendar?days=0").status_code, 400)

    def test_admin_rejects_malformed_ranges(self) -> None:
        reversed_range = self.client.post(
            "/api/admin/rooms/Deluxe/availability",
            json={"date_ranges": [{"check_in": "2024-06-15", "check_out": "2024-06-10"}]},
        )
        self.assertEqual(reversed_range.status_code, 400)

        not_a_list = self.client.post("/api/admin/rooms/Deluxe/availability", json={"date_ranges": "2024-06-10"})
        self.assertEqual(not_a_list.status_code, 400)

        missing_key = self.client.post(
            "/api/admin/rooms/Deluxe/availability",
            json={"date_ranges": [{"check_in": "2024-06-15"}]},
        )
        self.assertEqual(missing_key.status_code, 400)

    def test_calendar_reports_first_open_day(self) -> None:
        default = self.client.get("/api/rooms/Deluxe/calendar").get_json()
        self.assertEqual(default["opens_on"], "2024-06-01")

        inside_block = self.client.get("/api/rooms/Deluxe/calendar?start=2024-06-10&days=7").get_json()
        self.assertEqual(inside_block["opens_on"], "2024-06-15")

    def test_room_type_is_stripped_in_responses(self) -> None:
        availability = self.client.get("/api/rooms/%20Deluxe%20/availability").get_json()
        self.assertEqual(availability["room_type"], "Deluxe")
        self.assertEqual(len(availability["blocked_dates"]), 5)

        checked = self.client.post(
            "/api/rooms/%20Deluxe%20/check",
            json={"check_in": "2024-06-12", "check_out": "2024-06-13"},
        ).get_json()
        self.assertEqual(checked["room_type"], "Deluxe")
        self.assertFalse(checked["available"])

        events = BlockedDataYamlRepository(self.data_dir).get_events()
        checked_events = [event for event in events if event["event_type"] == "BOOKING_CHECKED"]
        self.assertEqual(checked_events[-1]["payload"]["resource"], "Deluxe")

        calendar = self.client.get("/api/rooms/%20Deluxe%20/calendar?days=1").get_json()
        self.assertEqual(calendar["room_type"], "Deluxe")

    def test_out_of_range_timestamps_are_rejected(self) -> None:
        stored = self.client.post(
            "/api/admin/rooms/Deluxe/availability",
            json={"date_ranges": [{"check_in": 1, "check_out": 10**30}]},
        )
        self.assertEqual(stored.status_code, 400)
        self.assertFalse(stored.get_json()["ok"])

        after = self.client.get("/api/rooms/Deluxe/availability")
        self.assertEqual(after.status_code, 200)
        self.assertEqual(len(after.get_json()["blocked_ranges"]), 1)
        self.assertEqual(self.client.get("/api/rooms").status_code, 200)

        checked = self.client.post("/api/rooms/Deluxe/check", json={"check_in": 10**30, "check_out": "2024-06-20"})
        self.assertEqual(checked.status_code, 400)

        far_future = self.client.post(
            "/api/rooms/Deluxe/check",
            json={"check_in": "2024-06-20", "check_out": str(10**30)},
        )
        self.assertEqual(far_future.status_code, 400)

    def test_stored_out_of_range_row_is_skipped(self) -> None:
        repo = BlockedDataYamlRepository(self.data_dir)
        rows = yaml.safe_load(repo.room_availability_file.read_text(encoding="utf-8"))
        rows.append({"room_type": "Deluxe", "check_in": 1, "check_out": 10**30})
        repo.room_availability_file.write_text(yaml.safe_dump(rows), encoding="utf-8")

        response = self.client.get("/api/rooms/Deluxe/availability")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()["blocked_ranges"]), 1)
        calendar = self.client.get("/api/rooms/Deluxe/calendar")
        self.assertEqual(calendar.status_code, 200)


class TestSingleDayEndpoints(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        data_dir = Path(self._temp_dir.name) / "data"
        repo = BlockedDataYamlRepository(data_dir)
        repo.cab_bookings_file.write_text(
            yaml.safe_dump(
                [
                    {"booking_id": "c-1", "cab_type": "Sedan", "pickup_time": _nanos(2024, 6, 12, 15), "status": "confirmed"},
                    {"booking_id": "c-2", "cab_type": "Sedan", "pickup_time": _nanos(2024, 6, 13, 15), "status": "cancelled"},
                ]
            ),
            encoding="utf-8",
        )
        repo.driver_requests_file.write_text(
            yaml.safe_dump(
                [{"request_id": "d-1", "vehicle_type": "SUV", "service_date": _nanos(2024, 6, 5, 10), "status": "pending"}]
            ),
            encoding="utf-8",
        )
        self.client = create_app(data_dir, now_provider=lambda: NOW).test_client()

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def test_cab_blocked_dates(self) -> None:
        payload = self.client.get("/api/cabs/Sedan/blocked-dates").get_json()
        self.assertEqual(payload["blocked_dates"], ["2024-06-12"])

    def test_cab_check(self) -> None:
        blocked = self.client.post("/api/cabs/Sedan/check", json={"pickup_date": "2024-06-12T08:00:00"})
        self.assertEqual(blocked.status_code, 200)
        self.assertFalse(blocked.get_json()["available"])
        self.assertIn("message", blocked.get_json())

        free = self.client.post("/api/cabs/Sedan/check", json={"pickup_date": "2024-06-13"})
        self.assertTrue(free.get_json()["available"])

        other_type = self.client.post("/api/cabs/SUV/check", json={"pickup_date": "2024-06-12"})
        self.assertTrue(other_type.get_json()["available"])

    def test_cab_check_rejects_past_date(self) -> None:
        response = self.client.post("/api/cabs/Sedan/check", json={"pickup_date": "2024-05-31"})
        self.assertEqual(response.status_code, 400)

    def test_cab_calendar(self) -> None:
        payload = self.client.get("/api/cabs/Sedan/calendar?start=2024-06-11&days=3").get_json()
        self.assertEqual([cell["status"] for cell in payload["days"]], ["available", "blocked", "available"])

    def test_acting_driver_endpoints(self) -> None:
        listed = self.client.get("/api/acting-driver/blocked-dates").get_json()
        self.assertEqual(listed["blocked_dates"], ["2024-06-05"])

        blocked = self.client.post("/api/acting-driver/check", json={"service_date": "2024-06-05"})
        self.assertFalse(blocked.get_json()["available"])

        free = self.client.post("/api/acting-driver/check", json={"service_date": _nanos(2024, 6, 6, 9)})
        self.assertTrue(free.get_json()["available"])

        calendar = self.client.get("/api/acting-driver/calendar?start=2024-06-04&days=2").get_json()
        self.assertEqual([cell["status"] for cell in calendar["days"]], ["available", "blocked"])


class TestNonUtcTimezone(unittest.TestCase):
    """20:00 UTC on 1 June is already 2 June in India."""

    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        data_dir = Path(self._temp_dir.name) / "data"
        repo = BlockedDataYamlRepository(data_dir)
        repo.cab_bookings_file.write_text(
            yaml.safe_dump(
                [{"booking_id": "c-1", "cab_type": "Sedan", "pickup_time": _nanos(2024, 6, 12, 20), "status": "confirmed"}]
            ),
            encoding="utf-8",
        )
        late_evening = datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc)
        self.client = create_app(data_dir, now_provider=lambda: late_evening, tz=IST).test_client()

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def test_today_follows_app_timezone(self) -> None:
        payload = self.client.get("/api/acting-driver/calendar?days=2").get_json()
        self.assertEqual([cell["date"] for cell in payload["days"]], ["2024-06-02", "2024-06-03"])
        self.assertEqual([cell["status"] for cell in payload["days"]], ["available", "available"])

        earlier = self.client.get("/api/acting-driver/calendar?start=2024-06-01&days=2").get_json()
        self.assertEqual([cell["status"] for cell in earlier["days"]], ["past", "available"])

    def test_past_dates_use_app_timezone(self) -> None:
        yesterday = self.client.post("/api/cabs/Sedan/check", json={"pickup_date": "2024-06-01"})
        self.assertEqual(yesterday.status_code, 400)

        today = self.client.post("/api/cabs/Sedan/check", json={"pickup_date": "2024-06-02"})
        self.assertEqual(today.status_code, 200)

        past_stay = self.client.post("/api/rooms/Deluxe/check", json={"check_in": "2024-06-01", "check_out": "2024-06-03"})
        self.assertEqual(past_stay.status_code, 400)

    def test_blocked_instants_fall_on_local_days(self) -> None:
        listed = self.client.get("/api/cabs/Sedan/blocked-dates").get_json()
        self.assertEqual(listed["blocked_dates"], ["2024-06-13"])

        calendar = self.client.get("/api/cabs/Sedan/calendar?start=2024-06-12&days=2").get_json()
        self.assertEqual([cell["status"] for cell in calendar["days"]], ["available", "blocked"])

        blocked = self.client.post("/api/cabs/Sedan/check", json={"pickup_date": "2024-06-13"})
        self.assertFalse(blocked.get_json()["available"])

    def test_room_calendar_opens_on_local_today(self) -> None:
        payload = self.client.get("/api/rooms/Deluxe/calendar?days=1").get_json()
        self.assertEqual(payload["days"][0]["date"], "2024-06-02")
        self.assertEqual(payload["opens_on"], "2024-06-02")


if __name__ == "__main__":
    unittest.main()
