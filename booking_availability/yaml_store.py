from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable
import random
import shutil
from uuid import uuid4

import yaml

from .availability import DateRange, Timestamp, _coerce_timestamp, _serialize_timestamp, datetime_to_nanos, normalize_to_day

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
BOOKING_STATUSES = {STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED}

SAMPLE_ROOM_TYPES = ["Standard Room", "Deluxe Room", "Family Suite"]
SAMPLE_CAB_TYPES = ["Sedan", "SUV", "Mini"]
SAMPLE_VEHICLE_TYPES = ["Hatchback", "Sedan", "SUV"]
SAMPLE_WINDOW_DAYS = 30


@dataclass(frozen=True)
class HotelBookingRecord:
    booking_id: str
    room_type: str
    check_in: Timestamp
    check_out: Timestamp
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "room_type": self.room_type,
            "check_in": _serialize_timestamp(self.check_in),
            "check_out": _serialize_timestamp(self.check_out),
            "status": self.status,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "HotelBookingRecord":
        return HotelBookingRecord(
            booking_id=str(data["booking_id"]),
            room_type=str(data["room_type"]),
            check_in=_coerce_timestamp(data["check_in"]),
            check_out=_coerce_timestamp(data["check_out"]),
            status=_normalize_status(data.get("status")),
        )

    def to_range(self) -> DateRange:
        return DateRange(check_in=self.check_in, check_out=self.check_out)


@dataclass(frozen=True)
class CabBookingRecord:
    booking_id: str
    cab_type: str
    pickup_time: Timestamp
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "cab_type": self.cab_type,
            "pickup_time": _serialize_timestamp(self.pickup_time),
            "status": self.status,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "CabBookingRecord":
        return CabBookingRecord(
            booking_id=str(data["booking_id"]),
            cab_type=str(data["cab_type"]),
            pickup_time=_coerce_timestamp(data["pickup_time"]),
            status=_normalize_status(data.get("status")),
        )


@dataclass(frozen=True)
class ActingDriverRequestRecord:
    request_id: str
    vehicle_type: str
    service_date: Timestamp
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "vehicle_type": self.vehicle_type,
            "service_date": _serialize_timestamp(self.service_date),
            "status": self.status,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ActingDriverRequestRecord":
        return ActingDriverRequestRecord(
            request_id=str(data["request_id"]),
            vehicle_type=str(data["vehicle_type"]),
            service_date=_coerce_timestamp(data["service_date"]),
            status=_normalize_status(data.get("status")),
        )


class BlockedDataStorageError(RuntimeError):
    pass


class BlockedDataYamlRepository:
    """File-backed source of blocked dates for rooms, cabs and acting drivers.

    Every getter reads its YAML file again; nothing is cached between calls.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.room_availability_file = self.base_dir / "room_availability.yaml"
        self.hotel_bookings_file = self.base_dir / "hotel_bookings.yaml"
        self.cab_bookings_file = self.base_dir / "cab_bookings.yaml"
        self.driver_requests_file = self.base_dir / "acting_driver_requests.yaml"
        self.log_file = self.base_dir / "availability_events.yaml"
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (
            self.room_availability_file,
            self.hotel_bookings_file,
            self.cab_bookings_file,
            self.driver_requests_file,
            self.log_file,
        ):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            else:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _read_records(self, path: Path, factory: Any) -> list[Any]:
        records: list[Any] = []
        for index, row in enumerate(self._read_yaml_list(path)):
            try:
                records.append(factory(row))
            except (KeyError, TypeError, ValueError) as error:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": f"invalid row: {error}",
                    },
                )
        return records

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise BlockedDataStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            pass

        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name),
                    "reason": str(error),
                },
            )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        events = self._read_yaml_list(self.log_file)
        events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
        self._write_yaml_list(self.log_file, events)

    def log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        self._log_event(event_type, payload, event_time)

    def get_events(self) -> list[dict[str, Any]]:
        return self._read_yaml_list(self.log_file)

    def get_hotel_bookings(self) -> list[HotelBookingRecord]:
        return self._read_records(self.hotel_bookings_file, HotelBookingRecord.from_dict)

    def get_cab_bookings(self) -> list[CabBookingRecord]:
        return self._read_records(self.cab_bookings_file, CabBookingRecord.from_dict)

    def get_acting_driver_requests(self) -> list[ActingDriverRequestRecord]:
        return self._read_records(self.driver_requests_file, ActingDriverRequestRecord.from_dict)

    def _get_admin_ranges(self) -> list[tuple[str, DateRange]]:
        def parse(row: dict[str, Any]) -> tuple[str, DateRange]:
            return str(row["room_type"]), DateRange.from_dict(row)

        return self._read_records(self.room_availability_file, parse)

    def get_room_availability(self, room_type: str) -> list[DateRange]:
        """Return the blocked ranges of one room type.

        Admin-blocked ranges come first, then every hotel booking for the
        room type that is not cancelled.
        """
        room_type = _normalize_name(room_type, "room_type")
        ranges = [blocked for name, blocked in self._get_admin_ranges() if name == room_type]
        ranges.extend(
            booking.to_range()
            for booking in self.get_hotel_bookings()
            if booking.room_type == room_type and booking.status != STATUS_CANCELLED
        )
        return ranges

    def get_all_room_availability(self) -> list[tuple[str, list[DateRange]]]:
        room_types = {name for name, _ in self._get_admin_ranges()}
        room_types.update(booking.room_type for booking in self.get_hotel_bookings())
        return [(room_type, self.get_room_availability(room_type)) for room_type in sorted(room_types)]

    def add_room_availability(
        self,
        room_type: str,
        date_ranges: Iterable[DateRange],
        now: datetime | None = None,
    ) -> list[DateRange]:
        room_type = _normalize_name(room_type, "room_type")
        ranges = list(date_ranges)
        if not ranges:
            raise ValueError("date_ranges must not be empty")
        for blocked in ranges:
            try:
                normalize_to_day(blocked.check_in)
                normalize_to_day(blocked.check_out)
            except OverflowError as error:
                raise ValueError(f"date range out of range: {blocked}") from error
            if _as_nanos(blocked.check_in) >= _as_nanos(blocked.check_out):
                raise ValueError("check_in must be earlier than check_out")

        rows = self._read_yaml_list(self.room_availability_file)
        rows.extend({"room_type": room_type, **blocked.to_dict()} for blocked in ranges)
        self._write_yaml_list(self.room_availability_file, rows)

        self._log_event(
            "ROOM_AVAILABILITY_ADDED",
            {
                "room_type": room_type,
                "ranges": [blocked.to_dict() for blocked in ranges],
            },
            now,
        )
        return ranges

    def get_cab_blocked_dates(self, cab_type: str) -> list[Timestamp]:
        cab_type = _normalize_name(cab_type, "cab_type")
        return [
            booking.pickup_time
            for booking in self.get_cab_bookings()
            if booking.cab_type == cab_type and booking.status != STATUS_CANCELLED
        ]

    def get_acting_driver_blocked_dates(self) -> list[Timestamp]:
        return [request.service_date for request in self.get_acting_driver_requests() if request.status != STATUS_CANCELLED]

    def get_cab_types(self) -> list[str]:
        return sorted({booking.cab_type for booking in self.get_cab_bookings()})

    def seed_sample_data(self, now: datetime | None = None, overwrite: bool = True) -> dict[str, int]:
        effective_now = now or datetime.now(timezone.utc)
        hotel, admin, cabs, drivers = generate_sample_data(effective_now.date())

        if overwrite:
            for path in (
                self.room_availability_file,
                self.hotel_bookings_file,
                self.cab_bookings_file,
                self.driver_requests_file,
            ):
                self._write_yaml_list(path, [])

        for path, records in (
            (self.hotel_bookings_file, hotel),
            (self.cab_bookings_file, cabs),
            (self.driver_requests_file, drivers),
        ):
            rows = self._read_yaml_list(path)
            rows.extend(record.to_dict() for record in records)
            self._write_yaml_list(path, rows)

        rows = self._read_yaml_list(self.room_availability_file)
        rows.extend({"room_type": room_type, **blocked.to_dict()} for room_type, blocked in admin)
        self._write_yaml_list(self.room_availability_file, rows)

        counts = {
            "hotel_bookings": len(hotel),
            "room_availability": len(admin),
            "cab_bookings": len(cabs),
            "acting_driver_requests": len(drivers),
        }
        self._log_event(
            "SAMPLE_DATA_GENERATED",
            {
                **counts,
                "date_window_days": SAMPLE_WINDOW_DAYS,
                "overwrite": overwrite,
            },
            effective_now,
        )
        return counts


def generate_sample_data(
    start_date: date,
) -> tuple[
    list[HotelBookingRecord],
    list[tuple[str, DateRange]],
    list[CabBookingRecord],
    list[ActingDriverRequestRecord],
]:
    rng = random.Random(f"sample:{start_date.isoformat()}")

    hotel: list[HotelBookingRecord] = []
    admin: list[tuple[str, DateRange]] = []
    for room_type in SAMPLE_ROOM_TYPES:
        cursor = start_date + timedelta(days=rng.randint(0, 3))
        window_end = start_date + timedelta(days=SAMPLE_WINDOW_DAYS)
        while cursor < window_end:
            nights = rng.randint(1, 4)
            check_out = cursor + timedelta(days=nights)
            hotel.append(
                HotelBookingRecord(
                    booking_id=str(uuid4()),
                    room_type=room_type,
                    check_in=_day_to_nanos(cursor, 14),
                    check_out=_day_to_nanos(check_out, 11),
                    status=rng.choice([STATUS_PENDING, STATUS_CONFIRMED, STATUS_CONFIRMED, STATUS_CANCELLED]),
                )
            )
            cursor = check_out + timedelta(days=rng.randint(1, 5))

        maintenance_start = start_date + timedelta(days=rng.randint(10, SAMPLE_WINDOW_DAYS - 3))
        admin.append(
            (
                room_type,
                DateRange(
                    check_in=_day_to_nanos(maintenance_start, 0),
                    check_out=_day_to_nanos(maintenance_start + timedelta(days=2), 0),
                ),
            )
        )

    cabs: list[CabBookingRecord] = []
    for cab_type in SAMPLE_CAB_TYPES:
        for offset in sorted(rng.sample(range(SAMPLE_WINDOW_DAYS), 6)):
            cabs.append(
                CabBookingRecord(
                    booking_id=str(uuid4()),
                    cab_type=cab_type,
                    pickup_time=_day_to_nanos(start_date + timedelta(days=offset), rng.randint(6, 21)),
                    status=rng.choice([STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED]),
                )
            )

    drivers: list[ActingDriverRequestRecord] = []
    for offset in sorted(rng.sample(range(SAMPLE_WINDOW_DAYS), 8)):
        drivers.append(
            ActingDriverRequestRecord(
                request_id=str(uuid4()),
                vehicle_type=rng.choice(SAMPLE_VEHICLE_TYPES),
                service_date=_day_to_nanos(start_date + timedelta(days=offset), rng.randint(7, 20)),
                status=rng.choice([STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED]),
            )
        )

    return hotel, admin, cabs, drivers


def _as_nanos(value: Timestamp) -> int:
    if isinstance(value, (datetime, date)):
        return datetime_to_nanos(value)
    return int(value)


def _day_to_nanos(day: date, hour: int) -> int:
    return datetime_to_nanos(datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc))


def _normalize_status(status: Any) -> str:
    normalized = str(status or STATUS_PENDING).strip().lower()
    if normalized not in BOOKING_STATUSES:
        raise ValueError(f"unknown booking status: {status}")
    return normalized


def _normalize_name(value: str | None, field: str) -> str:
    if value is None:
        raise ValueError(f"{field} must not be None")

    normalized = value.strip()
    if not normalized:
        raise ValueError(f"{field} must not be empty")
    return normalized