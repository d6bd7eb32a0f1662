from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .availability import (
    DEFAULT_TIMEZONE,
    DateRange,
    Timestamp,
    _coerce_timestamp,
    blocked_days_from_timestamps,
    count_nights,
    does_range_overlap,
    first_available_day,
    get_blocked_dates_from_ranges,
    is_day_in_blocked_set,
    normalize_to_day,
)
from .calendar_days import DEFAULT_CALENDAR_DAYS, build_point_calendar, build_room_calendar, check_out_selectable
from .yaml_store import BlockedDataYamlRepository


def create_app(
    data_dir: str | Path = "data",
    now_provider: Callable[[], datetime] | None = None,
    tz: tzinfo = DEFAULT_TIMEZONE,
) -> Flask:
    app = Flask(__name__)
    repository = BlockedDataYamlRepository(data_dir)
    clock: Callable[[], datetime] = now_provider or (lambda: datetime.now(timezone.utc))

    def _today() -> date:
        return normalize_to_day(clock(), tz)

    def _error(message: str, status: int = 400) -> Any:
        return jsonify({"ok": False, "message": message}), status

    def _calendar_window() -> tuple[date, int]:
        start_arg = request.args.get("start")
        days_arg = request.args.get("days")
        start = normalize_to_day(_parse_timestamp(start_arg), tz) if start_arg else _today()
        days = int(days_arg) if days_arg else DEFAULT_CALENDAR_DAYS
        return start, days

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.get("/api/rooms")
    def list_rooms() -> Any:
        rooms = [
            {"room_type": room_type, "blocked_ranges": [blocked.to_dict() for blocked in ranges]}
            for room_type, ranges in repository.get_all_room_availability()
        ]
        return jsonify({"ok": True, "rooms": rooms})

    @app.get("/api/rooms/<room_type>/availability")
    def get_room_availability(room_type: str) -> Any:
        room_type = room_type.strip()
        try:
            ranges = repository.get_room_availability(room_type)
        except ValueError as error:
            return _error(str(error))

        blocked_dates = sorted(set(get_blocked_dates_from_ranges(ranges, tz)))
        return jsonify(
            {
                "ok": True,
                "room_type": room_type,
                "blocked_ranges": [blocked.to_dict() for blocked in ranges],
                "blocked_dates": [day.isoformat() for day in blocked_dates],
            }
        )

    @app.get("/api/rooms/<room_type>/calendar")
    def get_room_calendar(room_type: str) -> Any:
        room_type = room_type.strip()
        try:
            start, days = _calendar_window()
            ranges = repository.get_room_availability(room_type)
            cells = build_room_calendar(start, days, ranges, _today(), tz)
        except ValueError as error:
            return _error(str(error))

        opens_on = first_available_day(max(start, _today()), ranges, tz=tz)
        return jsonify(
            {
                "ok": True,
                "room_type": room_type,
                "opens_on": opens_on.isoformat() if opens_on else None,
                "days": [cell.to_dict() for cell in cells],
            }
        )

    @app.post("/api/rooms/<room_type>/check")
    def check_room_range(room_type: str) -> Any:
        room_type = room_type.strip()
        payload = request.get_json(silent=True) or {}
        try:
            check_in = _parse_timestamp(payload.get("check_in"))
            check_out = _parse_timestamp(payload.get("check_out"))
        except ValueError as error:
            return _error(str(error))

        if not check_out_selectable(check_in, check_out, tz):
            return _error("check_out must be later than check_in.")
        nights = count_nights(check_in, check_out, tz)
        if normalize_to_day(check_in, tz) < _today():
            return _error("check_in cannot be in the past.")

        try:
            ranges = repository.get_room_availability(room_type)
        except ValueError as error:
            return _error(str(error))

        available = not does_range_overlap(check_in, check_out, ranges, tz)
        repository.log_event(
            "BOOKING_CHECKED",
            {
                "kind": "hotel",
                "resource": room_type,
                "check_in": normalize_to_day(check_in, tz).isoformat(),
                "check_out": normalize_to_day(check_out, tz).isoformat(),
                "available": available,
            },
            clock(),
        )
        return jsonify({"ok": True, "room_type": room_type, "available": available, "nights": nights})

    @app.get("/api/cabs/<cab_type>/blocked-dates")
    def get_cab_blocked_dates(cab_type: str) -> Any:
        cab_type = cab_type.strip()
        try:
            blocked = blocked_days_from_timestamps(repository.get_cab_blocked_dates(cab_type), tz)
        except ValueError as error:
            return _error(str(error))
        return jsonify({"ok": True, "cab_type": cab_type, "blocked_dates": [day.isoformat() for day in blocked]})

    @app.get("/api/cabs/<cab_type>/calendar")
    def get_cab_calendar(cab_type: str) -> Any:
        cab_type = cab_type.strip()
        try:
            start, days = _calendar_window()
            cells = build_point_calendar(start, days, repository.get_cab_blocked_dates(cab_type), _today(), tz)
        except ValueError as error:
            return _error(str(error))
        return jsonify({"ok": True, "cab_type": cab_type, "days": [cell.to_dict() for cell in cells]})

    @app.post("/api/cabs/<cab_type>/check")
    def check_cab_date(cab_type: str) -> Any:
        cab_type = cab_type.strip()
        payload = request.get_json(silent=True) or {}
        try:
            pickup = _parse_timestamp(payload.get("pickup_date"))
            blocked = repository.get_cab_blocked_dates(cab_type)
        except ValueError as error:
            return _error(str(error))
        return _single_day_response("cab", cab_type, pickup, blocked)

    @app.get("/api/acting-driver/blocked-dates")
    def get_acting_driver_blocked_dates() -> Any:
        blocked = blocked_days_from_timestamps(repository.get_acting_driver_blocked_dates(), tz)
        return jsonify({"ok": True, "blocked_dates": [day.isoformat() for day in blocked]})

    @app.get("/api/acting-driver/calendar")
    def get_acting_driver_calendar() -> Any:
        try:
            start, days = _calendar_window()
            cells = build_point_calendar(start, days, repository.get_acting_driver_blocked_dates(), _today(), tz)
        except ValueError as error:
            return _error(str(error))
        return jsonify({"ok": True, "days": [cell.to_dict() for cell in cells]})

    @app.post("/api/acting-driver/check")
    def check_acting_driver_date() -> Any:
        payload = request.get_json(silent=True) or {}
        try:
            service_date = _parse_timestamp(payload.get("service_date"))
        except ValueError as error:
            return _error(str(error))
        return _single_day_response("acting_driver", None, service_date, repository.get_acting_driver_blocked_dates())

    @app.post("/api/admin/rooms/<room_type>/availability")
    def add_room_availability(room_type: str) -> Any:
        room_type = room_type.strip()
        payload = request.get_json(silent=True) or {}
        raw_ranges = payload.get("date_ranges")
        if not isinstance(raw_ranges, list):
            return _error("date_ranges must be a list.")

        try:
            ranges = [DateRange.from_dict(item) for item in raw_ranges if isinstance(item, dict)]
            if len(ranges) != len(raw_ranges):
                raise ValueError("each date range must be an object.")
            added = repository.add_room_availability(room_type, ranges, now=clock())
        except (KeyError, ValueError) as error:
            return _error(f"invalid date range: {error}")

        return jsonify({"ok": True, "room_type": room_type, "added": [blocked.to_dict() for blocked in added]})

    def _single_day_response(kind: str, resource: str | None, value: Timestamp, blocked: list[Timestamp]) -> Any:
        day = normalize_to_day(value, tz)
        if day < _today():
            return _error("Selected date cannot be in the past.")

        available = not is_day_in_blocked_set(value, blocked, tz)
        repository.log_event(
            "BOOKING_CHECKED",
            {"kind": kind, "resource": resource, "date": day.isoformat(), "available": available},
            clock(),
        )
        body: dict[str, Any] = {"ok": True, "date": day.isoformat(), "available": available}
        if resource is not None:
            body["resource"] = resource
        if not available:
            body["message"] = "Selected date is not available. Please choose a different date."
        return jsonify(body)

    return app


def _parse_timestamp(value: Any) -> Timestamp:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("date value is required.")
    try:
        return _coerce_timestamp(value)
    except (OverflowError, TypeError, ValueError) as error:
        raise ValueError(f"invalid date value: {value!r}") from error


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
