from __future__ import annotations

from pathlib import Path

from mcp.server.fastmcp import FastMCP

from booking_availability import (
    BlockedDataYamlRepository,
    DateRange,
    check_out_selectable,
    count_nights,
    does_range_overlap,
    get_blocked_dates_from_ranges,
    is_day_in_blocked_set,
    normalize_to_day,
)
from booking_availability.availability import _coerce_timestamp

mcp = FastMCP(
    "Booking Availability MCP Server",
    instructions="Expose blocked dates and availability checks for hotel rooms, cabs and acting drivers.",
    json_response=True,
)

DATA_DIR = Path(__file__).parent / "data"
REPOSITORY = BlockedDataYamlRepository(DATA_DIR)


@mcp.resource("availability://rooms")
async def list_rooms() -> list[str]:
    """List room types that have blocked ranges or bookings."""
    return [room_type for room_type, _ in REPOSITORY.get_all_room_availability()]


@mcp.tool()
def list_room_blocked_dates(room_type: str) -> list[str]:
    """Return every blocked day (ISO date) for a room type."""
    ranges: list[DateRange] = REPOSITORY.get_room_availability(room_type)
    return [day.isoformat() for day in sorted(set(get_blocked_dates_from_ranges(ranges)))]


@mcp.tool()
def check_room_range(room_type: str, check_in: str, check_out: str) -> dict[str, object]:
    """Check whether a stay from check_in to check_out (ISO dates) is free."""
    start = _coerce_timestamp(check_in)
    end = _coerce_timestamp(check_out)
    if not check_out_selectable(start, end):
        raise ValueError("check_out must be later than check_in")
    nights = count_nights(start, end)

    available = not does_range_overlap(start, end, REPOSITORY.get_room_availability(room_type))
    return {"room_type": room_type, "available": available, "nights": nights}


@mcp.tool()
def check_cab_date(cab_type: str, pickup_date: str) -> dict[str, object]:
    """Check whether a cab type can be booked on the given day."""
    day = _coerce_timestamp(pickup_date)
    available = not is_day_in_blocked_set(day, REPOSITORY.get_cab_blocked_dates(cab_type))
    return {"cab_type": cab_type, "date": normalize_to_day(day).isoformat(), "available": available}


@mcp.tool()
def check_acting_driver_date(service_date: str) -> dict[str, object]:
    """Check whether an acting driver can be requested on the given day."""
    day = _coerce_timestamp(service_date)
    available = not is_day_in_blocked_set(day, REPOSITORY.get_acting_driver_blocked_dates())
    return {"date": normalize_to_day(day).isoformat(), "available": available}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
