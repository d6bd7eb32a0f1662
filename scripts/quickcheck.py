from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import traceback

from booking_availability import (
    BlockedDataYamlRepository,
    blocked_days_from_timestamps,
    does_range_overlap,
    first_available_day,
    is_day_in_blocked_set,
)


def main() -> int:
    print("[INFO] Booking Availability Quick Check")
    print("[INFO] Generating and validating sample data...")

    repo = BlockedDataYamlRepository("data")
    now = datetime(2026, 2, 24, 10, 0, tzinfo=timezone.utc)

    counts = repo.seed_sample_data(now=now, overwrite=True)
    print(f"[OK] Sample data generated: {counts}")

    for room_type, ranges in repo.get_all_room_availability():
        opening = first_available_day(now, ranges)
        check_in = opening or now.date()
        check_out = check_in + timedelta(days=2)
        overlap = does_range_overlap(check_in, check_out, ranges)
        print(f"[OK] {room_type}: {len(ranges)} blocked ranges, {check_in}~{check_out} available={not overlap}")

    for cab_type in repo.get_cab_types():
        blocked = repo.get_cab_blocked_dates(cab_type)
        print(
            f"[OK] Cab {cab_type}: {len(blocked_days_from_timestamps(blocked))} blocked days, "
            f"today available={not is_day_in_blocked_set(now, blocked)}"
        )

    driver_blocked = repo.get_acting_driver_blocked_dates()
    print(f"[OK] Acting driver: {len(blocked_days_from_timestamps(driver_blocked))} blocked days")
    print(f"[OK] Event Log YAML: {Path('data/availability_events.yaml').resolve()}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
