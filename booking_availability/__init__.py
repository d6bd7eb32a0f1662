from .availability import (
	DEFAULT_TIMEZONE,
	DateRange,
	blocked_days_from_timestamps,
	count_nights,
	datetime_to_nanos,
	does_range_overlap,
	first_available_day,
	get_blocked_dates_from_ranges,
	is_date_blocked,
	is_day_in_blocked_set,
	nanos_to_datetime,
	normalize_to_day,
)
from .calendar_days import CalendarDay, build_point_calendar, build_room_calendar, check_out_selectable
from .yaml_store import (
	ActingDriverRequestRecord,
	BlockedDataStorageError,
	BlockedDataYamlRepository,
	CabBookingRecord,
	HotelBookingRecord,
	generate_sample_data,
)

__all__ = [
	"DEFAULT_TIMEZONE",
	"DateRange",
	"blocked_days_from_timestamps",
	"count_nights",
	"datetime_to_nanos",
	"does_range_overlap",
	"first_available_day",
	"get_blocked_dates_from_ranges",
	"is_date_blocked",
	"is_day_in_blocked_set",
	"nanos_to_datetime",
	"normalize_to_day",
	"CalendarDay",
	"build_point_calendar",
	"build_room_calendar",
	"check_out_selectable",
	"ActingDriverRequestRecord",
	"BlockedDataStorageError",
	"BlockedDataYamlRepository",
	"CabBookingRecord",
	"HotelBookingRecord",
	"generate_sample_data",
]
