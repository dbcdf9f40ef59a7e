"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DATE_FORMAT = "%Y-%m-%d"

# datetime.weekday(): Monday=0 ... Sunday=6
FRIDAY = 4
DEFAULT_REGISTRATION_OPEN_WEEKDAY = FRIDAY
DEFAULT_WORKING_WEEKDAYS = (0, 1, 2, 3, 4)

DEFAULT_MAX_USER_OFF_DAYS_PER_WEEK = 1
DEFAULT_MAX_USER_OFF_SHIFTS_PER_WEEK = 2
DEFAULT_MAX_SHIFT_OFF_COUNT_PER_DAY_POSITION = 1

DEFAULT_LATE_THRESHOLD_MINUTES = 30
DEFAULT_LOCK_TIMEOUT_SECONDS = 5
DEFAULT_LIST_LIMIT = 500

# Shift periods are derived from start time (hour, exclusive upper bound).
AFTERNOON_START_HOUR = 12
EVENING_START_HOUR = 18
