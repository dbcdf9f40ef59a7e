import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_registration_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

REGISTRATION_OPEN_WEEKDAY = 4
WORKING_WEEKDAYS = (0, 1, 2, 3, 4)
REGISTRATION_LOCK_TIMEOUT = 1

DEFAULT_MAX_USER_OFF_DAYS_PER_WEEK = 1
DEFAULT_MAX_USER_OFF_SHIFTS_PER_WEEK = 2
DEFAULT_MAX_SHIFT_OFF_COUNT_PER_DAY_POSITION = 1
