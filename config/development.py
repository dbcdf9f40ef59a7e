import os

from config import parse_weekdays

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_registration_db"),
    "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Registration window: staff may register next week from this weekday on (Monday=0).
REGISTRATION_OPEN_WEEKDAY = int(os.getenv("REGISTRATION_OPEN_WEEKDAY", "4"))
WORKING_WEEKDAYS = parse_weekdays(os.getenv("WORKING_WEEKDAYS", "0,1,2,3,4"))
REGISTRATION_LOCK_TIMEOUT = int(os.getenv("REGISTRATION_LOCK_TIMEOUT", "5"))

# Used until an administrator stores values in app_settings.
DEFAULT_MAX_USER_OFF_DAYS_PER_WEEK = int(os.getenv("DEFAULT_MAX_USER_OFF_DAYS_PER_WEEK", "1"))
DEFAULT_MAX_USER_OFF_SHIFTS_PER_WEEK = int(os.getenv("DEFAULT_MAX_USER_OFF_SHIFTS_PER_WEEK", "2"))
DEFAULT_MAX_SHIFT_OFF_COUNT_PER_DAY_POSITION = int(os.getenv("DEFAULT_MAX_SHIFT_OFF_COUNT_PER_DAY_POSITION", "1"))
