import os


def get_settings_module() -> str:
    # APP_ENV selects the settings module, defaulting to 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"


def parse_weekdays(value: str) -> tuple:
    """'0,1,2,3,4' -> (0, 1, 2, 3, 4); Monday is 0."""
    return tuple(sorted({int(part) for part in value.split(",") if part.strip()}))
