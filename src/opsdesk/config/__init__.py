import os


def get_settings_module() -> str:
    # APP_ENV picks the settings module, default is development
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "opsdesk.config.production"

    if env in {"test", "testing"}:
        return "opsdesk.config.testing"

    return "opsdesk.config.development"


def csv_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Read a comma separated env var into a tuple of trimmed values."""
    raw = os.getenv(name)
    if raw is None:
        return tuple(default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())
