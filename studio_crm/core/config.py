import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

N8N_BOOKING_WEBHOOK_URL = os.getenv("N8N_BOOKING_WEBHOOK_URL", "")
N8N_OUTGOING_WEBHOOK_URL = os.getenv("N8N_OUTGOING_WEBHOOK_URL", "")
N8N_WEBHOOK_URL = os.getenv("N8N_WEBHOOK_URL", "")
N8N_TIMEOUT_SECONDS = float(os.getenv("N8N_TIMEOUT_SECONDS", "10"))

AGENDA_START_HOUR = _get_int(os.getenv("AGENDA_START_HOUR"), 7)
AGENDA_END_HOUR = _get_int(os.getenv("AGENDA_END_HOUR"), 22)
DEFAULT_APPOINTMENT_DURATION_MINUTES = _get_int(os.getenv("DEFAULT_APPOINTMENT_DURATION_MINUTES"), 60)

DEFAULT_COMMISSION_PERCENT = float(os.getenv("DEFAULT_COMMISSION_PERCENT", "50"))
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "57")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and not DATABASE_URL:
        raise RuntimeError("DATABASE_URL must be set in production.")
    if AGENDA_END_HOUR <= AGENDA_START_HOUR:
        raise RuntimeError("AGENDA_END_HOUR must be later than AGENDA_START_HOUR.")
