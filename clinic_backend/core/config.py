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
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")
DATABASE_CONNECT_TIMEOUT_SECONDS = _get_int(os.getenv("DATABASE_CONNECT_TIMEOUT_SECONDS"), 10)
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Booking policy
MAX_ACTIVE_FUTURE_APPOINTMENTS = _get_int(os.getenv("MAX_ACTIVE_FUTURE_APPOINTMENTS"), 2)
CANCELLATION_WINDOW_HOURS = _get_int(os.getenv("CANCELLATION_WINDOW_HOURS"), 24)
NO_SHOW_BLOCK_THRESHOLD = _get_int(os.getenv("NO_SHOW_BLOCK_THRESHOLD"), 3)
DEFAULT_SLOT_DURATION_MINUTES = _get_int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES"), 30)

MAX_CANCELLATION_REASON_LENGTH = 500
MAX_BLACKOUT_REASON_LENGTH = 255
MAX_CLINICAL_NOTE_LENGTH = 2000


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if NO_SHOW_BLOCK_THRESHOLD < 1:
        raise RuntimeError("NO_SHOW_BLOCK_THRESHOLD must be at least 1.")
