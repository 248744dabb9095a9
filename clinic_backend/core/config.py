import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@clinic.local").strip().lower()
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")

SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "30"))
DEFAULT_BUFFER_MINUTES = int(os.getenv("DEFAULT_BUFFER_MINUTES", "20"))
BOOKING_HORIZON_DAYS = int(os.getenv("BOOKING_HORIZON_DAYS", "60"))

# Prices are whole PLN. Anything below this is treated as corrupted pricing data.
MIN_PRICE = int(os.getenv("MIN_PRICE", "50"))

DEFAULT_OPENING_HOURS = {
    "mon": {"open": "00:00", "close": "00:00", "closed": True},
    "tue": {"open": "11:00", "close": "22:00", "closed": False},
    "wed": {"open": "11:00", "close": "22:00", "closed": False},
    "thu": {"open": "11:00", "close": "22:00", "closed": False},
    "fri": {"open": "11:00", "close": "22:00", "closed": False},
    "sat": {"open": "10:00", "close": "18:00", "closed": False},
    "sun": {"open": "11:00", "close": "15:00", "closed": False},
}

DEFAULT_SERVICES = [
    {
        "id": "consultation",
        "name": "Konsultacja",
        "duration_minutes": 20,
        "price_weekday": 50,
        "price_weekend": None,
        "is_active": True,
    },
    {
        "id": "visit_60",
        "name": "Wizyta standardowa",
        "duration_minutes": 60,
        "price_weekday": 200,
        "price_weekend": 250,
        "is_active": True,
    },
    {
        "id": "visit_90",
        "name": "Wizyta rozszerzona",
        "duration_minutes": 90,
        "price_weekday": 250,
        "price_weekend": 300,
        "is_active": True,
    },
]


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if APP_ENV.lower() == "production" and not ADMIN_PASSWORD:
        raise RuntimeError("ADMIN_PASSWORD must be set in production.")
