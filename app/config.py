# app/config.py

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected an integer.") from e
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}")
    return value


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./booking.db")

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn("SECRET_KEY not set! Using insecure development key", RuntimeWarning, stacklevel=2)
    SECRET_KEY = "change-me-later"

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 30)

# Booking grid and horizon
SLOT_MINUTES = _int_env("SLOT_MINUTES", 15)
MAX_ADVANCE_DAYS = _int_env("MAX_ADVANCE_DAYS", 60, minimum=0)

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
