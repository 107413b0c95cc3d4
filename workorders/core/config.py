import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# -----------------------
# Database Config
# -----------------------
DB_TYPE = os.getenv("DB_TYPE", "sqlite").lower()

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres setup")
elif DB_TYPE == "sqlite":
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./workorders.db")
else:
    raise ValueError(f"Unsupported DB_TYPE: {DB_TYPE}")

# -----------------------
# JWT Config
# -----------------------
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise ValueError("JWT_SECRET environment variable must be set")

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# -----------------------
# Lifecycle Config
# -----------------------
AUTO_ARCHIVE_AFTER_HOURS = float(os.getenv("AUTO_ARCHIVE_AFTER_HOURS", "48"))
AUTO_ARCHIVE_INTERVAL_MINUTES = float(os.getenv("AUTO_ARCHIVE_INTERVAL_MINUTES", "60"))
AUTO_ARCHIVE_ENABLED = _env_bool("AUTO_ARCHIVE_ENABLED", True)

AUTO_CREATE_INVOICE = _env_bool("AUTO_CREATE_INVOICE", True)
SIDE_EFFECT_TIMEOUT_SECONDS = float(os.getenv("SIDE_EFFECT_TIMEOUT_SECONDS", "10"))
DEFAULT_HOURLY_RATE = float(os.getenv("DEFAULT_HOURLY_RATE", "75.0"))

# -----------------------
# Logging
# -----------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
