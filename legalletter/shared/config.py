# legalletter/shared/config.py
from pydantic import BaseModel
import os

def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"

class Settings(BaseModel):
    ENV: str = os.getenv("ENV", "dev")

    # storage
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory")  # memory|sql
    DB_URL: str | None = os.getenv("DB_URL")
    STORAGE_PREFIX: str = os.getenv("STORAGE_PREFIX", "legalletter_v2_")
    SEED_DEMO_DATA: bool = _flag("SEED_DEMO_DATA", "true")

    # identity
    ADMIN_SECRET: str = os.getenv("ADMIN_SECRET", "ADMIN_SECRET_2025")
    SESSION_TIMEOUT_HOURS: int = int(os.getenv("SESSION_TIMEOUT_HOURS", "24"))
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    REQUIRE_EMAIL_VERIFICATION: bool = _flag("REQUIRE_EMAIL_VERIFICATION", "false")

    # letters
    LETTER_PROCESSING_SECONDS: float = float(os.getenv("LETTER_PROCESSING_SECONDS", "8"))
    LETTER_FAILURE_RATE: float = float(os.getenv("LETTER_FAILURE_RATE", "0"))

    # billing
    COUPON_DISCOUNT_PERCENT: float = float(os.getenv("COUPON_DISCOUNT_PERCENT", "20"))
    COMMISSION_RATE: float = float(os.getenv("COMMISSION_RATE", "0.05"))
    SUBSCRIPTION_DAYS: int = int(os.getenv("SUBSCRIPTION_DAYS", "365"))

    # audit + logging
    AUDIT_LOG_LIMIT: int = int(os.getenv("AUDIT_LOG_LIMIT", "1000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_JSON: bool = _flag("LOG_JSON", "false")

settings = Settings()
