"""Application configuration"""
import os
import re
from datetime import timedelta
from typing import List

from dotenv import load_dotenv

load_dotenv()

_DURATION_RE = re.compile(r"^(\d+)([dhms])$")
_DURATION_UNITS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}
DEFAULT_TOKEN_LIFETIME = timedelta(days=7)


def parse_duration(raw: str, default: timedelta = DEFAULT_TOKEN_LIFETIME) -> timedelta:
    """
    Parse a compact duration such as ``"7d"``, ``"12h"``, ``"30m"`` or ``"45s"``.

    Anything that does not match ``<int><unit>`` falls back to *default*.
    """
    match = _DURATION_RE.match((raw or "").strip())
    if not match:
        return default
    value, unit = match.groups()
    return timedelta(seconds=int(value) * _DURATION_UNITS[unit])


class Settings:
    # Database Configuration
    DATABASE_USER = os.getenv("DATABASE_USER", "postgres")
    DATABASE_PASSWORD = os.getenv("DATABASE_PASSWORD", "123456")
    DATABASE_HOST = os.getenv("DATABASE_HOST", "localhost")
    DATABASE_PORT = os.getenv("DATABASE_PORT", "5432")
    DATABASE_NAME = os.getenv("DATABASE_NAME", "kamdhenuseva")

    @property
    def DATABASE_URL(self) -> str:
        """Explicit DATABASE_URL wins, otherwise construct a PostgreSQL URL"""
        explicit = os.getenv("DATABASE_URL")
        if explicit:
            return explicit
        return f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    # API Configuration
    API_VERSION = os.getenv("API_VERSION", "1")
    CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000")

    @property
    def API_V1_STR(self) -> str:
        return f"/api/v{self.API_VERSION}"

    @property
    def CLIENT_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CLIENT_URL.split(",") if origin.strip()]

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "seva/logs/logs.txt")

    # Development/Production Settings
    ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"

    # Project Metadata
    PROJECT_NAME = "Kamdhenuseva API"
    PROJECT_VERSION = "1.0.0"

    # JWT Authentication
    SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production-min-32-chars")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    JWT_EXPIRY = os.getenv("JWT_EXPIRY", "7d")
    USER_TOKEN_COOKIE_NAME = "user-token"

    @property
    def TOKEN_LIFETIME(self) -> timedelta:
        return parse_duration(self.JWT_EXPIRY)

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))

    # OTP lifetimes (seconds), one per intent
    OTP_TWO_FACTOR_TTL_SECONDS = int(os.getenv("OTP_TWO_FACTOR_TTL_SECONDS", 20))
    OTP_PASSWORD_RESET_TTL_SECONDS = int(os.getenv("OTP_PASSWORD_RESET_TTL_SECONDS", 20))
    OTP_EMAIL_VERIFICATION_TTL_SECONDS = int(os.getenv("OTP_EMAIL_VERIFICATION_TTL_SECONDS", 24 * 60 * 60))

    # Login / password-reset limiter
    LOGIN_RATE_LIMIT_MAX = int(os.getenv("LOGIN_RATE_LIMIT_MAX", 15))
    LOGIN_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_LIMIT_WINDOW_SECONDS", 10 * 60))

    # Razorpay Payment Gateway
    RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "").strip()
    RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "").strip()
    RAZORPAY_API_URL = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
    RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET", "").strip()
    RAZORPAY_COW_PUJA_WEBHOOK_SECRET = os.getenv("RAZORPAY_COW_PUJA_WEBHOOK_SECRET", "").strip()
    PAYMENT_CURRENCY = "INR"

    # SMTP / Email configuration
    SMTP_HOST = os.getenv("SMTP_HOST", "")
    SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
    SMTP_USER = os.getenv("SMTP_USER", "")
    SMTP_PASS = os.getenv("SMTP_PASS", "")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "kamdhenuseva@mails.dayadevraha.com")


settings = Settings()
