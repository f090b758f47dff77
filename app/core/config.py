import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _csv(value: str | None):
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings:
    """Runtime configuration read from the environment / .env"""

    def __init__(self):
        # -------- DATABASE --------
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookings.db")

        # -------- AUTH --------
        self.JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-in-production")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))
        self.REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", 7))
        self.ADMIN_EMAILS = [e.lower() for e in _csv(os.getenv("ADMIN_EMAILS"))]

        # -------- PAYMENTS --------
        self.PAYMENT_PROVIDER = os.getenv("PAYMENT_PROVIDER", "razorpay").lower()
        self.RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
        self.RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
        self.RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET")
        self.CASHFREE_APP_ID = os.getenv("CASHFREE_APP_ID")
        self.CASHFREE_SECRET_KEY = os.getenv("CASHFREE_SECRET_KEY")
        self.CASHFREE_ENVIRONMENT = os.getenv("CASHFREE_ENVIRONMENT", "sandbox")
        self.CASHFREE_API_VERSION = os.getenv("CASHFREE_API_VERSION", "2023-08-01")
        self.GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", 15))

        self.PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL")
        self.FALLBACK_PUBLIC_URL = os.getenv(
            "FALLBACK_PUBLIC_URL", "https://api.knowhowcafe.in"
        )
        self.BILL_ID_PREFIX = os.getenv("BILL_ID_PREFIX", "KH")
        self.CURRENCY = os.getenv("CURRENCY", "INR")
        self.STORE_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", 3))

        # -------- CACHE --------
        self.REDIS_URL = os.getenv("REDIS_URL")
        self.SLOT_CACHE_TTL_SECONDS = int(os.getenv("SLOT_CACHE_TTL_SECONDS", 30))

        # -------- HTTP --------
        self.CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS")) or ["*"]
        self.LOG_DIR = os.getenv("LOG_DIR", "logs")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
