"""
Back Office — Configuration
All settings are read from environment variables (or .env file).
"""
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "backoffice"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:4200"]

    # ── JWT ──────────────────────────────────────────────────
    JWT_SECRET_KEY: str = "CHANGE_ME_IN_PRODUCTION"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    JWT_REFRESH_TOKEN_EXPIRE_HOURS: int = 24
    REFRESH_COOKIE_NAME: str = "refresh_token"
    REFRESH_COOKIE_SECURE: bool = False

    # ── PostgreSQL ────────────────────────────────────────────
    POSTGRES_HOST: str = "backoffice-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "backoffice_db"
    POSTGRES_USER: str = "backoffice_user"
    POSTGRES_PASSWORD: str = "backoffice_pass"
    DATABASE_URL: str = ""  # overrides the POSTGRES_* settings when set

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Redis ─────────────────────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── Rate Limiting ─────────────────────────────────────────
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_ATTEMPTS: int = 5
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # ── Business rules ────────────────────────────────────────
    VAT_RATE: Decimal = Decimal("0.20")
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("50.00")
    SHIPPING_FEE: Decimal = Decimal("10.00")
    ESTIMATED_DELIVERY_DAYS: int = 5
    LOW_STOCK_DEFAULT: int = 10
    STOCK_ADJUSTMENT_MODE: Literal["lenient", "strict"] = "lenient"
    ORDER_PAGE_SIZE: int = 50

    # ── Optimistic Locking ────────────────────────────────────
    OPT_LOCK_MAX_RETRIES: int = 3
    OPT_LOCK_BASE_DELAY_MS: int = 20
    OPT_LOCK_MAX_DELAY_MS: int = 500
    OPT_LOCK_JITTER_MS: int = 20

    # ── Mail ──────────────────────────────────────────────────
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_STARTTLS: bool = True
    SMTP_TIMEOUT: float = 10.0
    MAIL_FROM: str = "no-reply@backoffice.local"
    FRONTEND_URL: str = "http://localhost:4200"
    PASSWORD_TOKEN_TTL_MINUTES: int = 15

    # ── MinIO ─────────────────────────────────────────────────
    MINIO_ENDPOINT: str = "minio:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_SECURE: bool = False
    MINIO_BUCKET: str = "product-images"
    IMAGE_MAX_BYTES: int = 5 * 1024 * 1024
    IMAGE_URL_EXPIRY_HOURS: int = 24

    # ── PayPal ────────────────────────────────────────────────
    PAYPAL_BASE_URL: str = "https://api-m.sandbox.paypal.com"
    PAYPAL_CLIENT_ID: str = ""
    PAYPAL_CLIENT_SECRET: str = ""
    PAYPAL_CURRENCY: str = "EUR"
    PAYPAL_TIMEOUT: float = 15.0

    # ── Store (invoice header) ────────────────────────────────
    STORE_NAME: str = "Back Office Store"
    STORE_ADDRESS: str = "1 rue du Commerce, 75001 Paris, France"
    STORE_EMAIL: str = "contact@backoffice.local"

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
