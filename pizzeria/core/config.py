from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "Pizzeria Ordering API"
    API_PREFIX: str = "/api"

    DATABASE_URL: str
    REDIS_URL: Optional[str] = None
    CACHE_KEY_PREFIX: str = "pizzeria"
    CACHE_TTL_SECONDS: int = Field(default=60, ge=1)

    JWT_SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7, ge=1)

    SUPABASE_URL: Optional[str] = None
    SUPABASE_JWT_SECRET: Optional[str] = None
    OAUTH_REDIRECT_URL: Optional[str] = None

    POINTS_PER_DOLLAR: Decimal = Field(default=Decimal("1"), gt=0)
    POINTS_SIGNUP_BONUS: int = Field(default=0, ge=0)
    VOUCHER_VALIDITY_DAYS: int = Field(default=30, ge=1)

    TAX_RATE: Decimal = Field(default=Decimal("0.0825"), ge=0)
    DELIVERY_FEE: Decimal = Field(default=Decimal("3.99"), ge=0)

    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_CURRENCY: str = "usd"
    STRIPE_WEBHOOK_SECRET: Optional[str] = None

    PRINTER_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: Optional[str] = None
    ENVIRONMENT: str = "development"

    # Comma separated list, or "*" to allow every origin.
    CORS_ORIGINS: str = "*"

    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_EMAIL: str = "admin@pizzeria.local"
    DEFAULT_ADMIN_PASSWORD: Optional[str] = None

    @property
    def cors_origins(self) -> list[str]:
        value = self.CORS_ORIGINS.strip().strip("\"'")
        if value == "*":
            return ["*"]
        return [origin.strip() for origin in value.split(",") if origin.strip()]


load_dotenv(ENV_FILE)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
