"""
Application settings loaded from environment variables (or a local .env file).
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Thread Nexus API", alias="APP_NAME")
    environment: str = Field(default="development", alias="APP_ENV")
    port: int = Field(default=5000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # MongoDB
    database_url: str = Field(default="mongodb://localhost:27017", alias="DATABASE_URL")
    database_name: str = Field(default="threadNexus", alias="DATABASE_NAME")
    # Unset means the driver default (no explicit deadline)
    database_timeout_ms: Optional[int] = Field(default=None, alias="DATABASE_TIMEOUT_MS")

    # Credentials
    access_token_secret: str = Field(alias="ACCESS_TOKEN_SECRET")
    access_token_algorithm: str = Field(default="HS256", alias="ACCESS_TOKEN_ALGORITHM")
    access_token_ttl_days: int = Field(default=365, alias="ACCESS_TOKEN_TTL_DAYS")

    # Stripe
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_api_base: str = Field(default="https://api.stripe.com/v1", alias="STRIPE_API_BASE")
    payment_currency: str = Field(default="usd", alias="PAYMENT_CURRENCY")
    payment_timeout_seconds: Optional[float] = Field(default=None, alias="PAYMENT_TIMEOUT_SECONDS")

    cors_origins: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://localhost:5174",
            "https://thread-nexus.web.app",
        ],
        alias="CORS_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
