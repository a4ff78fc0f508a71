"""Application configuration management."""
from pydantic import model_validator, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./mindbattle.db"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"

DEFAULT_PRIZE_AMOUNTS = [
    1000000, 500000, 250000, 125000, 64000, 32000, 16000, 8000, 4000, 2000, 1000, 500, 300, 200, 100
]

DEFAULT_CATEGORIES = [
    "General Knowledge",
    "Science & Nature",
    "History",
    "Geography",
    "Movies & TV",
    "Music",
    "Sports",
    "Technology",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Application
    environment: str = "development"
    frontend_url: str = "http://localhost:5173"
    secret_key: str = DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_exp_minutes: int = 120  # Access tokens valid for 2 hours

    # Bootstrap super admin
    admin_email: str = "admin@mindbattle.com"
    admin_password: str = "adminpassword123"
    admin_name: str = "Super Admin"

    # Wallet
    signup_bonus: int = 500
    signup_bonus_description: str = "Initial sign-up bonus"

    # Contest lifecycle
    status_sweep_interval_seconds: int = 5
    status_sweep_startup_delay_seconds: int = 5
    live_grace_window_hours: int = 2  # How long a contest without a total timer stays Live
    seed_fallback_contests: bool = True
    run_background_tasks: bool = True

    # Game defaults (overridable at runtime through the settings service)
    prize_amounts: list[int] = DEFAULT_PRIZE_AMOUNTS
    categories: list[str] = DEFAULT_CATEGORIES
    time_per_question: int = 30  # seconds
    payment_gateway_api_key: str = "YOUR_API_KEY_HERE"
    payment_gateway_bank_details: str = (
        "Bank Name: Example Bank\nAccount Number: 1234567890\nRouting Number: 0987654321"
    )
    payment_gateway_security_token: str = "YOUR_SECURITY_TOKEN_HERE"

    @field_validator("admin_email", mode="before")
    @classmethod
    def normalize_admin_email(cls, value):
        """Store the bootstrap admin email in canonical form."""
        if value is None:
            return cls.model_fields["admin_email"].default
        return str(value).strip().lower()

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate security configuration and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        if self.environment == "production":
            if self.secret_key == DEFAULT_SECRET_KEY:
                raise ValueError("secret_key must be changed from default value in production")

        if self.jwt_algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError(f"Unsupported JWT algorithm: {self.jwt_algorithm}. Use HS256, HS384, or HS512.")

        if self.access_token_exp_minutes < 1 or self.access_token_exp_minutes > 1440:  # 1 min to 24 hours
            raise ValueError("access_token_exp_minutes must be between 1 and 1440 (24 hours)")

        if self.status_sweep_interval_seconds < 1:
            raise ValueError("status_sweep_interval_seconds must be at least 1 second")

        if self.live_grace_window_hours < 1:
            raise ValueError("live_grace_window_hours must be at least 1 hour")

        if self.signup_bonus < 0:
            raise ValueError("signup_bonus cannot be negative")

        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:  # pragma: no cover
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            logger.warning(f"Invalid DATABASE_URL; falling back to default sqlite database.")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            old_drivername = drivername
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {old_drivername} -> {parsed.drivername}")
        # Use render_as_string to properly re-encode special characters in password
        self.database_url = parsed.render_as_string(hide_password=False)

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
