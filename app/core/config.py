"""Core application configuration and settings.

Handles environment variables, authentication secrets, Redis connection
details and the locations of templates, static assets and JavaScript specs.
"""
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load environment variables
ROOT = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=ROOT / ".env", override=False)

DEVELOPMENT_SECRET = "development-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Rails App", alias="APP_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Redis Configuration
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_password: Optional[str] = Field(default=None, alias="REDIS_PASSWORD")
    redis_db: int = Field(default=0, alias="REDIS_DB")

    # JWT Authentication
    jwt_secret_key: str = Field(default=DEVELOPMENT_SECRET, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=1440, alias="ACCESS_TOKEN_EXPIRE_MINUTES")  # 24 hours
    reset_password_within_hours: int = Field(default=6, alias="RESET_PASSWORD_WITHIN_HOURS")
    password_min_length: int = Field(default=6, alias="PASSWORD_MIN_LENGTH")

    # Views and assets
    templates_dir: Path = Field(default=ROOT / "app" / "templates", alias="TEMPLATES_DIR")
    static_dir: Path = Field(default=ROOT / "static", alias="STATIC_DIR")

    # In-browser JavaScript spec runner
    specs_enabled: bool = Field(default=True, alias="SPECS_ENABLED")
    specs_dir: Path = Field(default=ROOT / "spec" / "javascripts", alias="SPECS_DIR")
    jasmine_version: str = Field(default="5.1.2", alias="JASMINE_VERSION")

    # API Settings
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:8000",
            "http://127.0.0.1:8000"
        ],
        alias="CORS_ORIGINS"
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate_required_settings(self):
        """Validate that required settings are present."""
        if not self.app_name:
            raise ValueError("APP_NAME must not be empty.")
        if self.is_production and self.jwt_secret_key == DEVELOPMENT_SECRET:
            raise ValueError(
                "JWT_SECRET_KEY must be set to a secure value in production."
            )


# Global settings instance
settings = Settings()


# Validate settings on module import (only in non-test environments)
if settings.environment != "test":
    try:
        settings.validate_required_settings()
    except ValueError as e:
        print(f"Configuration Error: {e}")
        # Don't raise in development to allow partial setup
        if settings.is_production:
            raise
