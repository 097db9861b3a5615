# mediq/config.py - Environment-driven configuration
from dotenv import load_dotenv

load_dotenv()
from typing import Union
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

DEFAULT_CORS_ORIGIN = "http://localhost:3000"
DATABASE_SCHEMES = ("sqlite", "postgresql", "postgresql+psycopg2")


class Settings(BaseSettings):
    """Application settings with validation and environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Application
    app_name: str = "MediQ Patient Intake"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database
    database_url: str = Field(default="sqlite:///./local.db", alias="DATABASE_URL")

    # Security
    jwt_secret: str = Field(..., alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    token_expire_days: int = Field(default=1, alias="TOKEN_EXPIRE_DAYS")
    cookie_name: str = "token"

    # CORS
    cors_origins: Union[str, list[str]] = Field(default=[DEFAULT_CORS_ORIGIN], alias="CORS_ORIGINS")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if not isinstance(value, str):
            return value
        origins = [item.strip() for item in value.split(",")]
        return [item for item in origins if item] or [DEFAULT_CORS_ORIGIN]

    @field_validator("database_url")
    @classmethod
    def check_database_scheme(cls, value):
        scheme, separator, _ = value.partition("://")
        if not separator or scheme not in DATABASE_SCHEMES:
            raise ValueError(f"DATABASE_URL scheme must be one of: {', '.join(DATABASE_SCHEMES)}")
        return value

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v):
        if not v or not v.strip():
            raise ValueError("JWT_SECRET is not set in environment variables")
        return v

    @field_validator("token_expire_days")
    @classmethod
    def validate_token_expiry(cls, v):
        if v < 1:
            raise ValueError("TOKEN_EXPIRE_DAYS must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def token_max_age(self) -> int:
        """Cookie lifetime in seconds, matching the token expiry."""
        return self.token_expire_days * 24 * 60 * 60


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()

# Note: Do not instantiate settings at import time; a missing JWT_SECRET
# must fail when the application is built, not when this module is imported.
