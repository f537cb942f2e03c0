"""
Configuration and settings for the InvestMate API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    cors_allow_origins: str = Field(default="http://localhost:3000")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Sessions
    jwt_secret: str = Field(default="dev-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    session_max_age_seconds: int = Field(default=60 * 60 * 24 * 7)
    password_hash_rounds: int = Field(default=10, ge=4, le=31)

    # External AI service
    ai_api_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ai_api_url", "INVESTMATE_AI_API_URL"),
    )
    ai_timeout_seconds: float = Field(default=30.0)

    # Cloudinary media host. CLOUDINARY_URL is read by the SDK itself.
    cloudinary_cloud_name: Optional[str] = Field(default=None)
    cloudinary_api_key: Optional[str] = Field(default=None)
    cloudinary_api_secret: Optional[str] = Field(default=None)

    # S3-compatible media bucket
    media_bucket: Optional[str] = Field(default=None)
    media_region: Optional[str] = Field(default=None)
    media_endpoint: Optional[str] = Field(default=None)
    media_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    media_timeout_seconds: float = Field(default=30.0)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "use_in_memory_backends", "INVESTMATE_USE_IN_MEMORY_BACKENDS"
        ),
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
