"""
Configuration and settings for the woodshop backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="WOODSHOP_USE_IN_MEMORY_BACKENDS"
    )

    # Cloudinary image hosting
    cloudinary_cloud_name: Optional[str] = Field(
        default=None, validation_alias="CLOUDINARY_CLOUD_NAME"
    )
    cloudinary_api_key: Optional[str] = Field(
        default=None, validation_alias="CLOUDINARY_API_KEY"
    )
    cloudinary_api_secret: Optional[str] = Field(
        default=None, validation_alias="CLOUDINARY_API_SECRET"
    )
    cloudinary_projects_folder: str = Field(
        default="projects", validation_alias="CLOUDINARY_PROJECTS_FOLDER"
    )
    # Folders younger than this may belong to a project that is still being created.
    orphaned_folder_age_seconds: int = Field(
        default=3600, ge=0, validation_alias="ORPHANED_FOLDER_AGE_SECONDS"
    )

    # Google sign-in
    authorized_admin_emails: str = Field(
        default="", validation_alias="AUTHORIZED_ADMIN_EMAIL"
    )
    google_client_id: Optional[str] = Field(
        default=None, validation_alias="AUTH_GOOGLE_ID"
    )
    google_client_secret: Optional[str] = Field(
        default=None, validation_alias="AUTH_GOOGLE_SECRET"
    )
    google_redirect_uri: str = Field(
        default="http://localhost:8000/api/auth/google/callback",
        validation_alias="AUTH_GOOGLE_REDIRECT_URI",
    )
    session_cookie_name: str = Field(default="woodshop_session")
    session_max_age_seconds: int = Field(
        default=30 * 24 * 3600, validation_alias="SESSION_MAX_AGE_SECONDS"
    )
    secure_cookies: bool = Field(default=False, validation_alias="SECURE_COOKIES")

    # Web3Forms contact submission
    web3forms_access_key: Optional[str] = Field(
        default=None, validation_alias="WEB3FORMS_ACCESS_KEY"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
