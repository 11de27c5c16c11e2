"""Shared configuration definitions for all microservices."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore[import-not-found]


class SharedSettings(BaseSettings):
    """Global defaults and environment-driven overrides for all services."""

    # Environment
    APP_ENV: str = "development"

    # Thumbnail service defaults
    THUMBNAIL_SERVICE_NAME: str = "StudyVault Thumbnail Agent"
    THUMBNAIL_SERVICE_VERSION: str = "1.0.0"
    THUMBNAIL_SERVICE_HOST: str = "0.0.0.0"
    THUMBNAIL_SERVICE_PORT: int = 8204
    THUMBNAIL_DEBUG: bool = True

    # MongoDB defaults
    MONGODB_URI: str = "mongodb://localhost:27017/"
    DATABASE_NAME: str = "StudyVault"
    PAPERS_COLLECTION: str = "papers"

    # Blob storage defaults
    STORAGE_BACKEND: str = "firebase"
    STORAGE_BUCKET: Optional[str] = None
    LOCAL_STORAGE_DIR: str = str(Path("thumbnail") / "storage")
    PUBLIC_URL_BASE: str = "https://storage.googleapis.com"

    # Firebase credentials (override via environment variables)
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    FIREBASE_CREDENTIALS: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )


shared_settings = SharedSettings()
