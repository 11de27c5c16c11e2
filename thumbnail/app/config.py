from pathlib import Path
import sys
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from config.shared_settings import shared_settings


class Settings(BaseSettings):
    """Configuration for the thumbnail service."""

    # Service metadata
    SERVICE_NAME: str = shared_settings.THUMBNAIL_SERVICE_NAME
    SERVICE_VERSION: str = shared_settings.THUMBNAIL_SERVICE_VERSION
    APP_HOST: str = Field(
        default=shared_settings.THUMBNAIL_SERVICE_HOST,
        validation_alias=AliasChoices("HOST", "APP_HOST"),
    )
    APP_PORT: int = Field(
        default=shared_settings.THUMBNAIL_SERVICE_PORT,
        validation_alias=AliasChoices("PORT", "APP_PORT"),
    )
    APP_ENV: str = shared_settings.APP_ENV
    DEBUG: bool = Field(
        default=shared_settings.THUMBNAIL_DEBUG,
        validation_alias=AliasChoices("DEBUG", "APP_DEBUG"),
    )

    # MongoDB
    MONGODB_URI: str = Field(
        default=shared_settings.MONGODB_URI,
        validation_alias=AliasChoices("MONGODB_URI", "MONGO_URL"),
    )
    DATABASE_NAME: str = Field(
        default=shared_settings.DATABASE_NAME,
        validation_alias=AliasChoices("DATABASE_NAME", "MONGODB_DATABASE"),
    )
    PAPERS_COLLECTION: str = Field(
        default=shared_settings.PAPERS_COLLECTION,
        validation_alias=AliasChoices("PAPERS_COLLECTION", "MONGODB_COLLECTION"),
    )
    PAPER_LOOKUP_LIMIT: int = 10

    # Blob storage
    STORAGE_BACKEND: str = shared_settings.STORAGE_BACKEND
    STORAGE_BUCKET: Optional[str] = Field(
        default=shared_settings.STORAGE_BUCKET,
        validation_alias=AliasChoices("STORAGE_BUCKET", "FIREBASE_STORAGE_BUCKET"),
    )
    LOCAL_STORAGE_ROOT: Path = Field(
        default=Path(shared_settings.LOCAL_STORAGE_DIR),
        validation_alias=AliasChoices("LOCAL_STORAGE_ROOT", "STORAGE_ROOT"),
    )
    PUBLIC_URL_BASE: str = shared_settings.PUBLIC_URL_BASE
    FIREBASE_CREDENTIALS_PATH: Optional[str] = shared_settings.FIREBASE_CREDENTIALS_PATH
    FIREBASE_CREDENTIALS: Optional[str] = shared_settings.FIREBASE_CREDENTIALS

    # Thumbnail pipeline
    SOURCE_PREFIX: str = "papers/"
    THUMBNAIL_PREFIX: str = "thumbnails/"
    THUMBNAIL_TARGET_WIDTH: int = Field(default=300, gt=0)
    THUMBNAIL_JPEG_QUALITY: int = Field(default=80, ge=1, le=95)

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",
    )

    @property
    def local_storage_root_path(self) -> Path:
        storage_root = Path(self.LOCAL_STORAGE_ROOT)
        if storage_root.is_absolute():
            return storage_root

        parts = storage_root.parts
        if parts and parts[0].lower() == "thumbnail":
            storage_root = Path(*parts[1:]) if len(parts) > 1 else Path()

        return (Path(__file__).resolve().parents[1] / storage_root).resolve()


settings = Settings()
