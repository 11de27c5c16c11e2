"""Process-wide collaborators, assembled once at startup and passed down."""

from dataclasses import dataclass
from typing import Optional

import firebase_admin

from .config import Settings
from .services.raster import PillowSurfaceFactory
from .services.renderer import PdfThumbnailRenderer
from .services.thumbnail_service import ThumbnailGenerator
from .utils.logging import logger
from .utils.mongo import PaperRepository
from .utils.storage import BlobStore, FirebaseBlobStore, LocalBlobStore, initialize_firebase_app


@dataclass
class ServiceContainer:
    blob_store: BlobStore
    paper_repository: PaperRepository
    generator: ThumbnailGenerator
    firebase_app: Optional[firebase_admin.App] = None

    def close(self) -> None:
        self.paper_repository.close()
        if self.firebase_app is not None:
            firebase_admin.delete_app(self.firebase_app)
            self.firebase_app = None


def build_generator(settings: Settings, blob_store: BlobStore, paper_repository: PaperRepository) -> ThumbnailGenerator:
    renderer = PdfThumbnailRenderer(
        PillowSurfaceFactory(),
        target_width=settings.THUMBNAIL_TARGET_WIDTH,
        jpeg_quality=settings.THUMBNAIL_JPEG_QUALITY,
    )
    return ThumbnailGenerator(
        blob_store,
        paper_repository,
        renderer,
        source_prefix=settings.SOURCE_PREFIX,
        thumbnail_prefix=settings.THUMBNAIL_PREFIX,
        public_url_base=settings.PUBLIC_URL_BASE,
        lookup_limit=settings.PAPER_LOOKUP_LIMIT,
    )


def build_container(settings: Settings) -> ServiceContainer:
    backend = settings.STORAGE_BACKEND.lower()
    firebase_app = None

    if backend == "firebase":
        firebase_app = initialize_firebase_app(
            credentials_path=settings.FIREBASE_CREDENTIALS_PATH,
            credentials_json=settings.FIREBASE_CREDENTIALS,
            storage_bucket=settings.STORAGE_BUCKET,
        )
        blob_store: BlobStore = FirebaseBlobStore(firebase_app)
    elif backend == "local":
        blob_store = LocalBlobStore(settings.local_storage_root_path)
    else:
        raise ValueError(f"Unsupported STORAGE_BACKEND: {settings.STORAGE_BACKEND}")

    try:
        paper_repository = PaperRepository.connect(
            settings.MONGODB_URI,
            settings.DATABASE_NAME,
            settings.PAPERS_COLLECTION,
        )
    except Exception:
        if firebase_app is not None:
            firebase_admin.delete_app(firebase_app)
        raise

    logger.log_step("service_container_ready", {
        "storage_backend": backend,
        "database": settings.DATABASE_NAME,
        "collection": settings.PAPERS_COLLECTION
    })
    return ServiceContainer(
        blob_store=blob_store,
        paper_repository=paper_repository,
        generator=build_generator(settings, blob_store, paper_repository),
        firebase_app=firebase_app,
    )
