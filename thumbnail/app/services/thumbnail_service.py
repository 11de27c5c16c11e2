from datetime import datetime, timezone
from typing import Iterable, Optional

from fastapi.concurrency import run_in_threadpool

from .errors import ThumbnailError
from .paths import SourcePath, parse_source_path, public_url, skip_reason_for, thumbnail_path_for
from .renderer import PdfThumbnailRenderer
from ..models.events import StorageObjectEvent
from ..models.paper import PaperRecord
from ..models.results import FailureKind, SkipReason, ThumbnailResult
from ..utils.logging import logger
from ..utils.mongo import PaperRepository
from ..utils.storage import BlobStore

THUMBNAIL_CONTENT_TYPE = "image/jpeg"
DEFAULT_PUBLIC_URL_BASE = "https://storage.googleapis.com"


def _created_sort_key(record: PaperRecord):
    created_at = record.created_at
    if created_at is None:
        return (0, datetime.min.replace(tzinfo=timezone.utc))
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return (1, created_at)


def select_paper_record(records: Iterable[PaperRecord], owner_id: str) -> Optional[PaperRecord]:
    """Pick the newest record uploaded by ``owner_id``; undated records lose ties."""
    candidates = [record for record in records if record.uploader_id == owner_id]
    if not candidates:
        return None
    return max(candidates, key=_created_sort_key)


class ThumbnailGenerator:
    """Turns a finalized source PDF into a public JPEG thumbnail and links it to its paper."""

    def __init__(
        self,
        blob_store: BlobStore,
        paper_repository: PaperRepository,
        renderer: PdfThumbnailRenderer,
        source_prefix: str = "papers/",
        thumbnail_prefix: str = "thumbnails/",
        public_url_base: str = DEFAULT_PUBLIC_URL_BASE,
        lookup_limit: int = 10,
    ) -> None:
        self.blob_store = blob_store
        self.paper_repository = paper_repository
        self.renderer = renderer
        self.source_prefix = source_prefix
        self.thumbnail_prefix = thumbnail_prefix
        self.public_url_base = public_url_base
        self.lookup_limit = lookup_limit

    async def handle(self, event: StorageObjectEvent) -> ThumbnailResult:
        """Process one finalize event. Never raises; the outcome is in the result."""
        path = event.name

        reason = skip_reason_for(path, event.content_type, self.source_prefix, self.thumbnail_prefix)
        if reason is not None:
            logger.log_step("thumbnail_skipped", {
                "source_path": path,
                "content_type": event.content_type,
                "reason": reason.value
            })
            return ThumbnailResult.skipped(reason, source_path=path)

        source = parse_source_path(path, self.source_prefix)
        if source is None:
            logger.log_error("malformed_source_path", {
                "source_path": path,
                "bucket": event.bucket
            })
            return ThumbnailResult.skipped(SkipReason.malformed_path, source_path=path)

        thumbnail_path = thumbnail_path_for(source, self.thumbnail_prefix)
        logger.log_thumbnail_started(path, event.bucket)

        try:
            return await self._generate(event.bucket, source, thumbnail_path)
        except ThumbnailError as e:
            logger.log_error("thumbnail_generation_failed", {
                "source_path": path,
                "thumbnail_path": thumbnail_path,
                "kind": e.kind.value,
                "error": str(e)
            })
            return ThumbnailResult.failed(e.kind, str(e), source_path=path, thumbnail_path=thumbnail_path)
        except Exception as e:
            logger.log_error("thumbnail_generation_unexpected_error", {
                "source_path": path,
                "thumbnail_path": thumbnail_path,
                "error_type": type(e).__name__,
                "error": str(e)
            })
            return ThumbnailResult.failed(FailureKind.unexpected, str(e), source_path=path,
                                          thumbnail_path=thumbnail_path)

    async def _generate(self, bucket: str, source: SourcePath, thumbnail_path: str) -> ThumbnailResult:
        pdf_bytes = await run_in_threadpool(self.blob_store.download, bucket, source.path)
        rendered = await run_in_threadpool(self.renderer.render_first_page, pdf_bytes)
        logger.log_thumbnail_rendered(source.path, rendered.width, rendered.height, rendered.scale)

        metadata = {
            "originalFile": source.path,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }
        await run_in_threadpool(
            self.blob_store.upload, bucket, thumbnail_path, rendered.data, THUMBNAIL_CONTENT_TYPE, metadata
        )
        await run_in_threadpool(self.blob_store.make_public, bucket, thumbnail_path)

        url = public_url(self.public_url_base, bucket, thumbnail_path)
        logger.log_thumbnail_uploaded(thumbnail_path, url, len(rendered.data))

        record = await run_in_threadpool(self._find_record, source)
        if record is None:
            logger.log_warning("paper_record_not_found", {
                "source_path": source.path,
                "file_name": source.file_name,
                "owner_id": source.owner_id,
                "thumbnail_url": url
            })
            return ThumbnailResult.succeeded(source.path, thumbnail_path, url)

        updated = await run_in_threadpool(self.paper_repository.set_thumbnail_url, record.key, url)
        if not updated:
            logger.log_warning("paper_record_disappeared", {
                "record_id": record.id,
                "source_path": source.path
            })
            return ThumbnailResult.succeeded(source.path, thumbnail_path, url)

        logger.log_step("paper_record_updated", {
            "record_id": record.id,
            "thumbnail_url": url
        })
        return ThumbnailResult.succeeded(source.path, thumbnail_path, url, record_id=record.id)

    def _find_record(self, source: SourcePath) -> Optional[PaperRecord]:
        record = self.paper_repository.find_by_storage_path(source.path, self.lookup_limit)
        if record is not None:
            return record

        candidates = self.paper_repository.find_by_file_name(source.file_name, self.lookup_limit)
        return select_paper_record(candidates, source.owner_id)
