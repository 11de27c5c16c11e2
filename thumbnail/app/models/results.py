from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ThumbnailStatus(str, Enum):
    ok = "ok"
    skipped = "skipped"
    failed = "failed"


class SkipReason(str, Enum):
    """Why an event was intentionally not processed."""
    not_pdf = "not_pdf"
    outside_source_prefix = "outside_source_prefix"
    thumbnail_path = "thumbnail_path"
    malformed_path = "malformed_path"
    unsupported_event = "unsupported_event"
    malformed_event = "malformed_event"


class FailureKind(str, Enum):
    """Which stage of thumbnail generation failed."""
    no_pages = "no_pages"
    render = "render"
    storage = "storage"
    database = "database"
    unexpected = "unexpected"


class ThumbnailResult(BaseModel):
    """Outcome of a single thumbnail invocation."""
    status: ThumbnailStatus
    source_path: Optional[str] = None
    thumbnail_path: Optional[str] = None
    url: Optional[str] = None
    record_id: Optional[str] = None
    reason: Optional[SkipReason] = None
    error_kind: Optional[FailureKind] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, source_path: str, thumbnail_path: str, url: str,
                  record_id: Optional[str] = None) -> "ThumbnailResult":
        return cls(
            status=ThumbnailStatus.ok,
            source_path=source_path,
            thumbnail_path=thumbnail_path,
            url=url,
            record_id=record_id,
        )

    @classmethod
    def skipped(cls, reason: SkipReason, source_path: Optional[str] = None) -> "ThumbnailResult":
        return cls(status=ThumbnailStatus.skipped, source_path=source_path, reason=reason)

    @classmethod
    def failed(cls, kind: FailureKind, error: str, source_path: Optional[str] = None,
               thumbnail_path: Optional[str] = None) -> "ThumbnailResult":
        return cls(
            status=ThumbnailStatus.failed,
            source_path=source_path,
            thumbnail_path=thumbnail_path,
            error_kind=kind,
            error=error,
        )

    @property
    def is_orphan(self) -> bool:
        return self.status == ThumbnailStatus.ok and self.record_id is None
