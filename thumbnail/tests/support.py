"""In-memory collaborators shared by the thumbnail tests."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF

from thumbnail.app.models.paper import PaperRecord
from thumbnail.app.services.errors import StorageError
from thumbnail.app.services.raster import PillowSurfaceFactory, RasterSurface
from thumbnail.app.utils.storage import BlobStore

BUCKET = "studyvault-test.appspot.com"


def make_pdf(width: float = 600, height: float = 800, pages: int = 1) -> bytes:
    document = fitz.open()
    for number in range(pages):
        page = document.new_page(width=width, height=height)
        page.insert_text((72, 72), f"Question paper page {number + 1}")
    data = document.tobytes()
    document.close()
    return data


@dataclass
class UploadCall:
    bucket: str
    path: str
    data: bytes
    content_type: str
    metadata: Dict[str, str]


class FakeBlobStore(BlobStore):
    def __init__(self, objects: Optional[Dict[Tuple[str, str], bytes]] = None):
        self.objects = dict(objects or {})
        self.uploads: List[UploadCall] = []
        self.published: List[Tuple[str, str]] = []

    def download(self, bucket: str, path: str) -> bytes:
        try:
            return self.objects[(bucket, path)]
        except KeyError:
            raise StorageError(f"No such object: {bucket}/{path}")

    def upload(self, bucket, path, data, content_type, metadata=None):
        self.uploads.append(UploadCall(bucket, path, data, content_type, dict(metadata or {})))
        self.objects[(bucket, path)] = data

    def make_public(self, bucket, path):
        self.published.append((bucket, path))


@dataclass
class FakePaperRepository:
    records: List[PaperRecord] = field(default_factory=list)
    updates: List[Tuple[str, str]] = field(default_factory=list)
    file_name_queries: List[Tuple[str, int]] = field(default_factory=list)
    closed: bool = False

    def find_by_storage_path(self, storage_path: str, limit: int = 10) -> Optional[PaperRecord]:
        matches = [record for record in self.records if record.storage_path == storage_path][:limit]
        if not matches:
            return None
        return max(matches, key=lambda record: (record.created_at is not None, record.created_at or datetime.min))

    def find_by_file_name(self, file_name: str, limit: int) -> List[PaperRecord]:
        self.file_name_queries.append((file_name, limit))
        return [record for record in self.records if record.file_name == file_name][:limit]

    def set_thumbnail_url(self, record_id: str, thumbnail_url: str) -> bool:
        self.updates.append((record_id, thumbnail_url))
        for record in self.records:
            if record.key == record_id:
                record.thumbnail_url = thumbnail_url
                return True
        return False

    def find_missing_thumbnails(self, limit: int) -> List[PaperRecord]:
        return [record for record in self.records if record.storage_path and not record.thumbnail_url][:limit]

    def find_latest(self) -> Optional[PaperRecord]:
        dated = [record for record in self.records if record.created_at]
        return max(dated, key=lambda record: record.created_at) if dated else None

    def close(self):
        self.closed = True


def paper(record_id: str, file_name: str, uploader_id: str,
          created_at: Optional[datetime] = None, storage_path: Optional[str] = None) -> PaperRecord:
    return PaperRecord(
        id=record_id,
        file_name=file_name,
        uploader_id=uploader_id,
        title=f"Paper {record_id}",
        created_at=created_at,
        storage_path=storage_path,
    )


class CountingSurfaceFactory(PillowSurfaceFactory):
    def __init__(self):
        self.created: List[RasterSurface] = []
        self.destroyed: List[RasterSurface] = []
        self.resets = 0

    def create(self, width, height):
        surface = super().create(width, height)
        self.created.append(surface)
        return surface

    def reset(self, surface, width, height):
        self.resets += 1
        super().reset(surface, width, height)

    def destroy(self, surface):
        self.destroyed.append(surface)
        super().destroy(surface)
