"""Storage path rules for source PDFs and their thumbnails.

Source objects live at ``papers/{ownerId}/{fileName}``; the derived JPEG goes
to ``thumbnails/{ownerId}/{stem}.jpg`` in the same bucket.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import quote

from ..models.results import SkipReason

THUMBNAIL_EXTENSION = ".jpg"


@dataclass(frozen=True)
class SourcePath:
    path: str
    owner_id: str
    file_name: str


def skip_reason_for(path: str, content_type: Optional[str],
                    source_prefix: str, thumbnail_prefix: str) -> Optional[SkipReason]:
    """Return why an object should be ignored, or None when it is a candidate."""
    if "pdf" not in (content_type or "").lower():
        return SkipReason.not_pdf
    if not path.startswith(source_prefix):
        return SkipReason.outside_source_prefix
    if thumbnail_prefix in path:
        return SkipReason.thumbnail_path
    return None


def parse_source_path(path: str, source_prefix: str) -> Optional[SourcePath]:
    """Split ``{prefix}{owner}/{fileName}``; anything else is malformed."""
    if not path.startswith(source_prefix):
        return None

    parts = path[len(source_prefix):].split("/")
    if len(parts) != 2:
        return None

    owner_id, file_name = (part.strip() for part in parts)
    if not owner_id or not file_name or file_name in {".", ".."}:
        return None
    return SourcePath(path=path, owner_id=owner_id, file_name=file_name)


def thumbnail_file_name(file_name: str) -> str:
    suffix = PurePosixPath(file_name).suffix
    if suffix.lower() == ".pdf":
        return file_name[: -len(suffix)] + THUMBNAIL_EXTENSION
    return file_name + THUMBNAIL_EXTENSION


def thumbnail_path_for(source: SourcePath, thumbnail_prefix: str) -> str:
    prefix = thumbnail_prefix if thumbnail_prefix.endswith("/") else thumbnail_prefix + "/"
    return f"{prefix}{source.owner_id}/{thumbnail_file_name(source.file_name)}"


def public_url(base_url: str, bucket: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{bucket}/{quote(path, safe='/')}"
