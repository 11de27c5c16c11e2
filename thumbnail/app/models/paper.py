from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaperRecord(BaseModel):
    """The subset of a `papers` document the thumbnail pipeline reads.

    ``id`` is for display; ``document_id`` is the raw ``_id`` and is what
    updates filter on, so string and ObjectId keys both round-trip.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", arbitrary_types_allowed=True)

    id: str
    document_id: Any = Field(default=None, exclude=True)
    file_name: Optional[str] = Field(default=None, alias="fileName")
    uploader_id: Optional[str] = Field(default=None, alias="uploaderId")
    title: Optional[str] = None
    storage_path: Optional[str] = Field(default=None, alias="storagePath")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def key(self) -> Any:
        return self.id if self.document_id is None else self.document_id

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "PaperRecord":
        data = dict(document)
        raw_id = data.pop("_id")
        data["document_id"] = raw_id
        data["id"] = str(raw_id)
        return cls.model_validate(data)
