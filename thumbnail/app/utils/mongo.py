from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError
from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection

from .logging import logger
from ..models.paper import PaperRecord
from ..services.errors import RecordUpdateError


class PaperRepository:
    """Access to the `papers` collection for the thumbnail agent"""

    def __init__(self, collection: Collection, client: Optional[MongoClient] = None):
        self.collection = collection
        self.client = client

    @classmethod
    def connect(cls, uri: str, database_name: str, collection_name: str) -> "PaperRepository":
        """Connect to MongoDB and verify the server answers"""
        logger.log_step("mongodb_connection", {
            "database": database_name,
            "collection": collection_name
        })
        try:
            client = MongoClient(uri)
            client.admin.command('ping')
        except Exception as e:
            logger.log_error("mongodb_connection_failed", {"error": str(e)})
            raise

        logger.log_step("mongodb_connected", {"status": "success"})
        return cls(client[database_name][collection_name], client=client)

    def _parse_documents(self, documents: Iterable[Dict[str, Any]]) -> List[PaperRecord]:
        """Parse documents one at a time; unreadable ones are logged and skipped"""
        records: List[PaperRecord] = []
        for document in documents:
            try:
                records.append(PaperRecord.from_document(document))
            except (KeyError, ValidationError) as e:
                logger.log_warning("paper_document_unreadable", {
                    "document_id": str(document.get("_id")),
                    "error": str(e)
                })
        return records

    def find_by_storage_path(self, storage_path: str, limit: int = 10) -> Optional[PaperRecord]:
        """Newest readable record saved with this exact storagePath"""
        try:
            documents = list(
                self.collection.find({"storagePath": storage_path}).sort("createdAt", DESCENDING).limit(limit)
            )
        except Exception as e:
            raise RecordUpdateError(f"Paper lookup by storagePath failed: {e}") from e
        records = self._parse_documents(documents)
        return records[0] if records else None

    def find_by_file_name(self, file_name: str, limit: int) -> List[PaperRecord]:
        try:
            documents = list(self.collection.find({"fileName": file_name}).limit(limit))
        except Exception as e:
            raise RecordUpdateError(f"Paper lookup by fileName failed: {e}") from e
        return self._parse_documents(documents)

    def set_thumbnail_url(self, record_key: Any, thumbnail_url: str) -> bool:
        """Set thumbnailUrl and stamp updatedAt with the server clock.

        ``record_key`` is the raw ``_id`` as read from the collection.
        """
        try:
            result = self.collection.update_one(
                {"_id": record_key},
                {
                    "$set": {"thumbnailUrl": thumbnail_url},
                    "$currentDate": {"updatedAt": True},
                },
            )
        except Exception as e:
            raise RecordUpdateError(f"Failed to update paper {record_key}: {e}") from e
        return result.matched_count > 0

    def find_missing_thumbnails(self, limit: int) -> List[PaperRecord]:
        query = {
            "storagePath": {"$exists": True, "$ne": None},
            "$or": [{"thumbnailUrl": {"$exists": False}}, {"thumbnailUrl": None}, {"thumbnailUrl": ""}],
        }
        documents = self.collection.find(query).sort("createdAt", DESCENDING).limit(limit)
        return self._parse_documents(documents)

    def find_latest(self) -> Optional[PaperRecord]:
        document = self.collection.find_one(sort=[("createdAt", DESCENDING)])
        records = self._parse_documents([document] if document else [])
        return records[0] if records else None

    def close(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            logger.log_step("mongodb_connection_closed")
