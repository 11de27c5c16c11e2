import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, storage

from .logging import logger
from ..services.errors import StorageError


class BlobStore(ABC):
    """Blob storage operations the thumbnail pipeline depends on."""

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        ...

    @abstractmethod
    def upload(self, bucket: str, path: str, data: bytes, content_type: str,
               metadata: Optional[Dict[str, str]] = None) -> None:
        ...

    @abstractmethod
    def make_public(self, bucket: str, path: str) -> None:
        ...


def initialize_firebase_app(credentials_path: Optional[str] = None,
                            credentials_json: Optional[str] = None,
                            storage_bucket: Optional[str] = None,
                            name: str = firebase_admin._DEFAULT_APP_NAME) -> firebase_admin.App:
    """Create the process-wide Firebase app. Call once at startup."""
    if credentials_path:
        cred = credentials.Certificate(credentials_path)
        source = "file"
    elif credentials_json:
        cred = credentials.Certificate(json.loads(credentials_json))
        source = "environment"
    else:
        cred = credentials.ApplicationDefault()
        source = "application_default"

    options: Dict[str, Any] = {}
    if storage_bucket:
        options["storageBucket"] = storage_bucket

    app = firebase_admin.initialize_app(cred, options, name=name)
    logger.log_step("firebase_app_initialized", {
        "credentials_source": source,
        "storage_bucket": storage_bucket
    })
    return app


class FirebaseBlobStore(BlobStore):
    """Blob store backed by Cloud Storage through the Firebase Admin SDK."""

    def __init__(self, app: firebase_admin.App) -> None:
        self.app = app

    def _blob(self, bucket: str, path: str):
        return storage.bucket(bucket, app=self.app).blob(path)

    def download(self, bucket: str, path: str) -> bytes:
        try:
            return self._blob(bucket, path).download_as_bytes()
        except Exception as e:
            raise StorageError(f"Failed to download gs://{bucket}/{path}: {e}") from e

    def upload(self, bucket: str, path: str, data: bytes, content_type: str,
               metadata: Optional[Dict[str, str]] = None) -> None:
        try:
            blob = self._blob(bucket, path)
            if metadata:
                blob.metadata = metadata
            blob.upload_from_string(data, content_type=content_type)
        except Exception as e:
            raise StorageError(f"Failed to upload gs://{bucket}/{path}: {e}") from e

    def make_public(self, bucket: str, path: str) -> None:
        try:
            self._blob(bucket, path).make_public()
        except Exception as e:
            raise StorageError(f"Failed to make gs://{bucket}/{path} public: {e}") from e


class LocalBlobStore(BlobStore):
    """Blob store on the local filesystem, one directory per bucket.

    Custom metadata is written next to the object as ``<name>.metadata.json``.
    """

    METADATA_SUFFIX = ".metadata.json"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        logger.log_step("local_blob_store_initialized", {"storage_root": str(self.root)})

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if bucket_root not in target.parents:
            raise StorageError(f"Path escapes bucket root: {path}")
        return target

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {target}: {e}") from e

    def upload(self, bucket: str, path: str, data: bytes, content_type: str,
               metadata: Optional[Dict[str, str]] = None) -> None:
        target = self._resolve(bucket, path)
        sidecar = {"contentType": content_type, "metadata": metadata or {}}
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("wb") as output:
                output.write(data)
            target.with_name(target.name + self.METADATA_SUFFIX).write_text(
                json.dumps(sidecar, indent=2), encoding="utf-8"
            )
        except OSError as e:
            raise StorageError(f"Failed to write {target}: {e}") from e

    def make_public(self, bucket: str, path: str) -> None:
        # Local objects have no ACLs; only check that the object exists.
        if not self._resolve(bucket, path).exists():
            raise StorageError(f"Cannot publish missing object: {bucket}/{path}")
