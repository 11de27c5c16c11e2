from ..models.results import FailureKind


class ThumbnailError(Exception):
    """Base class for failures inside the thumbnail pipeline."""

    kind = FailureKind.unexpected


class NoPagesError(ThumbnailError):
    kind = FailureKind.no_pages


class RenderError(ThumbnailError):
    kind = FailureKind.render


class StorageError(ThumbnailError):
    kind = FailureKind.storage


class RecordUpdateError(ThumbnailError):
    kind = FailureKind.database
