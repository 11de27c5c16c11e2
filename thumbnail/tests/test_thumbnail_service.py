import unittest
from datetime import datetime
from unittest.mock import MagicMock, patch

from bson import ObjectId

from thumbnail.app.models.events import StorageObjectEvent
from thumbnail.app.models.paper import PaperRecord
from thumbnail.app.models.results import FailureKind, SkipReason, ThumbnailStatus
from thumbnail.app.services.errors import RecordUpdateError
from thumbnail.app.services.renderer import PdfThumbnailRenderer
from thumbnail.app.services.thumbnail_service import ThumbnailGenerator, select_paper_record

from .support import BUCKET, CountingSurfaceFactory, FakeBlobStore, FakePaperRepository, make_pdf, paper

SOURCE_PATH = "papers/u123/midterm.pdf"
THUMBNAIL_PATH = "thumbnails/u123/midterm.jpg"
EXPECTED_URL = f"https://storage.googleapis.com/{BUCKET}/{THUMBNAIL_PATH}"


def pdf_event(name: str = SOURCE_PATH, content_type: str = "application/pdf") -> StorageObjectEvent:
    return StorageObjectEvent(name=name, bucket=BUCKET, content_type=content_type)


class TestSelectPaperRecord(unittest.TestCase):

    def test_filters_by_owner(self):
        records = [paper("a", "midterm.pdf", "u999"), paper("b", "midterm.pdf", "u123")]
        self.assertEqual(select_paper_record(records, "u123").id, "b")

    def test_prefers_most_recent(self):
        records = [
            paper("old", "midterm.pdf", "u123", created_at=datetime(2024, 1, 1)),
            paper("new", "midterm.pdf", "u123", created_at=datetime(2024, 6, 1)),
            paper("undated", "midterm.pdf", "u123"),
        ]
        self.assertEqual(select_paper_record(records, "u123").id, "new")

    def test_no_candidates(self):
        self.assertIsNone(select_paper_record([paper("a", "midterm.pdf", "u999")], "u123"))


class TestThumbnailGenerator(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.blob_store = FakeBlobStore({(BUCKET, SOURCE_PATH): make_pdf(600, 800)})
        self.repository = FakePaperRepository()
        self.factory = CountingSurfaceFactory()
        self.generator = ThumbnailGenerator(
            self.blob_store,
            self.repository,
            PdfThumbnailRenderer(self.factory, target_width=300, jpeg_quality=80),
        )

    def assert_no_writes(self):
        self.assertEqual(self.blob_store.uploads, [])
        self.assertEqual(self.blob_store.published, [])
        self.assertEqual(self.repository.updates, [])

    async def test_filtered_inputs_do_nothing(self):
        cases = [
            (pdf_event(content_type="image/png"), SkipReason.not_pdf),
            (pdf_event(content_type=None), SkipReason.not_pdf),
            (pdf_event(name="uploads/u123/midterm.pdf"), SkipReason.outside_source_prefix),
            (pdf_event(name="thumbnails/u123/midterm.pdf"), SkipReason.outside_source_prefix),
            (pdf_event(name="papers/thumbnails/midterm.pdf"), SkipReason.thumbnail_path),
            (pdf_event(name="papers/midterm.pdf"), SkipReason.malformed_path),
        ]
        for event, reason in cases:
            with self.subTest(path=event.name, content_type=event.content_type):
                result = await self.generator.handle(event)
                self.assertEqual(result.status, ThumbnailStatus.skipped)
                self.assertEqual(result.reason, reason)
                self.assertIsNone(result.url)
        self.assert_no_writes()
        self.assertEqual(self.factory.created, [])

    async def test_generates_uploads_and_links_thumbnail(self):
        self.repository.records.append(paper("p1", "midterm.pdf", "u123"))

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.status, ThumbnailStatus.ok)
        self.assertEqual(result.url, EXPECTED_URL)
        self.assertEqual(result.thumbnail_path, THUMBNAIL_PATH)
        self.assertEqual(result.record_id, "p1")

        self.assertEqual(len(self.blob_store.uploads), 1)
        upload = self.blob_store.uploads[0]
        self.assertEqual((upload.bucket, upload.path), (BUCKET, THUMBNAIL_PATH))
        self.assertEqual(upload.content_type, "image/jpeg")
        self.assertEqual(upload.metadata["originalFile"], SOURCE_PATH)
        self.assertIsNotNone(datetime.fromisoformat(upload.metadata["generatedAt"]).tzinfo)
        self.assertTrue(upload.data.startswith(b"\xff\xd8"))

        self.assertEqual(self.blob_store.published, [(BUCKET, THUMBNAIL_PATH)])
        self.assertEqual(self.repository.updates, [("p1", EXPECTED_URL)])
        self.assertEqual(len(self.factory.created), len(self.factory.destroyed))

    async def test_updates_only_the_uploaders_record(self):
        self.repository.records.extend([
            paper("other", "midterm.pdf", "u999", created_at=datetime(2024, 9, 1)),
            paper("mine", "midterm.pdf", "u123", created_at=datetime(2024, 1, 1)),
        ])

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.record_id, "mine")
        self.assertEqual(self.repository.updates, [("mine", EXPECTED_URL)])

    async def test_updates_only_the_newest_duplicate(self):
        self.repository.records.extend([
            paper("first", "midterm.pdf", "u123", created_at=datetime(2024, 1, 1)),
            paper("second", "midterm.pdf", "u123", created_at=datetime(2024, 3, 1)),
        ])

        await self.generator.handle(pdf_event())

        self.assertEqual(self.repository.updates, [("second", EXPECTED_URL)])

    async def test_storage_path_match_wins(self):
        self.repository.records.extend([
            paper("by-name", "midterm.pdf", "u123", created_at=datetime(2024, 6, 1)),
            paper("by-path", "renamed.pdf", "u123", created_at=datetime(2024, 1, 1), storage_path=SOURCE_PATH),
        ])

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.record_id, "by-path")
        self.assertEqual(self.repository.file_name_queries, [])

    async def test_newest_storage_path_duplicate_wins(self):
        self.repository.records.extend([
            paper("old", "midterm.pdf", "u123", created_at=datetime(2024, 1, 1), storage_path=SOURCE_PATH),
            paper("new", "midterm.pdf", "u123", created_at=datetime(2024, 6, 1), storage_path=SOURCE_PATH),
        ])

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.record_id, "new")
        self.assertEqual(self.repository.updates, [("new", EXPECTED_URL)])

    async def test_update_uses_raw_document_key(self):
        object_id = ObjectId()
        self.repository.records.append(PaperRecord.from_document({
            "_id": object_id,
            "fileName": "midterm.pdf",
            "uploaderId": "u123",
            "storagePath": SOURCE_PATH,
        }))

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.record_id, str(object_id))
        self.assertEqual(self.repository.updates, [(object_id, EXPECTED_URL)])

    async def test_file_name_lookup_is_bounded(self):
        await self.generator.handle(pdf_event())
        self.assertEqual(self.repository.file_name_queries, [("midterm.pdf", 10)])

    async def test_orphan_thumbnail_is_still_a_success(self):
        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.status, ThumbnailStatus.ok)
        self.assertEqual(result.url, EXPECTED_URL)
        self.assertIsNone(result.record_id)
        self.assertTrue(result.is_orphan)
        self.assertIn((BUCKET, THUMBNAIL_PATH), self.blob_store.objects)
        self.assertEqual(self.repository.updates, [])

    async def test_zero_page_document_fails_without_writes(self):
        document = MagicMock(page_count=0)
        with patch("thumbnail.app.services.renderer.fitz.open", return_value=document):
            result = await self.generator.handle(pdf_event())

        self.assertEqual(result.status, ThumbnailStatus.failed)
        self.assertEqual(result.error_kind, FailureKind.no_pages)
        self.assertIsNone(result.url)
        self.assert_no_writes()

    async def test_missing_source_is_storage_failure(self):
        result = await self.generator.handle(pdf_event(name="papers/u123/missing.pdf"))

        self.assertEqual(result.status, ThumbnailStatus.failed)
        self.assertEqual(result.error_kind, FailureKind.storage)
        self.assert_no_writes()

    async def test_corrupt_pdf_is_render_failure(self):
        self.blob_store.objects[(BUCKET, SOURCE_PATH)] = b"%PDF-1.4 truncated garbage"

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.status, ThumbnailStatus.failed)
        self.assertIn(result.error_kind, (FailureKind.render, FailureKind.no_pages))
        self.assert_no_writes()

    async def test_database_failure_keeps_thumbnail(self):
        self.repository.records.append(paper("p1", "midterm.pdf", "u123"))
        self.repository.set_thumbnail_url = MagicMock(side_effect=RecordUpdateError("write refused"))

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.status, ThumbnailStatus.failed)
        self.assertEqual(result.error_kind, FailureKind.database)
        self.assertEqual(len(self.blob_store.uploads), 1)

    async def test_unexpected_errors_are_contained(self):
        self.repository.find_by_storage_path = MagicMock(side_effect=RuntimeError("driver exploded"))

        result = await self.generator.handle(pdf_event())

        self.assertEqual(result.status, ThumbnailStatus.failed)
        self.assertEqual(result.error_kind, FailureKind.unexpected)
        self.assertIn("driver exploded", result.error)

    async def test_render_failure_releases_surface(self):
        with patch.object(PdfThumbnailRenderer, "_draw_page", side_effect=RuntimeError("canvas lost")):
            result = await self.generator.handle(pdf_event())

        self.assertEqual(result.error_kind, FailureKind.render)
        self.assertEqual(len(self.factory.created), 1)
        self.assertEqual(len(self.factory.destroyed), 1)
        self.assertTrue(self.factory.created[0].released)
        self.assert_no_writes()

    async def test_reinvocation_overwrites_same_path(self):
        self.repository.records.append(paper("p1", "midterm.pdf", "u123"))

        first = await self.generator.handle(pdf_event())
        second = await self.generator.handle(pdf_event())

        self.assertEqual(first.url, second.url)
        self.assertEqual([upload.path for upload in self.blob_store.uploads], [THUMBNAIL_PATH, THUMBNAIL_PATH])
        self.assertEqual(self.repository.updates, [("p1", EXPECTED_URL), ("p1", EXPECTED_URL)])
        self.assertEqual(self.repository.records[0].thumbnail_url, EXPECTED_URL)
        self.assertEqual(len(self.factory.created), 2)
        self.assertEqual(len(self.factory.destroyed), 2)


if __name__ == '__main__':
    unittest.main()
