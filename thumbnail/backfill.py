"""Thumbnail backfill script for papers that never received a thumbnail"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add repository root to path
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR.parent) not in sys.path:
    sys.path.append(str(ROOT_DIR.parent))

from thumbnail.app.config import settings
from thumbnail.app.dependencies import ServiceContainer, build_container
from thumbnail.app.models.events import StorageObjectEvent
from thumbnail.app.models.results import ThumbnailStatus
from thumbnail.app.utils.logging import logger

PDF_CONTENT_TYPE = "application/pdf"


async def backfill(container: ServiceContainer, bucket: str, limit: int) -> int:
    """Regenerate thumbnails for papers lacking one. Returns the failure count."""
    papers = container.paper_repository.find_missing_thumbnails(limit)
    print(f"Found {len(papers)} papers without a thumbnail")

    failures = 0
    for paper in papers:
        event = StorageObjectEvent(name=paper.storage_path, bucket=bucket, content_type=PDF_CONTENT_TYPE)
        result = await container.generator.handle(event)

        if result.status == ThumbnailStatus.ok:
            print(f"✓ {paper.storage_path} -> {result.url}")
        else:
            failures += 1
            detail = result.error_kind or result.reason
            print(f"✗ {paper.storage_path}: {result.status.value} ({detail.value if detail else 'unknown'})")

    return failures


def check_latest(container: ServiceContainer) -> bool:
    paper = container.paper_repository.find_latest()
    if paper is None:
        print("No papers found.")
        return True

    print(f"Latest paper: {paper.title}")
    print(f"File name: {paper.file_name}")
    print(f"Thumbnail URL: {paper.thumbnail_url}")

    base = settings.PUBLIC_URL_BASE.rstrip("/")
    if paper.thumbnail_url and paper.thumbnail_url.startswith(base):
        print("✓ Thumbnail URL is present")
        return True
    print("✗ Thumbnail URL is missing or does not point at the public storage host")
    return False


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--bucket", default=settings.STORAGE_BUCKET, help="Bucket holding the source PDFs")
    parser.add_argument("--limit", type=int, default=50, help="Maximum number of papers to process")
    parser.add_argument("--check-latest", action="store_true",
                        help="Only report the thumbnail of the most recently created paper")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    if not args.check_latest and not args.bucket:
        print("✗ Error: a bucket is required (--bucket or STORAGE_BUCKET)")
        return 2

    try:
        container = build_container(settings)
    except Exception as e:
        print(f"✗ Error: {str(e)}")
        logger.log_error("backfill_startup_failed", {"error": str(e)})
        return 1

    try:
        if args.check_latest:
            return 0 if check_latest(container) else 1
        failures = await backfill(container, args.bucket, args.limit)
        return 1 if failures else 0
    finally:
        container.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
