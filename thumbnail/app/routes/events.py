import base64
import binascii
import json
import time

from fastapi import APIRouter, Request
from pydantic import ValidationError

from ..models.events import PubSubPushEnvelope, StorageObjectEvent
from ..models.results import SkipReason, ThumbnailResult
from ..utils.logging import logger

router = APIRouter(prefix="/api/v1", tags=["Thumbnails"])

FINALIZE_EVENT_TYPE = "OBJECT_FINALIZE"


async def _run_generator(request: Request, event: StorageObjectEvent) -> ThumbnailResult:
    start_time = time.time()
    generator = request.app.state.container.generator

    result = await generator.handle(event)

    logger.log_step("storage_event_processed", {
        "source_path": event.name,
        "bucket": event.bucket,
        "status": result.status.value,
        "process_time": time.time() - start_time
    })
    return result


@router.post("/events/storage", response_model=ThumbnailResult)
async def storage_object_finalized(request: Request):
    """Handle a storage object payload delivered directly (e.g. by Eventarc).

    Bodies that are not a storage object are acknowledged with a skipped
    result instead of a validation error.
    """
    try:
        event = StorageObjectEvent.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        logger.log_error("storage_event_malformed", {
            "ce_type": request.headers.get("ce-type"),
            "error": str(e)
        })
        return ThumbnailResult.skipped(SkipReason.malformed_event)

    logger.log_step("storage_event_received", {
        "source_path": event.name,
        "bucket": event.bucket,
        "content_type": event.content_type,
        "ce_type": request.headers.get("ce-type")
    })
    return await _run_generator(request, event)


@router.post("/events/pubsub", response_model=ThumbnailResult)
async def pubsub_push(request: Request, envelope: PubSubPushEnvelope):
    """Handle a Pub/Sub push of a Cloud Storage notification.

    Undecodable messages are acknowledged with a skipped result so the
    subscription does not redeliver them.
    """
    attributes = envelope.message.attributes
    event_type = attributes.get("eventType")
    if event_type and event_type != FINALIZE_EVENT_TYPE:
        logger.log_step("pubsub_event_ignored", {
            "event_type": event_type,
            "object_id": attributes.get("objectId")
        })
        return ThumbnailResult.skipped(SkipReason.unsupported_event, source_path=attributes.get("objectId"))

    try:
        payload = json.loads(base64.b64decode(envelope.message.data or "", validate=True))
        event = StorageObjectEvent.model_validate(payload)
    except (binascii.Error, ValueError, ValidationError) as e:
        logger.log_error("pubsub_message_undecodable", {
            "message_id": envelope.message.message_id,
            "subscription": envelope.subscription,
            "error": str(e)
        })
        return ThumbnailResult.skipped(SkipReason.malformed_event, source_path=attributes.get("objectId"))

    return await _run_generator(request, event)


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "agent": "thumbnail_agent"
    }
