from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StorageObjectEvent(BaseModel):
    """Storage object metadata delivered with an object finalize notification."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    bucket: str
    content_type: Optional[str] = Field(default=None, alias="contentType")


class PubSubMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    data: Optional[str] = None
    attributes: Dict[str, str] = Field(default_factory=dict)
    message_id: Optional[str] = Field(default=None, alias="messageId")


class PubSubPushEnvelope(BaseModel):
    """Body of a Pub/Sub push request for a storage notification."""

    model_config = ConfigDict(extra="ignore")

    message: PubSubMessage
    subscription: Optional[str] = None
