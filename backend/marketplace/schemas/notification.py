from datetime import datetime
from pydantic import BaseModel

from marketplace.models.notification import RelatedEntityType


class NotificationResponse(BaseModel):
    id: int
    message: str
    related_entity_type: RelatedEntityType
    related_entity_id: int | None
    recipient_id: int | None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class DeviceTokenCreate(BaseModel):
    token: str
    platform: str | None = None


class DeviceTokenDelete(BaseModel):
    token: str


class DeviceTokenResponse(BaseModel):
    id: int
    fcm_token: str
    platform: str | None
    created_at: datetime

    class Config:
        from_attributes = True
