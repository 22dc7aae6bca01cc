from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.database import get_db
from marketplace.core.deps import get_current_user
from marketplace.models.user import User
from marketplace.schemas.notification import (
    DeviceTokenCreate,
    DeviceTokenDelete,
    DeviceTokenResponse,
    NotificationResponse,
)
from marketplace.services import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notifications.list_notifications(db, current_user, unread_only=unread_only, limit=min(max(limit, 1), 200))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return notifications.mark_notification_read(db, current_user, notification_id)


@router.post("/device-tokens", response_model=DeviceTokenResponse, status_code=201)
def register_device_token(
    payload: DeviceTokenCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notifications.register_device_token(db, current_user, payload.token, payload.platform)


@router.delete("/device-tokens")
def remove_device_token(
    payload: DeviceTokenDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notifications.remove_device_token(db, current_user, payload.token)
    return {"status": "removed"}
