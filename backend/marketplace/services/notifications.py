import logging
import math
from datetime import datetime, timezone

from sqlalchemy import insert, or_
from sqlalchemy.orm import Session

from marketplace.core.config import get_settings
from marketplace.core.errors import NotFoundError, ValidationError
from marketplace.models.notification import DeviceToken, Notification, RelatedEntityType
from marketplace.models.user import User, UserRole
from marketplace.services.push import DeliveryResult, send_push_notifications

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _coerce_id(raw) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value != int(value):
        return None
    return int(value)


def unique_recipient_ids(recipient_ids) -> list[int]:
    ids = (_coerce_id(raw) for raw in recipient_ids or [])
    return list(dict.fromkeys(i for i in ids if i is not None))


def notify_users(
    db: Session,
    message: str,
    recipient_ids,
    entity_type: RelatedEntityType,
    entity_id: int | None = None,
    send_push: bool = True,
) -> DeliveryResult | None:
    """Store one notification per recipient, then push it to their devices.

    Returns ``None`` when there is nothing to send (blank message, no valid
    recipients) or when push is disabled.
    """
    text = (message or "").strip()
    if not text:
        return None
    recipients = unique_recipient_ids(recipient_ids)
    if not recipients:
        return None

    settings = get_settings()
    entity_type = RelatedEntityType(entity_type)
    created_at = _now()
    rows = [
        {
            "message": text,
            "related_entity_type": entity_type,
            "related_entity_id": entity_id,
            "recipient_id": rid,
            "is_read": False,
            "created_at": created_at,
        }
        for rid in recipients
    ]
    batch_size = settings.NOTIFICATION_INSERT_BATCH_SIZE
    try:
        for i in range(0, len(rows), batch_size):
            db.execute(insert(Notification), rows[i : i + batch_size])
        db.commit()
    except Exception:
        db.rollback()
        raise

    if not send_push:
        return None

    try:
        result = send_push_notifications(db, text, recipients, entity_type.value, entity_id)
    except Exception:
        logger.exception("Push delivery failed for %s %s", entity_type.value, entity_id)
        return None
    logger.info(
        "Notified %d user(s) about %s %s; push %s",
        len(recipients),
        entity_type.value,
        entity_id,
        result.as_dict(),
    )
    return result


def filter_recipients_by_cooldown(
    db: Session,
    recipient_ids,
    entity_type: RelatedEntityType,
    entity_id: int | None,
    message_prefixes: tuple[str, ...],
    cutoff: datetime,
) -> list[int]:
    """Drop recipients already notified about this entity (message prefix match) since ``cutoff``."""
    recipients = unique_recipient_ids(recipient_ids)
    if not recipients:
        return []

    prefix_filters = [Notification.message.like(f"{prefix}%") for prefix in message_prefixes]
    rows = (
        db.query(Notification.recipient_id)
        .filter(
            Notification.recipient_id.in_(recipients),
            Notification.related_entity_type == RelatedEntityType(entity_type),
            Notification.related_entity_id == entity_id,
            or_(*prefix_filters),
            Notification.created_at >= cutoff,
        )
        .distinct()
        .all()
    )
    blocked = {recipient_id for (recipient_id,) in rows}
    return [rid for rid in recipients if rid not in blocked]


def notify_admins(
    db: Session,
    message: str,
    entity_type: RelatedEntityType,
    entity_id: int | None,
) -> DeliveryResult | None:
    admin_ids = [
        admin_id
        for (admin_id,) in db.query(User.id).filter(User.role == UserRole.admin, User.is_active == True).all()
    ]
    if admin_ids:
        return notify_users(db, message, admin_ids, entity_type, entity_id)

    text = (message or "").strip()
    if not text:
        return None
    # No admin accounts yet: keep a broadcast row so the first admin sees it.
    db.add(
        Notification(
            message=text,
            related_entity_type=RelatedEntityType(entity_type),
            related_entity_id=entity_id,
            recipient_id=None,
        )
    )
    db.commit()
    return None


def list_notifications(db: Session, user: User, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.query(Notification)
    if user.role == UserRole.admin:
        query = query.filter(or_(Notification.recipient_id == user.id, Notification.recipient_id.is_(None)))
    else:
        query = query.filter(Notification.recipient_id == user.id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_notification_read(db: Session, user: User, notification_id: int) -> Notification:
    item = db.get(Notification, notification_id)
    visible = item is not None and (
        item.recipient_id == user.id or (item.recipient_id is None and user.role == UserRole.admin)
    )
    if not visible:
        raise NotFoundError("Notification not found")
    item.is_read = True
    db.commit()
    db.refresh(item)
    return item


def register_device_token(db: Session, user: User, token: str, platform: str | None = None) -> DeviceToken:
    value = (token or "").strip()
    if not value:
        raise ValidationError("Device token is required")

    # A device that changes hands keeps its token; it now belongs to the new user.
    row = db.query(DeviceToken).filter(DeviceToken.fcm_token == value).first()
    if row is None:
        row = DeviceToken(user_id=user.id, fcm_token=value, platform=platform)
        db.add(row)
    else:
        row.user_id = user.id
        row.platform = platform or row.platform
    db.commit()
    db.refresh(row)
    return row


def remove_device_token(db: Session, user: User, token: str) -> None:
    deleted = (
        db.query(DeviceToken)
        .filter(DeviceToken.fcm_token == (token or "").strip(), DeviceToken.user_id == user.id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise NotFoundError("Device token not found")
    db.commit()
