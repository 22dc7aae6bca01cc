"""Best-effort notification side effects.

Property workflows enqueue these after their transaction commits. A failure
here is logged and dropped: the committed state change stays the source of
truth, notifications are advisory.
"""

import logging

from marketplace.core.database import SessionLocal
from marketplace.models.notification import RelatedEntityType
from marketplace.services.notifications import notify_admins, notify_users
from marketplace.services.price_drop import notify_price_drop_if_needed
from marketplace.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def _money(value) -> str | None:
    # Decimals travel as strings through the JSON serializer.
    return None if value is None else str(value)


@celery_app.task
def notify_admins_task(message: str, entity_type: str, entity_id: int | None) -> dict:
    db = SessionLocal()
    try:
        result = notify_admins(db, message, RelatedEntityType(entity_type), entity_id)
        return {"status": "sent", "push": result.as_dict() if result else None}
    except Exception:
        logger.exception("Admin notification failed for %s %s", entity_type, entity_id)
        return {"status": "failed"}
    finally:
        db.close()


@celery_app.task
def notify_user_task(message: str, recipient_ids: list[int], entity_type: str, entity_id: int | None) -> dict:
    db = SessionLocal()
    try:
        result = notify_users(db, message, recipient_ids, RelatedEntityType(entity_type), entity_id)
        return {"status": "sent", "push": result.as_dict() if result else None}
    except Exception:
        logger.exception("User notification failed for %s %s", entity_type, entity_id)
        return {"status": "failed"}
    finally:
        db.close()


@celery_app.task
def notify_price_drop_task(
    property_id: int,
    title: str | None,
    old_sale: str | None,
    new_sale: str | None,
    old_rent: str | None,
    new_rent: str | None,
) -> dict:
    db = SessionLocal()
    try:
        result = notify_price_drop_if_needed(db, property_id, title, old_sale, new_sale, old_rent, new_rent)
        return {"status": "sent" if result else "skipped", "push": result.as_dict() if result else None}
    except Exception:
        logger.exception("Price-drop notification failed for property %s", property_id)
        return {"status": "failed"}
    finally:
        db.close()


def enqueue(task, *args) -> None:
    """Queue ``task``; a broker outage is logged, never raised to the caller."""
    try:
        task.delay(*args)
    except Exception:
        logger.exception("Could not enqueue %s", task.name)


def enqueue_admin_notification(message: str, entity_type: RelatedEntityType, entity_id: int | None) -> None:
    enqueue(notify_admins_task, message, entity_type.value, entity_id)


def enqueue_user_notification(
    message: str, recipient_ids: list[int], entity_type: RelatedEntityType, entity_id: int | None
) -> None:
    enqueue(notify_user_task, message, recipient_ids, entity_type.value, entity_id)


def enqueue_price_drop(property_id: int, title: str | None, old_sale, new_sale, old_rent, new_rent) -> None:
    enqueue(
        notify_price_drop_task,
        property_id,
        title,
        _money(old_sale),
        _money(new_sale),
        _money(old_rent),
        _money(new_rent),
    )
