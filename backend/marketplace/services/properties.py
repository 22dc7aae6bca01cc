"""Property lifecycle: moderation, owner edits and deal closing/cancellation.

Status flow::

    pending_approval --admin--> approved | rejected
    rejected --owner resubmits--> pending_approval
    approved | sold | rented --broker closes deal--> sold | rented
    sold | rented --broker cancels deal--> approved

Every workflow commits its writes in one transaction. Notifications are
queued only after the commit and can never undo it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from marketplace.models.notification import RelatedEntityType
from marketplace.models.property import Property, PropertyStatus, Purpose
from marketplace.models.sale import SALE_PROPERTY_CONSTRAINT, DealType, RecurrenceInterval, Sale
from marketplace.models.user import BrokerStatus, User, UserRole
from marketplace.services import deals
from marketplace.services.normalization import fold, parse_deal_type, parse_purpose, parse_status, purpose_allows
from marketplace.services.sales import DealFields, delete_sales_for_property, upsert_sale
from marketplace.workers.tasks import enqueue_admin_notification, enqueue_price_drop, enqueue_user_notification

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (PropertyStatus.sold, PropertyStatus.rented)
UNREVIEWED_STATUSES = (PropertyStatus.pending_approval, PropertyStatus.rejected)

DEAL_STATUS = {DealType.sale: PropertyStatus.sold, DealType.rent: PropertyStatus.rented}
STATUS_DEAL = {status: deal_type for deal_type, status in DEAL_STATUS.items()}
STATUS_LABELS = {
    PropertyStatus.sold: "vendido",
    PropertyStatus.rented: "alugado",
    PropertyStatus.approved: "aprovado",
    PropertyStatus.rejected: "rejeitado",
    PropertyStatus.pending_approval: "pendente de aprovação",
}

MONEY_FIELDS = {"price", "price_sale", "price_rent", "iptu_value", "condominio_value"}
INTEGER_FIELDS = {"bedrooms", "bathrooms", "garage_spots"}
TEXT_FIELDS = {"title", "description", "property_type", "address", "city", "state"}
EDITABLE_FIELDS = MONEY_FIELDS | INTEGER_FIELDS | TEXT_FIELDS | {"purpose", "area", "has_wifi", "commission_rate"}
PRICE_FIELDS = {"price", "price_sale", "price_rent"}
REQUIRED_ON_CREATE = ("title", "property_type", "purpose", "price")
TRUE_FLAGS = {"1", "true", "yes", "sim", "on"}
FALSE_FLAGS = {"", "0", "false", "no", "nao", "off"}


@dataclass
class DealTerms:
    deal_type: DealType
    amount: object = None
    commission_rate: object = None
    commission_cycles: int = 0
    recurrence_interval: RecurrenceInterval = RecurrenceInterval.none


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if value is None:
        return False
    if isinstance(value, str):
        flag = fold(value)
        if flag in TRUE_FLAGS:
            return True
        if flag in FALSE_FLAGS:
            return False
    raise ValidationError("Invalid has_wifi")


def _parse_money(key: str, value) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if key == "price":
            raise ValidationError("Invalid price")
        return None
    amount = deals.to_decimal(value)
    if amount is None or amount < 0:
        raise ValidationError("Invalid price")
    return deals.to_cents(amount)


def _parse_count(key: str, value) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = deals.to_decimal(value)
    if number is None or number < 0 or number != number.to_integral_value():
        raise ValidationError(f"Invalid {key}")
    return int(number)


def coerce_fields(fields: dict) -> dict:
    """Validate and convert the editable subset of ``fields``; unknown keys are ignored."""
    changes: dict = {}
    for key, value in fields.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key in MONEY_FIELDS:
            changes[key] = _parse_money(key, value)
        elif key in INTEGER_FIELDS:
            changes[key] = _parse_count(key, value)
        elif key == "area":
            area = None if value in (None, "") else deals.to_decimal(value)
            if value not in (None, "") and (area is None or area < 0):
                raise ValidationError("Invalid area")
            changes[key] = float(area) if area is not None else None
        elif key == "has_wifi":
            changes[key] = _parse_bool(value)
        elif key == "purpose":
            changes[key] = parse_purpose(value)
        elif key == "commission_rate":
            changes[key] = None if value in (None, "") else deals.resolve_commission_rate(value)
        else:
            text = value.strip() if isinstance(value, str) else value
            if key in ("title", "property_type") and not text:
                raise ValidationError(f"{key} is required")
            changes[key] = text or None
    return changes


def effective_prices(prop: Property) -> tuple[Decimal | None, Decimal | None]:
    """Publicly shown (sale, rent) prices; ``price`` stands in for the purpose's own price."""
    sale = prop.price_sale
    if sale is None and prop.purpose in (Purpose.sale, Purpose.sale_and_rent):
        sale = prop.price
    rent = prop.price_rent
    if rent is None and prop.purpose == Purpose.rent:
        rent = prop.price
    return sale, rent


# ---------------------------------------------------------------------------
# Guards and shared steps
# ---------------------------------------------------------------------------


def get_property(db: Session, property_id: int) -> Property:
    prop = db.get(Property, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    return prop


def _is_owner(prop: Property, user: User) -> bool:
    return user.id is not None and user.id in (prop.broker_id, prop.owner_id)


def _require_owner(prop: Property, user: User) -> None:
    if not _is_owner(prop, user):
        raise AuthorizationError("Access to this property is not allowed")


def _require_listing_broker(prop: Property, user: User) -> None:
    if user.role != UserRole.broker:
        raise AuthorizationError("Only brokers can close or cancel deals")
    if prop.broker_id != user.id:
        raise AuthorizationError("Access to this property is not allowed")


def _is_sale_conflict(exc: IntegrityError) -> bool:
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint:
        return constraint == SALE_PROPERTY_CONSTRAINT
    # SQLite names the column instead of the constraint.
    message = str(exc.orig)
    return SALE_PROPERTY_CONSTRAINT in message or "sales.property_id" in message


def _commit(db: Session, work):
    """Run ``work`` and commit; a unique-key race on the sale row is retried once, which turns the insert into an update."""
    for attempt in (1, 2):
        try:
            result = work()
            db.commit()
            return result
        except IntegrityError as exc:
            db.rollback()
            if not _is_sale_conflict(exc):
                raise
            if attempt == 2:
                raise ConflictError("The property was changed concurrently, try again")
            logger.warning("Concurrent sale write detected; retrying as update")
        except Exception:
            db.rollback()
            raise


def _apply_close(db: Session, prop: Property, broker: User, terms: DealTerms) -> Sale:
    _require_listing_broker(prop, broker)
    if not purpose_allows(prop.purpose, terms.deal_type):
        raise AuthorizationError(f"Property purpose '{prop.purpose.value}' does not allow a {terms.deal_type.value} deal")
    if prop.status in UNREVIEWED_STATUSES:
        raise AuthorizationError("Property must be approved before closing a deal")

    if terms.deal_type == DealType.sale:
        fallback = prop.price_sale if prop.price_sale is not None else prop.price
    else:
        fallback = prop.price_rent if prop.price_rent is not None else prop.price
    amount = deals.resolve_deal_amount(terms.amount, fallback)
    rate = deals.resolve_commission_rate(terms.commission_rate, prop.commission_rate)
    commission = deals.calculate_commission_amount(amount, rate)

    sale = upsert_sale(
        db,
        prop.id,
        DealFields(
            broker_id=broker.id,
            deal_type=terms.deal_type,
            sale_price=amount,
            commission_rate=rate,
            commission_amount=commission,
            iptu_value=prop.iptu_value,
            condominio_value=prop.condominio_value,
            commission_cycles=terms.commission_cycles,
            recurrence_interval=terms.recurrence_interval,
        ),
    )
    prop.status = DEAL_STATUS[terms.deal_type]
    prop.sale_value = amount
    prop.commission_rate = rate
    prop.commission_value = commission
    db.flush()
    return sale


def _apply_cancel(db: Session, prop: Property) -> None:
    if prop.status not in CLOSED_STATUSES:
        raise ValidationError("Only sold or rented properties have a deal to cancel")
    prop.status = PropertyStatus.approved
    prop.sale_value = None
    prop.commission_rate = None
    prop.commission_value = None
    delete_sales_for_property(db, prop.id)
    db.flush()


def _announce_deal(prop_id: int, title: str, status: PropertyStatus) -> None:
    enqueue_admin_notification(
        f'Imóvel "{title}" marcado como {STATUS_LABELS[status]}.', RelatedEntityType.property, prop_id
    )


def sale_summary(prop: Property, sale: Sale) -> dict:
    return {
        "property_id": prop.id,
        "status": prop.status,
        "sale_id": sale.id,
        "deal_type": sale.deal_type,
        "sale_price": sale.sale_price,
        "commission_rate": sale.commission_rate,
        "commission_amount": sale.commission_amount,
        "commission_cycles": sale.commission_cycles,
        "recurrence_interval": sale.recurrence_interval,
        "is_recurring": sale.is_recurring,
        "sale_date": sale.sale_date,
    }


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


def create_property(db: Session, caller: User, fields: dict) -> Property:
    if caller.role == UserRole.broker:
        if caller.broker_status != BrokerStatus.approved:
            raise AuthorizationError("Only approved brokers can create properties")
    elif caller.role != UserRole.client:
        raise AuthorizationError("Only brokers and clients can submit properties")

    missing = [key for key in REQUIRED_ON_CREATE if fields.get(key) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    changes = coerce_fields(fields)

    prop = Property(status=PropertyStatus.pending_approval, **changes)
    if caller.role == UserRole.broker:
        prop.broker_id = caller.id
    else:
        prop.owner_id = caller.id

    def work():
        db.add(prop)
        db.flush()
        return prop.id

    prop_id = _commit(db, work)
    title = prop.title
    enqueue_admin_notification(
        f'Novo imóvel aguardando aprovação: "{title}".', RelatedEntityType.property, prop_id
    )
    logger.info("Property %s submitted by user %s", prop_id, caller.id)
    db.refresh(prop)
    return prop


def update_property(db: Session, property_id: int, caller: User, fields: dict) -> Property:
    """Owner edit; fields stay editable in every status.

    A ``status`` key is routed through the state machine: ``sold``/``rented``
    close a deal with default terms, ``approved`` on a closed property cancels
    the deal and ``pending_approval`` resubmits a rejected listing.
    """
    prop = get_property(db, property_id)
    _require_owner(prop, caller)

    changes = coerce_fields(fields)
    target = parse_status(fields["status"]) if "status" in fields else None

    old_sale, old_rent = effective_prices(prop)
    was_approved = prop.status == PropertyStatus.approved
    closed_status: list[PropertyStatus] = []

    def work():
        closed_status.clear()
        current = get_property(db, property_id)
        for key, value in changes.items():
            setattr(current, key, value)

        if target is None or target == current.status and target not in CLOSED_STATUSES:
            pass
        elif target in CLOSED_STATUSES:
            _apply_close(db, current, caller, DealTerms(deal_type=STATUS_DEAL[target]))
            closed_status.append(target)
        elif target == PropertyStatus.approved and current.status in CLOSED_STATUSES:
            _require_listing_broker(current, caller)
            _apply_cancel(db, current)
        elif target == PropertyStatus.pending_approval and current.status == PropertyStatus.rejected:
            current.status = PropertyStatus.pending_approval
        else:
            raise AuthorizationError("Only administrators can approve or reject properties")
        db.flush()
        return current

    prop = _commit(db, work)
    new_sale, new_rent = effective_prices(prop)
    title = prop.title
    status = prop.status

    if closed_status:
        _announce_deal(property_id, title, closed_status[0])
    if was_approved and status == PropertyStatus.approved and PRICE_FIELDS & changes.keys():
        enqueue_price_drop(property_id, title, old_sale, new_sale, old_rent, new_rent)
    if target == PropertyStatus.pending_approval:
        enqueue_admin_notification(
            f'Imóvel "{title}" reenviado para aprovação.', RelatedEntityType.property, property_id
        )
    return prop


def close_deal(db: Session, property_id: int, caller: User, request: dict) -> dict:
    terms = DealTerms(
        deal_type=parse_deal_type(request.get("type")),
        amount=request.get("amount"),
        commission_rate=request.get("commission_rate"),
        commission_cycles=deals.parse_commission_cycles(request.get("commission_cycles")),
        recurrence_interval=deals.parse_recurrence_interval(request.get("recurrence_interval")),
    )

    def work():
        prop = get_property(db, property_id)
        sale = _apply_close(db, prop, caller, terms)
        return prop, sale

    prop, sale = _commit(db, work)
    summary = sale_summary(prop, sale)
    logger.info(
        "Deal closed on property %s: %s %s (commission %s)",
        property_id,
        summary["deal_type"].value,
        summary["sale_price"],
        summary["commission_amount"],
    )
    _announce_deal(property_id, prop.title, prop.status)
    return summary


def cancel_deal(db: Session, property_id: int, caller: User) -> Property:
    def work():
        prop = get_property(db, property_id)
        _require_listing_broker(prop, caller)
        _apply_cancel(db, prop)
        return prop

    prop = _commit(db, work)
    logger.info("Deal cancelled on property %s by broker %s", property_id, caller.id)
    enqueue_admin_notification(
        f'Negociação do imóvel "{prop.title}" cancelada; imóvel disponível novamente.',
        RelatedEntityType.property,
        property_id,
    )
    return prop


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------

ADMIN_TRANSITIONS: dict[PropertyStatus, set[PropertyStatus]] = {
    PropertyStatus.pending_approval: {PropertyStatus.approved, PropertyStatus.rejected},
    PropertyStatus.approved: {PropertyStatus.rejected, PropertyStatus.pending_approval},
    PropertyStatus.rejected: {PropertyStatus.approved, PropertyStatus.pending_approval},
    PropertyStatus.sold: set(),
    PropertyStatus.rented: set(),
}


def set_status_as_admin(db: Session, property_id: int, admin: User, raw_status) -> Property:
    if admin.role != UserRole.admin:
        raise AuthorizationError("Insufficient permissions")
    target = parse_status(raw_status)
    if target in CLOSED_STATUSES:
        raise AuthorizationError("Only the listing broker can close a deal")

    prop = get_property(db, property_id)
    if prop.status == target:
        return prop
    if target not in ADMIN_TRANSITIONS[prop.status]:
        raise ValidationError(
            f"Cannot move a property from {prop.status.value} to {target.value}; cancel the deal first"
        )

    def work():
        current = get_property(db, property_id)
        current.status = target
        db.flush()
        return current

    prop = _commit(db, work)
    recipient = prop.broker_id or prop.owner_id
    logger.info("Property %s moved to %s by admin %s", property_id, target.value, admin.id)
    if recipient is not None:
        enqueue_user_notification(
            f'Seu imóvel "{prop.title}" foi {STATUS_LABELS[target]}.',
            [recipient],
            RelatedEntityType.property,
            property_id,
        )
    return prop


def approve_property(db: Session, property_id: int, admin: User) -> Property:
    return set_status_as_admin(db, property_id, admin, PropertyStatus.approved)


def reject_property(db: Session, property_id: int, admin: User) -> Property:
    return set_status_as_admin(db, property_id, admin, PropertyStatus.rejected)
