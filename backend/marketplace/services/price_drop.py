import logging
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from marketplace.core.config import get_settings
from marketplace.models.favorite import Favorite
from marketplace.models.notification import RelatedEntityType
from marketplace.services.deals import CENTS, to_decimal
from marketplace.services.notifications import filter_recipients_by_cooldown, notify_users
from marketplace.services.push import DeliveryResult

logger = logging.getLogger(__name__)

PRICE_DROP_PREFIX = "Preço reduzido"
# Older rows were written without the cedilla; both count for the cooldown.
PRICE_DROP_PREFIXES = (PRICE_DROP_PREFIX, "Preco reduzido")


def format_currency(value) -> str:
    """Format as Brazilian real, e.g. ``R$ 1.234,56``. Never raises."""
    try:
        amount = Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
        grouped = f"{amount:,.2f}"
        return "R$ " + grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    except Exception:
        try:
            return f"R$ {float(value):.2f}"
        except (TypeError, ValueError):
            return f"R$ {value}"


def calculate_drop(old, new) -> Decimal:
    """Fractional drop from ``old`` to ``new``; 0 unless both are known and it actually fell."""
    previous = to_decimal(old)
    current = to_decimal(new)
    if previous is None or current is None:
        return Decimal(0)
    if previous <= 0 or current <= 0 or current >= previous:
        return Decimal(0)
    return (previous - current) / previous


def build_price_drop_message(title, old_sale, new_sale, old_rent, new_rent, sale_hit: bool, rent_hit: bool) -> str:
    name = (title or "").strip() or "sem título"
    message = f'{PRICE_DROP_PREFIX}: o imóvel "{name}" ficou mais barato.'
    if sale_hit:
        message += f" Venda: de {format_currency(old_sale)} para {format_currency(new_sale)}."
    if rent_hit:
        message += f" Aluguel: de {format_currency(old_rent)} para {format_currency(new_rent)}."
    return message


def favoriting_user_ids(db: Session, property_id: int) -> list[int]:
    return [user_id for (user_id,) in db.query(Favorite.user_id).filter(Favorite.property_id == property_id).all()]


def notify_price_drop_if_needed(
    db: Session,
    property_id: int,
    title: str | None,
    old_sale=None,
    new_sale=None,
    old_rent=None,
    new_rent=None,
    now: datetime | None = None,
) -> DeliveryResult | None:
    settings = get_settings()
    threshold = Decimal(str(settings.PRICE_DROP_THRESHOLD))

    sale_hit = calculate_drop(old_sale, new_sale) >= threshold
    rent_hit = calculate_drop(old_rent, new_rent) >= threshold
    if not sale_hit and not rent_hit:
        return None

    recipients = favoriting_user_ids(db, property_id)
    if not recipients:
        return None

    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    cutoff = now - timedelta(hours=settings.PRICE_DROP_COOLDOWN_HOURS)
    allowed = filter_recipients_by_cooldown(
        db, recipients, RelatedEntityType.property, property_id, PRICE_DROP_PREFIXES, cutoff
    )
    if not allowed:
        logger.info("Price drop on property %s suppressed by cooldown", property_id)
        return None

    message = build_price_drop_message(title, old_sale, new_sale, old_rent, new_rent, sale_hit, rent_hit)
    return notify_users(db, message, allowed, RelatedEntityType.property, property_id)
