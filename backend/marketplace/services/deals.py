"""Commission and deal-amount arithmetic.

All money is handled as ``Decimal`` and rounded half-up to cents, so the same
inputs always produce the same commission no matter how they arrived
(JSON float, form string or stored ``Numeric``).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from marketplace.core.config import get_settings
from marketplace.core.errors import ValidationError
from marketplace.models.sale import RecurrenceInterval

CENTS = Decimal("0.01")


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_decimal(value) -> Decimal | None:
    """Parse a number-like value, ``None`` when it is not a finite number."""
    if _is_blank(value) or isinstance(value, bool):
        return None
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def to_cents(value: Decimal) -> Decimal:
    # Money and commission rates are both stored with two decimal places.
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def resolve_deal_amount(explicit, fallback) -> Decimal:
    """Deal amount rounded to cents, so the commission is computed from the stored value."""
    if _is_blank(explicit):
        amount = to_decimal(fallback)
        if amount is None:
            raise ValidationError("Deal amount is required: the property has no price for this deal type")
        return to_cents(amount)

    amount = to_decimal(explicit)
    if amount is None or amount < 0:
        raise ValidationError("Invalid price")
    return to_cents(amount)


def calculate_commission_amount(amount, rate_percent) -> Decimal:
    value = to_decimal(amount)
    rate = to_decimal(rate_percent)
    if value is None or rate is None:
        raise ValidationError("Invalid commission input")
    return (value * rate / Decimal(100)).quantize(CENTS, rounding=ROUND_HALF_UP)


def resolve_commission_rate(explicit=None, stored=None) -> Decimal:
    """Explicit rate, else the stored one, else the default; always at the stored two-decimal scale."""
    if not _is_blank(explicit):
        rate = to_decimal(explicit)
        if rate is None or rate < 0 or rate > 100:
            raise ValidationError("Invalid commission rate")
        return to_cents(rate)
    if stored is not None:
        rate = to_decimal(stored)
        if rate is not None:
            return to_cents(rate)
    return to_cents(Decimal(str(get_settings().DEFAULT_COMMISSION_RATE)))


def parse_recurrence_interval(raw) -> RecurrenceInterval:
    if isinstance(raw, RecurrenceInterval):
        return raw
    if _is_blank(raw):
        return RecurrenceInterval.none
    if not isinstance(raw, str):
        raise ValidationError("Invalid recurrence interval")
    try:
        return RecurrenceInterval(raw.strip().lower())
    except ValueError:
        raise ValidationError("Invalid recurrence interval")


def parse_commission_cycles(raw) -> int:
    if _is_blank(raw):
        return 0
    if isinstance(raw, bool):
        raise ValidationError("Commission cycles must be a non-negative integer")
    value = to_decimal(raw)
    if value is None or value < 0 or value != value.to_integral_value():
        raise ValidationError("Commission cycles must be a non-negative integer")
    return int(value)
