from decimal import Decimal

import pytest

from marketplace.core.errors import ValidationError
from marketplace.models import RecurrenceInterval
from marketplace.services.deals import (
    calculate_commission_amount,
    parse_commission_cycles,
    parse_recurrence_interval,
    resolve_commission_rate,
    resolve_deal_amount,
)


def test_commission_is_rounded_half_up_to_cents():
    assert calculate_commission_amount(1000, 5) == Decimal("50.00")
    assert calculate_commission_amount(Decimal("333.33"), Decimal("7.5")) == Decimal("25.00")
    # 0.125 -> 0.13, not banker's 0.12
    assert calculate_commission_amount("2.50", "5") == Decimal("0.13")
    assert calculate_commission_amount(300000, 6) == Decimal("18000.00")


def test_commission_from_float_input_is_exact():
    assert calculate_commission_amount(0.1 + 0.2, 100) == Decimal("0.30")


def test_resolve_deal_amount_uses_fallback_when_blank():
    assert resolve_deal_amount(None, Decimal("300000")) == Decimal("300000")
    assert resolve_deal_amount("  ", 2000) == Decimal("2000")
    assert resolve_deal_amount("1500.50", 2000) == Decimal("1500.50")
    assert resolve_deal_amount(0, 2000) == Decimal("0")


@pytest.mark.parametrize("raw", ["-1", "abc", "nan", "Infinity", True])
def test_resolve_deal_amount_rejects_invalid(raw):
    with pytest.raises(ValidationError, match="Invalid price"):
        resolve_deal_amount(raw, 1000)


def test_resolve_deal_amount_without_any_price():
    with pytest.raises(ValidationError):
        resolve_deal_amount(None, None)


def test_commission_rate_precedence():
    assert resolve_commission_rate("6", Decimal("4")) == Decimal("6")
    assert resolve_commission_rate(None, Decimal("4")) == Decimal("4")
    assert resolve_commission_rate("", None) == Decimal("5.0")
    with pytest.raises(ValidationError):
        resolve_commission_rate("150")
    with pytest.raises(ValidationError):
        resolve_commission_rate("-0.5")


def test_rates_and_amounts_use_the_stored_scale():
    assert resolve_commission_rate("7.125") == Decimal("7.13")
    assert resolve_commission_rate(None, Decimal("4.005")) == Decimal("4.01")
    assert resolve_deal_amount("10.005", None) == Decimal("10.01")
    assert resolve_deal_amount(None, 999.995) == Decimal("1000.00")


def test_recurrence_interval():
    assert parse_recurrence_interval(None) == RecurrenceInterval.none
    assert parse_recurrence_interval("") == RecurrenceInterval.none
    assert parse_recurrence_interval("Monthly") == RecurrenceInterval.monthly
    with pytest.raises(ValidationError):
        parse_recurrence_interval("daily")


def test_commission_cycles():
    assert parse_commission_cycles(None) == 0
    assert parse_commission_cycles("3") == 3
    assert parse_commission_cycles(2.0) == 2
    for bad in ("1.5", -1, "x", True):
        with pytest.raises(ValidationError):
            parse_commission_cycles(bad)
