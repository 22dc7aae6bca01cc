from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from marketplace.models import Notification, PropertyStatus, Purpose, RelatedEntityType, UserRole
from marketplace.services import properties
from marketplace.services.price_drop import (
    calculate_drop,
    format_currency,
    notify_price_drop_if_needed,
)


@pytest.fixture
def fan(make_user):
    return make_user(UserRole.client, full_name="Fan")


@pytest.fixture
def listing(make_property, favorite, fan):
    prop = make_property(title="Casa Verde", purpose=Purpose.sale, price=Decimal("1000"))
    favorite(fan, prop)
    return prop


def _notifications(db, user):
    db.expire_all()
    return db.query(Notification).filter(Notification.recipient_id == user.id).order_by(Notification.id).all()


def test_currency_formatting():
    assert format_currency(Decimal("1234.56")) == "R$ 1.234,56"
    assert format_currency(1000000) == "R$ 1.000.000,00"
    assert format_currency("900") == "R$ 900,00"
    assert format_currency("abc") == "R$ abc"


def test_calculate_drop_only_counts_real_reductions():
    assert calculate_drop(1000, 900) == Decimal("0.1")
    assert calculate_drop(1000, 1100) == 0
    assert calculate_drop(1000, None) == 0
    assert calculate_drop(None, 900) == 0
    assert calculate_drop(1000, 0) == 0


def test_ten_percent_drop_notifies_favoriting_users(db, broker, fan, listing):
    properties.update_property(db, listing.id, broker, {"price": "900"})

    (item,) = _notifications(db, fan)
    assert item.message == (
        'Preço reduzido: o imóvel "Casa Verde" ficou mais barato. Venda: de R$ 1.000,00 para R$ 900,00.'
    )
    assert item.related_entity_type == RelatedEntityType.property
    assert item.related_entity_id == listing.id
    assert _notifications(db, broker) == []


def test_drop_just_under_threshold_is_silent(db, broker, fan, listing):
    properties.update_property(db, listing.id, broker, {"price": "901"})
    assert _notifications(db, fan) == []


def test_price_increase_is_silent(db, broker, fan, listing):
    properties.update_property(db, listing.id, broker, {"price": "1500"})
    assert _notifications(db, fan) == []


def test_drop_on_unapproved_listing_is_silent(db, broker, fan, make_property, favorite):
    prop = make_property(status=PropertyStatus.pending_approval, purpose=Purpose.sale, price=Decimal("1000"))
    favorite(fan, prop)

    properties.update_property(db, prop.id, broker, {"price": "500"})

    assert _notifications(db, fan) == []


def test_message_reports_both_prices_when_both_dropped(db, fan, listing):
    result = notify_price_drop_if_needed(db, listing.id, "Casa Verde", "1000", "800", "2000", "1500")

    assert result is not None
    (item,) = _notifications(db, fan)
    assert "Venda: de R$ 1.000,00 para R$ 800,00." in item.message
    assert "Aluguel: de R$ 2.000,00 para R$ 1.500,00." in item.message


def test_only_the_qualifying_price_is_reported(db, fan, listing):
    notify_price_drop_if_needed(db, listing.id, None, "1000", "950", "2000", "1000")

    (item,) = _notifications(db, fan)
    assert item.message.startswith('Preço reduzido: o imóvel "sem título"')
    assert "Venda" not in item.message
    assert "Aluguel: de R$ 2.000,00 para R$ 1.000,00." in item.message


def test_cooldown_suppresses_repeat_alerts(db, fan, listing):
    notify_price_drop_if_needed(db, listing.id, "Casa Verde", "1000", "800")
    assert notify_price_drop_if_needed(db, listing.id, "Casa Verde", "800", "600") is None
    assert len(_notifications(db, fan)) == 1

    # Move the first alert outside the six-hour window.
    db.query(Notification).update({Notification.created_at: datetime.utcnow() - timedelta(hours=7)})
    db.commit()

    notify_price_drop_if_needed(db, listing.id, "Casa Verde", "600", "500")
    assert len(_notifications(db, fan)) == 2


def test_cooldown_matches_unaccented_prefix(db, fan, listing):
    db.add(
        Notification(
            message="Preco reduzido: aviso antigo",
            related_entity_type=RelatedEntityType.property,
            related_entity_id=listing.id,
            recipient_id=fan.id,
        )
    )
    db.commit()

    assert notify_price_drop_if_needed(db, listing.id, "Casa Verde", "1000", "500") is None
    assert len(_notifications(db, fan)) == 1


def test_cooldown_is_per_recipient(db, make_user, favorite, fan, listing):
    notify_price_drop_if_needed(db, listing.id, "Casa Verde", "1000", "800")
    newcomer = make_user(UserRole.client)
    favorite(newcomer, listing)

    notify_price_drop_if_needed(db, listing.id, "Casa Verde", "800", "600")

    assert len(_notifications(db, fan)) == 1
    assert len(_notifications(db, newcomer)) == 1


def test_no_favorites_means_no_rows(db, make_property):
    prop = make_property()
    assert notify_price_drop_if_needed(db, prop.id, "x", "1000", "100") is None
    assert db.query(Notification).count() == 0
