from decimal import Decimal

from sqlalchemy.exc import OperationalError

from conftest import auth_headers
from marketplace.models import Property, PropertyStatus, Purpose, Sale, UserRole

API = "/api/v1"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["x-request-id"]


def test_missing_or_bad_token_is_401(client):
    response = client.post(f"{API}/properties/1/deal", json={"type": "sale"})
    assert response.status_code == 401
    assert response.json() == {"error": "Could not validate credentials"}

    response = client.get(f"{API}/favorites", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_inactive_user_is_403(client, make_user):
    user = make_user(is_active=False)
    response = client.get(f"{API}/favorites", headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json() == {"error": "User inactive"}


def test_close_and_cancel_deal_over_http(client, db, broker, make_property):
    prop = make_property(price_sale=Decimal("300000"), price_rent=Decimal("2000"))

    response = client.post(
        f"{API}/properties/{prop.id}/deal",
        json={"type": "venda", "commission_rate": 6},
        headers=auth_headers(broker),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "sold"
    assert body["deal_type"] == "sale"
    assert body["sale_price"] == 300000
    assert body["commission_amount"] == 18000
    assert body["recurrence_interval"] == "none"

    response = client.delete(f"{API}/properties/{prop.id}/deal", headers=auth_headers(broker))
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["sale_value"] is None
    assert db.query(Sale).count() == 0


def test_errors_use_the_error_envelope(client, db, broker, make_property):
    prop = make_property(purpose=Purpose.sale)
    headers = auth_headers(broker)

    mismatch = client.post(f"{API}/properties/{prop.id}/deal", json={"type": "rent"}, headers=headers)
    assert mismatch.status_code == 403
    assert "does not allow" in mismatch.json()["error"]

    bad_status = client.patch(f"{API}/properties/{prop.id}", json={"status": "arquivado"}, headers=headers)
    assert bad_status.status_code == 400
    assert bad_status.json() == {"error": "Invalid status"}

    bad_price = client.post(
        f"{API}/properties/{prop.id}/deal", json={"type": "sale", "amount": "-1"}, headers=headers
    )
    assert bad_price.status_code == 400
    assert bad_price.json() == {"error": "Invalid price"}

    missing = client.post(f"{API}/properties/{prop.id}/deal", json={}, headers=headers)
    assert missing.status_code == 400
    assert missing.json()["error"].startswith("type")

    unknown = client.post(f"{API}/properties/9999/deal", json={"type": "sale"}, headers=headers)
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Property not found"}

    db.expire_all()
    assert db.get(Property, prop.id).status == PropertyStatus.approved


def test_database_outage_is_503(client, broker, make_property, monkeypatch):
    prop = make_property()

    def unreachable(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr("marketplace.services.properties.close_deal", unreachable)

    response = client.post(f"{API}/properties/{prop.id}/deal", json={"type": "sale"}, headers=auth_headers(broker))

    assert response.status_code == 503
    assert response.json() == {"error": "Database unavailable, try again later"}


def test_create_and_update_property(client, admin, broker):
    response = client.post(
        f"{API}/properties",
        json={"title": "Casa", "property_type": "casa", "purpose": "Venda e Aluguel", "price": 350000},
        headers=auth_headers(broker),
    )
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "pending_approval"
    assert created["purpose"] == "Venda e Aluguel"
    assert created["broker_id"] == broker.id

    response = client.patch(
        f"{API}/properties/{created['id']}",
        json={"price_rent": "1800", "bedrooms": 3},
        headers=auth_headers(broker),
    )
    assert response.status_code == 200
    assert response.json()["price_rent"] == 1800
    assert response.json()["bedrooms"] == 3


def test_admin_moderation_routes(client, admin, broker, make_property):
    prop = make_property(status=PropertyStatus.pending_approval)

    forbidden = client.post(f"{API}/admin/properties/{prop.id}/approve", headers=auth_headers(broker))
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Insufficient permissions"}

    approved = client.post(f"{API}/admin/properties/{prop.id}/approve", headers=auth_headers(admin))
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    rejected = client.patch(
        f"{API}/admin/properties/{prop.id}/status", json={"status": "Rejeitado"}, headers=auth_headers(admin)
    )
    assert rejected.json()["status"] == "rejected"

    sold = client.patch(f"{API}/admin/properties/{prop.id}/status", json={"status": "sold"}, headers=auth_headers(admin))
    assert sold.status_code == 403


def test_favorites_flow(client, make_user, make_property):
    user = make_user(UserRole.client)
    prop = make_property(title="Favorito")
    headers = auth_headers(user)

    assert client.post(f"{API}/properties/{prop.id}/favorite", headers=headers).status_code == 201
    duplicate = client.post(f"{API}/properties/{prop.id}/favorite", headers=headers)
    assert duplicate.status_code == 409
    assert "error" in duplicate.json()

    listing = client.get(f"{API}/favorites", headers=headers).json()
    assert [item["title"] for item in listing] == ["Favorito"]

    assert client.delete(f"{API}/properties/{prop.id}/favorite", headers=headers).status_code == 200
    assert client.delete(f"{API}/properties/{prop.id}/favorite", headers=headers).status_code == 404
    assert client.post(f"{API}/properties/9999/favorite", headers=headers).status_code == 404


def test_notifications_and_device_tokens(client, admin, broker, make_property):
    prop = make_property(title="Galpão")
    client.post(f"{API}/properties/{prop.id}/deal", json={"type": "sale"}, headers=auth_headers(broker))

    inbox = client.get(f"{API}/notifications", headers=auth_headers(admin)).json()
    assert [item["message"] for item in inbox] == ['Imóvel "Galpão" marcado como vendido.']

    read = client.post(f"{API}/notifications/{inbox[0]['id']}/read", headers=auth_headers(admin))
    assert read.json()["is_read"] is True

    registered = client.post(
        f"{API}/notifications/device-tokens", json={"token": "abc", "platform": "android"}, headers=auth_headers(broker)
    )
    assert registered.status_code == 201
    assert registered.json()["fcm_token"] == "abc"

    removed = client.request(
        "DELETE", f"{API}/notifications/device-tokens", json={"token": "abc"}, headers=auth_headers(broker)
    )
    assert removed.status_code == 200


def test_broker_dashboard(client, broker, make_property, make_user):
    prop = make_property(price_sale=Decimal("100000"))
    client.post(f"{API}/properties/{prop.id}/deal", json={"type": "sale"}, headers=auth_headers(broker))

    commissions = client.get(f"{API}/brokers/me/commissions", headers=auth_headers(broker)).json()
    assert commissions[0]["commission_amount"] == 5000

    report = client.get(f"{API}/brokers/me/performance", headers=auth_headers(broker)).json()
    assert report["total_deals"] == 1
    assert report["total_commission"] == 5000
    assert report["status_breakdown"]["sold"] == 1

    client_user = make_user(UserRole.client)
    assert client.get(f"{API}/brokers/me/performance", headers=auth_headers(client_user)).status_code == 403
