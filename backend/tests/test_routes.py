"""
HTTP route tests through the Flask test client.

Verifies:
- Customer endpoints return 401 without X-Customer-Id
- Admin endpoints return 403 without the admin token
- Ledger errors map to status codes with actionable messages
"""

from datetime import timedelta

import pytest

from restoledger.extensions import db
from restoledger.models import LoyaltyEarning, PushToken
from restoledger.services import wallet_service
from restoledger.time_utils import utcnow


ITEMS = [
    {"product_id": 1, "product_name": "Masala Dosa", "price": "20.00", "quantity": 2},
    {"product_id": 2, "product_name": "Filter Coffee", "price": "10.00", "quantity": 1},
]


# =============================================================================
# AUTH
# =============================================================================


class TestAccess:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/orders"),
            ("POST", "/api/loyalty/redeem"),
            ("GET", "/api/wallet"),
            ("GET", "/api/wallet/balance"),
            ("GET", "/api/cart"),
            ("POST", "/api/cart"),
        ],
    )
    def test_requires_customer(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_customer_header(self, client, db_session):
        resp = client.get("/api/wallet/balance", headers={"X-Customer-Id": "abc"})
        assert resp.status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/settings"),
            ("PUT", "/api/settings"),
            ("POST", "/api/orders/CDX0101-001/accept"),
        ],
    )
    def test_requires_admin(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, headers={"X-Admin-Token": "wrong"})
        assert resp.status_code == 403

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckoutRoute:
    def test_place_order_with_wallet(self, client, make_customer, fund_wallet, configure, customer_headers):
        configure(minimum_cart_total="10.00")
        customer = make_customer()
        fund_wallet(customer.id, 2000)

        resp = client.post(
            "/api/orders",
            json={"items": ITEMS, "wallet_used": "15.00", "restaurant_name": "Crispy Dosa Mumbai"},
            headers=customer_headers(customer.id),
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == 1
        assert body["message"] == "Order Placed Successfully"
        assert body["order_number"].startswith("CDM")
        assert body["wallet_used"] == 15.0
        assert body["paid_total"] == 35.0
        assert wallet_service.get_balance(customer.id) == 500

    def test_wallet_over_balance(self, client, make_customer, fund_wallet, customer_headers):
        customer = make_customer()
        fund_wallet(customer.id, 2000)

        resp = client.post(
            "/api/orders",
            json={"items": ITEMS, "wallet_used": "25.00"},
            headers=customer_headers(customer.id),
        )

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["status"] == 0
        assert body["message"] == "You can use max £20.00 from wallet"
        assert body["max_usable"] == 20.0

    def test_below_minimum(self, client, make_customer, configure, customer_headers):
        configure(minimum_cart_total="100.00")
        customer = make_customer()

        resp = client.post("/api/orders", json={"items": ITEMS}, headers=customer_headers(customer.id))

        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Minimum order amount is £100.00"

    def test_malformed_item(self, client, make_customer, customer_headers):
        customer = make_customer()
        items = [{"product_id": 1, "price": "abc", "quantity": 1}]

        resp = client.post("/api/orders", json={"items": items}, headers=customer_headers(customer.id))

        assert resp.status_code == 400
        assert "items[0].price" in resp.get_json()["message"]

    def test_checkout_from_cart(self, client, make_customer, customer_headers):
        customer = make_customer()
        headers = customer_headers(customer.id)
        for payload in (
            {"product_id": 1, "product_name": "Masala Dosa", "product_price": "20.00", "product_quantity": 2},
            {"product_id": 2, "product_name": "Filter Coffee", "product_price": "10.00"},
        ):
            assert client.post("/api/cart", json=payload, headers=headers).status_code == 200

        cart = client.get("/api/cart", headers=headers).get_json()
        assert len(cart["items"]) == 2

        resp = client.post("/api/orders", json={}, headers=headers)

        assert resp.status_code == 200
        assert resp.get_json()["paid_total"] == 50.0
        assert client.get("/api/cart", headers=headers).get_json()["items"] == []

    def test_accept_order(self, client, make_customer, customer_headers, admin_headers):
        customer = make_customer()
        placed = client.post("/api/orders", json={"items": ITEMS}, headers=customer_headers(customer.id))
        order_number = placed.get_json()["order_number"]

        resp = client.post(
            f"/api/orders/{order_number}/accept",
            json={"ready_in_minutes": 15},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["ready_estimate_at"].endswith("Z")

    def test_accept_unknown_order(self, client, db_session, admin_headers):
        resp = client.post("/api/orders/CDX0101-999/accept", json={"ready_in_minutes": 15}, headers=admin_headers)
        assert resp.status_code == 404


# =============================================================================
# WALLET / LOYALTY
# =============================================================================


class TestWalletAndLoyaltyRoutes:
    def test_balance_and_summary(self, client, make_customer, fund_wallet, customer_headers):
        customer = make_customer()
        fund_wallet(customer.id, 1250)
        headers = customer_headers(customer.id)

        balance = client.get("/api/wallet/balance", headers=headers).get_json()
        summary = client.get("/api/wallet", headers=headers).get_json()

        assert balance["balance"] == 12.5
        assert balance["balance_cents"] == 1250
        assert summary["wallet_balance"] == "£12.50"
        assert len(summary["history"]) == 1

    def test_redeem_not_enough_points(self, client, make_customer, customer_headers):
        customer = make_customer()

        resp = client.post("/api/loyalty/redeem", headers=customer_headers(customer.id))

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["required_points"] == 10
        assert body["available_points"] == 0

    def test_redeem_points(self, client, make_customer, customer_headers):
        customer = make_customer()
        now = utcnow()
        db.session.add(LoyaltyEarning(
            customer_id=customer.id,
            points_earned=23,
            points_remaining=23,
            available_from=now - timedelta(hours=2),
            expires_at=now + timedelta(days=10),
        ))
        db.session.commit()

        resp = client.post("/api/loyalty/redeem", headers=customer_headers(customer.id))

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["points_redeemed"] == 20
        assert body["wallet_amount"] == 2.0
        assert body["wallet_balance"] == 2.0


# =============================================================================
# SIGNUP / SETTINGS
# =============================================================================


class TestSignupAndSettingsRoutes:
    def test_register_with_referral(self, client, make_customer, configure):
        configure(signup_bonus="1.00")
        referrer = make_customer("Referrer")

        resp = client.post(
            "/api/customers",
            json={"full_name": "New Friend", "email": "friend@example.com", "referral_code": referrer.referral_code},
        )

        assert resp.status_code == 201
        created = resp.get_json()["customer"]
        assert created["referred_by_customer_id"] == referrer.id
        assert wallet_service.get_balance(created["id"]) == 100

    def test_register_requires_name(self, client, db_session):
        resp = client.post("/api/customers", json={"email": "x@example.com"})
        assert resp.status_code == 400

    def test_settings_round_trip(self, client, db_session, admin_headers):
        resp = client.put(
            "/api/settings",
            json={"referral_bonus": "5.00", "redeem_rate_points": 25},
            headers=admin_headers,
        )
        assert resp.status_code == 200

        current = client.get("/api/settings", headers=admin_headers).get_json()["settings"]
        assert current["referral_bonus_cents"] == 500
        assert current["redeem_rate_points"] == 25

    def test_push_token_and_cart_removal(self, client, make_customer, customer_headers):
        customer = make_customer()
        headers = customer_headers(customer.id)

        assert client.post("/api/push-tokens", json={"token": "device-1"}, headers=headers).status_code == 200
        assert client.post("/api/push-tokens", json={}, headers=headers).status_code == 400
        assert db.session.query(PushToken).filter_by(user_id=customer.id).count() == 1

        client.post("/api/cart", json={"product_id": 9, "product_name": "Vada", "product_price": "3.00"}, headers=headers)
        assert client.delete("/api/cart/9", headers=headers).status_code == 200
        assert client.delete("/api/cart/9", headers=headers).status_code == 404

    def test_settings_rejects_unknown_key(self, client, db_session, admin_headers):
        resp = client.put("/api/settings", json={"free_food": True}, headers=admin_headers)
        assert resp.status_code == 400
        assert "free_food" in resp.get_json()["message"]
