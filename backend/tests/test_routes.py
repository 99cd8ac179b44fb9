"""
HTTP tests.

Verifies:
- unauthenticated requests return 401 with the error envelope
- sellers are denied admin operations (403)
- sale create / view / delete through the API
- read-only listings (activity, movements, products, settings, reports)
"""

import pytest

from conftest import build_cart, line, make_product
from salestock.services.sales_service import create_sale_from_payload


# =============================================================================
# AUTHENTICATION
# =============================================================================


class TestAuthRoutes:

    def test_login_and_me(self, client, seller):
        resp = client.post("/api/auth/login", json={"username": "seller", "password": "Password123!"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["user"]["username"] == "seller"
        assert "password_hash" not in body["user"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.get_json()["user"]["id"] == seller.id

    def test_bad_credentials(self, client, seller):
        resp = client.post("/api/auth/login", json={"username": "seller", "password": "wrong-one"})
        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "error": "Invalid credentials"}

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "seller"})
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_logout_revokes_token(self, client, seller_headers):
        assert client.post("/api/auth/logout", headers=seller_headers).status_code == 200
        assert client.get("/api/auth/me", headers=seller_headers).status_code == 401

    def test_login_and_logout_are_recorded(self, client, admin_headers):
        client.post("/api/auth/logout", headers=admin_headers)
        token = client.post(
            "/api/auth/login", json={"username": "admin", "password": "Password123!"}
        ).get_json()["token"]

        resp = client.get(
            "/api/activity-logs?entity_type=user",
            headers={"Authorization": f"Bearer {token}"},
        )
        actions = [e["action_type"] for e in resp.get_json()["items"]]
        assert actions == ["user_login", "user_logout", "user_login"]

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/sales/"),
            ("GET", "/api/sales/"),
            ("GET", "/api/sales/1"),
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/activity-logs"),
            ("GET", "/api/inventory/movements"),
            ("POST", "/api/inventory/restock"),
            ("GET", "/api/inventory/alerts"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/settings/company"),
            ("PUT", "/api/settings/company"),
            ("GET", "/api/reports/summary"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["success"] is False

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# SELLER DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestSellerDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/activity-logs"),
            ("POST", "/api/inventory/restock"),
            ("POST", "/api/products"),
            ("PUT", "/api/settings/company"),
            ("GET", "/api/reports/summary"),
        ],
    )
    def test_forbidden(self, client, seller_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=seller_headers, json={})
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Permission denied"


# =============================================================================
# SALES
# =============================================================================


class TestSalesRoutes:

    def test_create_view_delete(self, client, seller_headers, admin_headers, iron_product):
        resp = client.post("/api/sales/", json=build_cart([line(iron_product, 30)]), headers=seller_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        sale_id = body["sale"]["id"]
        assert len(body["sale"]["items"]) == 1

        view = client.get(f"/api/sales/{sale_id}", headers=seller_headers)
        assert view.status_code == 200
        totals = view.get_json()["totals"]
        assert totals["total_ttc"] == pytest.approx(8250.0)
        assert totals["currency"] == "HTG"

        product = client.get(f"/api/products/{iron_product.id}", headers=seller_headers).get_json()["product"]
        assert product["available_stock"] == 70.0

        deleted = client.delete(f"/api/sales/{sale_id}", headers=admin_headers)
        assert deleted.status_code == 200
        body = deleted.get_json()
        assert body["success"] is True
        assert body["restoredProducts"] == 1
        assert body["failures"] == []

        product = client.get(f"/api/products/{iron_product.id}", headers=seller_headers).get_json()["product"]
        assert product["available_stock"] == 100.0

        assert client.get(f"/api/sales/{sale_id}", headers=admin_headers).status_code == 404

    def test_insufficient_stock_envelope(self, client, seller_headers, standard_product):
        resp = client.post("/api/sales/", json=build_cart([line(standard_product, 12)]), headers=seller_headers)
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["success"] is False
        assert body["product_id"] == standard_product.id
        assert body["requested"] == 12.0
        assert body["available"] == 10.0
        assert "retryable" not in body

    def test_invalid_body(self, client, seller_headers):
        resp = client.post("/api/sales/", data="not json", headers=seller_headers)
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_delete_unknown_sale(self, client, admin_headers):
        resp = client.delete("/api/sales/9999", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.get_json() == {"success": False, "error": "Sale not found", "sale_id": 9999}

    def test_seller_cannot_view_others_sale(self, client, seller_headers, other_seller, standard_product):
        sale = create_sale_from_payload(other_seller, build_cart([line(standard_product, 1)]))
        assert client.get(f"/api/sales/{sale.id}", headers=seller_headers).status_code == 404

    def test_listing(self, client, seller_headers, admin_headers, standard_product):
        for _ in range(3):
            client.post("/api/sales/", json=build_cart([line(standard_product, 1)]), headers=seller_headers)

        resp = client.get("/api/sales/?page=1&page_size=2", headers=admin_headers)
        body = resp.get_json()
        assert body["total"] == 3
        assert len(body["sales"]) == 2

    def test_listing_reports_clamped_page(self, client, seller_headers, standard_product):
        client.post("/api/sales/", json=build_cart([line(standard_product, 1)]), headers=seller_headers)

        body = client.get("/api/sales/?page=0&page_size=500", headers=seller_headers).get_json()
        assert body["page"] == 1
        assert body["page_size"] == 200
        assert len(body["sales"]) == 1


# =============================================================================
# INVENTORY, PRODUCTS, SETTINGS, REPORTS
# =============================================================================


class TestReadAndAdminRoutes:

    def test_restock_and_movements(self, client, admin_headers, ceramic_product):
        resp = client.post(
            "/api/inventory/restock",
            json={"product_id": ceramic_product.id, "quantity": 10},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["movement"]["stock_field"] == "stock_boite"

        movements = client.get(
            f"/api/inventory/movements?product_id={ceramic_product.id}", headers=admin_headers
        ).get_json()
        assert movements["count"] == 1

    def test_restock_validation(self, client, admin_headers, standard_product):
        resp = client.post(
            "/api/inventory/restock",
            json={"product_id": standard_product.id, "quantity": -2},
            headers=admin_headers,
        )
        assert resp.status_code == 400

        resp = client.post(
            "/api/inventory/restock",
            json={"product_id": standard_product.id, "quantity": "1.005"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "decimal places" in resp.get_json()["error"]

    def test_alerts(self, client, seller_headers, db_session):
        make_product(db_session, name="Cement", quantity=0)
        body = client.get("/api/inventory/alerts", headers=seller_headers).get_json()
        assert body["count"] == 1
        assert body["alerts"][0]["severity"] == "critical"

    def test_create_and_list_products(self, client, admin_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Tile 30x30", "category": "ceramic", "price": 400, "stock": 12},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["product"]["stock_field"] == "stock_boite"

        listing = client.get("/api/products?category=ceramic", headers=admin_headers).get_json()
        assert [p["name"] for p in listing["items"]] == ["Tile 30x30"]

        assert client.get("/api/products/4040", headers=admin_headers).status_code == 404

    def test_settings(self, client, admin_headers):
        current = client.get("/api/settings/company", headers=admin_headers).get_json()["settings"]
        assert current["usd_htg_rate"] == 132.0
        assert current["stored"] is False

        resp = client.put("/api/settings/company", json={"usd_htg_rate": 0}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.put("/api/settings/company", json={"usd_htg_rate": 135}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["settings"]["usd_htg_rate"] == 135.0

    def test_report_summary(self, client, admin_headers, seller_headers, standard_product):
        client.post("/api/sales/", json=build_cart([line(standard_product, 2)]), headers=seller_headers)

        body = client.get("/api/reports/summary", headers=admin_headers).get_json()
        assert body["summary"]["sales_count"] == 1
        assert body["summary"]["revenue_ttc"] == pytest.approx(220.0)

        bad = client.get("/api/reports/summary?start_date=yesterday", headers=admin_headers)
        assert bad.status_code == 400

    def test_activity_log_filters(self, client, admin_headers, seller_headers, standard_product):
        client.post("/api/sales/", json=build_cart([line(standard_product, 1)]), headers=seller_headers)

        body = client.get(
            "/api/activity-logs?action_type=sale_created&search=WALK-IN", headers=admin_headers
        ).get_json()
        assert body["total"] == 1
        assert body["items"][0]["user_name"] == "Sam Seller"

        bad = client.get("/api/activity-logs?start_date=someday", headers=admin_headers)
        assert bad.status_code == 400


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["database"]["status"] == "healthy"
