"""Manual restock, stock alerts, movement history and product creation."""

from decimal import Decimal

import pytest

from conftest import build_cart, line, make_product
from salestock.errors import PermissionDeniedError, ValidationError
from salestock.extensions import db
from salestock.models import ActivityLog, Product, StockMovement
from salestock.services.products_service import create_product, product_view
from salestock.services.sales_service import create_sale_from_payload
from salestock.services.stock_ledger_service import get_stock_alerts, list_stock_movements, restock_product


def _reload(product_id: int) -> Product:
    db.session.expire_all()
    return db.session.get(Product, product_id)


class TestRestock:

    def test_restock_goes_to_resolved_counter(self, admin, iron_product):
        movement = restock_product(admin, iron_product.id, Decimal("25"), reason="Delivery #88")

        product = _reload(iron_product.id)
        assert product.stock_barre == Decimal("125")
        assert product.quantity == Decimal("0")

        assert movement.movement_type == "in"
        assert movement.quantity == Decimal("25")
        assert movement.previous_quantity == Decimal("100")
        assert movement.stock_field == "stock_barre"
        assert movement.reason == "Delivery #88"
        assert movement.sale_id is None

        entry = ActivityLog.query.filter_by(action_type="stock_adjusted").one()
        assert entry.entity_id == str(iron_product.id)
        assert entry.details["new_quantity"] == 125.0

    def test_default_reason(self, admin, standard_product):
        movement = restock_product(admin, standard_product.id, 5)
        assert movement.reason == "Manual restock"

    def test_seller_cannot_restock(self, seller, standard_product):
        with pytest.raises(PermissionDeniedError):
            restock_product(seller, standard_product.id, 5)
        assert _reload(standard_product.id).quantity == Decimal("10")

    def test_unknown_product(self, admin):
        with pytest.raises(ValidationError):
            restock_product(admin, 999, 5)

    def test_quantity_must_be_positive(self, admin, standard_product):
        with pytest.raises(ValidationError):
            restock_product(admin, standard_product.id, 0)


class TestStockAlerts:

    def test_severity_levels(self, db_session):
        make_product(db_session, name="Empty", quantity=Decimal("0"), alert_threshold=Decimal("5"))
        make_product(db_session, name="Critical", quantity=Decimal("3"), alert_threshold=Decimal("5"))
        make_product(db_session, name="Warning", quantity=Decimal("7"), alert_threshold=Decimal("5"))
        make_product(db_session, name="Fine", quantity=Decimal("50"), alert_threshold=Decimal("5"))
        make_product(db_session, name="Retired", quantity=Decimal("0"), is_active=False)

        alerts = get_stock_alerts()
        by_name = {a["product_name"]: a for a in alerts}

        assert set(by_name) == {"Empty", "Critical", "Warning"}
        assert by_name["Empty"]["severity"] == "critical"
        assert by_name["Critical"]["severity"] == "critical"
        assert by_name["Warning"]["severity"] == "warning"
        assert [a["product_name"] for a in alerts] == ["Empty", "Critical", "Warning"]

    def test_alerts_read_the_resolved_counter(self, db_session):
        make_product(
            db_session,
            name="Iron 8mm",
            category="iron",
            quantity=Decimal("500"),
            stock_barre=Decimal("2"),
            alert_threshold=Decimal("10"),
        )
        alerts = get_stock_alerts()
        assert alerts[0]["stock_field"] == "stock_barre"
        assert alerts[0]["available"] == 2.0


class TestMovementHistory:

    def test_filters(self, admin, seller, standard_product, iron_product):
        sale = create_sale_from_payload(
            seller, build_cart([line(standard_product, 1), line(iron_product, 2)])
        )
        restock_product(admin, standard_product.id, 4)

        assert len(list_stock_movements()) == 3
        assert len(list_stock_movements(product_id=standard_product.id)) == 2
        assert len(list_stock_movements(sale_id=sale.id)) == 2
        ins = list_stock_movements(movement_type="in")
        assert [m.product_id for m in ins] == [standard_product.id]

    def test_limit(self, admin, standard_product):
        for _ in range(3):
            restock_product(admin, standard_product.id, 1)
        assert len(list_stock_movements(limit=2)) == 2


class TestCreateProduct:

    def test_iron_opening_stock_lands_on_bars(self, admin):
        product = create_product(admin, {
            "name": "Iron bar 10mm",
            "category": "iron",
            "unit": "barre",
            "price": "180",
            "purchase_price": "150",
            "stock": "40",
        })

        view = product_view(product)
        assert view["stock_field"] == "stock_barre"
        assert view["available_stock"] == 40.0
        assert view["quantity"] == 0.0

        movement = StockMovement.query.filter_by(product_id=product.id).one()
        assert movement.reason == "Opening stock"
        assert movement.quantity == Decimal("40")
        assert ActivityLog.query.filter_by(action_type="product_added").count() == 1

    def test_without_opening_stock_no_movement(self, admin):
        product = create_product(admin, {"name": "Nails", "price": 50})
        assert product.quantity == Decimal("0")
        assert StockMovement.query.count() == 0

    def test_requires_admin(self, seller):
        with pytest.raises(PermissionDeniedError):
            create_product(seller, {"name": "Nails", "price": 50})

    @pytest.mark.parametrize(
        "payload",
        [
            {"price": 10},
            {"name": "X"},
            {"name": "X", "price": 10, "category": "spaceships"},
            {"name": "X", "price": 10, "currency": "EUR"},
            {"name": "X", "price": -1},
        ],
    )
    def test_rejects_bad_payload(self, admin, payload):
        with pytest.raises(ValidationError):
            create_product(admin, payload)
