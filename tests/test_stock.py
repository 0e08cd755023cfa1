from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from posdesk.core.errors import InsufficientStockError, ValidationError
from posdesk.models import Inventory, StockTransaction
from posdesk.models.inventory import StockTransactionType
from posdesk.services import stock


class TestStatusHelpers:
    def test_stock_status(self):
        assert stock.stock_status(Decimal("0"), Decimal("5")) == "out-of-stock"
        assert stock.stock_status(Decimal("5"), Decimal("5")) == "low-stock"
        assert stock.stock_status(Decimal("6"), Decimal("5")) == "in-stock"

    @pytest.mark.parametrize(
        "days,expected",
        [(-1, "expired"), (3, "expiring-soon"), (20, "expiring-month"), (90, "fresh")],
    )
    def test_expiry_status(self, days, expected):
        now = datetime(2026, 1, 1, 12, 0)
        assert stock.expiry_status(now + timedelta(days=days), now) == expected

    def test_missing_expiry(self):
        assert stock.expiry_status(None) == "no-expiry"
        assert stock.days_to_expiry(None) is None


class TestAdjustments:
    def _inventory(self, db, product, quantity="10"):
        row = Inventory(product_id=product.id, quantity=Decimal(quantity), reorder_level=Decimal("2"))
        db.add(row)
        db.commit()
        return row

    def test_subtract_never_goes_below_zero(self, db, make_product):
        row = self._inventory(db, make_product(), "4")

        stock.adjust_stock(db, row, mode="subtract", amount=Decimal("10"), reason="Damaged")
        db.commit()

        assert row.quantity == Decimal("0")
        logged = db.scalar(select(StockTransaction).where(StockTransaction.product_id == row.product_id))
        assert logged.type == StockTransactionType.ADJUSTMENT
        assert logged.change_qty == Decimal("-4")

    def test_set_without_change_logs_nothing(self, db, make_product):
        row = self._inventory(db, make_product(), "7")

        stock.adjust_stock(db, row, mode="set", new_quantity=Decimal("7"), reason="Count")
        db.commit()

        assert db.scalar(select(StockTransaction)) is None

    def test_adjustment_leaves_product_level_alone(self, db, make_product):
        product = make_product(stock="10")
        row = self._inventory(db, product, "10")

        stock.adjust_stock(db, row, mode="add", amount=Decimal("5"), reason="Found")
        db.commit()
        db.refresh(product)

        assert product.stock_level == Decimal("10")
        assert stock.stock_sync_info(db, product.id)[0].is_in_sync is False

    def test_negative_amount_is_rejected(self, db, make_product):
        row = self._inventory(db, make_product())
        with pytest.raises(ValidationError):
            stock.adjust_stock(db, row, mode="add", amount=Decimal("-1"), reason="Oops")


class TestMovements:
    def test_add_stock_creates_inventory_row(self, db, make_product):
        product = make_product(stock="0")

        stock.add_stock(db, product, Decimal("12"), reason="Delivery")
        db.commit()

        row = db.scalar(select(Inventory).where(Inventory.product_id == product.id))
        assert row.quantity == Decimal("12")
        assert row.reorder_level == Decimal("5")
        assert product.stock_level == Decimal("12")

    def test_manual_out_transaction_checks_stock(self, db, make_product):
        product = make_product(stock="2")
        with pytest.raises(InsufficientStockError):
            stock.record_transaction(db, product, type=StockTransactionType.OUT, quantity=Decimal("3"), reason="Loss")

    def test_adjustment_type_is_not_a_manual_transaction(self, db, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            stock.record_transaction(
                db, product, type=StockTransactionType.ADJUSTMENT, quantity=Decimal("1"), reason="Count"
            )


class TestSync:
    def test_product_to_inventory_creates_row_with_default_reorder(self, db, make_product):
        product = make_product(stock="40")

        row = stock.sync_product_to_inventory(db, product.id)
        db.commit()

        assert row.quantity == Decimal("40")
        assert row.reorder_level == Decimal("8")

    def test_product_to_inventory_overwrites_earliest_expiring_row(self, db, make_product):
        product = make_product(stock="9")
        late = Inventory(product_id=product.id, quantity=Decimal("3"), expiry_date=datetime(2030, 6, 1))
        early = Inventory(product_id=product.id, quantity=Decimal("2"), expiry_date=datetime(2030, 1, 1))
        db.add_all([late, early])
        db.commit()

        row = stock.sync_product_to_inventory(db, product.id)
        db.commit()

        assert row.id == early.id
        assert early.quantity == Decimal("9")
        db.refresh(late)
        assert late.quantity == Decimal("3")
        logged = db.scalar(select(StockTransaction).where(StockTransaction.product_id == product.id))
        assert logged.type == StockTransactionType.ADJUSTMENT
        assert logged.change_qty == Decimal("7")
        assert logged.reason == "Synced from product stock level"

    def test_small_stock_gets_minimum_reorder_level(self, db, make_product):
        product = make_product(stock="3")

        row = stock.sync_product_to_inventory(db, product.id)

        assert row.reorder_level == Decimal("5")

    def test_sync_all_from_inventory(self, db, make_product):
        drifted = make_product("Drifted", stock="10")
        steady = make_product("Steady", stock="4")
        db.add_all(
            [
                Inventory(product_id=drifted.id, quantity=Decimal("6")),
                Inventory(product_id=drifted.id, quantity=Decimal("1")),
                Inventory(product_id=steady.id, quantity=Decimal("4")),
            ]
        )
        db.commit()

        assert stock.sync_all_products_from_inventory(db) == 1
        db.commit()
        db.refresh(drifted)
        assert drifted.stock_level == Decimal("7")
        assert all(info.is_in_sync for info in stock.stock_sync_info(db))


def test_inventory_summary(db, make_product):
    now = datetime(2026, 3, 1)
    product = make_product(price="2.50")
    db.add_all(
        [
            Inventory(product_id=product.id, quantity=Decimal("10"), reorder_level=Decimal("2"), expiry_date=now + timedelta(days=10)),
            Inventory(product_id=product.id, quantity=Decimal("1"), reorder_level=Decimal("2")),
        ]
    )
    db.commit()

    summary = stock.inventory_summary(db, now=now)

    assert summary == {
        "total_value": Decimal("27.50"),
        "low_stock_count": 1,
        "expiring_items_count": 1,
        "total_items": 2,
    }


class TestInventoryRoutes:
    def test_upsert_then_adjust(self, client, admin_headers, api_product):
        product = api_product("Flour", stock="0")

        created = client.put(
            "/inventory",
            json={"product_id": product["id"], "quantity": "3", "reorder_level": "5"},
            headers=admin_headers,
        )
        assert created.status_code == 200, created.text
        assert created.json()["stock_status"] == "low-stock"

        adjusted = client.post(
            f"/inventory/{created.json()['id']}/adjust",
            json={"type": "add", "quantity": "10", "reason": "Delivery count"},
            headers=admin_headers,
        )
        assert Decimal(adjusted.json()["quantity"]) == Decimal("13")

        history = client.get("/inventory/transactions", params={"product_id": product["id"]}, headers=admin_headers)
        assert history.json()["count"] == 1

    def test_set_adjustment_needs_new_quantity(self, client, admin_headers):
        response = client.post("/inventory/1/adjust", json={"type": "set"}, headers=admin_headers)
        assert response.status_code == 422

    def test_out_of_sync_listing(self, client, admin_headers, api_product):
        api_product("Sugar", stock="9")

        rows = client.get("/inventory/sync", params={"out_of_sync_only": True}, headers=admin_headers).json()
        assert [row["product_name"] for row in rows] == ["Sugar"]

        client.post("/inventory/sync/all", headers=admin_headers)
        rows = client.get("/inventory/sync", params={"out_of_sync_only": True}, headers=admin_headers).json()
        assert rows == []

    def test_upsert_updates_earliest_expiring_row(self, client, admin_headers, db, make_product):
        product = make_product(stock="5")
        late = Inventory(product_id=product.id, quantity=Decimal("3"), expiry_date=datetime(2030, 6, 1))
        early = Inventory(product_id=product.id, quantity=Decimal("2"), expiry_date=datetime(2030, 1, 1))
        db.add_all([late, early])
        db.commit()

        response = client.put(
            "/inventory",
            json={"product_id": product.id, "quantity": "6", "reorder_level": "1", "expiry_date": "2030-01-01T00:00:00"},
            headers=admin_headers,
        )

        assert response.status_code == 200, response.text
        assert response.json()["id"] == early.id
        db.refresh(early)
        db.refresh(late)
        assert early.quantity == Decimal("6")
        assert late.quantity == Decimal("3")

    def test_sync_product_from_inventory(self, client, admin_headers, api_product):
        product = api_product("Rice", stock="9")
        client.put("/inventory", json={"product_id": product["id"], "quantity": "4"}, headers=admin_headers)

        response = client.post(f"/inventory/sync/products/{product['id']}/from-inventory", headers=admin_headers)

        assert response.status_code == 200, response.text
        body = response.json()
        assert Decimal(body["product_stock_level"]) == Decimal("4")
        assert body["is_in_sync"] is True
        stored = client.get(f"/products/{product['id']}", headers=admin_headers).json()
        assert Decimal(stored["stock_level"]) == Decimal("4")

    def test_sync_unknown_product_is_not_found(self, client, admin_headers):
        response = client.post("/inventory/sync/products/999/from-inventory", headers=admin_headers)
        assert response.status_code == 404
