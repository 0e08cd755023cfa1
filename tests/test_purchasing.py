from decimal import Decimal

import pytest

from posdesk.core.errors import ValidationError
from posdesk.models import Supplier
from posdesk.models.purchasing import PurchaseOrderStatus
from posdesk.services.purchasing import (
    OrderLine,
    ReceiveLine,
    cancel_purchase_order,
    create_purchase_order,
    receive_purchase_order,
)


@pytest.fixture
def supplier(db) -> Supplier:
    supplier = Supplier(name="Fresh Farms Ltd")
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


def test_order_total_is_sum_of_lines(db, admin, make_product, supplier):
    eggs = make_product("Eggs", stock="0")
    butter = make_product("Butter", stock="0")

    order = create_purchase_order(
        db,
        supplier_id=supplier.id,
        lines=[OrderLine(eggs.id, Decimal("30"), Decimal("0.25")), OrderLine(butter.id, Decimal("4"), Decimal("3.10"))],
        employee=admin,
    )

    assert order.status == PurchaseOrderStatus.PENDING
    assert order.total_amount == Decimal("19.90")


def test_partial_then_full_receipt(db, admin, make_product, supplier):
    product = make_product("Yoghurt", stock="2", cost_price=Decimal("1.00"))
    order = create_purchase_order(
        db,
        supplier_id=supplier.id,
        lines=[OrderLine(product.id, Decimal("10"), Decimal("0.80"))],
        employee=admin,
    )
    item = order.items[0]

    receive_purchase_order(db, order, lines=[ReceiveLine(item.id, Decimal("4"))], employee=admin)
    assert order.status == PurchaseOrderStatus.PENDING
    db.refresh(product)
    assert product.stock_level == Decimal("6")

    with pytest.raises(ValidationError):
        receive_purchase_order(db, order, lines=[ReceiveLine(item.id, Decimal("7"))])

    receive_purchase_order(db, order, update_cost_price=True, employee=admin)
    assert order.status == PurchaseOrderStatus.RECEIVED
    assert order.received_date is not None
    db.refresh(product)
    assert product.stock_level == Decimal("12")
    assert product.cost_price == Decimal("0.80")


def test_received_order_cannot_be_cancelled(db, admin, make_product, supplier):
    product = make_product("Honey", stock="0")
    order = create_purchase_order(
        db, supplier_id=supplier.id, lines=[OrderLine(product.id, Decimal("1"), Decimal("5"))], employee=admin
    )
    receive_purchase_order(db, order)

    with pytest.raises(ValidationError):
        cancel_purchase_order(db, order)


def test_cancel_pending_order(db, admin, make_product, supplier):
    product = make_product("Jam", stock="0")
    order = create_purchase_order(
        db, supplier_id=supplier.id, lines=[OrderLine(product.id, Decimal("2"), Decimal("2"))], employee=admin
    )

    assert cancel_purchase_order(db, order).status == PurchaseOrderStatus.CANCELLED
    with pytest.raises(ValidationError):
        receive_purchase_order(db, order)


def test_purchase_order_routes(client, admin_headers, api_product):
    product = api_product("Rice", stock="0")
    supplier = client.post("/suppliers", json={"name": "Grain House"}, headers=admin_headers).json()

    order = client.post(
        "/purchase-orders",
        json={"supplier_id": supplier["id"], "items": [{"product_id": product["id"], "quantity": "5", "unit_cost": "2"}]},
        headers=admin_headers,
    )
    assert order.status_code == 201, order.text

    received = client.post(f"/purchase-orders/{order.json()['id']}/receive", json={}, headers=admin_headers)
    assert received.json()["status"] == "received"
    assert Decimal(client.get(f"/products/{product['id']}", headers=admin_headers).json()["stock_level"]) == Decimal("5")
