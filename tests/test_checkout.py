from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from posdesk.core.errors import ConflictError, InsufficientStockError, ValidationError
from posdesk.models import Customer, CustomerTransaction, Inventory, Payment, StockTransaction
from posdesk.models.customer import CustomerTransactionType
from posdesk.models.inventory import StockTransactionType
from posdesk.models.sales import PaymentMode, PaymentStatus
from posdesk.services import checkout as checkout_service
from posdesk.services.checkout import (
    CheckoutItem,
    CheckoutRequest,
    build_receipt,
    checkout,
    loyalty_points_for,
    next_invoice_number,
    record_payment,
    void_invoice,
)


@pytest.fixture
def customer(db) -> Customer:
    customer = Customer(name="Jane Buyer", phone="0700000000")
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


class TestCheckout:
    def test_cash_sale_computes_change_and_reduces_stock(self, db, admin, make_product):
        product = make_product(price="12.50", stock="10")

        invoice = checkout(
            db,
            CheckoutRequest(items=[CheckoutItem(product.id, Decimal("2"))], amount_received=Decimal("30")),
            admin,
        )

        assert invoice.invoice_number == "INV-0001"
        assert invoice.total_amount == Decimal("25.00")
        assert invoice.change_given == Decimal("5.00")
        assert invoice.payment_status == PaymentStatus.PAID
        db.refresh(product)
        assert product.stock_level == Decimal("8")

        movement = db.scalar(select(StockTransaction).where(StockTransaction.related_invoice_id == invoice.id))
        assert movement.type == StockTransactionType.OUT
        assert movement.change_qty == Decimal("-2")
        assert db.scalar(select(Payment.amount).where(Payment.invoice_id == invoice.id)) == Decimal("25.00")

    def test_cash_sale_requires_enough_money(self, db, admin, make_product):
        product = make_product(price="10.00")

        with pytest.raises(ValidationError):
            checkout(
                db,
                CheckoutRequest(items=[CheckoutItem(product.id, Decimal("1"))], amount_received=Decimal("9.99")),
                admin,
            )

    def test_sale_beyond_stock_is_refused(self, db, admin, make_product):
        product = make_product(stock="1")

        with pytest.raises(InsufficientStockError):
            checkout(
                db,
                CheckoutRequest(items=[CheckoutItem(product.id, Decimal("2"))], amount_received=Decimal("100")),
                admin,
            )

    def test_sale_consumes_earliest_expiring_batch_first(self, db, admin, make_product):
        product = make_product(stock="6")
        late = Inventory(product_id=product.id, quantity=Decimal("3"), expiry_date=datetime.utcnow() + timedelta(days=60))
        early = Inventory(product_id=product.id, quantity=Decimal("3"), expiry_date=datetime.utcnow() + timedelta(days=5))
        db.add_all([late, early])
        db.commit()

        checkout(
            db,
            CheckoutRequest(items=[CheckoutItem(product.id, Decimal("4"))], amount_received=Decimal("100")),
            admin,
        )

        db.refresh(late)
        db.refresh(early)
        assert early.quantity == Decimal("0")
        assert late.quantity == Decimal("2")

    def test_partial_credit_sale_records_ledger_and_loyalty(self, db, admin, make_product, customer):
        product = make_product(price="40.00", discounted_price=Decimal("35.00"))

        invoice = checkout(
            db,
            CheckoutRequest(
                items=[CheckoutItem(product.id, Decimal("2"))],
                payment_mode=PaymentMode.CREDIT,
                customer_id=customer.id,
                partial_payment=Decimal("30"),
            ),
            admin,
        )

        assert invoice.total_amount == Decimal("80.00")
        assert invoice.payment_status == PaymentStatus.PARTIAL
        assert invoice.outstanding_balance == Decimal("50.00")

        entry = db.scalar(select(CustomerTransaction).where(CustomerTransaction.invoice_id == invoice.id))
        assert entry.type == CustomerTransactionType.CREDIT_SALE
        assert entry.amount == Decimal("50.00")
        payment = db.scalar(select(Payment).where(Payment.invoice_id == invoice.id))
        assert payment.payment_mode == PaymentMode.CASH
        db.refresh(customer)
        assert customer.loyalty_points == 8

    def test_credit_sale_needs_a_customer(self, db, admin, make_product):
        product = make_product()

        with pytest.raises(ValidationError):
            checkout(
                db,
                CheckoutRequest(items=[CheckoutItem(product.id, Decimal("1"))], payment_mode=PaymentMode.CREDIT),
                admin,
            )

    def test_fully_discounted_credit_sale_is_settled(self, db, admin, make_product, customer):
        product = make_product(price="15.00")

        invoice = checkout(
            db,
            CheckoutRequest(
                items=[CheckoutItem(product.id, Decimal("1"))],
                payment_mode=PaymentMode.CREDIT,
                customer_id=customer.id,
                discount_type="percentage",
                discount_value=Decimal("100"),
            ),
            admin,
        )

        assert invoice.total_amount == Decimal("0.00")
        assert invoice.payment_status == PaymentStatus.PAID
        assert invoice.outstanding_balance == Decimal("0.00")
        assert db.scalar(select(CustomerTransaction).where(CustomerTransaction.invoice_id == invoice.id)) is None

    def test_invoice_number_clash_is_retried(self, db, admin, make_product, monkeypatch):
        product = make_product(stock="5")
        card_sale = CheckoutRequest(items=[CheckoutItem(product.id, Decimal("1"))], payment_mode=PaymentMode.CARD)
        checkout(db, card_sale, admin)

        numbers = iter(["INV-0001"])
        monkeypatch.setattr(
            checkout_service, "next_invoice_number", lambda session: next(numbers, None) or next_invoice_number(session)
        )
        invoice = checkout(db, card_sale, admin)

        assert invoice.invoice_number == "INV-0002"
        db.refresh(product)
        assert product.stock_level == Decimal("3")
        sold = db.scalars(select(StockTransaction).where(StockTransaction.type == StockTransactionType.OUT)).all()
        assert len(sold) == 2

    def test_invoice_number_that_keeps_clashing_is_a_conflict(self, db, admin, make_product, monkeypatch):
        product = make_product(stock="5")
        card_sale = CheckoutRequest(items=[CheckoutItem(product.id, Decimal("1"))], payment_mode=PaymentMode.CARD)
        checkout(db, card_sale, admin)
        monkeypatch.setattr(checkout_service, "next_invoice_number", lambda session: "INV-0001")

        with pytest.raises(ConflictError):
            checkout(db, card_sale, admin)

        db.refresh(product)
        assert product.stock_level == Decimal("4")

    def test_invoice_numbers_increase(self, db, admin, make_product):
        product = make_product(stock="5")
        for _ in range(2):
            checkout(
                db,
                CheckoutRequest(items=[CheckoutItem(product.id, Decimal("1"))], payment_mode=PaymentMode.CARD),
                admin,
            )

        assert next_invoice_number(db) == "INV-0003"

    def test_loyalty_points_round_down(self):
        assert loyalty_points_for(Decimal("99.99")) == 9
        assert loyalty_points_for(Decimal("5")) == 0


class TestPaymentsAndVoids:
    def _credit_invoice(self, db, admin, product, customer):
        return checkout(
            db,
            CheckoutRequest(
                items=[CheckoutItem(product.id, Decimal("1"))],
                payment_mode=PaymentMode.CREDIT,
                customer_id=customer.id,
            ),
            admin,
        )

    def test_payments_settle_the_invoice(self, db, admin, make_product, customer):
        invoice = self._credit_invoice(db, admin, make_product(price="50.00"), customer)
        assert invoice.payment_status == PaymentStatus.UNPAID

        record_payment(db, invoice, amount=Decimal("20"), employee=admin)
        assert invoice.payment_status == PaymentStatus.PARTIAL
        record_payment(db, invoice, amount=Decimal("30"), employee=admin)
        assert invoice.payment_status == PaymentStatus.PAID
        assert invoice.outstanding_balance == Decimal("0.00")

        with pytest.raises(ValidationError):
            record_payment(db, invoice, amount=Decimal("1"))

    def test_void_restores_stock(self, db, admin, make_product, customer):
        product = make_product(price="50.00", stock="3")
        invoice = self._credit_invoice(db, admin, product, customer)

        void_invoice(db, invoice, reason="Wrong item", employee=admin)

        db.refresh(product)
        assert product.stock_level == Decimal("3")
        assert invoice.payment_status == PaymentStatus.VOID
        db.refresh(customer)
        assert customer.loyalty_points == 0

    def test_void_of_paid_invoice_requires_refund(self, db, admin, make_product):
        product = make_product(price="10.00")
        invoice = checkout(
            db,
            CheckoutRequest(items=[CheckoutItem(product.id, Decimal("1"))], amount_received=Decimal("10")),
            admin,
        )

        with pytest.raises(ValidationError):
            void_invoice(db, invoice)
        assert void_invoice(db, invoice, refund=True).payment_status == PaymentStatus.VOID


def test_receipt_truncates_long_names(db, admin, make_product):
    product = make_product("Extra virgin olive oil 750ml", price="9.00")
    invoice = checkout(
        db,
        CheckoutRequest(items=[CheckoutItem(product.id, Decimal("1"))], amount_received=Decimal("10")),
        admin,
    )

    receipt = build_receipt(db, invoice)

    assert receipt["items"][0]["name"] == "Extra virgin oliv..."
    assert receipt["payment_method"] == "Cash"
    assert receipt["change"] == Decimal("1.00")
    assert receipt["store"]["name"] == "Your Company Name"


class TestSalesRoutes:
    def test_checkout_endpoint(self, client, admin_headers, api_product):
        product = api_product("Water", price="1.25", stock="12")

        response = client.post(
            "/sales/checkout",
            json={"items": [{"product_id": product["id"], "quantity": "4"}], "amount_received": "10"},
            headers=admin_headers,
        )

        assert response.status_code == 201, response.text
        body = response.json()
        assert Decimal(body["total_amount"]) == Decimal("5.00")
        assert Decimal(body["change_given"]) == Decimal("5.00")
        assert len(body["details"]) == 1

        by_number = client.get(f"/sales/invoices/by-number/{body['invoice_number']}", headers=admin_headers)
        assert by_number.json()["id"] == body["id"]

    def test_quote_reports_stock_errors_as_400(self, client, admin_headers, api_product):
        product = api_product("Chips", stock="0")

        response = client.post(
            "/sales/cart/quote",
            json={"items": [{"product_id": product["id"], "quantity": "1"}]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert "out of stock" in response.json()["detail"]

    def test_quote_applies_bulk_discount(self, client, admin_headers, api_product):
        product = api_product("Coffee", price="20.00", stock="5")

        response = client.post(
            "/sales/cart/quote",
            json={
                "items": [{"product_id": product["id"], "quantity": "2"}],
                "discount_type": "percentage",
                "discount_value": "25",
            },
            headers=admin_headers,
        )

        body = response.json()
        assert Decimal(body["discount_amount"]) == Decimal("10.00")
        assert Decimal(body["total"]) == Decimal("30.00")

    def test_credit_checkout_endpoint_passes_customer_and_partial_payment(
        self, client, admin_headers, api_product, customer
    ):
        product = api_product("Tea", price="6.00", stock="5")

        response = client.post(
            "/sales/checkout",
            json={
                "items": [{"product_id": product["id"], "quantity": "2"}],
                "payment_mode": "credit",
                "customer_id": customer.id,
                "partial_payment": "5",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["customer_id"] == customer.id
        assert body["payment_status"] == "partial"
        assert Decimal(body["outstanding_balance"]) == Decimal("7.00")
