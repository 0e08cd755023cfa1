from decimal import Decimal

import pytest

from posdesk.core.errors import InsufficientStockError, OutOfStockError, ValidationError
from posdesk.models.catalog import Product
from posdesk.models.sales import PaymentMode
from posdesk.services.cart import Cart, derive_sale_price, effective_unit_price, money


def _product(product_id=1, *, price="10.00", discounted=None, wholesale=None, stock="5", name="Rice 5kg", unit=None):
    return Product(
        id=product_id,
        name=name,
        category_id=1,
        price=Decimal(price),
        discounted_price=Decimal(discounted) if discounted else None,
        wholesale=Decimal(wholesale) if wholesale else None,
        stock_level=Decimal(stock),
        unit=unit,
    )


class TestPriceSelection:
    def test_wholesale_falls_back_to_discounted_price(self):
        assert derive_sale_price(PaymentMode.WHOLESALE, discounted_price=Decimal("9"), wholesale=None) == Decimal("9")
        assert derive_sale_price(PaymentMode.WHOLESALE, discounted_price=Decimal("9"), wholesale=Decimal("8")) == Decimal("8")

    def test_zero_prices_are_ignored(self):
        assert derive_sale_price(PaymentMode.CASH, discounted_price=Decimal("0"), wholesale=None) is None

    def test_credit_always_uses_regular_price(self):
        assert effective_unit_price(PaymentMode.CREDIT, Decimal("10"), Decimal("7")) == Decimal("10")
        assert effective_unit_price(PaymentMode.CASH, Decimal("10"), Decimal("7")) == Decimal("7")

    def test_money_rounds_half_up(self):
        assert money(Decimal("2.345")) == Decimal("2.35")
        assert money(Decimal("2.344")) == Decimal("2.34")


class TestCart:
    def test_cash_cart_uses_discounted_price(self):
        cart = Cart(PaymentMode.CASH)
        line = cart.add(_product(discounted="8.50"), Decimal("2"))

        assert line.price == Decimal("8.50")
        assert line.unit == "pc"
        assert cart.subtotal == Decimal("17.00")
        assert cart.original_subtotal == Decimal("20.00")
        assert cart.item_savings == Decimal("3.00")

    def test_adding_same_product_merges_lines(self):
        cart = Cart()
        cart.add(_product(), Decimal("2"))
        cart.add(_product(), Decimal("1.5"))

        assert len(cart) == 1
        assert cart.get(1).quantity == Decimal("3.5")
        assert cart.item_count == Decimal("3.5")

    def test_out_of_stock_product_is_rejected(self):
        with pytest.raises(OutOfStockError):
            Cart().add(_product(stock="0"))

    def test_merged_quantity_cannot_exceed_stock(self):
        cart = Cart()
        cart.add(_product(stock="3"), Decimal("2"))
        with pytest.raises(InsufficientStockError) as excinfo:
            cart.add(_product(stock="3"), Decimal("2"))
        assert excinfo.value.available == Decimal("3")
        assert cart.get(1).quantity == Decimal("2")

    def test_set_quantity_to_zero_removes_line(self):
        cart = Cart()
        cart.add(_product())
        assert cart.set_quantity(1, Decimal("0")) is None
        assert len(cart) == 0

    def test_credit_cart_refuses_custom_price(self):
        cart = Cart(PaymentMode.CREDIT)
        cart.add(_product(discounted="8.00"))
        assert cart.get(1).price == Decimal("10.00")
        with pytest.raises(ValidationError):
            cart.set_unit_price(1, Decimal("9.00"))

    def test_reprice_switches_to_wholesale(self):
        cart = Cart(PaymentMode.CASH)
        cart.add(_product(discounted="9.00", wholesale="7.00"), Decimal("2"))
        cart.reprice(PaymentMode.WHOLESALE)

        assert cart.get(1).price == Decimal("7.00")
        assert cart.total == Decimal("14.00")

    def test_percentage_discount(self):
        cart = Cart()
        cart.add(_product(price="19.99"), Decimal("3"))
        assert cart.apply_bulk_discount("percentage", Decimal("10")) == Decimal("6.00")
        assert cart.total == Decimal("53.97")

    def test_amount_discount_is_capped_at_subtotal(self):
        cart = Cart()
        cart.add(_product(price="4.00"))
        assert cart.apply_bulk_discount("amount", Decimal("50")) == Decimal("4.00")
        assert cart.total == Decimal("0.00")

    def test_percentage_over_hundred_is_rejected(self):
        cart = Cart()
        cart.add(_product())
        with pytest.raises(ValidationError):
            cart.apply_bulk_discount("percentage", Decimal("101"))
