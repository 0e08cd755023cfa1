"""Cart pricing engine.

Unit prices depend on the payment mode:

* ``wholesale``: wholesale price, falling back to the discounted price,
  falling back to the regular price.
* ``credit``: always the regular price.
* anything else: the discounted price when set, else the regular price.

A line keeps the sale price it was first priced with until the cart is
explicitly repriced for another payment mode.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from posdesk.core.errors import InsufficientStockError, NotFoundError, OutOfStockError, ValidationError
from posdesk.models.catalog import Product
from posdesk.models.sales import PaymentMode

CENT = Decimal("0.01")
DEFAULT_UNIT = "pc"

DiscountType = Literal["percentage", "amount"]


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _positive(value) -> Decimal | None:
    if value is None:
        return None
    value = Decimal(value)
    return value if value > 0 else None


def derive_sale_price(
    mode: PaymentMode,
    *,
    discounted_price: Decimal | None,
    wholesale: Decimal | None,
) -> Decimal | None:
    if mode == PaymentMode.WHOLESALE:
        return _positive(wholesale) or _positive(discounted_price)
    return _positive(discounted_price)


def effective_unit_price(mode: PaymentMode, price: Decimal, sale_price: Decimal | None) -> Decimal:
    if mode == PaymentMode.CREDIT or sale_price is None:
        return Decimal(price)
    return sale_price


@dataclass
class CartLine:
    product_id: int
    name: str
    unit: str
    quantity: Decimal
    price: Decimal
    original_price: Decimal
    sale_price: Decimal | None
    discounted_price: Decimal | None
    wholesale: Decimal | None
    cost_price: Decimal
    tax_rate: Decimal
    stock_level: Decimal

    @property
    def total(self) -> Decimal:
        return money(self.price * self.quantity)

    @property
    def original_total(self) -> Decimal:
        return money(self.original_price * self.quantity)

    @property
    def savings(self) -> Decimal:
        return self.original_total - self.total if self.price < self.original_price else Decimal("0.00")


class Cart:
    def __init__(self, payment_mode: PaymentMode = PaymentMode.CASH) -> None:
        self.payment_mode = PaymentMode(payment_mode)
        self._lines: dict[int, CartLine] = {}
        self.discount_amount = Decimal("0.00")

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def get(self, product_id: int) -> CartLine | None:
        return self._lines.get(product_id)

    def add(self, product: Product, quantity: Decimal = Decimal("1")) -> CartLine:
        quantity = Decimal(quantity)
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero")
        stock_level = Decimal(product.stock_level)
        if stock_level <= 0:
            raise OutOfStockError(product.name)

        existing = self._lines.get(product.id)
        requested = (existing.quantity if existing else Decimal("0")) + quantity
        if requested > stock_level:
            raise InsufficientStockError(product.name, stock_level)

        if existing:
            existing.quantity = requested
            existing.stock_level = stock_level
            existing.price = effective_unit_price(self.payment_mode, existing.original_price, existing.sale_price)
            return existing

        sale_price = derive_sale_price(
            self.payment_mode,
            discounted_price=product.discounted_price,
            wholesale=product.wholesale,
        )
        line = CartLine(
            product_id=product.id,
            name=product.name,
            unit=product.unit or product.unit_size or DEFAULT_UNIT,
            quantity=requested,
            price=effective_unit_price(self.payment_mode, product.price, sale_price),
            original_price=Decimal(product.price),
            sale_price=sale_price,
            discounted_price=product.discounted_price,
            wholesale=product.wholesale,
            cost_price=Decimal(product.cost_price or 0),
            tax_rate=Decimal(product.tax_rate or 0),
            stock_level=stock_level,
        )
        self._lines[product.id] = line
        return line

    def set_quantity(self, product_id: int, quantity: Decimal) -> CartLine | None:
        line = self._lines.get(product_id)
        if not line:
            raise NotFoundError("Product is not in the cart")
        quantity = Decimal(quantity)
        if quantity <= 0:
            self.remove(product_id)
            return None
        if quantity > line.stock_level:
            raise InsufficientStockError(line.name, line.stock_level)
        line.quantity = quantity
        return line

    def set_unit_price(self, product_id: int, price: Decimal) -> CartLine:
        line = self._lines.get(product_id)
        if not line:
            raise NotFoundError("Product is not in the cart")
        price = Decimal(price)
        if price <= 0:
            raise ValidationError("Unit price must be greater than zero")
        if self.payment_mode == PaymentMode.CREDIT and price != line.original_price:
            raise ValidationError("Sale prices are not allowed for credit sales")
        line.sale_price = price
        line.price = price
        return line

    def remove(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()
        self.discount_amount = Decimal("0.00")

    def reprice(self, mode: PaymentMode) -> None:
        self.payment_mode = PaymentMode(mode)
        for line in self._lines.values():
            line.sale_price = derive_sale_price(
                self.payment_mode,
                discounted_price=line.discounted_price,
                wholesale=line.wholesale,
            )
            line.price = effective_unit_price(self.payment_mode, line.original_price, line.sale_price)

    def apply_bulk_discount(self, discount_type: DiscountType, value: Decimal) -> Decimal:
        value = Decimal(value)
        if value < 0:
            raise ValidationError("Discount must not be negative")
        subtotal = self.subtotal
        if discount_type == "percentage":
            if value > 100:
                raise ValidationError("Percentage discount cannot exceed 100")
            amount = subtotal * value / Decimal(100)
        elif discount_type == "amount":
            amount = value
        else:
            raise ValidationError(f"Unsupported discount type: {discount_type}")
        self.discount_amount = money(min(amount, subtotal))
        return self.discount_amount

    def clear_discount(self) -> None:
        self.discount_amount = Decimal("0.00")

    @property
    def subtotal(self) -> Decimal:
        return sum((line.total for line in self._lines.values()), Decimal("0.00"))

    @property
    def original_subtotal(self) -> Decimal:
        return sum((line.original_total for line in self._lines.values()), Decimal("0.00"))

    @property
    def item_savings(self) -> Decimal:
        return sum((line.savings for line in self._lines.values()), Decimal("0.00"))

    @property
    def total(self) -> Decimal:
        return money(max(self.subtotal - self.discount_amount, Decimal("0")))

    @property
    def item_count(self) -> Decimal:
        return sum((line.quantity for line in self._lines.values()), Decimal("0"))
