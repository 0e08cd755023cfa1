import logging
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posdesk.core.config import settings
from posdesk.core.errors import ConflictError, NotFoundError, ValidationError
from posdesk.models.catalog import Product
from posdesk.models.customer import Customer, CustomerTransaction, CustomerTransactionType
from posdesk.models.employee import Employee
from posdesk.models.sales import Payment, PaymentMode, PaymentStatus, SalesDetail, SalesInvoice
from posdesk.services.cart import Cart, DiscountType, money
from posdesk.services.settings_store import settings_map
from posdesk.services.stock import add_stock, remove_stock

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV-"
RECEIPT_NAME_WIDTH = 20
ZERO = Decimal("0.00")
INVOICE_NUMBER_ATTEMPTS = 3


@dataclass
class CheckoutItem:
    product_id: int
    quantity: Decimal
    unit_price: Decimal | None = None


@dataclass
class CheckoutRequest:
    items: list[CheckoutItem]
    payment_mode: PaymentMode = PaymentMode.CASH
    customer_id: int | None = None
    amount_received: Decimal | None = None
    partial_payment: Decimal | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = None


def next_invoice_number(db: Session) -> str:
    last = db.scalar(select(SalesInvoice.invoice_number).order_by(SalesInvoice.id.desc()).limit(1))
    sequence = 0
    if last:
        match = re.search(r"(\d+)$", last)
        if match:
            sequence = int(match.group(1))
    return f"{INVOICE_PREFIX}{sequence + 1:04d}"


def loyalty_points_for(total: Decimal) -> int:
    return int(Decimal(total) // Decimal(settings.loyalty_points_divisor))


def build_cart(db: Session, request: CheckoutRequest, *, lock: bool = False) -> Cart:
    """Price the requested lines against the current catalog."""
    if not request.items:
        raise ValidationError("Cart is empty")

    cart = Cart(request.payment_mode)
    for item in request.items:
        query = select(Product).where(Product.id == item.product_id)
        if lock:
            query = query.with_for_update()
        product = db.scalar(query)
        if not product:
            raise NotFoundError(f"Product {item.product_id} not found")
        if not product.is_active:
            raise ValidationError(f"{product.name} is not available for sale")
        cart.add(product, item.quantity)
        if item.unit_price is not None:
            cart.set_unit_price(product.id, item.unit_price)

    if request.discount_type and request.discount_value:
        cart.apply_bulk_discount(request.discount_type, request.discount_value)
    return cart


def _settle(
    request: CheckoutRequest,
    total: Decimal,
    customer: Customer | None,
) -> tuple[Decimal, Decimal, Decimal, PaymentStatus]:
    """Return amount received, change, outstanding balance and status."""
    mode = request.payment_mode
    if mode == PaymentMode.CASH:
        if request.amount_received is None:
            raise ValidationError("Amount received is required for cash payments")
        received = money(request.amount_received)
        if received < total:
            raise ValidationError("Amount received is less than the total")
        return received, received - total, ZERO, PaymentStatus.PAID

    if mode == PaymentMode.CREDIT:
        if customer is None:
            raise ValidationError("A customer is required for credit sales")
        if total == 0:
            return ZERO, ZERO, ZERO, PaymentStatus.PAID
        if request.partial_payment is None or Decimal(request.partial_payment) == 0:
            return ZERO, ZERO, total, PaymentStatus.UNPAID
        partial = money(request.partial_payment)
        if partial <= 0 or partial >= total:
            raise ValidationError("Partial payment must be greater than zero and less than the total")
        return partial, ZERO, total - partial, PaymentStatus.PARTIAL

    return total, ZERO, ZERO, PaymentStatus.PAID


def checkout(db: Session, request: CheckoutRequest, employee: Employee) -> SalesInvoice:
    """Turn a cart into a committed invoice.

    Product rows are locked while stock is re-checked, so two tills selling
    the last unit cannot both succeed. Two tills taking the same invoice
    number lose one insert to the unique index; that sale is rolled back
    and placed again under the next number.
    """
    for attempt in range(1, INVOICE_NUMBER_ATTEMPTS + 1):
        try:
            invoice = _place_invoice(db, request, employee)
        except IntegrityError:
            db.rollback()
            logger.warning("Invoice number clash on attempt %s of %s", attempt, INVOICE_NUMBER_ATTEMPTS)
            continue
        logger.info(
            "Checkout %s completed: mode=%s total=%s status=%s lines=%s",
            invoice.invoice_number,
            invoice.payment_mode.value,
            invoice.total_amount,
            invoice.payment_status.value,
            len(invoice.details),
        )
        return invoice
    raise ConflictError("Could not allocate an invoice number, please retry the sale")


def _place_invoice(db: Session, request: CheckoutRequest, employee: Employee) -> SalesInvoice:
    customer = None
    if request.customer_id is not None:
        customer = db.get(Customer, request.customer_id)
        if not customer or not customer.is_active:
            raise NotFoundError("Customer not found")

    cart = build_cart(db, request, lock=True)
    total = cart.total
    received, change, outstanding, payment_status = _settle(request, total, customer)

    invoice = SalesInvoice(
        invoice_number=next_invoice_number(db),
        customer_id=customer.id if customer else None,
        employee_id=employee.id,
        payment_mode=request.payment_mode,
        sub_total=cart.subtotal,
        discount_amount=cart.discount_amount,
        tax_amount=ZERO,
        total_amount=total,
        amount_received=received,
        change_given=change,
        outstanding_balance=outstanding,
        payment_status=payment_status,
    )
    for line in cart.lines:
        invoice.details.append(
            SalesDetail(
                product_id=line.product_id,
                product_name=line.name,
                quantity=line.quantity,
                unit=line.unit,
                unit_price=line.price,
                original_price=line.original_price,
                cost_price=line.cost_price,
                tax_rate=line.tax_rate,
                line_total=line.total,
            )
        )
    db.add(invoice)
    db.flush()

    for line in cart.lines:
        product = db.get(Product, line.product_id)
        remove_stock(db, product, line.quantity, reason="Sale", employee_id=employee.id, invoice_id=invoice.id)

    applied = received - change
    if applied > 0:
        db.add(
            Payment(
                invoice_id=invoice.id,
                employee_id=employee.id,
                amount=applied,
                payment_mode=PaymentMode.CASH if request.payment_mode == PaymentMode.CREDIT else request.payment_mode,
                notes="Partial payment at time of sale"
                if payment_status == PaymentStatus.PARTIAL
                else "Full payment at time of sale",
            )
        )

    if customer:
        if outstanding > 0:
            db.add(
                CustomerTransaction(
                    customer_id=customer.id,
                    invoice_id=invoice.id,
                    type=CustomerTransactionType.CREDIT_SALE,
                    amount=outstanding,
                    note=f"Credit sale {invoice.invoice_number}",
                )
            )
        customer.loyalty_points = (customer.loyalty_points or 0) + loyalty_points_for(total)

    db.commit()
    db.refresh(invoice)
    return invoice


def paid_amount(db: Session, invoice_id: int) -> Decimal:
    return Decimal(db.scalar(select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.invoice_id == invoice_id)) or 0)


def record_payment(
    db: Session,
    invoice: SalesInvoice,
    *,
    amount: Decimal,
    payment_mode: PaymentMode = PaymentMode.CASH,
    notes: str | None = None,
    employee: Employee | None = None,
) -> Payment:
    if invoice.payment_status == PaymentStatus.VOID:
        raise ValidationError("Cannot record a payment against a voided invoice")
    amount = money(amount)
    outstanding = Decimal(invoice.outstanding_balance)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    if amount > outstanding:
        raise ValidationError(f"Payment exceeds the outstanding balance ({outstanding})")

    payment = Payment(
        invoice_id=invoice.id,
        employee_id=employee.id if employee else None,
        amount=amount,
        payment_mode=payment_mode,
        notes=notes,
    )
    db.add(payment)
    invoice.outstanding_balance = outstanding - amount
    invoice.amount_received = Decimal(invoice.amount_received) + amount
    invoice.payment_status = PaymentStatus.PAID if invoice.outstanding_balance == 0 else PaymentStatus.PARTIAL

    if invoice.customer_id:
        db.add(
            CustomerTransaction(
                customer_id=invoice.customer_id,
                invoice_id=invoice.id,
                type=CustomerTransactionType.PAYMENT,
                amount=amount,
                note=notes or f"Payment for {invoice.invoice_number}",
            )
        )
    db.commit()
    db.refresh(payment)
    logger.info("Recorded payment of %s on %s", amount, invoice.invoice_number)
    return payment


def void_invoice(
    db: Session,
    invoice: SalesInvoice,
    *,
    refund: bool = False,
    reason: str | None = None,
    employee: Employee | None = None,
) -> SalesInvoice:
    """Put sold stock back and mark the invoice void.

    Invoices that already took money are only voided when ``refund`` is set.
    """
    if invoice.payment_status == PaymentStatus.VOID:
        raise ValidationError("Invoice is already void")
    paid = paid_amount(db, invoice.id)
    if paid > 0 and not refund:
        raise ValidationError("Invoice has payments; void it with refund enabled")

    employee_id = employee.id if employee else None
    for detail in invoice.details:
        product = db.scalar(select(Product).where(Product.id == detail.product_id).with_for_update())
        if product:
            add_stock(
                db,
                product,
                Decimal(detail.quantity),
                reason="Invoice voided",
                employee_id=employee_id,
                invoice_id=invoice.id,
            )

    if invoice.customer_id:
        customer = db.get(Customer, invoice.customer_id)
        if customer:
            customer.loyalty_points = max(0, (customer.loyalty_points or 0) - loyalty_points_for(invoice.total_amount))
        if paid > 0:
            db.add(
                CustomerTransaction(
                    customer_id=invoice.customer_id,
                    invoice_id=invoice.id,
                    type=CustomerTransactionType.REFUND,
                    amount=paid,
                    note=reason or f"Refund for {invoice.invoice_number}",
                )
            )

    invoice.outstanding_balance = ZERO
    invoice.payment_status = PaymentStatus.VOID
    db.commit()
    db.refresh(invoice)
    logger.info("Voided invoice %s (refunded %s)", invoice.invoice_number, paid)
    return invoice


def _receipt_name(name: str) -> str:
    if len(name) > RECEIPT_NAME_WIDTH:
        return name[: RECEIPT_NAME_WIDTH - 3] + "..."
    return name


def build_receipt(db: Session, invoice: SalesInvoice) -> dict:
    store = settings_map(db)
    employee = db.get(Employee, invoice.employee_id) if invoice.employee_id else None
    customer = db.get(Customer, invoice.customer_id) if invoice.customer_id else None

    receipt = {
        "store": {
            "name": store.get("companyName", settings.app_name),
            "address": store.get("storeAddress"),
            "phone": store.get("storePhone"),
        },
        "invoice_number": invoice.invoice_number,
        "date": invoice.created_at or datetime.utcnow(),
        "customer": customer.name if customer else None,
        "items": [
            {
                "name": _receipt_name(detail.product_name),
                "quantity": detail.quantity,
                "unit": detail.unit,
                "unit_price": detail.unit_price,
                "total": detail.line_total,
            }
            for detail in invoice.details
        ],
        "subtotal": invoice.sub_total,
        "discount": invoice.discount_amount,
        "tax": invoice.tax_amount,
        "total": invoice.total_amount,
        "payment_method": invoice.payment_mode.value.capitalize(),
        "payment_status": invoice.payment_status.value,
        "outstanding_balance": invoice.outstanding_balance,
        "footer": {
            "served_by": employee.name if employee else None,
            "message": store.get("receiptFooter", "Thank you for your business!"),
        },
    }
    if invoice.payment_mode == PaymentMode.CASH:
        receipt["amount_received"] = invoice.amount_received
        receipt["change"] = invoice.change_given
    return receipt
