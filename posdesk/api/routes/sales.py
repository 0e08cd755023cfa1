from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from posdesk.api.deps import ensure_permission, get_db, require_permission
from posdesk.models.employee import Employee
from posdesk.models.sales import Payment, PaymentMode, PaymentStatus, SalesInvoice
from posdesk.schemas.sales import (
    CartLineOut,
    CartQuoteOut,
    CartRequest,
    CheckoutRequestIn,
    InvoiceOut,
    PaymentCreate,
    PaymentOut,
    VoidRequest,
)
from posdesk.services.cart import Cart
from posdesk.services.checkout import (
    CheckoutItem,
    CheckoutRequest,
    build_cart,
    build_receipt,
    checkout,
    record_payment,
    void_invoice,
)

router = APIRouter(prefix="/sales", tags=["Sales"])


def _get_invoice(db: Session, invoice_id: int) -> SalesInvoice:
    invoice = db.get(SalesInvoice, invoice_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


def _to_request(payload: CartRequest, **settlement) -> CheckoutRequest:
    return CheckoutRequest(
        items=[
            CheckoutItem(product_id=item.product_id, quantity=item.quantity, unit_price=item.unit_price)
            for item in payload.items
        ],
        payment_mode=payload.payment_mode,
        discount_type=payload.discount_type,
        discount_value=payload.discount_value,
        **settlement,
    )


def _check_price_overrides(db: Session, employee: Employee, payload: CartRequest) -> None:
    # Custom line prices and bulk discounts are both discounting.
    if payload.discount_value or any(item.unit_price is not None for item in payload.items):
        ensure_permission(db, employee, "pos:discount")


def _quote_out(cart: Cart) -> CartQuoteOut:
    return CartQuoteOut(
        payment_mode=cart.payment_mode,
        lines=[
            CartLineOut(
                product_id=line.product_id,
                name=line.name,
                unit=line.unit,
                quantity=line.quantity,
                price=line.price,
                original_price=line.original_price,
                total=line.total,
                savings=line.savings,
            )
            for line in cart.lines
        ],
        item_count=cart.item_count,
        subtotal=cart.subtotal,
        original_subtotal=cart.original_subtotal,
        item_savings=cart.item_savings,
        discount_amount=cart.discount_amount,
        total=cart.total,
    )


@router.post("/cart/quote", response_model=CartQuoteOut)
def quote_cart(
    payload: CartRequest,
    current_employee: Employee = Depends(require_permission("pos:access")),
    db: Session = Depends(get_db),
):
    _check_price_overrides(db, current_employee, payload)
    return _quote_out(build_cart(db, _to_request(payload)))


@router.post("/checkout", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def create_checkout(
    payload: CheckoutRequestIn,
    current_employee: Employee = Depends(require_permission("sales:create")),
    db: Session = Depends(get_db),
):
    _check_price_overrides(db, current_employee, payload)
    request = _to_request(
        payload,
        customer_id=payload.customer_id,
        amount_received=payload.amount_received,
        partial_payment=payload.partial_payment,
    )
    return checkout(db, request, current_employee)


@router.get("/invoices", response_model=list[InvoiceOut])
def list_invoices(
    customer_id: int | None = None,
    employee_id: int | None = None,
    payment_status: PaymentStatus | None = None,
    payment_mode: PaymentMode | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=100, ge=1, le=500),
    _: Employee = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    query = select(SalesInvoice).order_by(SalesInvoice.created_at.desc(), SalesInvoice.id.desc())
    if customer_id is not None:
        query = query.where(SalesInvoice.customer_id == customer_id)
    if employee_id is not None:
        query = query.where(SalesInvoice.employee_id == employee_id)
    if payment_status is not None:
        query = query.where(SalesInvoice.payment_status == payment_status)
    if payment_mode is not None:
        query = query.where(SalesInvoice.payment_mode == payment_mode)
    if date_from is not None:
        query = query.where(SalesInvoice.created_at >= date_from)
    if date_to is not None:
        query = query.where(SalesInvoice.created_at <= date_to)
    return list(db.scalars(query.offset(skip).limit(take)).all())


@router.get("/invoices/by-number/{invoice_number}", response_model=InvoiceOut)
def get_invoice_by_number(
    invoice_number: str,
    _: Employee = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    invoice = db.scalar(select(SalesInvoice).where(SalesInvoice.invoice_number == invoice_number.strip().upper()))
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.get("/invoices/{invoice_id}", response_model=InvoiceOut)
def get_invoice(
    invoice_id: int,
    _: Employee = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    return _get_invoice(db, invoice_id)


@router.get("/invoices/{invoice_id}/receipt")
def get_receipt(
    invoice_id: int,
    _: Employee = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    return build_receipt(db, _get_invoice(db, invoice_id))


@router.get("/invoices/{invoice_id}/payments", response_model=list[PaymentOut])
def list_payments(
    invoice_id: int,
    _: Employee = Depends(require_permission("payments:view")),
    db: Session = Depends(get_db),
):
    _get_invoice(db, invoice_id)
    return list(
        db.scalars(select(Payment).where(Payment.invoice_id == invoice_id).order_by(Payment.paid_at.asc())).all()
    )


@router.post("/invoices/{invoice_id}/payments", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def create_payment(
    invoice_id: int,
    payload: PaymentCreate,
    current_employee: Employee = Depends(require_permission("payments:create")),
    db: Session = Depends(get_db),
):
    invoice = db.scalar(select(SalesInvoice).where(SalesInvoice.id == invoice_id).with_for_update())
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return record_payment(
        db,
        invoice,
        amount=payload.amount,
        payment_mode=payload.payment_mode,
        notes=payload.notes,
        employee=current_employee,
    )


@router.post("/invoices/{invoice_id}/void", response_model=InvoiceOut)
def void_sale(
    invoice_id: int,
    payload: VoidRequest,
    current_employee: Employee = Depends(require_permission("pos:void")),
    db: Session = Depends(get_db),
):
    if payload.refund:
        ensure_permission(db, current_employee, "sales:refund")
    invoice = db.scalar(select(SalesInvoice).where(SalesInvoice.id == invoice_id).with_for_update())
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return void_invoice(db, invoice, refund=payload.refund, reason=payload.reason, employee=current_employee)
