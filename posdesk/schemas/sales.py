from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from posdesk.models.sales import PaymentMode, PaymentStatus


class CartItemIn(BaseModel):
    product_id: int
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit_price: Decimal | None = Field(default=None, gt=0)


class CartRequest(BaseModel):
    items: list[CartItemIn] = Field(min_length=1)
    payment_mode: PaymentMode = PaymentMode.CASH
    discount_type: Literal["percentage", "amount"] | None = None
    discount_value: Decimal | None = Field(default=None, ge=0)


class CheckoutRequestIn(CartRequest):
    customer_id: int | None = None
    amount_received: Decimal | None = Field(default=None, ge=0)
    partial_payment: Decimal | None = Field(default=None, ge=0)


class CartLineOut(BaseModel):
    product_id: int
    name: str
    unit: str
    quantity: Decimal
    price: Decimal
    original_price: Decimal
    total: Decimal
    savings: Decimal


class CartQuoteOut(BaseModel):
    payment_mode: PaymentMode
    lines: list[CartLineOut]
    item_count: Decimal
    subtotal: Decimal
    original_subtotal: Decimal
    item_savings: Decimal
    discount_amount: Decimal
    total: Decimal


class SalesDetailOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    original_price: Decimal
    tax_rate: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class InvoiceOut(BaseModel):
    id: int
    invoice_number: str
    customer_id: int | None
    employee_id: int | None
    payment_mode: PaymentMode
    sub_total: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    amount_received: Decimal
    change_given: Decimal
    outstanding_balance: Decimal
    payment_status: PaymentStatus
    created_at: datetime
    details: list[SalesDetailOut]

    model_config = {"from_attributes": True}


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_mode: PaymentMode = PaymentMode.CASH
    notes: str | None = Field(default=None, max_length=255)


class PaymentOut(BaseModel):
    id: int
    invoice_id: int
    employee_id: int | None
    amount: Decimal
    payment_mode: PaymentMode
    notes: str | None
    paid_at: datetime

    model_config = {"from_attributes": True}


class VoidRequest(BaseModel):
    refund: bool = False
    reason: str | None = Field(default=None, max_length=255)
