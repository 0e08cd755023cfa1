from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from posdesk.models.purchasing import PurchaseOrderStatus


class SupplierCreate(BaseModel):
    name: str = Field(min_length=2, max_length=160)
    contact_name: str | None = Field(default=None, max_length=160)
    phone: str | None = Field(default=None, max_length=40)
    email: str | None = Field(default=None, max_length=320)
    address: str | None = Field(default=None, max_length=255)


class SupplierUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=160)
    contact_name: str | None = Field(default=None, max_length=160)
    phone: str | None = Field(default=None, max_length=40)
    email: str | None = Field(default=None, max_length=320)
    address: str | None = Field(default=None, max_length=255)
    is_active: bool | None = None


class SupplierOut(BaseModel):
    id: int
    name: str
    contact_name: str | None
    phone: str | None
    email: str | None
    address: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PurchaseOrderItemIn(BaseModel):
    product_id: int
    quantity: Decimal = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)


class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    items: list[PurchaseOrderItemIn] = Field(min_length=1)
    notes: str | None = None
    order_date: datetime | None = None


class PurchaseOrderUpdate(BaseModel):
    supplier_id: int | None = None
    items: list[PurchaseOrderItemIn] | None = Field(default=None, min_length=1)
    notes: str | None = None


class ReceiveLineIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(gt=0)


class ReceiveRequest(BaseModel):
    items: list[ReceiveLineIn] | None = None
    update_cost_price: bool = False


class PurchaseOrderItemOut(BaseModel):
    id: int
    product_id: int
    quantity: Decimal
    received_quantity: Decimal
    unit_cost: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class PurchaseOrderOut(BaseModel):
    id: int
    supplier_id: int
    created_by_employee_id: int | None
    status: PurchaseOrderStatus
    total_amount: Decimal
    notes: str | None
    order_date: datetime
    received_date: datetime | None
    items: list[PurchaseOrderItemOut]

    model_config = {"from_attributes": True}
