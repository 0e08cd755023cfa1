from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from posdesk.models.customer import CustomerTransactionType


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = Field(default=None, max_length=255)
    preferences: str | None = None


class CustomerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = Field(default=None, max_length=255)
    preferences: str | None = None
    loyalty_points: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class CustomerOut(BaseModel):
    id: int
    name: str
    email: str | None
    phone: str | None
    address: str | None
    loyalty_points: int
    preferences: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CustomerTransactionOut(BaseModel):
    id: int
    customer_id: int
    invoice_id: int | None
    type: CustomerTransactionType
    amount: Decimal
    note: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CustomerBalanceOut(BaseModel):
    customer_id: int
    outstanding_balance: Decimal
    open_invoices: int
