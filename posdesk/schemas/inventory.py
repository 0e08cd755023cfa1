from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from posdesk.models.inventory import StockTransactionType


class InventoryUpsertRequest(BaseModel):
    product_id: int
    quantity: Decimal = Field(ge=0)
    reorder_level: Decimal = Field(default=Decimal("0"), ge=0)
    batch_number: str | None = Field(default=None, max_length=64)
    expiry_date: datetime | None = None


class InventoryOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: Decimal
    reorder_level: Decimal
    batch_number: str | None
    expiry_date: datetime | None
    stock_status: str
    expiry_status: str
    updated_at: datetime


class InventoryPage(BaseModel):
    items: list[InventoryOut]
    count: int


class StockAdjustRequest(BaseModel):
    type: Literal["set", "add", "subtract"]
    quantity: Decimal | None = Field(default=None, ge=0)
    new_quantity: Decimal | None = Field(default=None, ge=0)
    reason: str = Field(default="Manual adjustment", min_length=1, max_length=255)

    @model_validator(mode="after")
    def validate_amounts(self):
        if self.type == "set" and self.new_quantity is None:
            raise ValueError("new_quantity is required for set adjustments")
        if self.type != "set" and self.quantity is None:
            raise ValueError("quantity is required for add/subtract adjustments")
        return self


class StockTransactionCreate(BaseModel):
    product_id: int
    type: StockTransactionType
    quantity: Decimal = Field(gt=0)
    reason: str = Field(min_length=1, max_length=255)


class StockTransactionOut(BaseModel):
    id: int
    product_id: int
    type: StockTransactionType
    change_qty: Decimal
    reason: str
    related_invoice_id: int | None
    related_purchase_order_id: int | None
    employee_id: int | None
    transaction_date: datetime

    model_config = {"from_attributes": True}


class StockTransactionPage(BaseModel):
    items: list[StockTransactionOut]
    count: int


class InventorySummaryOut(BaseModel):
    total_value: Decimal
    low_stock_count: int
    expiring_items_count: int
    total_items: int


class StockSyncInfoOut(BaseModel):
    product_id: int
    product_name: str
    product_stock_level: Decimal
    inventory_total: Decimal
    is_in_sync: bool

    model_config = {"from_attributes": True}


class SyncAllResponse(BaseModel):
    updated: int
