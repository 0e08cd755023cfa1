from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    parent_category_id: int | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    parent_category_id: int | None = None


class CategoryOut(BaseModel):
    id: int
    name: str
    description: str | None
    parent_category_id: int | None
    product_count: int = 0
    child_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class ProductBase(BaseModel):
    sku: str | None = Field(default=None, max_length=64)
    barcode: str | None = Field(default=None, max_length=64)
    english_name: str | None = Field(default=None, max_length=160)
    description: str | None = None
    brand: str | None = Field(default=None, max_length=120)
    discounted_price: Decimal | None = Field(default=None, ge=0)
    wholesale: Decimal | None = Field(default=None, ge=0)
    cost_price: Decimal | None = Field(default=None, ge=0)
    tax_inclusive_price: Decimal | None = Field(default=None, ge=0)
    unit_size: str | None = Field(default=None, max_length=32)
    unit: str | None = Field(default=None, max_length=24)


class ProductCreate(ProductBase):
    name: str = Field(min_length=1, max_length=160)
    category_id: int
    price: Decimal = Field(gt=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0)
    stock_level: Decimal = Field(default=Decimal("0"), ge=0)


class ProductUpdate(ProductBase):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    category_id: int | None = None
    price: Decimal | None = Field(default=None, gt=0)
    tax_rate: Decimal | None = Field(default=None, ge=0)
    stock_level: Decimal | None = Field(default=None, ge=0)


class ProductOut(BaseModel):
    id: int
    sku: str | None
    barcode: str | None
    name: str
    english_name: str | None
    description: str | None
    brand: str | None
    category_id: int
    price: Decimal
    discounted_price: Decimal | None
    wholesale: Decimal | None
    cost_price: Decimal | None
    tax_rate: Decimal
    tax_inclusive_price: Decimal | None
    unit_size: str | None
    unit: str | None
    stock_level: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductPage(BaseModel):
    items: list[ProductOut]
    count: int


class ScanCheck(BaseModel):
    code: str
    plausible: bool
