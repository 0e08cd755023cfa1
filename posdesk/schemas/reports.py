from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class DailySalesOut(BaseModel):
    date: str
    invoice_count: int
    total_sales: Decimal
    total_discount: Decimal
    items_sold: Decimal
    by_payment_mode: dict[str, Decimal]


class InventoryReportItemOut(BaseModel):
    product_id: int
    product_name: str
    stock_level: Decimal
    cost_value: Decimal
    retail_value: Decimal
    low_stock: bool


class EmployeeSalesOut(BaseModel):
    employee_id: int
    employee_name: str
    invoice_count: int
    total_sales: Decimal


class CustomerInsightOut(BaseModel):
    customer_id: int
    customer_name: str
    loyalty_points: int
    invoice_count: int
    total_spent: Decimal
    average_basket: Decimal
    last_purchase: datetime | None
    outstanding_balance: Decimal


class TopProductOut(BaseModel):
    product_id: int
    product_name: str
    quantity_sold: Decimal
    revenue: Decimal
