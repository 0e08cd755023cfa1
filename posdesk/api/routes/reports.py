from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from posdesk.api.deps import get_db, require_permission
from posdesk.models.employee import Employee
from posdesk.schemas.reports import (
    CustomerInsightOut,
    DailySalesOut,
    EmployeeSalesOut,
    InventoryReportItemOut,
    TopProductOut,
)
from posdesk.services import reports

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/daily-sales", response_model=list[DailySalesOut])
def daily_sales(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    _: Employee = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    return reports.daily_sales(db, date_from=date_from, date_to=date_to)


@router.get("/daily-sales/export/csv")
def export_daily_sales_csv(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    _: Employee = Depends(require_permission("reports:export")),
    db: Session = Depends(get_db),
):
    content = reports.daily_sales_csv(reports.daily_sales(db, date_from=date_from, date_to=date_to))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="daily-sales.csv"'},
    )


@router.get("/inventory", response_model=list[InventoryReportItemOut])
def inventory_report(
    low_stock_only: bool = False,
    _: Employee = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    rows = reports.inventory_report(db)
    if low_stock_only:
        rows = [row for row in rows if row["low_stock"]]
    return rows


@router.get("/employee-sales", response_model=list[EmployeeSalesOut])
def employee_sales(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    _: Employee = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    return reports.employee_sales(db, date_from=date_from, date_to=date_to)


@router.get("/customer-insights", response_model=list[CustomerInsightOut])
def customer_insights(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    _: Employee = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    return reports.customer_insights(db, date_from=date_from, date_to=date_to)


@router.get("/top-products", response_model=list[TopProductOut])
def top_products(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    order_by: Literal["quantity", "revenue"] = "quantity",
    limit: int = Query(default=10, ge=1, le=100),
    _: Employee = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    return reports.top_products(db, date_from=date_from, date_to=date_to, order_by=order_by, limit=limit)
