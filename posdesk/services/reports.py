import csv
import io
from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from posdesk.models.catalog import Product
from posdesk.models.customer import Customer
from posdesk.models.employee import Employee
from posdesk.models.inventory import Inventory
from posdesk.models.sales import PaymentStatus, SalesDetail, SalesInvoice

ZERO = Decimal("0.00")


def _apply_invoice_scope(query, *, date_from: datetime | None, date_to: datetime | None):
    query = query.where(SalesInvoice.payment_status != PaymentStatus.VOID)
    if date_from is not None:
        query = query.where(SalesInvoice.created_at >= date_from)
    if date_to is not None:
        query = query.where(SalesInvoice.created_at <= date_to)
    return query


def daily_sales(db: Session, *, date_from: datetime | None = None, date_to: datetime | None = None) -> list[dict]:
    invoices = db.scalars(
        _apply_invoice_scope(select(SalesInvoice), date_from=date_from, date_to=date_to).order_by(
            SalesInvoice.created_at.asc()
        )
    ).all()
    items_sold = dict(
        db.execute(
            _apply_invoice_scope(
                select(SalesDetail.invoice_id, func.coalesce(func.sum(SalesDetail.quantity), 0)).join(
                    SalesInvoice, SalesInvoice.id == SalesDetail.invoice_id
                ),
                date_from=date_from,
                date_to=date_to,
            ).group_by(SalesDetail.invoice_id)
        ).all()
    )

    days: dict[str, dict] = {}
    for invoice in invoices:
        label = invoice.created_at.strftime("%Y-%m-%d")
        day = days.setdefault(
            label,
            {
                "date": label,
                "invoice_count": 0,
                "total_sales": ZERO,
                "total_discount": ZERO,
                "items_sold": Decimal("0"),
                "by_payment_mode": defaultdict(lambda: ZERO),
            },
        )
        day["invoice_count"] += 1
        day["total_sales"] += Decimal(invoice.total_amount)
        day["total_discount"] += Decimal(invoice.discount_amount)
        day["items_sold"] += Decimal(items_sold.get(invoice.id, 0))
        day["by_payment_mode"][invoice.payment_mode.value] += Decimal(invoice.total_amount)

    for day in days.values():
        day["by_payment_mode"] = dict(day["by_payment_mode"])
    return list(days.values())


def daily_sales_csv(rows: list[dict]) -> str:
    sio = io.StringIO()
    writer = csv.writer(sio)
    writer.writerow(["date", "invoice_count", "total_sales", "total_discount", "items_sold", "cash", "card", "credit", "wholesale"])
    for row in rows:
        modes = row["by_payment_mode"]
        writer.writerow(
            [
                row["date"],
                row["invoice_count"],
                str(row["total_sales"]),
                str(row["total_discount"]),
                str(row["items_sold"]),
                str(modes.get("cash", ZERO)),
                str(modes.get("card", ZERO)),
                str(modes.get("credit", ZERO)),
                str(modes.get("wholesale", ZERO)),
            ]
        )
    return sio.getvalue()


def inventory_report(db: Session) -> list[dict]:
    reorder_levels = dict(
        db.execute(
            select(Inventory.product_id, func.max(Inventory.reorder_level)).group_by(Inventory.product_id)
        ).all()
    )
    rows = []
    for product in db.scalars(select(Product).where(Product.is_active.is_(True)).order_by(Product.name.asc())).all():
        level = Decimal(product.stock_level)
        reorder_level = Decimal(reorder_levels.get(product.id, 0))
        rows.append(
            {
                "product_id": product.id,
                "product_name": product.name,
                "stock_level": level,
                "cost_value": (Decimal(product.cost_price or 0) * level).quantize(Decimal("0.01")),
                "retail_value": (Decimal(product.price) * level).quantize(Decimal("0.01")),
                "low_stock": level <= reorder_level,
            }
        )
    return rows


def employee_sales(db: Session, *, date_from: datetime | None = None, date_to: datetime | None = None) -> list[dict]:
    query = _apply_invoice_scope(
        select(
            Employee.id,
            Employee.name,
            func.count(SalesInvoice.id),
            func.coalesce(func.sum(SalesInvoice.total_amount), 0),
        ).join(SalesInvoice, SalesInvoice.employee_id == Employee.id),
        date_from=date_from,
        date_to=date_to,
    ).group_by(Employee.id, Employee.name)
    rows = [
        {
            "employee_id": employee_id,
            "employee_name": name,
            "invoice_count": count,
            "total_sales": Decimal(total),
        }
        for employee_id, name, count, total in db.execute(query).all()
    ]
    return sorted(rows, key=lambda row: row["total_sales"], reverse=True)


def customer_insights(db: Session, *, date_from: datetime | None = None, date_to: datetime | None = None) -> list[dict]:
    query = _apply_invoice_scope(
        select(
            Customer.id,
            Customer.name,
            Customer.loyalty_points,
            func.count(SalesInvoice.id),
            func.coalesce(func.sum(SalesInvoice.total_amount), 0),
            func.coalesce(func.sum(SalesInvoice.outstanding_balance), 0),
            func.max(SalesInvoice.created_at),
        ).join(SalesInvoice, SalesInvoice.customer_id == Customer.id),
        date_from=date_from,
        date_to=date_to,
    ).group_by(Customer.id, Customer.name, Customer.loyalty_points)

    rows = []
    for customer_id, name, points, count, spent, outstanding, last_purchase in db.execute(query).all():
        spent = Decimal(spent)
        rows.append(
            {
                "customer_id": customer_id,
                "customer_name": name,
                "loyalty_points": points,
                "invoice_count": count,
                "total_spent": spent,
                "average_basket": (spent / count).quantize(Decimal("0.01")) if count else ZERO,
                "last_purchase": last_purchase,
                "outstanding_balance": Decimal(outstanding),
            }
        )
    return sorted(rows, key=lambda row: row["total_spent"], reverse=True)


def top_products(
    db: Session,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    order_by: str = "quantity",
    limit: int = 10,
) -> list[dict]:
    quantity = func.coalesce(func.sum(SalesDetail.quantity), 0)
    revenue = func.coalesce(func.sum(SalesDetail.line_total), 0)
    query = _apply_invoice_scope(
        select(SalesDetail.product_id, SalesDetail.product_name, quantity.label("quantity"), revenue.label("revenue")).join(
            SalesInvoice, SalesInvoice.id == SalesDetail.invoice_id
        ),
        date_from=date_from,
        date_to=date_to,
    ).group_by(SalesDetail.product_id, SalesDetail.product_name)
    query = query.order_by((revenue if order_by == "revenue" else quantity).desc()).limit(limit)
    return [
        {
            "product_id": product_id,
            "product_name": name,
            "quantity_sold": Decimal(qty),
            "revenue": Decimal(rev),
        }
        for product_id, name, qty, rev in db.execute(query).all()
    ]
