import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from posdesk.core.config import settings
from posdesk.core.errors import InsufficientStockError, NotFoundError, ValidationError
from posdesk.models.catalog import Product
from posdesk.models.inventory import Inventory, StockTransaction, StockTransactionType

logger = logging.getLogger(__name__)

QTY = Decimal("0.001")
ZERO = Decimal("0")

AdjustmentMode = Literal["set", "add", "subtract"]


def qty(value) -> Decimal:
    return Decimal(value).quantize(QTY)


def stock_status(quantity: Decimal, reorder_level: Decimal) -> str:
    if Decimal(quantity) == 0:
        return "out-of-stock"
    if Decimal(quantity) <= Decimal(reorder_level):
        return "low-stock"
    return "in-stock"


def days_to_expiry(expiry_date: datetime | None, now: datetime | None = None) -> int | None:
    if expiry_date is None:
        return None
    now = now or datetime.utcnow()
    return math.ceil((expiry_date - now).total_seconds() / 86400)


def expiry_status(expiry_date: datetime | None, now: datetime | None = None) -> str:
    days = days_to_expiry(expiry_date, now)
    if days is None:
        return "no-expiry"
    if days < 0:
        return "expired"
    if days <= 7:
        return "expiring-soon"
    if days <= 30:
        return "expiring-month"
    return "fresh"


def log_stock_transaction(
    db: Session,
    *,
    product_id: int,
    type: StockTransactionType,
    change_qty: Decimal,
    reason: str,
    employee_id: int | None = None,
    invoice_id: int | None = None,
    purchase_order_id: int | None = None,
) -> StockTransaction:
    transaction = StockTransaction(
        product_id=product_id,
        type=type,
        change_qty=qty(change_qty),
        reason=reason,
        employee_id=employee_id,
        related_invoice_id=invoice_id,
        related_purchase_order_id=purchase_order_id,
    )
    db.add(transaction)
    return transaction


def _inventory_rows(db: Session, product_id: int, *, lock: bool = False) -> list[Inventory]:
    query = (
        select(Inventory)
        .where(Inventory.product_id == product_id)
        .order_by(Inventory.expiry_date.is_(None), Inventory.expiry_date.asc(), Inventory.id.asc())
    )
    if lock:
        query = query.with_for_update()
    return list(db.scalars(query).all())


def primary_inventory(db: Session, product_id: int, *, lock: bool = False) -> Inventory | None:
    """The row that receives whole-product changes: earliest expiry, then oldest."""
    rows = _inventory_rows(db, product_id, lock=lock)
    return rows[0] if rows else None


def inventory_total(db: Session, product_id: int) -> Decimal:
    return Decimal(
        db.scalar(select(func.coalesce(func.sum(Inventory.quantity), 0)).where(Inventory.product_id == product_id))
        or 0
    )


def adjust_stock(
    db: Session,
    inventory: Inventory,
    *,
    mode: AdjustmentMode,
    amount: Decimal | None = None,
    new_quantity: Decimal | None = None,
    reason: str,
    employee_id: int | None = None,
) -> Inventory:
    """Set, add to or subtract from one inventory row and log the delta.

    Subtracting never drives the row below zero. The product's own stock
    level is left untouched; see the sync helpers for reconciliation.
    """
    current = Decimal(inventory.quantity)
    if mode == "set":
        if new_quantity is None or Decimal(new_quantity) < 0:
            raise ValidationError("A non-negative new quantity is required")
        target = Decimal(new_quantity)
    elif mode in ("add", "subtract"):
        if amount is None or Decimal(amount) < 0:
            raise ValidationError("A non-negative change amount is required")
        target = current + Decimal(amount) if mode == "add" else max(ZERO, current - Decimal(amount))
    else:
        raise ValidationError(f"Unsupported adjustment type: {mode}")

    delta = target - current
    inventory.quantity = qty(target)
    if delta != 0:
        log_stock_transaction(
            db,
            product_id=inventory.product_id,
            type=StockTransactionType.ADJUSTMENT,
            change_qty=delta,
            reason=reason or "Manual adjustment",
            employee_id=employee_id,
        )
        logger.info("Adjusted inventory %s for product %s by %s", inventory.id, inventory.product_id, delta)
    return inventory


def add_stock(
    db: Session,
    product: Product,
    quantity: Decimal,
    *,
    reason: str,
    employee_id: int | None = None,
    invoice_id: int | None = None,
    purchase_order_id: int | None = None,
) -> StockTransaction:
    quantity = Decimal(quantity)
    product.stock_level = qty(Decimal(product.stock_level) + quantity)
    inventory = primary_inventory(db, product.id, lock=True)
    if inventory is not None:
        inventory.quantity = qty(Decimal(inventory.quantity) + quantity)
    else:
        db.add(
            Inventory(
                product_id=product.id,
                quantity=qty(quantity),
                reorder_level=Decimal(settings.default_reorder_level),
            )
        )
    return log_stock_transaction(
        db,
        product_id=product.id,
        type=StockTransactionType.IN,
        change_qty=quantity,
        reason=reason,
        employee_id=employee_id,
        invoice_id=invoice_id,
        purchase_order_id=purchase_order_id,
    )


def remove_stock(
    db: Session,
    product: Product,
    quantity: Decimal,
    *,
    reason: str,
    employee_id: int | None = None,
    invoice_id: int | None = None,
) -> StockTransaction:
    """Take stock out of the product level and its inventory rows, earliest expiry first."""
    quantity = Decimal(quantity)
    available = Decimal(product.stock_level)
    if quantity > available:
        raise InsufficientStockError(product.name, qty(available))
    product.stock_level = qty(available - quantity)

    remaining = quantity
    for row in _inventory_rows(db, product.id, lock=True):
        if remaining <= 0:
            break
        taken = min(Decimal(row.quantity), remaining)
        if taken > 0:
            row.quantity = qty(Decimal(row.quantity) - taken)
            remaining -= taken

    return log_stock_transaction(
        db,
        product_id=product.id,
        type=StockTransactionType.OUT,
        change_qty=-quantity,
        reason=reason,
        employee_id=employee_id,
        invoice_id=invoice_id,
    )


def record_transaction(
    db: Session,
    product: Product,
    *,
    type: StockTransactionType,
    quantity: Decimal,
    reason: str,
    employee_id: int | None = None,
) -> StockTransaction:
    quantity = abs(Decimal(quantity))
    if quantity == 0:
        raise ValidationError("Transaction quantity must not be zero")
    if type == StockTransactionType.IN:
        return add_stock(db, product, quantity, reason=reason, employee_id=employee_id)
    if type == StockTransactionType.OUT:
        return remove_stock(db, product, quantity, reason=reason, employee_id=employee_id)
    raise ValidationError("Use an inventory adjustment for ADJUSTMENT transactions")


@dataclass
class StockSyncInfo:
    product_id: int
    product_name: str
    product_stock_level: Decimal
    inventory_total: Decimal
    is_in_sync: bool


def stock_sync_info(db: Session, product_id: int | None = None) -> list[StockSyncInfo]:
    totals_query = select(Inventory.product_id, func.coalesce(func.sum(Inventory.quantity), 0)).group_by(
        Inventory.product_id
    )
    totals = {pid: Decimal(total) for pid, total in db.execute(totals_query).all()}

    products_query = select(Product).order_by(Product.name.asc())
    if product_id is not None:
        products_query = products_query.where(Product.id == product_id)

    result = []
    for product in db.scalars(products_query).all():
        total = qty(totals.get(product.id, ZERO))
        level = qty(product.stock_level)
        result.append(
            StockSyncInfo(
                product_id=product.id,
                product_name=product.name,
                product_stock_level=level,
                inventory_total=total,
                is_in_sync=level == total,
            )
        )
    return result


def sync_product_to_inventory(db: Session, product_id: int, *, employee_id: int | None = None) -> Inventory:
    """Overwrite the product's inventory with its stock level."""
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    inventory = primary_inventory(db, product_id, lock=True)
    level = Decimal(product.stock_level)
    if inventory is None:
        inventory = Inventory(
            product_id=product_id,
            quantity=qty(level),
            reorder_level=Decimal(max(5, math.floor(level * Decimal("0.2")))),
        )
        db.add(inventory)
        db.flush()
        logger.info("Created inventory for product %s with quantity %s", product_id, level)
        return inventory

    adjust_stock(
        db,
        inventory,
        mode="set",
        new_quantity=level,
        reason="Synced from product stock level",
        employee_id=employee_id,
    )
    return inventory


def sync_inventory_to_product(db: Session, product_id: int) -> Product:
    """Overwrite the product's stock level with its inventory total."""
    product = db.get(Product, product_id, with_for_update=True)
    if not product:
        raise NotFoundError("Product not found")
    total = inventory_total(db, product_id)
    if qty(product.stock_level) != qty(total):
        logger.info("Product %s stock level %s -> %s from inventory", product_id, product.stock_level, total)
    product.stock_level = qty(total)
    return product


def sync_all_products_from_inventory(db: Session) -> int:
    updated = 0
    for info in stock_sync_info(db):
        if not info.is_in_sync:
            sync_inventory_to_product(db, info.product_id)
            updated += 1
    logger.info("Synced %s product stock levels from inventory", updated)
    return updated


def inventory_summary(db: Session, now: datetime | None = None) -> dict:
    rows = db.execute(select(Inventory, Product.price).join(Product, Product.id == Inventory.product_id)).all()
    total_value = Decimal("0")
    low_stock = 0
    expiring = 0
    for inventory, price in rows:
        total_value += Decimal(price) * Decimal(inventory.quantity)
        if Decimal(inventory.quantity) <= Decimal(inventory.reorder_level):
            low_stock += 1
        days = days_to_expiry(inventory.expiry_date, now)
        if days is not None and 0 <= days <= settings.expiry_warning_days:
            expiring += 1
    return {
        "total_value": total_value.quantize(Decimal("0.01")),
        "low_stock_count": low_stock,
        "expiring_items_count": expiring,
        "total_items": len(rows),
    }
