import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from posdesk.core.errors import NotFoundError, ValidationError
from posdesk.models.catalog import Product
from posdesk.models.employee import Employee
from posdesk.models.purchasing import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus, Supplier
from posdesk.services.cart import money
from posdesk.services.stock import add_stock, qty

logger = logging.getLogger(__name__)


@dataclass
class OrderLine:
    product_id: int
    quantity: Decimal
    unit_cost: Decimal


@dataclass
class ReceiveLine:
    item_id: int
    quantity: Decimal


def _build_items(db: Session, lines: list[OrderLine]) -> list[PurchaseOrderItem]:
    if not lines:
        raise ValidationError("A purchase order needs at least one item")
    items = []
    for line in lines:
        if Decimal(line.quantity) <= 0:
            raise ValidationError("Item quantity must be greater than zero")
        if Decimal(line.unit_cost) < 0:
            raise ValidationError("Unit cost must not be negative")
        if not db.get(Product, line.product_id):
            raise NotFoundError(f"Product {line.product_id} not found")
        items.append(
            PurchaseOrderItem(
                product_id=line.product_id,
                quantity=qty(line.quantity),
                unit_cost=money(line.unit_cost),
                line_total=money(Decimal(line.quantity) * Decimal(line.unit_cost)),
            )
        )
    return items


def _require_pending(order: PurchaseOrder) -> None:
    if order.status != PurchaseOrderStatus.PENDING:
        raise ValidationError(f"Purchase order is {order.status.value}")


def create_purchase_order(
    db: Session,
    *,
    supplier_id: int,
    lines: list[OrderLine],
    notes: str | None = None,
    order_date: datetime | None = None,
    employee: Employee | None = None,
) -> PurchaseOrder:
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    if not supplier.is_active:
        raise ValidationError("Supplier is archived")

    order = PurchaseOrder(
        supplier_id=supplier_id,
        created_by_employee_id=employee.id if employee else None,
        status=PurchaseOrderStatus.PENDING,
        notes=notes,
        order_date=order_date or datetime.utcnow(),
    )
    order.items = _build_items(db, lines)
    order.total_amount = sum((item.line_total for item in order.items), Decimal("0.00"))
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created purchase order %s for supplier %s", order.id, supplier.name)
    return order


def update_purchase_order(
    db: Session,
    order: PurchaseOrder,
    *,
    supplier_id: int | None = None,
    lines: list[OrderLine] | None = None,
    notes: str | None = None,
) -> PurchaseOrder:
    _require_pending(order)
    if supplier_id is not None:
        if not db.get(Supplier, supplier_id):
            raise NotFoundError("Supplier not found")
        order.supplier_id = supplier_id
    if lines is not None:
        order.items = _build_items(db, lines)
        order.total_amount = sum((item.line_total for item in order.items), Decimal("0.00"))
    if notes is not None:
        order.notes = notes.strip() or None
    db.commit()
    db.refresh(order)
    return order


def cancel_purchase_order(db: Session, order: PurchaseOrder) -> PurchaseOrder:
    _require_pending(order)
    if any(Decimal(item.received_quantity) > 0 for item in order.items):
        raise ValidationError("Purchase order has received items and cannot be cancelled")
    order.status = PurchaseOrderStatus.CANCELLED
    db.commit()
    db.refresh(order)
    logger.info("Cancelled purchase order %s", order.id)
    return order


def receive_purchase_order(
    db: Session,
    order: PurchaseOrder,
    *,
    lines: list[ReceiveLine] | None = None,
    update_cost_price: bool = False,
    employee: Employee | None = None,
) -> PurchaseOrder:
    """Book delivered goods into stock.

    Without ``lines`` everything still outstanding is received. The order
    becomes ``received`` once every item is fully delivered.
    """
    _require_pending(order)
    items = {item.id: item for item in order.items}

    if lines is None:
        plan = [(item, Decimal(item.quantity) - Decimal(item.received_quantity)) for item in order.items]
    else:
        plan = []
        for line in lines:
            item = items.get(line.item_id)
            if not item:
                raise NotFoundError(f"Purchase order item {line.item_id} not found")
            plan.append((item, Decimal(line.quantity)))

    received_any = False
    for item, quantity in plan:
        if quantity <= 0:
            continue
        remaining = Decimal(item.quantity) - Decimal(item.received_quantity)
        if quantity > remaining:
            raise ValidationError(f"Cannot receive {quantity} for item {item.id}; only {remaining} outstanding")
        product = db.scalar(select(Product).where(Product.id == item.product_id).with_for_update())
        add_stock(
            db,
            product,
            quantity,
            reason=f"Purchase order #{order.id}",
            employee_id=employee.id if employee else None,
            purchase_order_id=order.id,
        )
        if update_cost_price:
            product.cost_price = item.unit_cost
        item.received_quantity = qty(Decimal(item.received_quantity) + quantity)
        received_any = True

    if not received_any:
        raise ValidationError("Nothing to receive")

    if all(Decimal(item.received_quantity) >= Decimal(item.quantity) for item in order.items):
        order.status = PurchaseOrderStatus.RECEIVED
        order.received_date = datetime.utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Received purchase order %s (status %s)", order.id, order.status.value)
    return order
