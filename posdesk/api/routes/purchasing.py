from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posdesk.api.deps import get_db, require_permission
from posdesk.models.employee import Employee
from posdesk.models.purchasing import PurchaseOrder, PurchaseOrderStatus, Supplier
from posdesk.schemas.purchasing import (
    PurchaseOrderCreate,
    PurchaseOrderOut,
    PurchaseOrderUpdate,
    ReceiveRequest,
    SupplierCreate,
    SupplierOut,
    SupplierUpdate,
)
from posdesk.services.purchasing import (
    OrderLine,
    ReceiveLine,
    cancel_purchase_order,
    create_purchase_order,
    receive_purchase_order,
    update_purchase_order,
)

router = APIRouter(tags=["Purchasing"])


def _get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    return supplier


def _get_order(db: Session, order_id: int, *, lock: bool = False) -> PurchaseOrder:
    query = select(PurchaseOrder).where(PurchaseOrder.id == order_id)
    if lock:
        query = query.with_for_update()
    order = db.scalar(query)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase order not found")
    return order


@router.post("/suppliers", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierCreate,
    _: Employee = Depends(require_permission("suppliers:create")),
    db: Session = Depends(get_db),
):
    supplier = Supplier(
        name=payload.name.strip(),
        contact_name=payload.contact_name,
        phone=payload.phone,
        email=payload.email,
        address=payload.address,
    )
    db.add(supplier)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Supplier name already exists") from exc
    db.refresh(supplier)
    return supplier


@router.patch("/suppliers/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    _: Employee = Depends(require_permission("suppliers:update")),
    db: Session = Depends(get_db),
):
    supplier = _get_supplier(db, supplier_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if isinstance(value, str):
            value = value.strip() or None
        if key == "name" and value is None:
            continue
        setattr(supplier, key, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Supplier name already exists") from exc
    db.refresh(supplier)
    return supplier


@router.get("/suppliers", response_model=list[SupplierOut])
def list_suppliers(
    include_inactive: bool = False,
    _: Employee = Depends(require_permission("suppliers:view")),
    db: Session = Depends(get_db),
):
    query = select(Supplier).order_by(Supplier.name.asc())
    if not include_inactive:
        query = query.where(Supplier.is_active.is_(True))
    return list(db.scalars(query).all())


@router.delete("/suppliers/{supplier_id}", response_model=SupplierOut)
def archive_supplier(
    supplier_id: int,
    _: Employee = Depends(require_permission("suppliers:delete")),
    db: Session = Depends(get_db),
):
    supplier = _get_supplier(db, supplier_id)
    supplier.is_active = False
    db.commit()
    db.refresh(supplier)
    return supplier


@router.post("/purchase-orders", response_model=PurchaseOrderOut, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: PurchaseOrderCreate,
    current_employee: Employee = Depends(require_permission("purchase_orders:create")),
    db: Session = Depends(get_db),
):
    return create_purchase_order(
        db,
        supplier_id=payload.supplier_id,
        lines=[OrderLine(**item.model_dump()) for item in payload.items],
        notes=payload.notes,
        order_date=payload.order_date,
        employee=current_employee,
    )


@router.get("/purchase-orders", response_model=list[PurchaseOrderOut])
def list_orders(
    supplier_id: int | None = None,
    order_status: PurchaseOrderStatus | None = None,
    _: Employee = Depends(require_permission("purchase_orders:view")),
    db: Session = Depends(get_db),
):
    query = select(PurchaseOrder).order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
    if supplier_id is not None:
        query = query.where(PurchaseOrder.supplier_id == supplier_id)
    if order_status is not None:
        query = query.where(PurchaseOrder.status == order_status)
    return list(db.scalars(query).all())


@router.get("/purchase-orders/{order_id}", response_model=PurchaseOrderOut)
def get_order(
    order_id: int,
    _: Employee = Depends(require_permission("purchase_orders:view")),
    db: Session = Depends(get_db),
):
    return _get_order(db, order_id)


@router.patch("/purchase-orders/{order_id}", response_model=PurchaseOrderOut)
def update_order(
    order_id: int,
    payload: PurchaseOrderUpdate,
    _: Employee = Depends(require_permission("purchase_orders:update")),
    db: Session = Depends(get_db),
):
    order = _get_order(db, order_id, lock=True)
    return update_purchase_order(
        db,
        order,
        supplier_id=payload.supplier_id,
        lines=[OrderLine(**item.model_dump()) for item in payload.items] if payload.items is not None else None,
        notes=payload.notes,
    )


@router.post("/purchase-orders/{order_id}/cancel", response_model=PurchaseOrderOut)
def cancel_order(
    order_id: int,
    _: Employee = Depends(require_permission("purchase_orders:update")),
    db: Session = Depends(get_db),
):
    return cancel_purchase_order(db, _get_order(db, order_id, lock=True))


@router.post("/purchase-orders/{order_id}/receive", response_model=PurchaseOrderOut)
def receive_order(
    order_id: int,
    payload: ReceiveRequest,
    current_employee: Employee = Depends(require_permission("purchase_orders:receive")),
    db: Session = Depends(get_db),
):
    lines = None
    if payload.items is not None:
        lines = [ReceiveLine(item_id=item.item_id, quantity=item.quantity) for item in payload.items]
    return receive_purchase_order(
        db,
        _get_order(db, order_id, lock=True),
        lines=lines,
        update_cost_price=payload.update_cost_price,
        employee=current_employee,
    )
