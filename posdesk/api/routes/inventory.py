from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from posdesk.api.deps import get_db, require_permission
from posdesk.core.config import settings
from posdesk.models.catalog import Product
from posdesk.models.employee import Employee
from posdesk.models.inventory import Inventory, StockTransaction
from posdesk.schemas.inventory import (
    InventoryOut,
    InventoryPage,
    InventorySummaryOut,
    InventoryUpsertRequest,
    StockAdjustRequest,
    StockSyncInfoOut,
    StockTransactionCreate,
    StockTransactionOut,
    StockTransactionPage,
    SyncAllResponse,
)
from posdesk.services import stock as stock_service

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _inventory_out(inventory: Inventory, product_name: str) -> InventoryOut:
    return InventoryOut(
        id=inventory.id,
        product_id=inventory.product_id,
        product_name=product_name,
        quantity=inventory.quantity,
        reorder_level=inventory.reorder_level,
        batch_number=inventory.batch_number,
        expiry_date=inventory.expiry_date,
        stock_status=stock_service.stock_status(inventory.quantity, inventory.reorder_level),
        expiry_status=stock_service.expiry_status(inventory.expiry_date),
        updated_at=inventory.updated_at,
    )


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.get("", response_model=InventoryPage)
def list_inventory(
    search: str | None = None,
    low_stock: bool = False,
    expiring_soon: bool = False,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=50, ge=1, le=500),
    _: Employee = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    filters = []
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Product.name).like(pattern),
                func.lower(func.coalesce(Product.barcode, "")).like(pattern),
                func.lower(func.coalesce(Inventory.batch_number, "")).like(pattern),
            )
        )
    if low_stock:
        filters.append(Inventory.quantity <= Inventory.reorder_level)
    if expiring_soon:
        now = datetime.utcnow()
        filters.append(Inventory.expiry_date.is_not(None))
        filters.append(Inventory.expiry_date >= now)
        filters.append(Inventory.expiry_date <= now + timedelta(days=settings.expiry_warning_days))

    base = select(Inventory, Product.name).join(Product, Product.id == Inventory.product_id).where(*filters)
    count = db.scalar(
        select(func.count(Inventory.id)).join(Product, Product.id == Inventory.product_id).where(*filters)
    )
    rows = db.execute(base.order_by(Product.name.asc(), Inventory.id.asc()).offset(skip).limit(take)).all()
    return InventoryPage(items=[_inventory_out(inventory, name) for inventory, name in rows], count=count or 0)


@router.put("", response_model=InventoryOut)
def upsert_inventory(
    payload: InventoryUpsertRequest,
    current_employee: Employee = Depends(require_permission("inventory:adjust")),
    db: Session = Depends(get_db),
):
    product = _get_product(db, payload.product_id)
    inventory = stock_service.primary_inventory(db, product.id, lock=True)
    if inventory is None:
        inventory = Inventory(product_id=product.id, quantity=payload.quantity)
        db.add(inventory)
    else:
        stock_service.adjust_stock(
            db,
            inventory,
            mode="set",
            new_quantity=payload.quantity,
            reason="Inventory updated",
            employee_id=current_employee.id,
        )
    inventory.reorder_level = payload.reorder_level
    inventory.batch_number = payload.batch_number
    inventory.expiry_date = payload.expiry_date
    db.commit()
    db.refresh(inventory)
    return _inventory_out(inventory, product.name)


@router.post("/{inventory_id}/adjust", response_model=InventoryOut)
def adjust_inventory(
    inventory_id: int,
    payload: StockAdjustRequest,
    current_employee: Employee = Depends(require_permission("inventory:adjust")),
    db: Session = Depends(get_db),
):
    inventory = db.scalar(select(Inventory).where(Inventory.id == inventory_id).with_for_update())
    if not inventory:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory record not found")
    stock_service.adjust_stock(
        db,
        inventory,
        mode=payload.type,
        amount=payload.quantity,
        new_quantity=payload.new_quantity,
        reason=payload.reason,
        employee_id=current_employee.id,
    )
    db.commit()
    db.refresh(inventory)
    return _inventory_out(inventory, _get_product(db, inventory.product_id).name)


@router.get("/summary", response_model=InventorySummaryOut)
def get_inventory_summary(
    _: Employee = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    return stock_service.inventory_summary(db)


@router.get("/transactions", response_model=StockTransactionPage)
def list_stock_transactions(
    search: str | None = None,
    product_id: int | None = None,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=50, ge=1, le=500),
    _: Employee = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    filters = []
    if product_id is not None:
        filters.append(StockTransaction.product_id == product_id)
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        filters.append(or_(func.lower(Product.name).like(pattern), func.lower(StockTransaction.reason).like(pattern)))

    joined = select(StockTransaction).join(Product, Product.id == StockTransaction.product_id).where(*filters)
    count = db.scalar(
        select(func.count(StockTransaction.id)).join(Product, Product.id == StockTransaction.product_id).where(*filters)
    )
    items = db.scalars(
        joined.order_by(StockTransaction.transaction_date.desc(), StockTransaction.id.desc()).offset(skip).limit(take)
    ).all()
    return StockTransactionPage(items=[StockTransactionOut.model_validate(item) for item in items], count=count or 0)


@router.post("/transactions", response_model=StockTransactionOut, status_code=status.HTTP_201_CREATED)
def create_stock_transaction(
    payload: StockTransactionCreate,
    current_employee: Employee = Depends(require_permission("inventory:adjust")),
    db: Session = Depends(get_db),
):
    product = db.scalar(select(Product).where(Product.id == payload.product_id).with_for_update())
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    transaction = stock_service.record_transaction(
        db,
        product,
        type=payload.type,
        quantity=payload.quantity,
        reason=payload.reason,
        employee_id=current_employee.id,
    )
    db.commit()
    db.refresh(transaction)
    return transaction


@router.get("/sync", response_model=list[StockSyncInfoOut])
def get_stock_sync_info(
    out_of_sync_only: bool = False,
    _: Employee = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    rows = stock_service.stock_sync_info(db)
    if out_of_sync_only:
        rows = [row for row in rows if not row.is_in_sync]
    return rows


@router.post("/sync/products/{product_id}/to-inventory", response_model=InventoryOut)
def sync_product_to_inventory(
    product_id: int,
    current_employee: Employee = Depends(require_permission("inventory:sync")),
    db: Session = Depends(get_db),
):
    inventory = stock_service.sync_product_to_inventory(db, product_id, employee_id=current_employee.id)
    db.commit()
    db.refresh(inventory)
    return _inventory_out(inventory, _get_product(db, product_id).name)


@router.post("/sync/products/{product_id}/from-inventory", response_model=StockSyncInfoOut)
def sync_inventory_to_product(
    product_id: int,
    _: Employee = Depends(require_permission("inventory:sync")),
    db: Session = Depends(get_db),
):
    stock_service.sync_inventory_to_product(db, product_id)
    db.commit()
    return stock_service.stock_sync_info(db, product_id)[0]


@router.post("/sync/all", response_model=SyncAllResponse)
def sync_all_products(
    _: Employee = Depends(require_permission("inventory:sync")),
    db: Session = Depends(get_db),
):
    updated = stock_service.sync_all_products_from_inventory(db)
    db.commit()
    return SyncAllResponse(updated=updated)
