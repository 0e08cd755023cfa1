from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from posdesk.api.deps import get_db, require_permission
from posdesk.models.customer import Customer, CustomerTransaction
from posdesk.models.employee import Employee
from posdesk.models.sales import PaymentStatus, SalesInvoice
from posdesk.schemas.customer import (
    CustomerBalanceOut,
    CustomerCreate,
    CustomerOut,
    CustomerTransactionOut,
    CustomerUpdate,
)

router = APIRouter(prefix="/customers", tags=["Customers"])


def _get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


@router.get("", response_model=list[CustomerOut])
def list_customers(
    search: str | None = None,
    include_inactive: bool = False,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=100, ge=1, le=500),
    _: Employee = Depends(require_permission("customers:view")),
    db: Session = Depends(get_db),
):
    query = select(Customer).order_by(Customer.name.asc())
    if not include_inactive:
        query = query.where(Customer.is_active.is_(True))
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Customer.name).like(pattern),
                func.lower(func.coalesce(Customer.email, "")).like(pattern),
                func.coalesce(Customer.phone, "").like(pattern),
            )
        )
    return list(db.scalars(query.offset(skip).limit(take)).all())


@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    _: Employee = Depends(require_permission("customers:create")),
    db: Session = Depends(get_db),
):
    customer = Customer(
        name=payload.name.strip(),
        email=(payload.email or "").strip().lower() or None,
        phone=(payload.phone or "").strip() or None,
        address=(payload.address or "").strip() or None,
        preferences=payload.preferences,
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: int,
    _: Employee = Depends(require_permission("customers:view")),
    db: Session = Depends(get_db),
):
    return _get_customer(db, customer_id)


@router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    _: Employee = Depends(require_permission("customers:update")),
    db: Session = Depends(get_db),
):
    customer = _get_customer(db, customer_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if isinstance(value, str):
            value = value.strip() or None
        if key == "name" and value is None:
            continue
        setattr(customer, key, value)
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}", response_model=CustomerOut)
def archive_customer(
    customer_id: int,
    _: Employee = Depends(require_permission("customers:delete")),
    db: Session = Depends(get_db),
):
    customer = _get_customer(db, customer_id)
    customer.is_active = False
    db.commit()
    db.refresh(customer)
    return customer


@router.get("/{customer_id}/transactions", response_model=list[CustomerTransactionOut])
def list_customer_transactions(
    customer_id: int,
    _: Employee = Depends(require_permission("customers:view")),
    db: Session = Depends(get_db),
):
    _get_customer(db, customer_id)
    return list(
        db.scalars(
            select(CustomerTransaction)
            .where(CustomerTransaction.customer_id == customer_id)
            .order_by(CustomerTransaction.created_at.desc(), CustomerTransaction.id.desc())
        ).all()
    )


@router.get("/{customer_id}/balance", response_model=CustomerBalanceOut)
def get_customer_balance(
    customer_id: int,
    _: Employee = Depends(require_permission("customers:view")),
    db: Session = Depends(get_db),
):
    _get_customer(db, customer_id)
    balance, open_invoices = db.execute(
        select(
            func.coalesce(func.sum(SalesInvoice.outstanding_balance), 0),
            func.count(SalesInvoice.id),
        ).where(
            SalesInvoice.customer_id == customer_id,
            SalesInvoice.payment_status != PaymentStatus.VOID,
            SalesInvoice.outstanding_balance > 0,
        )
    ).one()
    return CustomerBalanceOut(customer_id=customer_id, outstanding_balance=Decimal(balance), open_invoices=open_invoices)
