from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from posdesk.api.deps import get_public_db, require_permission
from posdesk.models.employee import Employee
from posdesk.models.tenant import Tenant
from posdesk.schemas.tenant import TenantCreate, TenantOut, TenantUpdate
from posdesk.services.tenants import provision_tenant

router = APIRouter(prefix="/tenants", tags=["Tenants"])


def _require_public_context(request: Request) -> None:
    if getattr(request.state, "tenant_schema", None) is not None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenants are managed from the public schema only",
        )


@router.get("", response_model=list[TenantOut])
def list_tenants(
    request: Request,
    _: Employee = Depends(require_permission("tenants:manage")),
    db: Session = Depends(get_public_db),
):
    _require_public_context(request)
    return list(db.scalars(select(Tenant).order_by(Tenant.code.asc())).all())


@router.post("", response_model=TenantOut, status_code=status.HTTP_201_CREATED)
def create_tenant(
    payload: TenantCreate,
    request: Request,
    _: Employee = Depends(require_permission("tenants:manage")),
    db: Session = Depends(get_public_db),
):
    _require_public_context(request)
    return provision_tenant(db, code=payload.code, name=payload.name, schema_name=payload.schema_name)


@router.patch("/{tenant_id}", response_model=TenantOut)
def update_tenant(
    tenant_id: int,
    payload: TenantUpdate,
    request: Request,
    _: Employee = Depends(require_permission("tenants:manage")),
    db: Session = Depends(get_public_db),
):
    _require_public_context(request)
    tenant = db.get(Tenant, tenant_id)
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    if payload.name is not None:
        tenant.name = payload.name.strip()
    if payload.is_active is not None:
        tenant.is_active = payload.is_active
    db.commit()
    db.refresh(tenant)
    return tenant
