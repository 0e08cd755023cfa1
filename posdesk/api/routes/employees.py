from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posdesk.api.deps import get_db, require_permission
from posdesk.api.routes.auth import employee_out
from posdesk.core.security import hash_password
from posdesk.models.employee import Employee, EmployeeRole, Permission, Role, RolePermission
from posdesk.schemas.employee import (
    AccessReport,
    EmployeeCreate,
    EmployeeOut,
    EmployeeUpdate,
    PermissionOut,
    RoleAssignment,
    RoleCreate,
    RoleOut,
    RolePermissionUpdate,
)
from posdesk.services.access import (
    assign_role,
    effective_permissions,
    employee_roles,
    role_permission_codes,
    set_role_permission,
)

router = APIRouter(tags=["Employees"])


def _get_employee(db: Session, employee_pk: int) -> Employee:
    employee = db.get(Employee, employee_pk)
    if not employee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


def _get_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role


def _permission_by_code(db: Session, code: str) -> Permission:
    module, _, action = code.partition(":")
    permission = db.scalar(
        select(Permission).where(Permission.module == module, Permission.action == action, Permission.scope.is_(None))
    )
    if not permission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown permission: {code}")
    return permission


def _role_out(db: Session, role: Role) -> RoleOut:
    out = RoleOut.model_validate(role)
    out.permissions = sorted(role_permission_codes(db, role.id))
    return out


@router.get("/employees", response_model=list[EmployeeOut])
def list_employees(
    include_inactive: bool = False,
    _: Employee = Depends(require_permission("employees:view")),
    db: Session = Depends(get_db),
):
    query = select(Employee).order_by(Employee.name.asc())
    if not include_inactive:
        query = query.where(Employee.is_active.is_(True))
    return [employee_out(db, employee) for employee in db.scalars(query).all()]


@router.post("/employees", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
def create_employee(
    payload: EmployeeCreate,
    _: Employee = Depends(require_permission("employees:create")),
    db: Session = Depends(get_db),
):
    roles = [_get_role(db, role_id) for role_id in payload.role_ids]
    employee = Employee(
        employee_id=payload.employee_id.strip().upper(),
        name=payload.name.strip(),
        role=roles[0].name if roles else "Cashier",
        email=payload.email.strip().lower(),
        password_hash=hash_password(payload.password),
    )
    db.add(employee)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Employee ID or email already exists") from exc
    for role in roles:
        assign_role(db, employee, role)
    db.commit()
    db.refresh(employee)
    return employee_out(db, employee)


@router.get("/employees/{employee_pk}", response_model=EmployeeOut)
def get_employee(
    employee_pk: int,
    _: Employee = Depends(require_permission("employees:view")),
    db: Session = Depends(get_db),
):
    return employee_out(db, _get_employee(db, employee_pk))


@router.patch("/employees/{employee_pk}", response_model=EmployeeOut)
def update_employee(
    employee_pk: int,
    payload: EmployeeUpdate,
    current_employee: Employee = Depends(require_permission("employees:update")),
    db: Session = Depends(get_db),
):
    employee = _get_employee(db, employee_pk)
    if payload.name is not None:
        employee.name = payload.name.strip()
    if payload.email is not None:
        employee.email = payload.email.strip().lower()
    if payload.password is not None:
        employee.password_hash = hash_password(payload.password)
    if payload.is_active is not None:
        if not payload.is_active and employee.id == current_employee.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate yourself")
        employee.is_active = payload.is_active
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists") from exc
    db.refresh(employee)
    return employee_out(db, employee)


@router.put("/employees/{employee_pk}/roles", response_model=EmployeeOut)
def set_employee_roles(
    employee_pk: int,
    payload: RoleAssignment,
    _: Employee = Depends(require_permission("roles:manage")),
    db: Session = Depends(get_db),
):
    employee = _get_employee(db, employee_pk)
    roles = [_get_role(db, role_id) for role_id in payload.role_ids]
    db.execute(delete(EmployeeRole).where(EmployeeRole.employee_id == employee.id))
    for role in roles:
        assign_role(db, employee, role)
    employee.role = roles[0].name
    db.commit()
    db.refresh(employee)
    return employee_out(db, employee)


@router.get("/employees/{employee_pk}/access", response_model=AccessReport)
def get_employee_access(
    employee_pk: int,
    _: Employee = Depends(require_permission("employees:view")),
    db: Session = Depends(get_db),
):
    employee = _get_employee(db, employee_pk)
    return AccessReport(
        employee=employee_out(db, employee),
        roles=[role.name for role in employee_roles(db, employee.id)],
        permissions=sorted(effective_permissions(db, employee.id)),
    )


@router.get("/permissions", response_model=list[PermissionOut])
def list_permissions(
    _: Employee = Depends(require_permission("roles:view")),
    db: Session = Depends(get_db),
):
    return list(db.scalars(select(Permission).order_by(Permission.module.asc(), Permission.action.asc())).all())


@router.get("/roles", response_model=list[RoleOut])
def list_roles(
    _: Employee = Depends(require_permission("roles:view")),
    db: Session = Depends(get_db),
):
    return [_role_out(db, role) for role in db.scalars(select(Role).order_by(Role.name.asc())).all()]


@router.post("/roles", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RoleCreate,
    _: Employee = Depends(require_permission("roles:manage")),
    db: Session = Depends(get_db),
):
    permissions = [_permission_by_code(db, code) for code in payload.permissions]
    role = Role(name=payload.name.strip(), description=payload.description, is_system=False)
    db.add(role)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Role already exists") from exc
    for permission in permissions:
        set_role_permission(db, role, permission, True)
    db.commit()
    db.refresh(role)
    return _role_out(db, role)


@router.post("/roles/{role_id}/permissions", response_model=RoleOut)
def update_role_permission(
    role_id: int,
    payload: RolePermissionUpdate,
    _: Employee = Depends(require_permission("roles:manage")),
    db: Session = Depends(get_db),
):
    role = _get_role(db, role_id)
    set_role_permission(db, role, _permission_by_code(db, payload.permission), payload.granted)
    db.commit()
    return _role_out(db, role)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    role_id: int,
    _: Employee = Depends(require_permission("roles:manage")),
    db: Session = Depends(get_db),
):
    role = _get_role(db, role_id)
    if role.is_system:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="System roles cannot be deleted")
    db.execute(delete(EmployeeRole).where(EmployeeRole.role_id == role.id))
    db.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
    db.delete(role)
    db.commit()
