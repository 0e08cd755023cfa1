from sqlalchemy import func, select
from sqlalchemy.orm import Session

from posdesk.models.employee import Employee, EmployeeRole, Permission, Role, RolePermission

MODULE_ACTIONS: dict[str, tuple[str, ...]] = {
    "pos": ("access", "discount", "void"),
    "products": ("view", "create", "update", "delete"),
    "categories": ("view", "create", "update", "delete"),
    "inventory": ("view", "adjust", "sync"),
    "customers": ("view", "create", "update", "delete"),
    "sales": ("view", "create", "refund"),
    "payments": ("view", "create"),
    "suppliers": ("view", "create", "update", "delete"),
    "purchase_orders": ("view", "create", "update", "receive"),
    "reports": ("view", "export"),
    "employees": ("view", "create", "update", "delete"),
    "roles": ("view", "manage"),
    "settings": ("view", "update"),
    "tenants": ("manage",),
}

ADMINISTRATOR_ROLE = "Administrator"

SYSTEM_ROLES: dict[str, tuple[str, set[str] | None]] = {
    ADMINISTRATOR_ROLE: ("Full system access", None),
    "Manager": (
        "Store management without employee, role and tenant administration",
        {
            f"{module}:{action}"
            for module, actions in MODULE_ACTIONS.items()
            if module not in {"employees", "roles", "tenants"}
            for action in actions
        }
        | {"employees:view", "roles:view"},
    ),
    "Cashier": (
        "Point-of-sale operation",
        {
            "pos:access",
            "pos:discount",
            "products:view",
            "categories:view",
            "inventory:view",
            "customers:view",
            "customers:create",
            "sales:view",
            "sales:create",
            "payments:view",
            "payments:create",
            "settings:view",
        },
    ),
}


def all_permission_codes() -> set[str]:
    return {f"{module}:{action}" for module, actions in MODULE_ACTIONS.items() for action in actions}


def ensure_permission_catalog(db: Session) -> dict[str, Permission]:
    existing = {permission.code: permission for permission in db.scalars(select(Permission)).all()}
    for module, actions in MODULE_ACTIONS.items():
        for action in actions:
            code = f"{module}:{action}"
            if code not in existing:
                permission = Permission(module=module, action=action, description=f"{action.title()} {module}")
                db.add(permission)
                existing[code] = permission
    db.flush()
    return existing


def ensure_system_roles(db: Session) -> dict[str, Role]:
    permissions = ensure_permission_catalog(db)
    roles: dict[str, Role] = {}
    for name, (description, codes) in SYSTEM_ROLES.items():
        role = db.scalar(select(Role).where(Role.name == name))
        if not role:
            role = Role(name=name, description=description, is_system=True)
            db.add(role)
            db.flush()
        roles[name] = role

        granted_ids = set(
            db.scalars(select(RolePermission.permission_id).where(RolePermission.role_id == role.id)).all()
        )
        wanted = all_permission_codes() if codes is None else codes
        for code in sorted(wanted):
            permission = permissions[code]
            if permission.id not in granted_ids:
                db.add(RolePermission(role_id=role.id, permission_id=permission.id, granted=True))
    db.flush()
    return roles


def assign_role(db: Session, employee: Employee, role: Role) -> None:
    existing = db.scalar(
        select(EmployeeRole).where(EmployeeRole.employee_id == employee.id, EmployeeRole.role_id == role.id)
    )
    if not existing:
        db.add(EmployeeRole(employee_id=employee.id, role_id=role.id))
        db.flush()


def employee_roles(db: Session, employee_id: int) -> list[Role]:
    return list(
        db.scalars(
            select(Role)
            .join(EmployeeRole, EmployeeRole.role_id == Role.id)
            .where(EmployeeRole.employee_id == employee_id)
            .order_by(Role.name.asc())
        ).all()
    )


def role_permission_codes(db: Session, role_id: int) -> set[str]:
    rows = db.execute(
        select(Permission.module, Permission.action)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .where(RolePermission.role_id == role_id, RolePermission.granted.is_(True))
    ).all()
    return {f"{module}:{action}" for module, action in rows}


def effective_permissions(db: Session, employee_id: int) -> set[str]:
    rows = db.execute(
        select(Permission.module, Permission.action)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(EmployeeRole, EmployeeRole.role_id == RolePermission.role_id)
        .where(EmployeeRole.employee_id == employee_id, RolePermission.granted.is_(True))
    ).all()
    return {f"{module}:{action}" for module, action in rows}


def set_role_permission(db: Session, role: Role, permission: Permission, granted: bool) -> RolePermission:
    link = db.scalar(
        select(RolePermission).where(
            RolePermission.role_id == role.id,
            RolePermission.permission_id == permission.id,
        )
    )
    if link is None:
        link = RolePermission(role_id=role.id, permission_id=permission.id, granted=granted)
        db.add(link)
    else:
        link.granted = granted
    db.flush()
    return link


def describe_employee_access(db: Session, email: str) -> dict | None:
    employee = db.scalar(select(Employee).where(Employee.email == email.strip().lower()))
    if not employee:
        return None
    return {
        "employee_id": employee.employee_id,
        "name": employee.name,
        "email": employee.email,
        "roles": [
            {"name": role.name, "permissions": sorted(role_permission_codes(db, role.id))}
            for role in employee_roles(db, employee.id)
        ],
        "total_permissions": db.scalar(select(func.count(Permission.id))),
        "total_roles": db.scalar(select(func.count(Role.id))),
    }
