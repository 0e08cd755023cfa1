import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from posdesk.core.config import settings
from posdesk.core.security import hash_password
from posdesk.models import (
    Category,
    Customer,
    CustomerTransaction,
    Employee,
    EmployeeRole,
    Inventory,
    Payment,
    Permission,
    Product,
    PurchaseOrder,
    PurchaseOrderItem,
    Role,
    RolePermission,
    SalesDetail,
    SalesInvoice,
    Setting,
    StockTransaction,
    Supplier,
)
from posdesk.services.access import ADMINISTRATOR_ROLE, assign_role, ensure_system_roles
from posdesk.services.settings_store import upsert_setting

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMPLOYEE_ID = "ADMIN001"

DEFAULT_SETTINGS = (
    {
        "key": "companyName",
        "value": "Your Company Name",
        "type": "string",
        "category": "general",
        "description": "Your business name that appears on receipts and invoices",
    },
    {
        "key": "license_activated",
        "value": "false",
        "type": "boolean",
        "category": "license",
        "description": "License activation status",
    },
)

# Child tables first so foreign keys never block a delete.
CLEAR_ORDER = (
    CustomerTransaction,
    Payment,
    StockTransaction,
    SalesDetail,
    SalesInvoice,
    Inventory,
    PurchaseOrderItem,
    PurchaseOrder,
    Supplier,
    Product,
    Category,
    Customer,
    EmployeeRole,
    RolePermission,
    Permission,
    Role,
    Employee,
    Setting,
)


def bootstrap_database(db: Session) -> Employee:
    """Create the permission catalog, system roles, default admin and settings.

    Safe to run repeatedly: existing rows are kept and settings are upserted.
    """
    roles = ensure_system_roles(db)

    admin = db.scalar(select(Employee).where(Employee.email == settings.default_admin_email.lower()))
    if not admin:
        admin = Employee(
            employee_id=DEFAULT_ADMIN_EMPLOYEE_ID,
            name="System Administrator",
            role=ADMINISTRATOR_ROLE,
            email=settings.default_admin_email.lower(),
            password_hash=hash_password(settings.default_admin_password),
        )
        db.add(admin)
        db.flush()
        logger.info("Created default administrator %s", admin.email)
    assign_role(db, admin, roles[ADMINISTRATOR_ROLE])

    for item in DEFAULT_SETTINGS:
        upsert_setting(db, **item)

    db.commit()
    logger.info(
        "Database bootstrap complete: employees=%s settings=%s",
        db.scalar(select(func.count(Employee.id))),
        db.scalar(select(func.count(Setting.id))),
    )
    return admin


def clear_data(db: Session) -> None:
    for model in CLEAR_ORDER:
        db.execute(delete(model))
    db.commit()
    logger.info("Cleared all tenant data")
