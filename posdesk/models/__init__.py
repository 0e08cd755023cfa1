from posdesk.models.catalog import Category, Product
from posdesk.models.customer import Customer, CustomerTransaction
from posdesk.models.employee import Employee, EmployeeRole, Permission, Role, RolePermission
from posdesk.models.inventory import Inventory, StockTransaction
from posdesk.models.purchasing import PurchaseOrder, PurchaseOrderItem, Supplier
from posdesk.models.sales import Payment, SalesDetail, SalesInvoice
from posdesk.models.setting import Setting
from posdesk.models.tenant import Tenant

__all__ = [
    "Category",
    "Customer",
    "CustomerTransaction",
    "Employee",
    "EmployeeRole",
    "Inventory",
    "Payment",
    "Permission",
    "Product",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "Role",
    "RolePermission",
    "SalesDetail",
    "SalesInvoice",
    "Setting",
    "StockTransaction",
    "Supplier",
    "Tenant",
]
