import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from posdesk.core.errors import ConflictError
from posdesk.db.tenancy import create_schema_tables, normalize_schema, session_for
from posdesk.models.tenant import Tenant
from posdesk.services.setup import bootstrap_database

logger = logging.getLogger(__name__)


def provision_tenant(public_db: Session, *, code: str, name: str, schema_name: str) -> Tenant:
    """Register a tenant, create its schema and bootstrap its data."""
    schema = normalize_schema(schema_name)
    if schema is None:
        raise ConflictError("The public schema cannot be registered as a tenant")

    code = code.strip().upper()
    existing = public_db.scalar(select(Tenant).where(or_(Tenant.code == code, Tenant.schema_name == schema)))
    if existing:
        raise ConflictError("Tenant code or schema already exists")

    create_schema_tables(schema)
    with session_for(schema) as tenant_db:
        bootstrap_database(tenant_db)

    tenant = Tenant(code=code, name=name.strip(), schema_name=schema)
    public_db.add(tenant)
    public_db.commit()
    public_db.refresh(tenant)
    logger.info("Provisioned tenant %s in schema %s", tenant.code, schema)
    return tenant
