"""Schema-per-tenant engine registry.

The public schema holds the tenant registry and acts as the default store.
Every tenant gets its own engine, created lazily and cached by schema name:

* PostgreSQL: the base URL with ``schema_translate_map={None: <schema>}``
  so unqualified tables resolve inside the tenant schema.
* SQLite (file): a sibling database file ``<stem>__<schema><suffix>``.
* SQLite (in-memory): tenants are not supported.

A process-wide active schema mirrors the desktop client's single-user
mode; HTTP requests override it through the tenant header.
"""

import logging
import re
import threading
from pathlib import Path

from sqlalchemy import select, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from posdesk.core.config import settings
from posdesk.core.errors import ForbiddenError, NotFoundError, TenantError
from posdesk.db.database import Base, create_db_engine, is_sqlite_url, tenant_tables
from posdesk.models import Tenant

logger = logging.getLogger(__name__)

SCHEMA_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")
PUBLIC_SCHEMA = "public"

_lock = threading.Lock()
_public_engine: Engine | None = None
_tenant_engines: dict[str, Engine] = {}
_session_factories: dict[str | None, sessionmaker] = {}
_active_schema: str | None = None


def normalize_schema(schema_name: str | None) -> str | None:
    normalized = schema_name.strip() if isinstance(schema_name, str) else ""
    if not normalized or normalized == PUBLIC_SCHEMA:
        return None
    if not SCHEMA_NAME_PATTERN.match(normalized):
        raise TenantError(f"Invalid schema name: {normalized!r}")
    return normalized


def set_active_schema(schema_name: str | None) -> None:
    global _active_schema
    _active_schema = normalize_schema(schema_name)


def get_active_schema() -> str | None:
    return _active_schema


def tenant_database_url(base_url: str, schema_name: str) -> str:
    if not is_sqlite_url(base_url):
        return base_url

    url = make_url(base_url)
    database = url.database
    if not database or database == ":memory:":
        raise TenantError("Tenant schemas require a file-backed SQLite database")
    path = Path(database)
    suffix = path.suffix or ".db"
    tenant_path = path.with_name(f"{path.stem}__{schema_name}{suffix}")
    return url.set(database=str(tenant_path)).render_as_string(hide_password=False)


def get_engine(schema_name: str | None = None) -> Engine:
    global _public_engine
    schema = normalize_schema(schema_name)
    with _lock:
        if schema is None:
            if _public_engine is None:
                _public_engine = create_db_engine(settings.database_url)
            return _public_engine

        engine = _tenant_engines.get(schema)
        if engine is None:
            engine = create_db_engine(tenant_database_url(settings.database_url, schema), schema=schema)
            _tenant_engines[schema] = engine
            logger.info("Created engine for tenant schema %s", schema)
        return engine


def session_for(schema_name: str | None = None) -> Session:
    schema = normalize_schema(schema_name)
    factory = _session_factories.get(schema)
    if factory is None:
        factory = sessionmaker(bind=get_engine(schema), autoflush=False, autocommit=False)
        _session_factories[schema] = factory
    return factory()


def create_schema_tables(schema_name: str | None) -> None:
    schema = normalize_schema(schema_name)
    if schema is None:
        Base.metadata.create_all(get_engine())
        return

    if not is_sqlite_url(settings.database_url):
        with get_engine().begin() as conn:
            conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
    Base.metadata.create_all(get_engine(schema), tables=tenant_tables())


def ensure_registered_tenant(schema_name: str | None) -> None:
    """Raise unless ``schema_name`` is public or an active registered tenant."""
    schema = normalize_schema(schema_name)
    if schema is None:
        return
    with session_for(None) as db:
        tenant = db.scalar(select(Tenant).where(Tenant.schema_name == schema))
    if tenant is None:
        raise NotFoundError(f"Unknown tenant schema: {schema}")
    if not tenant.is_active:
        raise ForbiddenError(f"Tenant schema is inactive: {schema}")


def dispose_engines() -> None:
    global _public_engine
    with _lock:
        for engine in _tenant_engines.values():
            engine.dispose()
        _tenant_engines.clear()
        if _public_engine is not None:
            _public_engine.dispose()
            _public_engine = None
        _session_factories.clear()
