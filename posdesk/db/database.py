from sqlalchemy import Table, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

from posdesk.core.config import settings


class Base(DeclarativeBase):
    pass


# Tables that only exist in the public schema; every other table is created per tenant.
PUBLIC_ONLY_TABLES = frozenset({"tenants"})


def is_sqlite_url(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def tenant_tables() -> list[Table]:
    return [table for table in Base.metadata.sorted_tables if table.name not in PUBLIC_ONLY_TABLES]


def create_db_engine(database_url: str, schema: str | None = None) -> Engine:
    is_sqlite = is_sqlite_url(database_url)
    if is_sqlite:
        connect_args = {"check_same_thread": False}
    elif settings.database_sslmode:
        connect_args = {"sslmode": settings.database_sslmode}
    else:
        connect_args = {}

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=settings.sql_echo,
        pool_pre_ping=not is_sqlite,
        pool_recycle=1800 if not is_sqlite else -1,
    )
    if schema is not None and not is_sqlite:
        engine = engine.execution_options(schema_translate_map={None: schema})
    return engine
