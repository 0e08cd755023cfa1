from alembic import context
from sqlalchemy import text

from posdesk.core.config import settings
from posdesk.db.database import Base, create_db_engine, is_sqlite_url
from posdesk.db.tenancy import normalize_schema, tenant_database_url

config = context.config
target_metadata = Base.metadata


def _target_schema() -> str | None:
    schema = config.attributes.get("schema") or context.get_x_argument(as_dictionary=True).get("schema")
    return normalize_schema(schema)


def _database_url(schema: str | None) -> str:
    url = config.get_main_option("sqlalchemy.url") or settings.database_url
    if schema is not None and is_sqlite_url(url):
        return tenant_database_url(url, schema)
    return url


def run_migrations_offline() -> None:
    schema = _target_schema()
    context.configure(
        url=_database_url(schema),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        tenant_schema=schema,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    schema = _target_schema()
    url = _database_url(schema)
    connectable = create_db_engine(url)

    with connectable.connect() as connection:
        options = {}
        if schema is not None and not is_sqlite_url(url):
            connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
            connection.commit()
            connection = connection.execution_options(schema_translate_map={None: schema})
            options["version_table_schema"] = schema
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            tenant_schema=schema,
            **options,
        )
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
