import argparse
import json
import logging
import sys

from posdesk.core.config import settings
from posdesk.core.errors import POSError
from posdesk.core.logging import configure_logging, tenant_schema_var
from posdesk.db import run_migrations
from posdesk.db.tenancy import create_schema_tables, normalize_schema, session_for
from posdesk.services.access import describe_employee_access
from posdesk.services.setup import bootstrap_database, clear_data
from posdesk.services.tenants import provision_tenant

logger = logging.getLogger("posdesk.cli")


def _setup_db(args: argparse.Namespace) -> int:
    schema = normalize_schema(args.schema)
    create_schema_tables(schema)
    with session_for(schema) as db:
        admin = bootstrap_database(db)
        print(f"Database ready. Default admin: {admin.email} ({admin.employee_id})")
    return 0


def _clear_data(args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to clear data without --yes")
        return 1
    with session_for(normalize_schema(args.schema)) as db:
        clear_data(db)
    print("All data cleared.")
    return 0


def _check_access(args: argparse.Namespace) -> int:
    with session_for(normalize_schema(args.schema)) as db:
        report = describe_employee_access(db, args.email)
    if report is None:
        print(f"No employee found with email {args.email}")
        return 1
    print(json.dumps(report, indent=2))
    return 0


def _create_tenant(args: argparse.Namespace) -> int:
    create_schema_tables(None)
    with session_for(None) as db:
        tenant = provision_tenant(db, code=args.code, name=args.name, schema_name=args.schema_name)
    print(f"Tenant {tenant.code} provisioned in schema {tenant.schema_name}")
    return 0


def _migrate(args: argparse.Namespace) -> int:
    return run_migrations.run(args.alembic_args, schema=normalize_schema(args.schema))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="posdesk", description=f"{settings.app_name} administration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser("setup-db", help="Create tables, roles, default admin and settings")
    setup_parser.add_argument("--schema", default=None, help="Tenant schema (defaults to public)")
    setup_parser.set_defaults(handler=_setup_db)

    clear_parser = subparsers.add_parser("clear-data", help="Delete all business data")
    clear_parser.add_argument("--schema", default=None)
    clear_parser.add_argument("--yes", action="store_true", help="Confirm the deletion")
    clear_parser.set_defaults(handler=_clear_data)

    access_parser = subparsers.add_parser("check-access", help="Show roles and permissions for an employee")
    access_parser.add_argument("email")
    access_parser.add_argument("--schema", default=None)
    access_parser.set_defaults(handler=_check_access)

    tenant_parser = subparsers.add_parser("create-tenant", help="Register and bootstrap a tenant schema")
    tenant_parser.add_argument("code")
    tenant_parser.add_argument("name")
    tenant_parser.add_argument("schema_name")
    tenant_parser.set_defaults(handler=_create_tenant)

    migrate_parser = subparsers.add_parser("migrate", help="Run an Alembic command")
    migrate_parser.add_argument("--schema", default=None)
    migrate_parser.add_argument("alembic_args", nargs=argparse.REMAINDER)
    migrate_parser.set_defaults(handler=_migrate)

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging(settings.log_level)
    args = build_parser().parse_args(argv)
    tenant_schema_var.set(getattr(args, "schema", None) or getattr(args, "schema_name", None))
    try:
        return args.handler(args)
    except POSError as exc:
        logger.error("%s failed: %s", args.command, exc.detail)
        return 1


if __name__ == "__main__":
    sys.exit(main())
