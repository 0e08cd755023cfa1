"""
Programmatic Alembic migration runner.

Runs migrations without an alembic.ini by pointing Alembic at the
migrations package next to this file.

Usage examples:
    posdesk migrate upgrade head
    posdesk migrate --schema store_01 upgrade head
    posdesk migrate downgrade -1
    posdesk migrate history
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from posdesk.core.config import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def build_config(schema: str | None = None) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))
    cfg.attributes["schema"] = schema
    return cfg


def run(args: list[str], schema: str | None = None) -> int:
    """Dispatch one Alembic command; returns a process exit code."""
    if not args:
        logger.error("No Alembic arguments provided. Example: upgrade head")
        return 1

    cfg = build_config(schema)
    cmd, other = args[0], args[1:]
    logger.info("Running alembic %s %s (schema=%s)", cmd, " ".join(other), schema or "public")

    if cmd == "upgrade":
        command.upgrade(cfg, *(other or ["head"]))
    elif cmd == "downgrade":
        command.downgrade(cfg, *(other or ["-1"]))
    elif cmd == "history":
        command.history(cfg, *other)
    elif cmd == "current":
        command.current(cfg, *other)
    elif cmd == "heads":
        command.heads(cfg)
    elif cmd == "show":
        if not other:
            logger.error("Usage: show <revision>")
            return 2
        command.show(cfg, other[0])
    else:
        logger.error("Unsupported Alembic command: %s", cmd)
        return 2
    return 0
