"""
Alembic environment for the auth schema (users, roles, permissions and the
two association tables).

The target URL is DATABASE_URL from tenantauth settings unless overridden on
the command line, e.g. `alembic -x url=postgresql://... upgrade head`.
"""

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

os.environ.setdefault("APP_ENV", "local")
from tenantauth.core.config import settings
from tenantauth.models import Base

config = context.config
if config.config_file_name is not None:
    try:
        fileConfig(config.config_file_name)
    except KeyError:
        # alembic.ini without [loggers]/[handlers]/[formatters].
        pass

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def get_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("url") or settings.DATABASE_URL


def _configure_kwargs() -> dict:
    # The user_role enum and the boolean flags must be diffed by type on autogenerate.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
    }


def run_migrations_offline() -> None:
    """Emit SQL for the auth schema without connecting."""
    context.configure(
        url=get_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a single unpooled connection."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)
    logger.info(
        "Running auth schema migrations against %s",
        connectable.url.render_as_string(hide_password=True),
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs())
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
