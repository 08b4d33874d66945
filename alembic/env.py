"""
Alembic environment for FamHub.

Migrations run on a synchronous driver; settings.DATABASE_URL_SYNC
strips the async driver from the application URL.
"""
from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from famhub.config import settings
from famhub.db.database import Base
from famhub.db.models import Currency, ExchangeRate, User  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    url = settings.DATABASE_URL_SYNC
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # ALTER support on sqlite goes through table copies
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    _configure(
        url=settings.DATABASE_URL_SYNC,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(settings.DATABASE_URL_SYNC, poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
