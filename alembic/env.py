"""Alembic environment: migrates the database named by `DATABASE_URL`."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from jobpay.common.config import Settings
from jobpay.common.db import Base
from jobpay.services.callbacks.models import UnmatchedCallback  # noqa: F401
from jobpay.services.jobs.models import Job  # noqa: F401
from jobpay.services.payments.models import PaymentAttempt  # noqa: F401
from jobpay.services.payouts.models import PayoutAttempt  # noqa: F401


config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)
config.set_main_option("sqlalchemy.url", Settings().database_url)
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(url=config.get_main_option("sqlalchemy.url"), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
