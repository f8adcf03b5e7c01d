"""Alembic environment — migrations run against leadcascade.database.engine."""
from logging.config import fileConfig

from alembic import context

from leadcascade.database import Base, engine
import leadcascade.models.cascade_config  # noqa: F401
import leadcascade.models.cascade_entry  # noqa: F401
import leadcascade.models.responsibility_change  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=str(engine.url),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={'paramstyle': 'named'},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
