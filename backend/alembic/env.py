import sys
import warnings
from pathlib import Path
from logging.config import fileConfig

from alembic import context
from sqlalchemy.exc import SAWarning
from sqlalchemy import engine_from_config, pool

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT_DIR))

from dailybag.db import Base, BuildAdminConnectionUrl
from dailybag.modules.auth import models as auth_models  # noqa: F401
from dailybag.modules.chores import models as chores_models  # noqa: F401
from dailybag.modules.households import models as households_models  # noqa: F401
from dailybag.modules.invites import models as invites_models  # noqa: F401
from dailybag.modules.redemptions import models as redemptions_models  # noqa: F401
from dailybag.modules.stats import models as stats_models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

warnings.filterwarnings(
    "ignore",
    message="Unrecognized server version info",
    category=SAWarning,
)

target_metadata = Base.metadata


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    url = BuildAdminConnectionUrl()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section)
    configuration["sqlalchemy.url"] = BuildAdminConnectionUrl()
    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
