"""
env.py — Alembic Migration Environment for PrestaBoost

Points alembic at settings.database_url and at the PrestaBoost metadata
(boutiques, stock_snapshots, orders, order_items, sync_jobs) so
`alembic revision --autogenerate` diffs against app.models.

Business Rules:
- Every schema change ships as a revision under alembic/versions; the app
  never calls create_all outside tests
- Stock snapshots and orders are append/upsert tables owned by a boutique;
  revisions must keep their ON DELETE CASCADE foreign keys
- SQLite URLs (dev, tests) and PostgreSQL URLs (prod) both run here

Called by: alembic CLI (`alembic upgrade head`)
Depends on: app.models (Base + all tables), app.config (settings)
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from app.config import settings
from app.models import Base  # noqa: F401 — imports all models via Base.metadata

# Alembic Config object
config = context.config

# alembic.ini carries no URL; the app settings are the single source
config.set_main_option("sqlalchemy.url", settings.database_url)

# Python logging from alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Boutique, StockSnapshot, Order, OrderItem, SyncJob
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode — generates SQL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode — connects to DB and applies."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER most columns in place
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
