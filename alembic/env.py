from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from tai_ledger.core.config import get_settings
from tai_ledger.database import Base, normalize_db_url
import tai_ledger.models  # noqa: F401  registers the ledger tables on Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _ledger_url() -> str:
    """DATABASE_URL from settings/.env wins; alembic.ini is the fallback."""
    url = normalize_db_url(get_settings().DATABASE_URL)
    if not url:
        url = normalize_db_url(config.get_main_option("sqlalchemy.url") or "")
    if not url:
        raise RuntimeError("DATABASE_URL is empty; nothing to migrate")
    return url


def _configure(**kw) -> None:
    url = kw.get("url") or str(kw["connection"].engine.url)
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # sqlite cannot ALTER constraints in place
        render_as_batch=url.startswith("sqlite"),
        **kw,
    )


def run_migrations_offline() -> None:
    _configure(url=_ledger_url(), literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    config.set_main_option("sqlalchemy.url", _ledger_url())
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
