# stashdb/alembic/env.py

from __future__ import annotations

import os
import sys
from logging.config import fileConfig

from alembic import context

# __file__ = <root>/stashdb/alembic/env.py, so the project root is two levels up
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _is_placeholder_url(url: str) -> bool:
    u = (url or "").strip()
    return not u or u.startswith("driver://")


def _resolve_url() -> str:
    """
    Prefer sqlalchemy.url from alembic.ini unless it is the template
    placeholder, then fall back to the same env vars the app reads.
    """
    url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if _is_placeholder_url(url):
        url = (os.getenv("DATABASE_WRITE_URL") or os.getenv("DATABASE_URL") or "").strip()
    if not url:
        raise RuntimeError(
            "No database URL found.\n"
            "Set sqlalchemy.url in alembic.ini OR set DATABASE_WRITE_URL / DATABASE_URL."
        )
    config.set_main_option("sqlalchemy.url", url)
    os.environ.setdefault("DATABASE_URL", url)
    return url


_resolve_url()

# Import after the URL is known: stashdb.database builds its engines on import.
from stashdb.database import Base, write_engine  # noqa: E402
from stashdb.apps.audit import models as audit_models  # noqa: F401, E402
from stashdb.apps.catalog import models as catalog_models  # noqa: F401, E402
from stashdb.apps.inventory import models as inventory_models  # noqa: F401, E402
from stashdb.apps.purchasing import models as purchasing_models  # noqa: F401, E402

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Render SQL without connecting to the database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Migrate through the application's write engine."""
    with write_engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
