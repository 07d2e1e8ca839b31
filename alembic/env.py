from __future__ import annotations

import re
from logging.config import fileConfig

from alembic import context  # type: ignore[attr-defined]
from alembic.script import ScriptDirectory
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Engine

from project_health.infrastructure.config import get_settings
from project_health.infrastructure.db import create_database_engine
from project_health.infrastructure.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

# An explicit sqlalchemy.url (ini or -x) wins over the DB_* settings.
EXPLICIT_URL = config.get_main_option("sqlalchemy.url") or None


def _next_revision_id(message: str | None) -> str:
    """Revisions are numbered ``0002_add_column`` so they sort in apply order."""
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", message or "").strip("_").lower() or "revision"
    numbers = [
        int(match.group(1))
        for rev in ScriptDirectory.from_config(config).walk_revisions()
        if (match := re.match(r"^(\d+)", rev.revision or ""))
    ]
    return f"{max(numbers, default=0) + 1:04d}_{slug}"


def _process_revision_directives(context, revision, directives):  # type: ignore[unused-argument]
    cmd_opts = getattr(config, "cmd_opts", None)
    if not directives or (cmd_opts and getattr(cmd_opts, "rev_id", None)):
        return
    script = directives[0]
    script.rev_id = _next_revision_id(getattr(script, "message", None))


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        process_revision_directives=_process_revision_directives,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place.
        render_as_batch=True,
        **kwargs,
    )


def _engine() -> Engine:
    if EXPLICIT_URL:
        return engine_from_config(
            config.get_section(config.config_ini_section, {}),
            prefix="sqlalchemy.",
            poolclass=pool.NullPool,
        )
    return create_database_engine(get_settings().database)


def run_migrations_offline() -> None:
    _configure(
        url=EXPLICIT_URL or get_settings().database.get_connection_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = _engine()
    try:
        with engine.connect() as connection:
            _configure(connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
