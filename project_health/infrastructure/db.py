"""
Engine and session factories for the project store.

Settings come from ``DatabaseConfig``; callers may pass their own config to
point at another database (tests use ``:memory:``).
"""

from __future__ import annotations

from pydantic import ValidationError as SettingsValidationError
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DatabaseConfig, get_settings
from .exceptions import handle_database_error
from .logging import get_logger
from .models import Base

logger = get_logger(__name__)


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Build an engine for ``config`` (the environment's database by default).

    Example:
        >>> engine = create_database_engine(DatabaseConfig(sqlite_path=":memory:"))
        >>> engine.dialect.name
        'sqlite'
    """
    if config is None:
        config = get_settings().database

    engine_options = config.get_engine_options()
    if config.backend == "sqlite" and config.sqlite_path == ":memory:":
        # One shared connection, otherwise every thread sees its own empty database.
        engine_options.update(
            poolclass=StaticPool, connect_args={"check_same_thread": False}
        )

    engine = create_engine(config.get_connection_url(), **engine_options)
    logger.info(
        "Database engine ready: %s", engine.url.render_as_string(hide_password=True)
    )
    return engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """
    Sessions that never autoflush and keep loaded rows usable after commit.

    Example:
        >>> SessionLocal = create_session_factory()
        >>> with SessionLocal() as session:
        ...     pass
    """
    if engine is None:
        engine = create_database_engine()

    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def initialise_schema(engine: Engine) -> None:
    """Create missing tables. Deployed databases are migrated with alembic instead."""
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise handle_database_error(e, "create schema") from e
    logger.debug("Schema ensured on %s", engine.url.render_as_string(hide_password=True))


def is_database_configured() -> bool:
    """True when the environment describes a database we can build a URL for."""
    try:
        get_settings().database.get_connection_url()
    except (SettingsValidationError, ValueError) as e:
        logger.warning("Database configuration invalid: %s", e)
        return False
    return True
