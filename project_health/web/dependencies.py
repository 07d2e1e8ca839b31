from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from project_health.infrastructure.config import DatabaseConfig, get_settings
from project_health.infrastructure.db import (
    create_database_engine,
    create_session_factory,
    initialise_schema,
)
from project_health.infrastructure.logging import get_logger

logger = get_logger(__name__)


def get_db_config(request: Request) -> DatabaseConfig:
    """Database settings pinned on the app; tests may set ``app.state.db_config``."""
    config = getattr(request.app.state, "db_config", None)
    if config is None:
        config = get_settings().database
        request.app.state.db_config = config
    return config


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """
    One engine per distinct database config, created on first use with its
    schema in place. A changed config disposes the previous engine.
    """
    state = request.app.state
    config = get_db_config(request)
    key = config.model_dump()

    cached = getattr(state, "session_factory", None)
    if cached is not None and getattr(state, "session_factory_key", None) == key:
        return cached

    if cached is not None:
        logger.info("Database settings changed; replacing engine")
        cached.kw["bind"].dispose()

    engine = create_database_engine(config)
    initialise_schema(engine)
    state.session_factory = create_session_factory(engine)
    state.session_factory_key = key
    return state.session_factory


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Request-scoped session. Routes commit; anything left pending is rolled back on close."""
    with get_session_factory(request)() as session:
        yield session
