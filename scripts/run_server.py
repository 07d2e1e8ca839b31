from __future__ import annotations

import argparse

import uvicorn

from project_health.infrastructure.config import get_settings
from project_health.infrastructure.db import (
    create_database_engine,
    initialise_schema,
    is_database_configured,
)
from project_health.infrastructure.exceptions import ConfigurationError
from project_health.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the project health API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    return parser.parse_args(argv)


def configure_logging() -> None:
    config = get_settings().logging
    setup_logging(
        level=config.level,
        log_file=config.file_path,
        structured=config.structured,
        enable_console=config.console_enabled,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count,
    )


def ensure_schema() -> None:
    """Create the tables before the first request when the database is new."""
    if not is_database_configured():
        raise ConfigurationError("Database settings are invalid", config_key="DB_BACKEND")
    initialise_schema(create_database_engine(get_settings().database))


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging()
    ensure_schema()

    logger.info("Serving on %s:%s", args.host, args.port)
    uvicorn.run(
        "project_health.web.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload and get_settings().is_development(),
    )


if __name__ == "__main__":
    main()
