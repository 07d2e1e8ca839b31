"""Load a JSON project export into the configured database."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from project_health.application import api as app_api
from project_health.infrastructure.config import DatabaseConfig, get_settings
from project_health.infrastructure.db import (
    create_database_engine,
    create_session_factory,
    initialise_schema,
)
from project_health.infrastructure.exceptions import ProjectHealthError
from project_health.infrastructure.logging import get_logger
from project_health.infrastructure.uow import UnitOfWork

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", type=Path, help="JSON file produced by /api/export/json")
    parser.add_argument(
        "--replace-all",
        action="store_true",
        help="Drop projects missing from the file instead of keeping them",
    )
    parser.add_argument(
        "--sqlite-path",
        default=None,
        help="Import into this SQLite file instead of the DB_* settings",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if not args.source.exists():
        logger.error("Import file not found: %s", args.source)
        return 2

    config = (
        DatabaseConfig(backend="sqlite", sqlite_path=args.sqlite_path)
        if args.sqlite_path
        else get_settings().database
    )
    engine = create_database_engine(config)
    try:
        initialise_schema(engine)
        with UnitOfWork(create_session_factory(engine)).begin() as session:
            count = app_api.import_projects(
                session, args.source.read_bytes(), replace_all=args.replace_all
            )
    except ProjectHealthError as e:
        logger.error("Import of %s failed: %s", args.source, e.message)
        print(e.user_message, file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print(f"Imported {count} projects from {args.source}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
