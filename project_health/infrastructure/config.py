"""
Settings for the project health tracker, read from the environment with
pydantic-settings. Each section has its own prefix: ``APP_``, ``DB_``, ``LOG_``
and ``SCORING_``.
"""

from __future__ import annotations

import json
import os
from functools import cached_property, lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

Environment = Literal["development", "testing", "production"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DatabaseConfig(BaseSettings):
    """
    Where projects and assessments are stored. SQLite by default; MySQL through
    the optional ``pymysql`` driver.

    Example:
        >>> DatabaseConfig(sqlite_path="./health.db").get_connection_url()
        'sqlite:///./health.db'
    """

    model_config = SettingsConfigDict(env_prefix="DB_", case_sensitive=False)

    backend: Literal["sqlite", "mysql"] = "sqlite"
    sqlite_path: str | None = Field("./project_health.db", description="File, or :memory:")

    mysql_host: str | None = "localhost"
    mysql_port: int = Field(3306, ge=1, le=65535)
    mysql_user: str | None = "root"
    mysql_password: str | None = ""
    mysql_database: str | None = "project_health"
    mysql_charset: str = "utf8mb4"

    pool_pre_ping: bool = True
    pool_recycle: int = Field(3600, ge=60, description="Seconds before MySQL connections are recycled")
    echo: bool = Field(False, description="Log every SQL statement")

    @field_validator("sqlite_path")
    @classmethod
    def default_db_suffix(cls, value: str | None) -> str | None:
        if value and value != ":memory:" and not Path(value).suffix:
            return str(Path(value).with_suffix(".db"))
        return value

    @model_validator(mode="after")
    def mysql_needs_target(self) -> DatabaseConfig:
        if self.backend == "mysql":
            missing = [
                name
                for name in ("mysql_host", "mysql_user", "mysql_database")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"MySQL backend requires: {', '.join(missing)}")
        return self

    def get_connection_url(self) -> str:
        if self.backend == "mysql":
            url = URL.create(
                "mysql+pymysql",
                username=self.mysql_user,
                password=self.mysql_password or None,
                host=self.mysql_host,
                port=self.mysql_port,
                database=self.mysql_database,
                query={"charset": self.mysql_charset},
            )
        else:
            url = URL.create("sqlite", database=self.sqlite_path)
        return url.render_as_string(hide_password=False)

    def get_engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": self.echo, "pool_pre_ping": self.pool_pre_ping}
        if self.backend == "mysql":
            options["pool_recycle"] = self.pool_recycle
        return options


class LoggingConfig(BaseSettings):
    """
    Arguments for ``setup_logging`` when the API server starts.

    Example:
        >>> LoggingConfig(file_path=None).file_path is None
        True
    """

    model_config = SettingsConfigDict(env_prefix="LOG_", case_sensitive=False)

    level: LogLevel = "INFO"
    file_path: str | None = "./logs/project_health.log"
    max_bytes: int = Field(10 * 1024 * 1024, ge=1024)
    backup_count: int = Field(5, ge=1)
    structured: bool = Field(True, description="JSON lines on the console too")
    console_enabled: bool = True


class ScoringConfig(BaseSettings):
    """
    Tunables of the scoring engine exposed to the outer layers.

    The domain functions take these as explicit arguments; the settings only
    supply the defaults used by the application and web layers.
    """

    model_config = SettingsConfigDict(env_prefix="SCORING_", case_sensitive=False)

    trend_window: int = Field(12, ge=1, le=520, description="Periods kept when no year is set")
    at_risk_threshold: float = Field(
        4.0, ge=1.0, le=5.0, description="Overall score below which a project is at risk"
    )
    max_justification_length: int = Field(
        1500, ge=1, description="Maximum characters per sub-criterion justification"
    )


class ApplicationConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="APP_", case_sensitive=False)

    environment: Environment = "development"
    debug: bool = False
    title: str = "Project Health Tracker"
    version: str = "0.1.0"

    enable_data_export: bool = Field(True, description="Serve /api/export/*")
    enable_data_import: bool = Field(True, description="Accept POST /api/import")

    @model_validator(mode="after")
    def no_debug_in_production(self) -> ApplicationConfig:
        if self.debug and self.environment == "production":
            raise ValueError("Debug mode cannot be enabled in production")
        return self


class Settings:
    """
    Configuration sections, each read from the environment the first time it is used.

    Example:
        >>> get_settings().scoring.trend_window
        12
    """

    @cached_property
    def app(self) -> ApplicationConfig:
        return ApplicationConfig()

    @cached_property
    def database(self) -> DatabaseConfig:
        return DatabaseConfig()

    @cached_property
    def logging(self) -> LoggingConfig:
        # LOG_LEVEL still wins; this only moves the default with the environment.
        defaults = {"development": "DEBUG", "testing": "WARNING", "production": "INFO"}
        level = "DEBUG" if self.app.debug else defaults[self.app.environment]
        return LoggingConfig(level=os.getenv("LOG_LEVEL", level).upper())

    @cached_property
    def scoring(self) -> ScoringConfig:
        return ScoringConfig()

    def is_development(self) -> bool:
        return self.app.environment == "development"

    def is_production(self) -> bool:
        return self.app.environment == "production"

    def is_testing(self) -> bool:
        return self.app.environment == "testing"

    def get_environment_info(self) -> dict[str, Any]:
        """Summary logged at API startup."""
        return {
            "environment": self.app.environment,
            "version": self.app.version,
            "database_backend": self.database.backend,
            "logging_level": self.logging.level,
            "trend_window": self.scoring.trend_window,
            "at_risk_threshold": self.scoring.at_risk_threshold,
            "features": {
                "data_export": self.app.enable_data_export,
                "data_import": self.app.enable_data_import,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def _export_to_environ(values: dict[str, Any]) -> Settings:
    for name, value in values.items():
        os.environ[name.upper()] = str(value)
    reset_settings()
    return get_settings()


def load_settings_from_file(file_path: str) -> Settings:
    """
    Apply a JSON settings file, one object per section:
    ``{"scoring": {"trend_window": 6}}`` sets ``SCORING_TREND_WINDOW``.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    if path.suffix.lower() != ".json":
        raise ValueError(f"Settings files must be JSON, got {path.suffix or 'no suffix'}")

    sections = json.loads(path.read_text(encoding="utf-8"))
    return _export_to_environ(
        {
            f"{section}_{key}": value
            for section, values in sections.items()
            if isinstance(values, dict)
            for key, value in values.items()
        }
    )


def override_settings(**values: Any) -> Settings:
    """
    Set environment variables and reload, e.g.
    ``override_settings(scoring_trend_window=6, db_sqlite_path=":memory:")``.
    """
    return _export_to_environ(values)


def reset_settings() -> None:
    get_settings.cache_clear()
