"""
Configuration for ntexport.

Loaded from a YAML file (the same layout Next Terminal's export tool has always
used), then overridden by environment variables.

Usage:
    from ntexport.config import load_config
    cfg = load_config("config.yml")
    print(cfg.db)            # "sqlite"
    print(cfg.sqlite.file)   # "next-terminal.db"
    print(cfg.mysql.port)    # 3306
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from ntexport.errors import ConfigError

SUPPORTED_BACKENDS = ("sqlite", "mysql", "postgres")

DEFAULT_CONFIG_PATH = Path("config.yml")


@dataclass(frozen=True)
class SqliteConfig:
    """SQLite database file."""

    file: str = "next-terminal.db"


@dataclass(frozen=True)
class PostgresConfig:
    """PostgreSQL connection parameters."""

    hostname: str = "127.0.0.1"
    port: int = 5432
    username: str = "next-terminal"
    password: str = ""
    database: str = "next-terminal"

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a psycopg2.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "dbname": self.database,
            "host": self.hostname,
            "port": self.port,
        }
        if self.username:
            d["user"] = self.username
        if self.password:
            d["password"] = self.password
        return d


@dataclass(frozen=True)
class MysqlConfig:
    """MySQL connection parameters."""

    hostname: str = "127.0.0.1"
    port: int = 3306
    username: str = "next-terminal"
    password: str = ""
    database: str = "next-terminal"

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a pymysql.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "host": self.hostname,
            "port": self.port,
            "database": self.database,
            "charset": "utf8mb4",
        }
        if self.username:
            d["user"] = self.username
        if self.password:
            d["password"] = self.password
        return d


@dataclass(frozen=True)
class Config:
    """Top-level export configuration."""

    db: str = "sqlite"
    sqlite: SqliteConfig = field(default_factory=SqliteConfig)
    mysql: MysqlConfig = field(default_factory=MysqlConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    output: Path = field(default_factory=lambda: Path("backup.json"))

    def redacted(self) -> dict[str, Any]:
        """Config as a dict safe to log (passwords masked)."""
        return {
            "db": self.db,
            "sqlite": {"file": self.sqlite.file},
            "mysql": _redact_server(self.mysql),
            "postgres": _redact_server(self.postgres),
            "output": str(self.output),
        }


def _redact_server(server: MysqlConfig | PostgresConfig) -> dict[str, Any]:
    return {
        "hostname": server.hostname,
        "port": server.port,
        "username": server.username,
        "password": "***" if server.password else "",
        "database": server.database,
    }


def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> Config:
    """Read the YAML config file and apply environment overrides."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    cfg = _apply_env(_from_dict(data))
    if cfg.db not in SUPPORTED_BACKENDS:
        raise ConfigError(
            f"Unsupported db: {cfg.db!r} (expected one of: {', '.join(SUPPORTED_BACKENDS)})"
        )
    return cfg


def _port(value: Any, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {label}: {value!r}") from e


def _from_dict(data: dict[str, Any]) -> Config:
    sqlite = data.get("sqlite") or {}
    mysql = data.get("mysql") or {}
    pg = data.get("postgres") or {}
    if not all(isinstance(section, dict) for section in (sqlite, mysql, pg)):
        raise ConfigError("'sqlite', 'mysql' and 'postgres' sections must be mappings")

    my_defaults = MysqlConfig()
    pg_defaults = PostgresConfig()
    return Config(
        db=str(data.get("db", "sqlite")),
        sqlite=SqliteConfig(file=str(sqlite.get("file", SqliteConfig.file))),
        mysql=MysqlConfig(
            hostname=str(mysql.get("hostname", my_defaults.hostname)),
            port=_port(mysql.get("port", my_defaults.port), "mysql port"),
            username=str(mysql.get("username", my_defaults.username)),
            password=str(mysql.get("password", my_defaults.password)),
            database=str(mysql.get("database", my_defaults.database)),
        ),
        postgres=PostgresConfig(
            hostname=str(pg.get("hostname", pg_defaults.hostname)),
            port=_port(pg.get("port", pg_defaults.port), "postgres port"),
            username=str(pg.get("username", pg_defaults.username)),
            password=str(pg.get("password", pg_defaults.password)),
            database=str(pg.get("database", pg_defaults.database)),
        ),
        output=Path(data.get("output", "backup.json")),
    )


def _apply_env(cfg: Config) -> Config:
    """Override config values from NTEXPORT_* environment variables."""
    env = os.environ
    return replace(
        cfg,
        db=env.get("NTEXPORT_DB", cfg.db),
        sqlite=SqliteConfig(file=env.get("NTEXPORT_SQLITE_FILE", cfg.sqlite.file)),
        mysql=MysqlConfig(
            hostname=env.get("NTEXPORT_MYSQL_HOST", cfg.mysql.hostname),
            port=_port(env.get("NTEXPORT_MYSQL_PORT", cfg.mysql.port), "NTEXPORT_MYSQL_PORT"),
            username=env.get("NTEXPORT_MYSQL_USER", cfg.mysql.username),
            password=env.get("NTEXPORT_MYSQL_PASSWORD", cfg.mysql.password),
            database=env.get("NTEXPORT_MYSQL_DATABASE", cfg.mysql.database),
        ),
        postgres=PostgresConfig(
            hostname=env.get("NTEXPORT_PG_HOST", cfg.postgres.hostname),
            port=_port(env.get("NTEXPORT_PG_PORT", cfg.postgres.port), "NTEXPORT_PG_PORT"),
            username=env.get("NTEXPORT_PG_USER", cfg.postgres.username),
            password=env.get("NTEXPORT_PG_PASSWORD", cfg.postgres.password),
            database=env.get("NTEXPORT_PG_DATABASE", cfg.postgres.database),
        ),
        output=Path(env.get("NTEXPORT_OUTPUT", cfg.output)),
    )
