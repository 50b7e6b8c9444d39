"""
Connection factory for the Next Terminal database.

Next Terminal runs on SQLite, MySQL or PostgreSQL. One connection is opened
per export run and closed when the run ends; nothing is ever committed.

Usage:
    from ntexport.db import open_repository

    with open_repository(cfg) as repo:
        users = repo.find_all(User)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from ntexport.config import Config
from ntexport.db.repository import Repository
from ntexport.errors import ConfigError, RepositoryError

logger = logging.getLogger(__name__)


def connect_sqlite(file: str) -> Repository:
    """Open a SQLite database read-only."""
    path = Path(file)
    if not path.is_file():
        raise RepositoryError(f"SQLite database not found: {path}")
    logger.info("Opening SQLite database %s", path)
    try:
        conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise RepositoryError(f"Cannot open SQLite database {path}: {e}") from e
    return Repository(conn, placeholder="?", errors=(sqlite3.Error,))


def connect_mysql(cfg: Config) -> Repository:
    """Open a MySQL session."""
    import pymysql

    my = cfg.mysql
    logger.info("Connecting to MySQL %s@%s:%s/%s", my.username, my.hostname, my.port, my.database)
    try:
        conn = pymysql.connect(**my.dict, connect_timeout=5)
    except pymysql.Error as e:
        raise RepositoryError(
            f"Cannot connect to MySQL at {my.hostname}:{my.port}/{my.database}: {e}\n"
            f"Check the mysql section of the config file or NTEXPORT_MYSQL_* environment variables."
        ) from e
    return Repository(conn, placeholder="%s", errors=(pymysql.Error,))


def connect_postgres(cfg: Config) -> Repository:
    """Open a read-only PostgreSQL session."""
    import psycopg2

    pg = cfg.postgres
    logger.info("Connecting to PostgreSQL %s@%s:%s/%s", pg.username, pg.hostname, pg.port, pg.database)
    conn = None
    try:
        conn = psycopg2.connect(**pg.dict, connect_timeout=5)
        conn.set_session(readonly=True)
    except psycopg2.Error as e:
        if conn is not None:
            conn.close()
        raise RepositoryError(
            f"Cannot connect to PostgreSQL at {pg.hostname}:{pg.port}/{pg.database}: {e}\n"
            f"Check the postgres section of the config file or NTEXPORT_PG_* environment variables."
        ) from e
    return Repository(conn, placeholder="%s", errors=(psycopg2.Error,))


@contextmanager
def open_repository(cfg: Config) -> Generator[Repository, None, None]:
    """Open the configured database and close it when the block exits."""
    if cfg.db == "sqlite":
        repo = connect_sqlite(cfg.sqlite.file)
    elif cfg.db == "mysql":
        repo = connect_mysql(cfg)
    elif cfg.db == "postgres":
        repo = connect_postgres(cfg)
    else:
        raise ConfigError(f"Unsupported db: {cfg.db!r}")
    try:
        yield repo
    finally:
        repo.close()
