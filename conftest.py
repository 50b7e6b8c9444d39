"""
Root-level shared test fixtures.

Inherited by tests/ and the package-local test suites under ntexport/.
"""

from __future__ import annotations

import base64
import os
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from ntexport.config import Config, SqliteConfig
from ntexport.vault.crypto import BLOCK_SIZE, legacy_key

# Subset of the Next Terminal schema that ntexport reads.
SCHEMA = """
CREATE TABLE users (
    id TEXT PRIMARY KEY, username TEXT, password TEXT, nickname TEXT,
    totp_secret TEXT, online NUMERIC, enabled NUMERIC, created DATETIME,
    type TEXT, mail TEXT, status TEXT, source TEXT
);
CREATE TABLE user_groups (id TEXT PRIMARY KEY, name TEXT, created DATETIME);
CREATE TABLE user_group_members (id TEXT PRIMARY KEY, user_id TEXT, user_group_id TEXT);
CREATE TABLE storages (
    id TEXT PRIMARY KEY, name TEXT, is_share NUMERIC, limit_size INTEGER,
    owner TEXT, created DATETIME
);
CREATE TABLE strategies (
    id TEXT PRIMARY KEY, name TEXT, upload NUMERIC, download NUMERIC,
    "delete" NUMERIC, rename NUMERIC, edit NUMERIC, create_dir NUMERIC,
    copy NUMERIC, paste NUMERIC, created DATETIME
);
CREATE TABLE access_securities (
    id TEXT PRIMARY KEY, rule TEXT, ip TEXT, source TEXT, priority INTEGER
);
CREATE TABLE access_gateways (
    id TEXT PRIMARY KEY, name TEXT, ip TEXT, port INTEGER, account_type TEXT,
    username TEXT, password TEXT, private_key TEXT, passphrase TEXT, created DATETIME
);
CREATE TABLE commands (
    id TEXT PRIMARY KEY, name TEXT, content TEXT, created DATETIME, owner TEXT
);
CREATE TABLE credentials (
    id TEXT PRIMARY KEY, name TEXT, type TEXT, username TEXT, password TEXT,
    private_key TEXT, passphrase TEXT, created DATETIME, owner TEXT, encrypted NUMERIC
);
CREATE TABLE assets (
    id TEXT PRIMARY KEY, name TEXT, protocol TEXT, ip TEXT, port INTEGER,
    account_type TEXT, username TEXT, password TEXT, credential_id TEXT,
    private_key TEXT, passphrase TEXT, description TEXT, active NUMERIC,
    active_message TEXT, created DATETIME, tags TEXT, owner TEXT,
    encrypted NUMERIC, access_gateway_id TEXT, sort TEXT
);
CREATE TABLE asset_attributes (id TEXT PRIMARY KEY, asset_id TEXT, name TEXT, value TEXT);
CREATE TABLE jobs (
    id TEXT PRIMARY KEY, cron_job_id INTEGER, name TEXT, func TEXT, cron TEXT,
    mode TEXT, resource_ids TEXT, status TEXT, metadata TEXT,
    created DATETIME, updated DATETIME
);
"""


def _encrypt_raw(data: bytes) -> str:
    """AES-CBC encrypt already-padded bytes with the legacy key."""
    from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

    key = legacy_key()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(key[:BLOCK_SIZE])).encryptor()
    return base64.b64encode(encryptor.update(data) + encryptor.finalize()).decode("ascii")


def _encrypt_legacy(plaintext: str) -> str:
    """Encrypt the way Next Terminal does: PKCS#7 pad, AES-CBC, base64."""
    data = plaintext.encode("utf-8")
    pad = BLOCK_SIZE - len(data) % BLOCK_SIZE
    return _encrypt_raw(data + bytes([pad]) * pad)


@pytest.fixture
def encrypt_legacy() -> Callable[[str], str]:
    return _encrypt_legacy


@pytest.fixture
def encrypt_raw() -> Callable[[bytes], str]:
    return _encrypt_raw


@pytest.fixture
def clean_env(monkeypatch):
    """Remove NTEXPORT_* env vars that leak between tests."""
    for key in [
        "NTEXPORT_DB",
        "NTEXPORT_SQLITE_FILE",
        "NTEXPORT_MYSQL_HOST",
        "NTEXPORT_MYSQL_PORT",
        "NTEXPORT_MYSQL_USER",
        "NTEXPORT_MYSQL_PASSWORD",
        "NTEXPORT_MYSQL_DATABASE",
        "NTEXPORT_PG_HOST",
        "NTEXPORT_PG_PORT",
        "NTEXPORT_PG_USER",
        "NTEXPORT_PG_PASSWORD",
        "NTEXPORT_PG_DATABASE",
        "NTEXPORT_OUTPUT",
    ]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def empty_db(tmp_path: Path) -> Path:
    """A Next Terminal SQLite database with the schema and no rows."""
    db_path = tmp_path / "next-terminal.db"
    conn = sqlite3.connect(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture
def nt_db(empty_db: Path) -> Path:
    """A Next Terminal SQLite database with one of everything."""
    conn = sqlite3.connect(empty_db)
    created = "2023-04-05 06:07:08.123456789+00:00"
    conn.execute(
        "INSERT INTO users VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        ("u1", "admin", "$2a$10$hashed", "Admin", "TOTPSEED", 0, 1, created,
         "admin", "admin@example.com", "enabled", "local"),
    )
    conn.execute(
        "INSERT INTO users VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        ("u2", "ops", "secret", "Ops", None, None, 1, created,
         "user", "", "enabled", "local"),
    )
    conn.execute("INSERT INTO user_groups VALUES ('g1', 'operators', ?)", (created,))
    conn.execute("INSERT INTO user_groups VALUES ('g2', 'empty', ?)", (created,))
    conn.execute("INSERT INTO user_group_members VALUES ('m1', 'u1', 'g1')")
    conn.execute("INSERT INTO user_group_members VALUES ('m2', 'u2', 'g1')")
    conn.execute("INSERT INTO storages VALUES ('s1', 'shared', 1, -1, 'u1', ?)", (created,))
    conn.execute(
        "INSERT INTO strategies VALUES ('st1', 'readonly', 0, 1, 0, 0, 0, 0, 1, 0, ?)",
        (created,),
    )
    conn.execute(
        "INSERT INTO access_securities VALUES ('as1', 'reject', '10.0.0.0/8', 'manual', 1)"
    )
    conn.execute(
        "INSERT INTO access_gateways VALUES ('gw1', 'bastion', '10.0.0.1', 22, 'password', "
        "'jump', 'gw-cipher', '', '', ?)",
        (created,),
    )
    conn.execute(
        "INSERT INTO commands VALUES ('c1', 'uptime', 'uptime', ?, 'u1')", (created,)
    )
    conn.execute(
        "INSERT INTO credentials VALUES ('cr1', 'root', 'password', 'root', ?, '-', '', ?, 'u1', 1)",
        (_encrypt_legacy("hunter2"), created),
    )
    conn.execute(
        "INSERT INTO assets VALUES ('a1', 'web-1', 'ssh', '10.0.0.5', 22, 'custom', 'root', ?, "
        "'', '', '-', 'web server', 1, '', ?, 'prod', 'u1', 1, '', '1')",
        (_encrypt_legacy("toor"), created),
    )
    conn.execute("INSERT INTO asset_attributes VALUES ('at1', 'a1', 'port', '2222')")
    conn.execute("INSERT INTO asset_attributes VALUES ('at2', 'a1', 'ssh-mode', 'native')")
    conn.execute(
        "INSERT INTO jobs VALUES ('j1', 3, 'check', 'check-asset-status-job', '0 0/10 * * * ?', "
        "'all', '', 'enabled', '', ?, ?)",
        (created, created),
    )
    conn.commit()
    conn.close()
    return empty_db


@pytest.fixture
def sqlite_config(nt_db: Path, tmp_path: Path) -> Config:
    return Config(db="sqlite", sqlite=SqliteConfig(file=str(nt_db)), output=tmp_path / "backup.json")


@pytest.fixture
def west_of_utc():
    """Run with the local time zone set to America/New_York."""
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    time.tzset()
