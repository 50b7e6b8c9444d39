"""
Build and write the backup document.

One synchronous pass over the repository:

    users          password dropped
    user_groups    members attached from user_group_members
    storages, strategies, jobs, access_gateways, commands    verbatim
    credentials    secrets decrypted
    assets         secrets decrypted, asset_attributes merged in

Any read error aborts the run before anything is written. An undecodable
secret is exported as "" and the run continues.

Usage:
    from ntexport.export import run_export
    path = run_export(load_config("config.yml"))
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ntexport.config import Config
from ntexport.db import Repository, open_repository
from ntexport.errors import ExportError
from ntexport.export.merge import merge
from ntexport.models import (
    AccessGateway,
    AccessSecurity,
    Asset,
    AssetAttribute,
    Command,
    Credential,
    Job,
    Storage,
    Strategy,
    User,
    UserGroup,
)
from ntexport.vault import must_decrypt

logger = logging.getLogger(__name__)


class BackupDocument(BaseModel):
    """Root of the backup file. Key order is the order written to disk."""

    users: list[User] = Field(default_factory=list)
    user_groups: list[UserGroup] = Field(default_factory=list)
    storages: list[Storage] = Field(default_factory=list)
    strategies: list[Strategy] = Field(default_factory=list)
    # No step reads access_securities; the slot is always empty.
    access_securities: list[AccessSecurity] = Field(default_factory=list)
    access_gateways: list[AccessGateway] = Field(default_factory=list)
    commands: list[Command] = Field(default_factory=list)
    credentials: list[Credential] = Field(default_factory=list)
    assets: list[dict[str, Any]] = Field(default_factory=list)
    jobs: list[Job] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True)


def _decrypt_secrets(record: Credential | Asset, kind: str) -> None:
    """Replace the three ciphertext fields with plaintext, in memory only."""
    for field_name in ("password", "private_key", "passphrase"):
        value = getattr(record, field_name)
        setattr(record, field_name, must_decrypt(value, context=f"{kind}:{record.id}.{field_name}"))


def read_users(repo: Repository) -> list[User]:
    users = repo.find_all(User)
    for user in users:
        user.password = ""
    return users


def read_user_groups(repo: Repository) -> list[UserGroup]:
    groups = repo.find_all(UserGroup)
    for group in groups:
        rows = repo.find_where("user_group_members", "user_group_id", group.id)
        group.members = [row["user_id"] for row in rows]
    return groups


def read_credentials(repo: Repository) -> list[Credential]:
    credentials = repo.find_all(Credential)
    for credential in credentials:
        _decrypt_secrets(credential, "credential")
    return credentials


def read_assets(repo: Repository) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for asset in repo.find_all(Asset):
        _decrypt_secrets(asset, "asset")
        attributes = repo.find_by(AssetAttribute, "asset_id", asset.id)
        records.append(merge(asset, attributes))
    return records


def build_backup(repo: Repository) -> BackupDocument:
    """Read every exported collection and assemble the document."""
    doc = BackupDocument(
        users=read_users(repo),
        user_groups=read_user_groups(repo),
        storages=repo.find_all(Storage),
        strategies=repo.find_all(Strategy),
        jobs=repo.find_all(Job),
        access_gateways=repo.find_all(AccessGateway),
        commands=repo.find_all(Command),
        credentials=read_credentials(repo),
        assets=read_assets(repo),
    )
    logger.info(
        "Read %d users, %d groups, %d storages, %d strategies, %d gateways, "
        "%d commands, %d credentials, %d assets, %d jobs",
        len(doc.users),
        len(doc.user_groups),
        len(doc.storages),
        len(doc.strategies),
        len(doc.access_gateways),
        len(doc.commands),
        len(doc.credentials),
        len(doc.assets),
        len(doc.jobs),
    )
    return doc


def write_backup(doc: BackupDocument, output_path: Path) -> Path:
    """Atomically write the document as pretty-printed JSON."""
    try:
        content = doc.to_json()
    except ValueError as e:
        raise ExportError(f"Cannot serialize backup: {e}") from e

    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=output_path.parent,
            prefix=f".{output_path.name}-",
            suffix=".tmp",
        )
    except OSError as e:
        raise ExportError(f"Cannot write {output_path}: {e}") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, output_path)
    except OSError as e:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise ExportError(f"Cannot write {output_path}: {e}") from e
    return output_path


def run_export(cfg: Config, output_path: Path | None = None) -> Path:
    """Export the configured database. Returns the path of the backup file."""
    logger.info("Exporting %s database...", cfg.db)
    with open_repository(cfg) as repo:
        doc = build_backup(repo)
    path = write_backup(doc, output_path or cfg.output)
    logger.info("Export complete: %s", path)
    return path
