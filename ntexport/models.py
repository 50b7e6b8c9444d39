"""
Next Terminal entity models.

One model per exported table. Fields are named after the database columns;
serialization aliases give the camelCase keys Next Terminal uses in its own
backup format. Timestamps are rendered as ``YYYY-MM-DD HH:MM:SS`` local time.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, ClassVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    model_validator,
)

# Go drivers write nanosecond fractions and "+0800"-style offsets that
# datetime.fromisoformat() does not accept as-is.
_TIMESTAMP_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[ T](\d{2}:\d{2}:\d{2})(?:\.(\d+))?\s*(Z|[+-]\d{2}:?\d{2})?"
)


def parse_timestamp(value: Any) -> Any:
    """Coerce a stored timestamp into a datetime. Unknown shapes pass through."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        return value
    m = _TIMESTAMP_RE.match(value.strip())
    if not m:
        return value
    date, time, fraction, offset = m.groups()
    text = f"{date}T{time}"
    if fraction:
        text += "." + fraction[:6].ljust(6, "0")
    if offset == "Z":
        text += "+00:00"
    elif offset:
        text += offset if ":" in offset else f"{offset[:3]}:{offset[3:]}"
    return datetime.fromisoformat(text)


def format_timestamp(value: datetime | None) -> str | None:
    """Render a timestamp in the process's local time zone."""
    if value is None:
        return None
    if value.tzinfo is not None:
        try:
            value = value.astimezone()
        except (OverflowError, ValueError):
            # Go's zero time (year 1) cannot be shifted west of UTC; keep the stored wall time.
            pass
    # strftime("%Y") does not zero-pad years before 1000 on glibc.
    return value.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")


Timestamp = Annotated[
    datetime | None,
    BeforeValidator(parse_timestamp),
    PlainSerializer(format_timestamp, return_type=str | None),
]


class Record(BaseModel):
    """Base for a row of a Next Terminal table."""

    __tablename__: ClassVar[str]

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # NULL columns fall back to the field default, as Next Terminal reads them.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class User(Record):
    __tablename__ = "users"

    id: str
    username: str = ""
    password: str = ""
    nickname: str = ""
    online: bool | None = None
    enabled: bool = False
    created: Timestamp = None
    type: str = ""
    mail: str = ""
    status: str = ""
    source: str = ""
    roles: list[str] = Field(default_factory=list)


class UserGroup(Record):
    __tablename__ = "user_groups"

    id: str
    name: str = ""
    created: Timestamp = None
    members: list[str] = Field(default_factory=list)


class Storage(Record):
    __tablename__ = "storages"

    id: str
    name: str = ""
    is_share: bool = Field(False, serialization_alias="isShare")
    limit_size: int = Field(0, serialization_alias="limitSize")
    owner: str = ""
    created: Timestamp = None


class Strategy(Record):
    __tablename__ = "strategies"

    id: str
    name: str = ""
    upload: bool = False
    download: bool = False
    delete: bool = False
    rename: bool = False
    edit: bool = False
    create_dir: bool = Field(False, serialization_alias="createDir")
    copy_: bool = Field(False, alias="copy")
    paste: bool = False
    created: Timestamp = None


class AccessSecurity(Record):
    __tablename__ = "access_securities"

    id: str
    rule: str = ""
    ip: str = ""
    source: str = ""
    priority: int = 0


class AccessGateway(Record):
    __tablename__ = "access_gateways"

    id: str
    name: str = ""
    ip: str = ""
    port: int = 0
    account_type: str = Field("", serialization_alias="accountType")
    username: str = ""
    password: str = ""
    private_key: str = Field("", serialization_alias="privateKey")
    passphrase: str = ""
    created: Timestamp = None


class Command(Record):
    __tablename__ = "commands"

    id: str
    name: str = ""
    content: str = ""
    created: Timestamp = None
    owner: str = ""


class Credential(Record):
    __tablename__ = "credentials"

    id: str
    name: str = ""
    type: str = ""
    username: str = ""
    password: str = ""
    private_key: str = Field("", serialization_alias="privateKey")
    passphrase: str = ""
    created: Timestamp = None
    owner: str = ""
    encrypted: bool = False


class Asset(Record):
    __tablename__ = "assets"

    id: str
    name: str = ""
    protocol: str = ""
    ip: str = ""
    port: int = 0
    account_type: str = ""
    username: str = ""
    password: str = ""
    credential_id: str = ""
    private_key: str = ""
    passphrase: str = ""
    description: str = ""
    active: bool = False
    active_message: str = ""
    created: Timestamp = None
    tags: str = ""
    owner: str = ""
    encrypted: bool = False
    access_gateway_id: str = ""
    sort: str | int = ""


class AssetAttribute(Record):
    __tablename__ = "asset_attributes"

    id: str = ""
    asset_id: str
    name: str
    value: str = ""


class Job(Record):
    __tablename__ = "jobs"

    id: str
    cron_job_id: int = Field(0, serialization_alias="cronJobId")
    name: str = ""
    func: str = ""
    cron: str = ""
    mode: str = ""
    resource_ids: str = Field("", serialization_alias="resourceIds")
    status: str = ""
    metadata: str = ""
    created: Timestamp = None
    updated: Timestamp = None
