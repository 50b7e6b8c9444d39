"""
Merge an asset's fixed columns with its ``asset_attributes`` overrides.

Next Terminal keeps protocol-specific settings (``ssh-mode``, ``color-depth``,
...) in an attribute/value side table. An exported asset is one flat object:
the asset's columns under lower-cased keys, overwritten by every attribute of
the same name. The typed asset and the overrides stay separate until
``to_record()`` builds that flat view for the backup document.

Attribute names are not unique in the schema. When an asset has several
attributes with the same name, the one returned last by the query wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ntexport.models import Asset, AssetAttribute, format_timestamp

logger = logging.getLogger(__name__)


def record_key(field_name: str) -> str:
    """Key of an asset column in the merged record (``account_type`` → ``accounttype``)."""
    return field_name.replace("_", "").lower()


@dataclass
class MergedAsset:
    base: Asset
    overrides: dict[str, str] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Flatten to the schema-less object written under ``assets``."""
        record = {record_key(k): v for k, v in self.base.model_dump(mode="json").items()}
        record.update(self.overrides)
        record["created"] = format_timestamp(self.base.created) or ""
        return record


def merge_attributes(base: Asset, attributes: Iterable[AssetAttribute]) -> MergedAsset:
    """Collect the attributes belonging to ``base``, last one per name wins."""
    merged = MergedAsset(base=base)
    for attr in attributes:
        if attr.asset_id != base.id:
            continue
        if attr.name in merged.overrides:
            logger.debug("Asset %s: duplicate attribute %r, keeping the later value", base.id, attr.name)
        merged.overrides[attr.name] = attr.value
    return merged


def merge(base: Asset, attributes: Iterable[AssetAttribute]) -> dict[str, Any]:
    """Merged, flattened record for one asset."""
    return merge_attributes(base, attributes).to_record()
