"""Backup export pipeline."""

from ntexport.export.backup import BackupDocument, build_backup, run_export, write_backup
from ntexport.export.merge import MergedAsset, merge, merge_attributes

__all__ = [
    "BackupDocument",
    "MergedAsset",
    "build_backup",
    "merge",
    "merge_attributes",
    "run_export",
    "write_backup",
]
