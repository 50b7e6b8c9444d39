"""Exceptions raised by ntexport."""

from __future__ import annotations


class ExportError(Exception):
    """Fatal error that aborts an export run. No artifact is written."""


class ConfigError(ExportError):
    pass


class RepositoryError(ExportError):
    """The database could not be reached or a query failed."""


class SecretDecodeError(ValueError):
    """A stored secret is not valid base64, ciphertext or padding."""
