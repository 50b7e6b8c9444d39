"""Database access for ntexport."""

from ntexport.db.connection import open_repository
from ntexport.db.repository import Repository

__all__ = ["open_repository", "Repository"]
