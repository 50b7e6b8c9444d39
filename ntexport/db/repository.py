"""
Read-only repository over a DB-API connection.

Works with any driver; the caller supplies the driver's parameter placeholder
and its base error class. Every driver error surfaces as RepositoryError.
"""

from __future__ import annotations

import logging
import re
from typing import Any, TypeVar

from pydantic import ValidationError

from ntexport.errors import RepositoryError
from ntexport.models import Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _ident(name: str) -> str:
    """Validate a table or column name before it is interpolated into SQL."""
    if not _IDENT_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class Repository:
    """Table scans and foreign-key lookups. Rows keep the query's order."""

    def __init__(
        self,
        conn: Any,
        *,
        placeholder: str = "?",
        errors: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        self._conn = conn
        self._placeholder = placeholder
        self._errors = errors

    def find_all(self, kind: type[R]) -> list[R]:
        """Load every row of ``kind``'s table."""
        table = kind.__tablename__
        records = self._validate(kind, self._query(f"SELECT * FROM {_ident(table)}"))
        logger.debug("Loaded %d rows from %s", len(records), table)
        return records

    def find_where(self, table: str, column: str, value: Any) -> list[dict[str, Any]]:
        """Rows of ``table`` where ``column`` equals ``value``."""
        sql = f"SELECT * FROM {_ident(table)} WHERE {_ident(column)} = {self._placeholder}"
        return self._query(sql, (value,))

    def find_by(self, kind: type[R], column: str, value: Any) -> list[R]:
        """Rows of ``kind``'s table where ``column`` equals ``value``."""
        return self._validate(kind, self.find_where(kind.__tablename__, column, value))

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _validate(kind: type[R], rows: list[dict[str, Any]]) -> list[R]:
        try:
            return [kind.model_validate(row) for row in rows]
        except ValidationError as e:
            raise RepositoryError(f"Unreadable row in {kind.__tablename__}: {e}") from e

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        try:
            cur = self._conn.cursor()
            try:
                if params:
                    cur.execute(sql, params)
                else:
                    cur.execute(sql)
                columns = [d[0] for d in cur.description]
                return [dict(zip(columns, row)) for row in cur.fetchall()]
            finally:
                cur.close()
        except self._errors as e:
            raise RepositoryError(f"Query failed ({sql}): {e}") from e
