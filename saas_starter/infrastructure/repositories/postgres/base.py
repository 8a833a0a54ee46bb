"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/base.py
============================================================
Class: PostgresStore

Responsibilities:
  - Shared execution helpers for the Postgres stores (_fetchone, _fetchall,
    _execute) with consistent error classification and logging
  - Compose SELECT statements: caller filters / where fragment, archived
    filter and the ACL predicate (ANDed last), ORDER BY, LIMIT/OFFSET
  - Validate ORDER BY columns against each store's column whitelist

Collaborators:
  - psycopg_pool.ConnectionPool
  - infrastructure.db.transaction.borrow_connection
  - infrastructure.db.errors.classify_store_error
  - identity.acl.read_predicate

Constraints:
  - Always parameterized SQL; column names only come from this module's
    whitelists, never from request input
============================================================
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Iterable, Optional

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import NotFoundError, ValidationError
from ....domain.repositories import FindRequest
from ....identity.acl import Target, read_predicate
from ....identity.claims import Claims
from ...db.errors import classify_store_error
from ...db.transaction import borrow_connection


class PostgresStore:
    """R: Base class; subclasses set _TABLE, _COLUMNS, _TARGET."""

    _TABLE: ClassVar[str]
    _COLUMNS: ClassVar[tuple[str, ...]]
    _SELECT: ClassVar[str]
    _TARGET: ClassVar[Target]
    _DEFAULT_ORDER: ClassVar[str] = "created_at ASC, id ASC"
    # R: never usable in ORDER BY or filters
    _SECRET_COLUMNS: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, pool: Optional[ConnectionPool] = None):
        # R: Pool inyectable para tests; en producción se obtiene por factory global.
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    # =========================================================
    # Execution helpers
    # =========================================================
    def _fetchone(
        self, *, query: str, params: Iterable[object], context_msg: str, extra: dict
    ) -> tuple | None:
        try:
            with borrow_connection(self._get_pool()) as conn:
                return conn.execute(query, tuple(params)).fetchone()
        except Exception as exc:
            raise classify_store_error(exc, context_msg, extra) from exc

    def _fetchone_required(
        self, *, query: str, params: Iterable[object], context_msg: str, extra: dict
    ) -> tuple:
        """R: UPDATE ... RETURNING that matched no row -> NotFoundError."""
        row = self._fetchone(query=query, params=params, context_msg=context_msg, extra=extra)
        if row is None:
            raise NotFoundError(f"{self._TABLE}: no row matched")
        return row

    def _fetchall(
        self, *, query: str, params: Iterable[object], context_msg: str, extra: dict
    ) -> list[tuple]:
        try:
            with borrow_connection(self._get_pool()) as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            raise classify_store_error(exc, context_msg, extra) from exc

    def _execute(
        self, *, query: str, params: Iterable[object], context_msg: str, extra: dict
    ) -> int:
        """R: Returns the affected row count."""
        try:
            with borrow_connection(self._get_pool()) as conn:
                return conn.execute(query, tuple(params)).rowcount
        except Exception as exc:
            raise classify_store_error(exc, context_msg, extra) from exc

    # =========================================================
    # Query building
    # =========================================================
    def _queryable(self, column: str) -> bool:
        return column in self._COLUMNS and column not in self._SECRET_COLUMNS

    def _order_by(self, order: tuple[str, ...]) -> str:
        if not order:
            return self._DEFAULT_ORDER

        parts: list[str] = []
        for item in order:
            tokens = item.strip().split()
            column = tokens[0] if tokens else ""
            direction = tokens[1].upper() if len(tokens) > 1 else "ASC"
            if not self._queryable(column) or direction not in ("ASC", "DESC") or len(tokens) > 2:
                raise ValidationError.single("order", f"invalid order clause: {item}")
            parts.append(f"{column} {direction}")
        return ", ".join(parts)

    def _select(
        self,
        claims: Claims,
        *,
        conditions: list[str],
        params: list[object],
        req: FindRequest,
        context_msg: str,
    ) -> list[tuple]:
        """
        R: SELECT with caller conditions, archived filter and ACL predicate.

        The ACL predicate is appended after every caller-supplied condition.
        """
        conditions = list(conditions)
        params = list(params)

        for column, value in req.filters.items():
            if not self._queryable(column):
                raise ValidationError.single(column, "unknown filter column")
            conditions.append(f"{column} = %s")
            # R: str enums bind by value, not by member name
            params.append(value.value if isinstance(value, Enum) else value)

        if req.where:
            conditions.append(f"({req.where})")
            params.extend(req.args)

        if not req.include_archived:
            conditions.append("archived_at IS NULL")

        predicate = read_predicate(claims, self._TARGET)
        if predicate is not None:
            conditions.append(predicate.sql)
            params.extend(predicate.params)

        where_sql = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        query = f"SELECT {self._SELECT} FROM {self._TABLE} {where_sql} ORDER BY {self._order_by(req.order)}"

        if req.limit is not None:
            query += " LIMIT %s"
            params.append(max(int(req.limit), 0))
        if req.offset is not None:
            query += " OFFSET %s"
            params.append(max(int(req.offset), 0))

        return self._fetchall(
            query=query,
            params=params,
            context_msg=context_msg,
            extra={"table": self._TABLE, "where_sql": where_sql},
        )
