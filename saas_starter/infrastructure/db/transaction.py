"""
===============================================================================
CRC CARD — infrastructure/db/transaction.py
===============================================================================

Class:
  PostgresTransactionManager

Responsibilities:
  - Scope a transaction to a single borrowed pool connection
  - Publish that connection (ContextVar) so every store call inside the
    block runs on it
  - Roll back on any exception (including QueryCanceled), commit otherwise

Notes:
  - Nested blocks become savepoints (psycopg conn.transaction())
  - Outside a block, stores borrow their own connection per statement
===============================================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from psycopg import Connection
from psycopg_pool import ConnectionPool

_current_conn: ContextVar[Optional[Connection]] = ContextVar(
    "current_db_connection", default=None
)


def current_connection() -> Optional[Connection]:
    return _current_conn.get()


@contextmanager
def borrow_connection(pool: ConnectionPool) -> Iterator[Connection]:
    """R: Reuse the transaction's connection if one is open; else borrow one."""
    conn = _current_conn.get()
    if conn is not None:
        yield conn
        return
    with pool.connection() as conn:
        yield conn


class PostgresTransactionManager:
    def __init__(self, pool: Optional[ConnectionPool] = None) -> None:
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from .pool import get_pool

        return get_pool()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        conn = _current_conn.get()
        if conn is not None:
            with conn.transaction():
                yield
            return

        with self._get_pool().connection() as conn:
            token = _current_conn.set(conn)
            try:
                with conn.transaction():
                    yield
            finally:
                _current_conn.reset(token)
