"""Postgres connection pool and transaction scope"""

from .pool import close_pool, get_pool, init_pool
from .transaction import PostgresTransactionManager

__all__ = ["close_pool", "get_pool", "init_pool", "PostgresTransactionManager"]
