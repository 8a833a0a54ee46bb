"""Repository implementations"""

from .in_memory import (
    InMemoryAccountRepository,
    InMemoryDatabase,
    InMemoryMembershipRepository,
    InMemoryProjectRepository,
    InMemoryTransactionManager,
    InMemoryUserRepository,
)
from .postgres import (
    PostgresAccountRepository,
    PostgresMembershipRepository,
    PostgresProjectRepository,
    PostgresUserRepository,
)

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryDatabase",
    "InMemoryMembershipRepository",
    "InMemoryProjectRepository",
    "InMemoryTransactionManager",
    "InMemoryUserRepository",
    "PostgresAccountRepository",
    "PostgresMembershipRepository",
    "PostgresProjectRepository",
    "PostgresUserRepository",
]
