from .account import InMemoryAccountRepository
from .database import InMemoryDatabase, InMemoryTransactionManager
from .membership import InMemoryMembershipRepository
from .project import InMemoryProjectRepository
from .user import InMemoryUserRepository

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryDatabase",
    "InMemoryMembershipRepository",
    "InMemoryProjectRepository",
    "InMemoryTransactionManager",
    "InMemoryUserRepository",
]
