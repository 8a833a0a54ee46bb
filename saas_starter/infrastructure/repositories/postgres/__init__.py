from .account import PostgresAccountRepository
from .membership import PostgresMembershipRepository
from .project import PostgresProjectRepository
from .user import PostgresUserRepository

__all__ = [
    "PostgresAccountRepository",
    "PostgresMembershipRepository",
    "PostgresProjectRepository",
    "PostgresUserRepository",
]
